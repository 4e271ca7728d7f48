#!/usr/bin/env python3
"""CRM API Discovery Script.

Probes the live CRM's GraphQL and REST APIs to compare performance,
analyze the schema, probe credential scopes, rate limits and cache
headers, and writes a structured report with recommendations.

Usage:
    python -m crm_discovery.discover                       # Full discovery
    python -m crm_discovery.discover --iterations 10       # More samples
    python -m crm_discovery.discover --config staging.yaml
    python -m crm_discovery.discover --output-dir out --no-markdown
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .discovery import APIDiscovery, GraphQLTransport, ReportGenerator, RestTransport
from .discovery.report_generator import DiscoveryReport
from .errors import DiscoveryError
from .utils.config import DiscoveryConfig, load_config

console = Console()
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/discovery.yaml")


def setup_logging(level: str) -> None:
    """Route log records through rich."""
    name = level.lower()
    if name == "warn":
        name = "warning"
    logging.basicConfig(
        level=name.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def build_client(config: DiscoveryConfig) -> httpx.AsyncClient:
    """Create the shared, pre-authenticated HTTP client."""
    return httpx.AsyncClient(
        base_url=config.base_url,
        headers=config.auth_headers,
        timeout=config.request_timeout_seconds,
        limits=httpx.Limits(max_connections=config.max_concurrent_requests),
        follow_redirects=True,
    )


async def run_discovery(config: DiscoveryConfig) -> DiscoveryReport:
    """Run discovery against the configured CRM.

    Args:
        config: Validated discovery configuration

    Returns:
        The completed discovery report
    """
    async with build_client(config) as client:
        discovery = APIDiscovery(
            config,
            graphql=GraphQLTransport(client),
            rest=RestTransport(client),
        )
        return await discovery.run_complete_analysis()


def print_summary(report: DiscoveryReport) -> None:
    """Print discovery summary to console."""
    table = Table(title="API Discovery Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    perf = report.performance
    table.add_row("Service Version", report.service_version)
    table.add_row("Analysis Completed", report.timestamp.isoformat())
    table.add_row("Faster API", perf.comparison.faster_api.value)
    table.add_row("GraphQL Operations Tested", str(len(perf.graphql)))
    table.add_row("REST Operations Tested", str(len(perf.rest)))
    table.add_row("Custom Fields", str(len(report.schema.custom_fields)))
    table.add_row("Relationships", str(len(report.schema.relationships)))
    table.add_row("Data Types", str(len(report.schema.data_types)))
    table.add_row("Rate Limits Detected", str(report.rate_limiting.limits_detected))
    table.add_row("Max Requests/Minute", str(report.rate_limiting.max_requests_per_minute))
    table.add_row("Recommended Batch Size", str(report.rate_limiting.recommended_batch_size))
    table.add_row("Cacheable Endpoints", str(len(report.caching.cacheable)))

    console.print(table)

    top = report.recommendations.optimization[:3]
    if top:
        console.print("\n[bold]Top Recommendations:[/bold]")
        for i, rec in enumerate(top, 1):
            console.print(f"  {i}. {rec}")


def print_troubleshooting() -> None:
    console.print("\n[yellow]Troubleshooting:[/yellow]")
    console.print("  - Check that the CRM is running and TWENTY_API_URL points at it")
    console.print("  - Check that TWENTY_API_KEY is a valid API key")
    console.print("  - Re-run with --log-level debug for per-request details")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Characterize a CRM's GraphQL and REST APIs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to discovery configuration (YAML)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Output directory for reports (default: from config)",
    )
    parser.add_argument(
        "--iterations",
        "-i",
        type=int,
        default=None,
        help="Trials per operation per protocol (default: from config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (debug, info, warning, error)",
    )
    parser.add_argument(
        "--no-markdown",
        action="store_true",
        help="Skip the markdown summary report",
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        overrides: dict = {}
        if args.output_dir is not None:
            overrides["output_dir"] = str(args.output_dir)
        if args.iterations is not None:
            overrides["test_iterations"] = args.iterations
        if args.log_level is not None:
            overrides["log_level"] = args.log_level
        if args.no_markdown:
            overrides["markdown_report"] = False
        config = replace(config, **overrides).validate()
    except DiscoveryError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return 1

    setup_logging(config.log_level)

    console.print("[bold blue]CRM API Discovery[/bold blue]")
    console.print(f"  API:        {config.base_url}")
    console.print(f"  Iterations: {config.test_iterations}")

    try:
        report = asyncio.run(run_discovery(config))
    except Exception as e:
        logger.exception("API discovery failed")
        console.print(f"[red]API discovery failed: {e}[/red]")
        print_troubleshooting()
        return 1

    report_gen = ReportGenerator(
        output_dir=config.output_dir,
        include_markdown=config.markdown_report,
    )
    generated = report_gen.generate_all(report)

    print_summary(report)

    console.print("\n[blue]Reports:[/blue]")
    for report_type, path in generated.items():
        console.print(f"  {report_type}: {path}")

    console.print("\n[bold green]Discovery complete![/bold green]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
