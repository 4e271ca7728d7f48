"""Discovery report model and writers.

Generates:
- api-discovery-<timestamp>.json - Full structured report
- api-discovery-<timestamp>.md - Human-readable summary
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .auth_prober import AuthProfile
from .cache_analyzer import CacheProfile
from .rate_limit_prober import RateLimitProfile
from .recommendations import Recommendations
from .sampler import PerformanceResults
from .schema_analyzer import SchemaAnalysis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveryReport:
    """Complete result of one discovery run."""

    timestamp: datetime
    service_version: str
    performance: PerformanceResults = field(default_factory=PerformanceResults)
    schema: SchemaAnalysis = field(default_factory=SchemaAnalysis)
    auth: AuthProfile = field(default_factory=AuthProfile)
    rate_limiting: RateLimitProfile = field(default_factory=RateLimitProfile)
    caching: CacheProfile = field(default_factory=CacheProfile)
    recommendations: Recommendations = field(default_factory=Recommendations)
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "serviceVersion": self.service_version,
            "durationSeconds": round(self.duration_seconds, 2),
            "performanceMetrics": self.performance.to_dict(),
            "schemaAnalysis": self.schema.to_dict(),
            "authAnalysis": self.auth.to_dict(),
            "rateLimiting": self.rate_limiting.to_dict(),
            "cacheAnalysis": self.caching.to_dict(),
            "recommendations": self.recommendations.to_dict(),
        }


def report_basename(timestamp: datetime) -> str:
    """File name stem for a report taken at ``timestamp``."""
    stamp = timestamp.isoformat().replace(":", "-").replace(".", "-").replace("+", "-")
    return f"api-discovery-{stamp}"


class ReportGenerator:
    """Write discovery reports to disk.

    Provides:
    - Indented JSON report
    - Markdown summary report
    """

    def __init__(
        self,
        output_dir: Path | str = "reports",
        include_markdown: bool = True,
        pretty_print: bool = True,
    ) -> None:
        """Initialize report generator.

        Args:
            output_dir: Directory for output files
            include_markdown: Also write a markdown summary
            pretty_print: Pretty print JSON output
        """
        self.output_dir = Path(output_dir)
        self.include_markdown = include_markdown
        self.pretty_print = pretty_print

    def generate_all(self, report: DiscoveryReport) -> dict[str, Path]:
        """Generate all reports for a discovery run.

        Args:
            report: Completed discovery report

        Returns:
            Dict mapping report type to file path
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        basename = report_basename(report.timestamp)

        generated = {"json": self.save_report(report, self.output_dir / f"{basename}.json")}

        if self.include_markdown:
            md_path = self.output_dir / f"{basename}.md"
            md_path.write_text(self.to_markdown(report))
            logger.info("Generated markdown report: %s", md_path)
            generated["markdown"] = md_path

        return generated

    def save_report(self, report: DiscoveryReport, path: Path) -> Path:
        """Write the report verbatim as JSON.

        Args:
            report: Report to write
            path: Output file path

        Returns:
            Path written
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            if self.pretty_print:
                json.dump(report.to_dict(), f, indent=2, default=str)
            else:
                json.dump(report.to_dict(), f, default=str)
            f.write("\n")
        logger.info("API discovery report saved to %s", path)
        return path

    @staticmethod
    def markdown_table(headers: list[str], rows: list[list[str]]) -> list[str]:
        """Create markdown table lines."""
        if not headers or not rows:
            return []
        lines = [
            "| " + " | ".join(headers) + " |",
            "| " + " | ".join(["---"] * len(headers)) + " |",
        ]
        lines.extend("| " + " | ".join(str(cell) for cell in row) + " |" for row in rows)
        lines.append("")
        return lines

    def to_markdown(self, report: DiscoveryReport) -> str:
        """Render a human-readable summary of the report."""
        perf = report.performance
        lines = [
            "# CRM API Discovery Report",
            "",
            f"**Generated**: {report.timestamp.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}",
            f"**Service Version**: {report.service_version}",
            f"**Duration**: {report.duration_seconds:.1f} seconds",
            "",
            "---",
            "",
            "## Performance",
            "",
            f"Faster API: **{perf.comparison.faster_api.value}**",
            "",
        ]
        lines.extend(f"- {line}" for line in perf.comparison.recommendations)
        lines.append("")

        rows = [
            [
                m.protocol.value,
                m.endpoint,
                m.method,
                f"{m.average_latency:.0f}ms",
                f"{m.min_latency:.0f}ms",
                f"{m.max_latency:.0f}ms",
                f"{m.success_rate * 100:.0f}%",
            ]
            for m in (*perf.graphql, *perf.rest)
        ]
        lines.extend(
            self.markdown_table(
                ["Protocol", "Endpoint", "Method", "Avg", "Min", "Max", "Success"],
                rows,
            ),
        )

        lines.extend(
            [
                "## Schema",
                "",
                "| Metric | Value |",
                "|--------|-------|",
                f"| Custom Fields | {len(report.schema.custom_fields)} |",
                f"| Relationships | {len(report.schema.relationships)} |",
                f"| Data Types | {len(report.schema.data_types)} |",
                f"| Schema Version | {report.schema.schema_version} |",
                "",
                "## Authentication",
                "",
                f"- Validation time: {report.auth.validation_time_ms:.0f}ms",
                f"- Confirmed scopes: {', '.join(report.auth.token_scopes) or 'none'}",
                "",
                "## Rate Limiting",
                "",
                "| Metric | Value |",
                "|--------|-------|",
                f"| Limits Detected | {report.rate_limiting.limits_detected} |",
                f"| Max Requests/Minute | {report.rate_limiting.max_requests_per_minute} |",
                f"| Recommended Batch Size | {report.rate_limiting.recommended_batch_size} |",
                "",
                "## Caching",
                "",
            ],
        )

        if report.caching.cacheable:
            lines.extend(
                self.markdown_table(
                    ["Endpoint", "TTL (s)"],
                    [
                        [endpoint, str(report.caching.ttl_recommendations.get(endpoint, ""))]
                        for endpoint in report.caching.cacheable
                    ],
                ),
            )
        else:
            lines.extend(["No cacheable endpoints found.", ""])

        recs = report.recommendations
        lines.extend(["## Recommendations", "", "### API Selection", ""])
        lines.extend(f"- {pattern}: {api.value}" for pattern, api in recs.api_selection.items())
        lines.append("")

        for title, items in (("Optimization", recs.optimization), ("Error Handling", recs.error_handling)):
            if items:
                lines.extend([f"### {title}", ""])
                lines.extend(f"- {item}" for item in items)
                lines.append("")

        return "\n".join(lines)
