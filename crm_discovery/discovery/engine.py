"""Discovery engine: runs all analyzers and assembles the report."""

import asyncio
import dataclasses
import logging
import time
from datetime import datetime, timezone

import httpx

from ..errors import ServiceUnreachableError
from ..utils.config import DiscoveryConfig
from .auth_prober import AuthProber
from .cache_analyzer import CacheAnalyzer
from .catalog import DEFAULT_CATALOG, OperationCatalog
from .rate_limit_prober import RateLimitProbeConfig, RateLimitProber
from .recommendations import synthesize_recommendations
from .report_generator import DiscoveryReport
from .sampler import DualProtocolSampler
from .schema_analyzer import UNKNOWN_VERSION, SchemaAnalyzer
from .transport import GraphQLTransport, RestTransport

logger = logging.getLogger(__name__)

HEALTH_PATH = "/health"


class APIDiscovery:
    """Characterize a CRM's GraphQL and REST surfaces.

    The five analyzers are independent read-only probes and run
    concurrently; the run completes when the slowest one does.
    """

    def __init__(
        self,
        config: DiscoveryConfig,
        graphql: GraphQLTransport,
        rest: RestTransport,
        catalog: OperationCatalog = DEFAULT_CATALOG,
    ) -> None:
        """Initialize discovery engine.

        Args:
            config: Discovery configuration
            graphql: Pre-authenticated GraphQL transport
            rest: Pre-authenticated REST transport
            catalog: Operations to benchmark
        """
        self.config = config
        self.graphql = graphql
        self.rest = rest
        self.catalog = catalog

        self.sampler = DualProtocolSampler(graphql, rest, config.test_iterations)
        self.schema_analyzer = SchemaAnalyzer(graphql)
        self.auth_prober = AuthProber(rest)
        self.rate_limit_prober = RateLimitProber(
            rest,
            RateLimitProbeConfig(
                budget_seconds=config.rate_limit_budget_seconds,
                delay_seconds=config.rate_limit_delay_seconds,
            ),
        )
        self.cache_analyzer = CacheAnalyzer(rest)

    async def detect_version(self) -> str:
        """Read the service version from the health endpoint.

        Raises:
            ServiceUnreachableError: The service could not be reached at all
        """
        try:
            response = await self.rest.get(HEALTH_PATH)
        except httpx.HTTPStatusError as e:
            logger.warning("Could not detect service version: %s", e)
            return UNKNOWN_VERSION
        except httpx.RequestError as e:
            raise ServiceUnreachableError(
                f"Cannot reach {self.config.api_base_url}: {e}",
            ) from e

        try:
            data = response.json()
        except ValueError:
            return UNKNOWN_VERSION
        if not isinstance(data, dict):
            return UNKNOWN_VERSION
        return str(data.get("version") or UNKNOWN_VERSION)

    async def run_complete_analysis(self) -> DiscoveryReport:
        """Run every analyzer and synthesize recommendations.

        Returns:
            The assembled discovery report
        """
        logger.info("Starting API discovery against %s", self.config.api_base_url)
        started = time.monotonic()
        timestamp = datetime.now(timezone.utc)

        version = await self.detect_version()

        performance, schema, auth, rate_limiting, caching = await asyncio.gather(
            self.sampler.run(self.catalog),
            self.schema_analyzer.analyze(),
            self.auth_prober.analyze(),
            self.rate_limit_prober.analyze(),
            self.cache_analyzer.analyze(),
        )

        report = DiscoveryReport(
            timestamp=timestamp,
            service_version=version,
            performance=performance,
            schema=schema,
            auth=auth,
            rate_limiting=rate_limiting,
            caching=caching,
            duration_seconds=time.monotonic() - started,
        )
        report = dataclasses.replace(report, recommendations=synthesize_recommendations(report))

        logger.info("API discovery completed in %.1fs", report.duration_seconds)
        return report
