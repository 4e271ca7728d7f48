"""Dual-protocol latency sampling.

Runs each catalog operation ``iterations`` times against the GraphQL and
REST transports, reduces the trials to ``PerformanceMetrics`` and compares
the two protocols.

Trials for one (operation, protocol) pair are strictly sequential so one
trial's queueing delay never leaks into another's latency. The GraphQL and
REST sweeps run concurrently with each other.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import ErrorLog, ProbeError, classify_error
from .catalog import OperationCatalog, OperationSpec
from .transport import GraphQLTransport, RestTransport

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class ApiProtocol(Enum):
    """API surface of the CRM."""

    GRAPHQL = "graphql"
    REST = "rest"

    @property
    def label(self) -> str:
        return "GraphQL" if self is ApiProtocol.GRAPHQL else "REST"


@dataclass(frozen=True)
class SampleSet:
    """Latency observations and errors for one operation on one protocol."""

    latencies_ms: tuple[float, ...] = ()
    attempted: int = 0
    errors: tuple[ProbeError, ...] = ()

    @property
    def successes(self) -> int:
        return len(self.latencies_ms)


@dataclass(frozen=True)
class PerformanceMetrics:
    """Summary statistics of a ``SampleSet``.

    Latency fields are 0 when no trial succeeded.
    """

    endpoint: str
    method: str
    protocol: ApiProtocol
    average_latency: float = 0.0
    min_latency: float = 0.0
    max_latency: float = 0.0
    success_rate: float = 0.0
    requests_per_second: float = 0.0
    errors: tuple[ProbeError, ...] = ()

    @classmethod
    def from_samples(
        cls,
        endpoint: str,
        method: str,
        protocol: ApiProtocol,
        samples: SampleSet,
    ) -> "PerformanceMetrics":
        """Reduce a sample set to summary statistics."""
        latencies = samples.latencies_ms
        if latencies:
            average = sum(latencies) / len(latencies)
            minimum = min(latencies)
            maximum = max(latencies)
        else:
            average = minimum = maximum = 0.0

        success_rate = samples.successes / samples.attempted if samples.attempted > 0 else 0.0

        return cls(
            endpoint=endpoint,
            method=method,
            protocol=protocol,
            average_latency=average,
            min_latency=minimum,
            max_latency=maximum,
            success_rate=min(1.0, max(0.0, success_rate)),
            requests_per_second=1000 / average if average > 0 else 0.0,
            errors=samples.errors,
        )

    @property
    def measured(self) -> bool:
        """Whether at least one trial succeeded."""
        return self.success_rate > 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "endpoint": self.endpoint,
            "method": self.method,
            "averageLatency": round(self.average_latency, 2),
            "minLatency": round(self.min_latency, 2),
            "maxLatency": round(self.max_latency, 2),
            "successRate": self.success_rate,
            "requestsPerSecond": round(self.requests_per_second, 2),
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass(frozen=True)
class PerformanceComparison:
    """Verdict on which protocol is faster."""

    faster_api: ApiProtocol
    graphql_average: float | None
    rest_average: float | None
    recommendations: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "fasterAPI": self.faster_api.value,
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class PerformanceResults:
    """Output of the performance analyzer."""

    graphql: tuple[PerformanceMetrics, ...] = ()
    rest: tuple[PerformanceMetrics, ...] = ()
    comparison: PerformanceComparison = field(
        default_factory=lambda: compare_performance((), ()),
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "graphql": [m.to_dict() for m in self.graphql],
            "rest": [m.to_dict() for m in self.rest],
            "comparison": self.comparison.to_dict(),
        }


def _grand_mean(metrics: tuple[PerformanceMetrics, ...] | list[PerformanceMetrics]) -> float | None:
    measured = [m.average_latency for m in metrics if m.measured]
    if not measured:
        return None
    return sum(measured) / len(measured)


def _format_mean(value: float | None) -> str:
    return f"{value:.2f}ms" if value is not None else "n/a"


def compare_performance(
    graphql_metrics: tuple[PerformanceMetrics, ...] | list[PerformanceMetrics],
    rest_metrics: tuple[PerformanceMetrics, ...] | list[PerformanceMetrics],
) -> PerformanceComparison:
    """Declare the protocol with the lower grand mean latency the faster API.

    Operations without a single successful trial are left out of the grand
    mean. A protocol with no measured operation cannot win; ties go to REST.
    """
    graphql_avg = _grand_mean(graphql_metrics)
    rest_avg = _grand_mean(rest_metrics)

    if graphql_avg is not None and (rest_avg is None or graphql_avg < rest_avg):
        faster = ApiProtocol.GRAPHQL
    else:
        faster = ApiProtocol.REST

    return PerformanceComparison(
        faster_api=faster,
        graphql_average=graphql_avg,
        rest_average=rest_avg,
        recommendations=(
            f"GraphQL average latency: {_format_mean(graphql_avg)}, "
            f"REST average latency: {_format_mean(rest_avg)}",
            f"Recommendation: Use {faster.label} for better performance",
        ),
    )


class DualProtocolSampler:
    """Timed sequential sampling of catalog operations on both protocols."""

    def __init__(
        self,
        graphql: GraphQLTransport,
        rest: RestTransport,
        iterations: int,
        clock: Clock = time.perf_counter,
    ) -> None:
        """Initialize sampler.

        Args:
            graphql: GraphQL transport
            rest: REST transport
            iterations: Trials per operation per protocol
            clock: Monotonic clock in seconds
        """
        if iterations < 0:
            raise ValueError("iterations must be non-negative")
        self.graphql = graphql
        self.rest = rest
        self.iterations = iterations
        self.clock = clock

    async def _sample(self, call: Callable[[], Awaitable[Any]]) -> SampleSet:
        latencies: list[float] = []
        errors = ErrorLog()

        for _ in range(self.iterations):
            start = self.clock()
            try:
                await call()
            except Exception as e:
                errors.add(classify_error(e))
                continue
            latencies.append(max(0.0, (self.clock() - start) * 1000))

        return SampleSet(
            latencies_ms=tuple(latencies),
            attempted=self.iterations,
            errors=errors.as_tuple(),
        )

    async def measure_graphql(self, operation: OperationSpec) -> PerformanceMetrics:
        """Sample one operation over GraphQL."""
        variables = dict(operation.graphql_variables)
        samples = await self._sample(
            lambda: self.graphql.execute(operation.graphql_document, variables),
        )
        return PerformanceMetrics.from_samples(
            operation.graphql_endpoint,
            "POST",
            ApiProtocol.GRAPHQL,
            samples,
        )

    async def measure_rest(self, operation: OperationSpec) -> PerformanceMetrics:
        """Sample one operation over REST."""
        body = dict(operation.rest_body) if operation.rest_body is not None else None
        samples = await self._sample(
            lambda: self.rest.request(operation.rest_method, operation.rest_path, body),
        )
        return PerformanceMetrics.from_samples(
            operation.rest_path,
            operation.rest_method,
            ApiProtocol.REST,
            samples,
        )

    async def _sweep(
        self,
        catalog: OperationCatalog,
        measure: Callable[[OperationSpec], Awaitable[PerformanceMetrics]],
    ) -> tuple[PerformanceMetrics, ...]:
        results = []
        for operation in catalog.operations():
            results.append(await measure(operation))
        return tuple(results)

    async def run(self, catalog: OperationCatalog) -> PerformanceResults:
        """Sample every catalog operation on both protocols and compare them."""
        logger.info(
            "Sampling %d operations x %d iterations on both protocols",
            len(catalog),
            self.iterations,
        )
        graphql_metrics, rest_metrics = await asyncio.gather(
            self._sweep(catalog, self.measure_graphql),
            self._sweep(catalog, self.measure_rest),
        )
        comparison = compare_performance(graphql_metrics, rest_metrics)
        logger.info("Faster API: %s", comparison.faster_api.value)
        return PerformanceResults(
            graphql=graphql_metrics,
            rest=rest_metrics,
            comparison=comparison,
        )
