"""Recommendation synthesis from an assembled discovery report.

``synthesize_recommendations`` is pure: the same report always yields the
same recommendations, in the same order.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ..errors import ErrorKind, ErrorLog, ProbeError
from .sampler import ApiProtocol

if TYPE_CHECKING:
    from .report_generator import DiscoveryReport

SLOW_GRAPHQL_THRESHOLD_MS = 1000


@dataclass(frozen=True)
class Recommendations:
    """API selection and hints for a downstream integration."""

    api_selection: Mapping[str, ApiProtocol] = field(default_factory=dict)
    optimization: tuple[str, ...] = ()
    error_handling: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "api_selection", MappingProxyType(dict(self.api_selection)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "apiSelection": {k: v.value for k, v in self.api_selection.items()},
            "optimization": list(self.optimization),
            "errorHandling": list(self.error_handling),
        }


def select_apis(faster_api: ApiProtocol) -> dict[str, ApiProtocol]:
    """Pick a protocol per access pattern.

    Bulk and complex queries are pinned to GraphQL, simple CRUD to REST;
    list and single-record access follow the measured winner.
    """
    return {
        "list_operations": faster_api,
        "single_record": faster_api,
        "bulk_operations": ApiProtocol.GRAPHQL,
        "simple_crud": ApiProtocol.REST,
        "complex_queries": ApiProtocol.GRAPHQL,
    }


def optimization_hints(report: DiscoveryReport) -> list[str]:
    hints = []

    if report.rate_limiting.limits_detected:
        hints.append(
            "Implement batching with max "
            f"{report.rate_limiting.recommended_batch_size} requests per batch",
        )

    if report.caching.cacheable:
        hints.append(f"Implement caching for {len(report.caching.cacheable)} endpoints")

    if any(m.average_latency > SLOW_GRAPHQL_THRESHOLD_MS for m in report.performance.graphql):
        hints.append("Consider query optimization for slow GraphQL operations")

    return hints


def collected_errors(report: DiscoveryReport) -> tuple[ProbeError, ...]:
    """Union of all errors in the report, deduplicated, in report order."""
    errors = ErrorLog()
    for metrics in (*report.performance.graphql, *report.performance.rest):
        errors.extend(metrics.errors)
    errors.extend(report.auth.errors)
    return errors.as_tuple()


def _mentions(error: ProbeError, kind: ErrorKind, markers: tuple[str, ...]) -> bool:
    if error.kind == kind:
        return True
    message = error.message.lower()
    return any(marker in message for marker in markers)


def error_handling_hints(errors: tuple[ProbeError, ...]) -> list[str]:
    hints = []

    if any(_mentions(e, ErrorKind.TIMEOUT, ("timeout",)) for e in errors):
        hints.append("Implement timeout retry logic")

    if any(_mentions(e, ErrorKind.AUTH, ("401", "403")) for e in errors):
        hints.append("Implement token refresh mechanism")

    if any(_mentions(e, ErrorKind.RATE_LIMIT, ("429",)) for e in errors):
        hints.append("Implement exponential backoff for rate limiting")

    return hints


def synthesize_recommendations(report: DiscoveryReport) -> Recommendations:
    """Reduce a discovery report to recommendations."""
    return Recommendations(
        api_selection=select_apis(report.performance.comparison.faster_api),
        optimization=tuple(optimization_hints(report)),
        error_handling=tuple(error_handling_hints(collected_errors(report))),
    )
