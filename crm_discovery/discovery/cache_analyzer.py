"""Cache header inspection for REST endpoints."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .transport import RestTransport

logger = logging.getLogger(__name__)

CACHE_HEADERS = ("cache-control", "etag", "last-modified")

DEFAULT_CACHE_ENDPOINTS = (
    "/rest/me",
    "/rest/people",
    "/rest/companies",
    "/rest/workspace",
)

# Path segments of identity/workspace-scoped, low-churn data
LONG_TTL_SEGMENTS = frozenset({"me", "workspace"})
LONG_TTL_SECONDS = 3600
SHORT_TTL_SECONDS = 300


@dataclass(frozen=True)
class CacheProfile:
    """Cacheable endpoints and recommended TTLs."""

    cacheable: tuple[str, ...] = ()
    ttl_recommendations: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        ttls = MappingProxyType(dict(self.ttl_recommendations))
        object.__setattr__(self, "ttl_recommendations", ttls)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "cacheable": list(self.cacheable),
            "ttlRecommendations": dict(self.ttl_recommendations),
        }


def has_cache_headers(headers) -> bool:
    """Check a header mapping for any cache-relevant header."""
    names = {name.lower() for name in headers.keys()}
    return any(header in names for header in CACHE_HEADERS)


def recommend_ttl(endpoint: str) -> int:
    """Long TTL for identity/workspace endpoints, short TTL otherwise."""
    path = endpoint.split("?", 1)[0]
    segments = {segment for segment in path.split("/") if segment}
    if segments & LONG_TTL_SEGMENTS:
        return LONG_TTL_SECONDS
    return SHORT_TTL_SECONDS


class CacheAnalyzer:
    """Inspect response headers of a fixed endpoint list."""

    def __init__(
        self,
        rest: RestTransport,
        endpoints: tuple[str, ...] = DEFAULT_CACHE_ENDPOINTS,
    ) -> None:
        self.rest = rest
        self.endpoints = endpoints

    async def analyze(self) -> CacheProfile:
        """Classify endpoints by their cache headers.

        Unreachable endpoints are left out of the profile.
        """
        logger.info("Analyzing caching behavior...")
        cacheable: list[str] = []
        ttls: dict[str, int] = {}

        for endpoint in self.endpoints:
            try:
                response = await self.rest.get(endpoint)
            except Exception as e:
                logger.debug("Skipping %s: %s", endpoint, e)
                continue

            if has_cache_headers(response.headers):
                cacheable.append(endpoint)
                ttls[endpoint] = recommend_ttl(endpoint)

        return CacheProfile(cacheable=tuple(cacheable), ttl_recommendations=ttls)
