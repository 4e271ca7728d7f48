"""Tests for cache header inspection."""

import httpx
import pytest

from conftest import http_error, make_response
from crm_discovery.discovery.cache_analyzer import (
    CacheAnalyzer,
    has_cache_headers,
    recommend_ttl,
)


class TestRecommendTtl:
    """Test TTL policy."""

    @pytest.mark.parametrize(
        ("endpoint", "ttl"),
        [
            ("/rest/me", 3600),
            ("/rest/workspace", 3600),
            ("/rest/people", 300),
            ("/rest/companies", 300),
            ("/rest/people?filter=me", 300),
            ("/rest/members", 300),
        ],
    )
    def test_ttl(self, endpoint: str, ttl: int) -> None:
        assert recommend_ttl(endpoint) == ttl


class TestHasCacheHeaders:
    """Test header detection."""

    def test_case_insensitive(self) -> None:
        assert has_cache_headers({"ETag": '"abc"'})
        assert has_cache_headers(httpx.Headers({"Cache-Control": "max-age=60"}))

    def test_no_cache_headers(self) -> None:
        assert not has_cache_headers({"Content-Type": "application/json"})


class TestCacheAnalyzer:
    """Test the cache analyzer."""

    @pytest.mark.asyncio
    async def test_classifies_endpoints(self, rest_transport) -> None:
        responses = {
            "/rest/me": make_response(200, {}, headers={"ETag": '"v1"'}),
            "/rest/people": make_response(200, {}),
            "/rest/companies": make_response(200, {}, headers={"Last-Modified": "Mon, 01 Jan 2024"}),
            "/rest/workspace": http_error(503),
        }

        async def get(path):
            result = responses[path]
            if isinstance(result, Exception):
                raise result
            return result

        rest_transport.get.side_effect = get

        profile = await CacheAnalyzer(rest_transport).analyze()

        assert profile.cacheable == ("/rest/me", "/rest/companies")
        assert profile.ttl_recommendations == {"/rest/me": 3600, "/rest/companies": 300}
        assert rest_transport.get.await_count == 4

    @pytest.mark.asyncio
    async def test_all_unreachable(self, rest_transport) -> None:
        rest_transport.get.side_effect = httpx.ConnectError("Connection refused")

        profile = await CacheAnalyzer(rest_transport).analyze()

        assert profile.to_dict() == {"cacheable": [], "ttlRecommendations": {}}

    @pytest.mark.asyncio
    async def test_custom_endpoints(self, rest_transport) -> None:
        rest_transport.get.return_value = make_response(200, {}, headers={"Cache-Control": "private"})

        profile = await CacheAnalyzer(rest_transport, ("/rest/workspace",)).analyze()

        assert profile.ttl_recommendations == {"/rest/workspace": 3600}
