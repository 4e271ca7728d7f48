"""Shared fixtures for CRM API discovery tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

BASE_URL = "http://crm.test"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_response(
    status_code: int = 200,
    json_data=None,
    headers: dict | None = None,
    method: str = "GET",
    path: str = "/",
) -> httpx.Response:
    """Build a real httpx response bound to a request."""
    request = httpx.Request(method, BASE_URL + path)
    if json_data is None:
        return httpx.Response(status_code, headers=headers, request=request)
    return httpx.Response(status_code, json=json_data, headers=headers, request=request)


def http_error(status_code: int, method: str = "GET", path: str = "/") -> httpx.HTTPStatusError:
    """Build the error ``raise_for_status`` raises for ``status_code``."""
    response = make_response(status_code, method=method, path=path)
    return httpx.HTTPStatusError(
        f"Error response {status_code}",
        request=response.request,
        response=response,
    )


@pytest.fixture
def clock():
    """Fake clock starting at an arbitrary point."""
    return FakeClock()


@pytest.fixture
def graphql_transport():
    """Mock GraphQL transport."""
    transport = MagicMock()
    transport.execute = AsyncMock(return_value={})
    return transport


@pytest.fixture
def rest_transport():
    """Mock REST transport."""
    transport = MagicMock()
    transport.request = AsyncMock(return_value=make_response(200, {}))
    transport.get = AsyncMock(return_value=make_response(200, {}))
    return transport
