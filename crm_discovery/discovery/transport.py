"""GraphQL and REST transports over a shared httpx client.

Both transports raise on failure; callers decide whether a failure is
data (a failed trial) or fatal.
"""

import json
import logging
from typing import Any

import httpx

from ..errors import GraphQLResponseError, TransportError

logger = logging.getLogger(__name__)


class RestTransport:
    """REST calls against the CRM's ``/rest`` surface."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        """Initialize REST transport.

        Args:
            client: Pre-authenticated client with ``base_url`` set
        """
        self.client = client

    async def request(
        self,
        method: str,
        path: str,
        json_body: dict | None = None,
    ) -> httpx.Response:
        """Issue a request and raise on any non-2xx status.

        Args:
            method: HTTP method
            path: Path relative to the client base URL
            json_body: Optional JSON request body

        Returns:
            The successful response
        """
        response = await self.client.request(method, path, json=json_body)
        response.raise_for_status()
        return response

    async def get(self, path: str) -> httpx.Response:
        return await self.request("GET", path)


class GraphQLTransport:
    """GraphQL POSTs against the CRM's GraphQL endpoint."""

    def __init__(self, client: httpx.AsyncClient, path: str = "/graphql") -> None:
        """Initialize GraphQL transport.

        Args:
            client: Pre-authenticated client with ``base_url`` set
            path: GraphQL endpoint path
        """
        self.client = client
        self.path = path

    async def execute(
        self,
        document: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Execute a query or mutation and return its ``data`` member.

        Raises:
            httpx.HTTPStatusError: Non-2xx response
            GraphQLResponseError: Response carried GraphQL errors
            TransportError: Response body is not a GraphQL result
        """
        payload: dict[str, Any] = {"query": document}
        if variables:
            payload["variables"] = variables

        response = await self.client.post(self.path, json=payload)
        response.raise_for_status()

        try:
            body = response.json()
        except json.JSONDecodeError as e:
            raise TransportError(f"Invalid JSON in GraphQL response: {e}") from e

        if not isinstance(body, dict):
            raise TransportError("GraphQL response is not an object")

        errors = body.get("errors")
        if errors:
            messages = [
                err.get("message", str(err)) if isinstance(err, dict) else str(err)
                for err in errors
            ]
            logger.debug("GraphQL errors: %s", messages)
            raise GraphQLResponseError(messages)

        data = body.get("data")
        return data if isinstance(data, dict) else {}
