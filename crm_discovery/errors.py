"""Error types and error records for CRM API discovery.

Exceptions are raised by transports and the engine; ``ProbeError`` records
are what analyzers keep as data when a probe call fails.
"""

from dataclasses import dataclass
from enum import Enum

import httpx


class DiscoveryError(Exception):
    """Base class for all discovery errors."""


class ConfigError(DiscoveryError):
    """Invalid or incomplete discovery configuration."""


class UnknownOperationError(DiscoveryError, KeyError):
    """Operation name is not present in the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown operation: {self.name!r}"


class TransportError(DiscoveryError):
    """A remote call failed below the HTTP status layer."""


class GraphQLResponseError(TransportError):
    """GraphQL response carried an ``errors`` array."""

    def __init__(self, messages: list[str]) -> None:
        self.messages = messages
        super().__init__("; ".join(messages) or "GraphQL request failed")


class ServiceUnreachableError(DiscoveryError):
    """The CRM could not be reached at all."""


class SchemaParseError(DiscoveryError):
    """Introspection payload does not describe a schema."""


class ErrorKind(Enum):
    """Classification of a failed probe call."""

    TIMEOUT = "timeout"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    HTTP = "http"
    TRANSPORT = "transport"
    GRAPHQL = "graphql"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ProbeError:
    """A single structured error observed while probing."""

    kind: ErrorKind
    message: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary."""
        return {"kind": self.kind.value, "message": self.message}


class ErrorLog:
    """Insertion-ordered set of ``ProbeError`` records."""

    def __init__(self) -> None:
        self._errors: dict[ProbeError, None] = {}

    def add(self, error: ProbeError) -> None:
        self._errors.setdefault(error, None)

    def extend(self, errors) -> None:
        for error in errors:
            self.add(error)

    def __iter__(self):
        return iter(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __contains__(self, error: object) -> bool:
        return error in self._errors

    def as_tuple(self) -> tuple[ProbeError, ...]:
        return tuple(self._errors)


def classify_error(exc: BaseException) -> ProbeError:
    """Map an exception raised by a transport to a ``ProbeError``.

    Args:
        exc: Exception raised by a probe call

    Returns:
        Structured error record
    """
    if isinstance(exc, httpx.TimeoutException):
        return ProbeError(ErrorKind.TIMEOUT, f"Request timeout: {exc}")

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        reason = exc.response.reason_phrase or ""
        message = f"HTTP {status} {reason}".strip()
        if status in (401, 403):
            return ProbeError(ErrorKind.AUTH, message)
        if status == 429:
            return ProbeError(ErrorKind.RATE_LIMIT, message)
        return ProbeError(ErrorKind.HTTP, message)

    if isinstance(exc, GraphQLResponseError):
        return ProbeError(ErrorKind.GRAPHQL, str(exc))

    if isinstance(exc, (httpx.RequestError, TransportError)):
        return ProbeError(ErrorKind.TRANSPORT, str(exc) or type(exc).__name__)

    return ProbeError(ErrorKind.UNKNOWN, str(exc) or type(exc).__name__)


def is_rate_limit_signal(error: ProbeError) -> bool:
    """Check whether an error record indicates a "too many requests" condition."""
    if error.kind == ErrorKind.RATE_LIMIT:
        return True
    message = error.message.lower()
    return "429" in message or "too many requests" in message
