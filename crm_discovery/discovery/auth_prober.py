"""Credential validation latency and empirical scope detection.

Scopes are inferred by attempting one call per scope: a successful call
proves the scope is granted. A failed call does not prove the opposite
(the scope may be granted but the call rejected for another reason), so
``token_scopes`` is a lower bound on the credential's real scope set.
"""

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import httpx

from ..errors import ErrorLog, ProbeError, classify_error
from .sampler import Clock
from .transport import RestTransport

logger = logging.getLogger(__name__)

IDENTITY_PATH = "/rest/me"

# Status meaning "authenticated, but this scope is not granted"
SCOPE_DENIED_STATUS = 403


@dataclass(frozen=True)
class ScopeProbe:
    """A call whose success proves a scope."""

    scope: str
    method: str
    path: str
    body: dict | None = None


SCOPE_PROBES = (
    ScopeProbe("read:people", "GET", "/rest/people"),
    ScopeProbe("write:people", "POST", "/rest/people", {"name": "test"}),
    ScopeProbe("read:companies", "GET", "/rest/companies"),
    ScopeProbe("write:companies", "POST", "/rest/companies", {"name": "test"}),
)


@dataclass(frozen=True)
class AuthProfile:
    """Authentication and authorization facts about the credential."""

    validation_time_ms: float = 0.0
    token_scopes: tuple[str, ...] = ()
    permission_model: Mapping[str, Any] = field(default_factory=dict)
    errors: tuple[ProbeError, ...] = ()

    def __post_init__(self) -> None:
        # List values (permissions) are stored as tuples
        frozen = {
            k: tuple(v) if isinstance(v, list) else v for k, v in self.permission_model.items()
        }
        object.__setattr__(self, "permission_model", MappingProxyType(frozen))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "validationTime": round(self.validation_time_ms, 2),
            "tokenScopes": list(self.token_scopes),
            "permissionModel": {
                k: list(v) if isinstance(v, tuple) else v for k, v in self.permission_model.items()
            },
            "errorPatterns": [e.to_dict() for e in self.errors],
        }


def _is_scope_denial(exc: Exception) -> bool:
    return (
        isinstance(exc, httpx.HTTPStatusError)
        and exc.response.status_code == SCOPE_DENIED_STATUS
    )


class AuthProber:
    """Probe token validation time, reachable scopes and identity."""

    def __init__(
        self,
        rest: RestTransport,
        probes: tuple[ScopeProbe, ...] = SCOPE_PROBES,
        clock: Clock = time.perf_counter,
    ) -> None:
        self.rest = rest
        self.probes = probes
        self.clock = clock

    async def detect_scopes(self, errors: ErrorLog | None = None) -> tuple[str, ...]:
        """Attempt each scope probe and collect the scopes that succeeded.

        Args:
            errors: Log for failures other than a scope denial (HTTP 403)

        Returns:
            Confirmed scopes, in probe order
        """
        scopes = []
        for probe in self.probes:
            try:
                await self.rest.request(probe.method, probe.path, probe.body)
            except Exception as e:
                logger.debug("Scope %s not confirmed: %s", probe.scope, e)
                if errors is not None and not _is_scope_denial(e):
                    errors.add(classify_error(e))
                continue
            scopes.append(probe.scope)
        return tuple(scopes)

    async def permission_model(self, errors: ErrorLog | None = None) -> dict[str, Any]:
        """Sample user and workspace identity; empty on failure."""
        try:
            response = await self.rest.get(IDENTITY_PATH)
            data = response.json()
        except Exception as e:
            logger.debug("Identity lookup failed: %s", e)
            if errors is not None:
                errors.add(classify_error(e))
            return {}

        if not isinstance(data, dict):
            return {}
        if isinstance(data.get("data"), dict):
            data = data["data"]

        return {
            "userId": data.get("id") or "unknown",
            "workspaceId": data.get("workspaceId") or "unknown",
            "permissions": data.get("permissions") or [],
        }

    async def analyze(self) -> AuthProfile:
        """Measure validation latency and probe scopes.

        Returns:
            Auth profile; an identity-check failure yields no scopes
        """
        logger.info("Analyzing authentication patterns...")
        errors = ErrorLog()
        start = self.clock()

        try:
            await self.rest.get(IDENTITY_PATH)
        except Exception as e:
            elapsed = (self.clock() - start) * 1000
            errors.add(classify_error(e))
            logger.warning("Token validation failed: %s", e)
            return AuthProfile(validation_time_ms=elapsed, errors=errors.as_tuple())

        validation_time = (self.clock() - start) * 1000
        scopes = await self.detect_scopes(errors)
        permissions = await self.permission_model(errors)

        logger.info("Confirmed scopes: %s", ", ".join(scopes) or "none")
        return AuthProfile(
            validation_time_ms=validation_time,
            token_scopes=scopes,
            permission_model=permissions,
            errors=errors.as_tuple(),
        )
