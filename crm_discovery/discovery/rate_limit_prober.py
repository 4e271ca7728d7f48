"""Bounded-time rate limit probing.

Issues a throttled stream of cheap identity calls until the service
answers with a rate limit signal or the probe budget is spent:

    PROBING -> LIMIT_DETECTED | TIMED_OUT

Only requests that completed count toward the requests-per-minute
estimate; failed calls and the call that tripped the limit are tallied
separately. When no limit was hit this underestimates the true ceiling.
"""

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import classify_error, is_rate_limit_signal
from .sampler import Clock
from .transport import RestTransport

logger = logging.getLogger(__name__)

BATCH_SAFETY_DIVISOR = 10


class ProbeState(Enum):
    """States of the rate limit probe."""

    PROBING = "probing"
    LIMIT_DETECTED = "limit_detected"
    TIMED_OUT = "timed_out"


@dataclass
class RateLimitProbeConfig:
    """Configuration for rate limit probing."""

    budget_seconds: float = 30.0
    delay_seconds: float = 0.1
    probe_path: str = "/rest/me"


@dataclass(frozen=True)
class RateLimitProfile:
    """Result of a rate limit probe."""

    limits_detected: bool = False
    max_requests_per_minute: int = 0
    recommended_batch_size: int = 1
    requests_issued: int = 0
    requests_completed: int = 0
    elapsed_seconds: float = 0.0
    state: ProbeState = ProbeState.TIMED_OUT

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "limitsDetected": self.limits_detected,
            "maxRequestsPerMinute": self.max_requests_per_minute,
            "recommendedBatchSize": self.recommended_batch_size,
            "requestsIssued": self.requests_issued,
            "requestsCompleted": self.requests_completed,
            "elapsedSeconds": round(self.elapsed_seconds, 2),
            "state": self.state.value,
        }


def recommended_batch_size(requests_per_minute: float) -> int:
    """Conservative batch size: a tenth of the measured rate, at least 1."""
    return max(1, math.floor(requests_per_minute / BATCH_SAFETY_DIVISOR))


def requests_per_minute(requests: int, elapsed_seconds: float) -> int:
    """Achieved throughput in whole requests per minute."""
    if elapsed_seconds <= 0:
        return 0
    return math.floor(requests / (elapsed_seconds / 60))


class RateLimitProber:
    """Throttled burst prober for the CRM's rate limit."""

    def __init__(
        self,
        rest: RestTransport,
        config: RateLimitProbeConfig | dict | None = None,
        clock: Clock = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize rate limit prober.

        Args:
            rest: REST transport
            config: Probe configuration (RateLimitProbeConfig, dict, or None for defaults)
            clock: Monotonic clock in seconds
            sleep: Coroutine used for the inter-request delay
        """
        if config is None:
            self.config = RateLimitProbeConfig()
        elif isinstance(config, dict):
            self.config = RateLimitProbeConfig(
                budget_seconds=config.get("budget_seconds", 30.0),
                delay_seconds=config.get("delay_seconds", 0.1),
                probe_path=config.get("probe_path", "/rest/me"),
            )
        else:
            self.config = config

        self.rest = rest
        self.clock = clock
        self.sleep = sleep
        self.state = ProbeState.PROBING

    async def analyze(self) -> RateLimitProfile:
        """Run the probe until a limit is hit or the budget elapses."""
        logger.info("Analyzing rate limiting (budget %.0fs)...", self.config.budget_seconds)

        self.state = ProbeState.PROBING
        issued = 0
        completed = 0
        start = self.clock()

        while self.state == ProbeState.PROBING:
            if self.clock() - start >= self.config.budget_seconds:
                self.state = ProbeState.TIMED_OUT
                break

            issued += 1
            try:
                await self.rest.get(self.config.probe_path)
            except Exception as e:
                error = classify_error(e)
                if is_rate_limit_signal(error):
                    logger.info("Rate limit hit after %d requests", issued)
                    self.state = ProbeState.LIMIT_DETECTED
                    break
                logger.debug("Rate limit probe request failed: %s", error.message)
            else:
                completed += 1

            await self.sleep(self.config.delay_seconds)

        elapsed = self.clock() - start
        rpm = requests_per_minute(completed, elapsed)

        return RateLimitProfile(
            limits_detected=self.state == ProbeState.LIMIT_DETECTED,
            max_requests_per_minute=rpm,
            recommended_batch_size=recommended_batch_size(rpm),
            requests_issued=issued,
            requests_completed=completed,
            elapsed_seconds=elapsed,
            state=self.state,
        )
