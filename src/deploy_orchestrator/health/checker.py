"""Bounded readiness polling.

The checker is an explicit state machine::

    POLLING --success--> HEALTHY
    POLLING --max_attempts failures--> EXHAUSTED

Each :meth:`HealthChecker.tick` issues at most one probe; terminal states
never probe again.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from ..exceptions import HealthCheckExhausted
from .probe import HttpProbe, ReadinessProbe

logger = logging.getLogger(__name__)


class HealthState(Enum):
    POLLING = "polling"
    HEALTHY = "healthy"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class HealthCheckConfig:
    url: str = "http://localhost:8080/"
    max_attempts: int = 10
    interval: float = 3.0
    backoff: str = "fixed"  # "fixed" | "exponential"
    backoff_factor: float = 2.0
    max_interval: float = 60.0
    timeout: float = 5.0
    expected_status: Tuple[int, ...] = (200,)
    expected_text: Optional[str] = None

    def validate(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval < 0:
            raise ValueError("interval must not be negative")
        if self.backoff not in ("fixed", "exponential"):
            raise ValueError(f"Unknown backoff strategy: {self.backoff}")

    def delay_after(self, attempt: int) -> float:
        """Seconds to wait after failed ``attempt`` (1-based)."""
        if self.backoff == "exponential":
            return min(self.interval * self.backoff_factor ** (attempt - 1), self.max_interval)
        return self.interval


@dataclass(frozen=True)
class HealthReport:
    state: HealthState
    attempts: int
    last_error: Optional[str]
    elapsed: float

    @property
    def healthy(self) -> bool:
        return self.state is HealthState.HEALTHY


class HealthChecker:
    """Polls a readiness probe until it succeeds or the attempt budget is spent."""

    def __init__(
        self,
        config: HealthCheckConfig,
        *,
        probe: Optional[ReadinessProbe] = None,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        config.validate()
        self.config = config
        self.probe = probe or HttpProbe(
            config.url,
            timeout=config.timeout,
            expected_status=config.expected_status,
            expected_text=config.expected_text,
        )
        self._sleep = sleeper
        self.state = HealthState.POLLING
        self.attempts = 0
        self.last_error: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.state is not HealthState.POLLING

    def tick(self) -> HealthState:
        """Issue one probe if still polling and return the resulting state."""
        if self.done:
            return self.state

        self.attempts += 1
        outcome = self.probe()
        if outcome.healthy:
            self.state = HealthState.HEALTHY
            self.last_error = None
            logger.info(
                "✅ %s healthy after %d attempt(s) (%s)",
                self.config.url,
                self.attempts,
                outcome.detail,
            )
        else:
            self.last_error = outcome.detail or "probe failed"
            logger.info(
                "   attempt %d/%d: %s",
                self.attempts,
                self.config.max_attempts,
                self.last_error,
            )
            if self.attempts >= self.config.max_attempts:
                self.state = HealthState.EXHAUSTED
        return self.state

    def run(self) -> HealthReport:
        """Tick until HEALTHY or EXHAUSTED, sleeping only between failed attempts."""
        started = time.monotonic()
        while self.tick() is HealthState.POLLING:
            self._sleep(self.config.delay_after(self.attempts))
        return HealthReport(
            state=self.state,
            attempts=self.attempts,
            last_error=self.last_error,
            elapsed=time.monotonic() - started,
        )

    def wait_until_healthy(self) -> HealthReport:
        """Like :meth:`run` but raise :class:`HealthCheckExhausted` on failure."""
        report = self.run()
        if not report.healthy:
            raise HealthCheckExhausted(self.config.url, report.attempts, report.last_error)
        return report
