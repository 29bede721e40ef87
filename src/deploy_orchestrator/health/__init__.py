"""Readiness checking."""

from .checker import HealthCheckConfig, HealthChecker, HealthReport, HealthState
from .probe import HttpProbe, ProbeOutcome, ReadinessProbe

__all__ = [
    "HealthCheckConfig",
    "HealthChecker",
    "HealthReport",
    "HealthState",
    "HttpProbe",
    "ProbeOutcome",
    "ReadinessProbe",
]
