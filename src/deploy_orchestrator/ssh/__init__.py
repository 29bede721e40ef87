"""SSH utilities for the deploy orchestrator."""

from .credentials import SSHCredentials
from .session import SSHCommandResult, SSHConnectionError, SSHSession
from .probe import RemoteHostFacts, RemoteProbe

__all__ = [
    "SSHCredentials",
    "SSHCommandResult",
    "SSHConnectionError",
    "SSHSession",
    "RemoteHostFacts",
    "RemoteProbe",
]
