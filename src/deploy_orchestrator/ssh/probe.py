"""Remote host probing utilities."""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass

from ..exceptions import DeployError
from .session import SSHSession

logger = logging.getLogger(__name__)


@dataclass
class RemoteHostFacts:
    hostname: str
    kernel: str
    java_version: str
    service_home_exists: bool = False

    def to_payload(self) -> dict:
        return {
            "hostname": self.hostname,
            "kernel": self.kernel,
            "java_version": self.java_version,
            "service_home_exists": self.service_home_exists,
        }


class RemoteProbe:
    """Collects remote host facts by running simple commands."""

    def collect(self, session: SSHSession, service_home: str) -> RemoteHostFacts:
        hostname = self._safe_run(session, "hostname")
        kernel = self._safe_run(session, "uname -sr")
        # java -version prints to stderr
        java_version = self._safe_run(session, "java -version 2>&1 | head -1")
        home_check = self._safe_run(
            session,
            f"test -d {shlex.quote(service_home)} && echo yes || echo no",
        )
        return RemoteHostFacts(
            hostname=hostname or "unknown",
            kernel=kernel or "unknown",
            java_version=java_version or "unknown",
            service_home_exists=home_check.strip() == "yes",
        )

    def _safe_run(self, session: SSHSession, command: str) -> str:
        try:
            result = session.run(command)
        except DeployError as exc:
            logger.debug("Probe command %r failed: %s", command, exc)
            return ""
        return result.stdout or result.stderr
