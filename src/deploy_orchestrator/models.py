"""Data models for a deployment run."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .artifacts import Artifact
from .ssh import SSHCredentials


class DeploymentStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ServicePaths:
    """Where the remote service lives and how to stop/start it.

    Relative paths and commands are resolved against ``service_home``.
    The defaults match a stock Tomcat installation.
    """

    service_home: str = "/usr/local/tomcat"
    deploy_dir: str = "webapps"
    artifact_name: Optional[str] = None
    stop_command: str = "bin/shutdown.sh"
    start_command: str = "bin/startup.sh"
    start_log: str = "logs/deployer-startup.log"
    clean_exploded: bool = True

    def resolve(self, path: str) -> str:
        return posixpath.join(self.service_home, path)

    def destination_for(self, artifact: Artifact) -> str:
        return posixpath.join(
            self.resolve(self.deploy_dir), self.artifact_name or artifact.name
        )


@dataclass(frozen=True)
class DeploymentTarget:
    """Immutable description of where a run deploys to."""

    host: str
    port: int
    credential_ref: SSHCredentials
    remote_service_paths: ServicePaths = field(default_factory=ServicePaths)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "username": self.credential_ref.username,
            "auth_method": self.credential_ref.auth_method,
            "service_home": self.remote_service_paths.service_home,
        }


@dataclass(frozen=True)
class DeploymentResult:
    """Outcome of a run. Created once at the end and never mutated."""

    status: DeploymentStatus
    attempts: int
    last_error: Optional[str] = None
    artifact: Optional[Artifact] = None
    stages: Tuple[str, ...] = ()
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.status is DeploymentStatus.SUCCESS

    def to_payload(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "artifact": self.artifact.to_payload() if self.artifact else None,
            "stages": list(self.stages),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
