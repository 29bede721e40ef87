"""Build, ship and verify a web archive on a remote service."""

from .artifacts import Artifact, ArtifactLocator
from .config import AppConfig, load_config
from .exceptions import (
    ArtifactAmbiguous,
    ArtifactMissing,
    BuildFailed,
    DeployError,
    HealthCheckExhausted,
    RemoteCommandFailed,
    TransferFailed,
)
from .health import HealthCheckConfig, HealthChecker, HealthState
from .models import DeploymentResult, DeploymentStatus, DeploymentTarget, ServicePaths
from .orchestrator import DeployOrchestrator
from .remote import RemoteDeployer

__version__ = "0.1.0"

__all__ = [
    "Artifact",
    "ArtifactLocator",
    "AppConfig",
    "load_config",
    "ArtifactAmbiguous",
    "ArtifactMissing",
    "BuildFailed",
    "DeployError",
    "HealthCheckExhausted",
    "RemoteCommandFailed",
    "TransferFailed",
    "HealthCheckConfig",
    "HealthChecker",
    "HealthState",
    "DeploymentResult",
    "DeploymentStatus",
    "DeploymentTarget",
    "ServicePaths",
    "DeployOrchestrator",
    "RemoteDeployer",
]
