"""Sequential build → locate → deploy → verify pipeline."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Callable, List, Optional

from ..artifacts import Artifact, ArtifactLocator
from ..build import BuildRunner
from ..config import AppConfig
from ..exceptions import DeployError
from ..health import HealthChecker, ReadinessProbe
from ..models import DeploymentResult, DeploymentStatus, DeploymentTarget
from ..remote import RemoteDeployer
from ..ssh import RemoteHostFacts, RemoteProbe, SSHCredentials, SSHSession
from ..utils.logging import get_logger
from .report import RunReportWriter

logger = get_logger(__name__)


class DeployOrchestrator:
    """
    Runs one deployment from a fully-resolved :class:`AppConfig`.

    Stages run strictly in order and each one finishes before the next starts.
    Any :class:`DeployError` ends the run with a FAILED result; stop and
    cleanup problems are only logged.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        skip_build: bool = False,
        session_factory: Callable[[SSHCredentials], SSHSession] = SSHSession,
        probe: Optional[ReadinessProbe] = None,
        sleeper: Callable[[float], None] = time.sleep,
        locator: Optional[ArtifactLocator] = None,
    ) -> None:
        missing = config.validate()
        if missing:
            raise ValueError(
                "Missing deployment configuration values: " + ", ".join(missing)
            )
        # fail before anything on the target is touched
        config.health_check().validate()
        self.config = config
        self.skip_build = skip_build
        self.session_factory = session_factory
        self.probe = probe
        self.sleeper = sleeper
        self.locator = locator or ArtifactLocator(compute_checksum=config.artifact.checksum)
        self.remote_probe = RemoteProbe()
        self.host_facts: Optional[RemoteHostFacts] = None

    def run(self) -> DeploymentResult:
        started_at = datetime.now()
        target = self.config.deployment_target()
        stages: List[str] = []
        artifact: Optional[Artifact] = None
        checker: Optional[HealthChecker] = None
        status = DeploymentStatus.FAILED
        last_error: Optional[str] = None

        logger.info(
            "Preparing deployment to %s", target.credential_ref.destination
        )
        try:
            if self.config.build.command and not self.skip_build:
                logger.info("📦 Step 1: Building...")
                BuildRunner(
                    self.config.build.command,
                    self.config.build.workdir,
                    timeout=self.config.build.timeout,
                ).run()
                stages.append("build")

            logger.info("🔎 Step 2: Locating artifact...")
            artifact = self.locator.locate(
                self.config.artifact.directory, self.config.artifact.pattern
            )
            stages.append("locate")

            logger.info("🔗 Step 3: Deploying over SSH...")
            self._deploy(target, artifact, stages)

            logger.info("🩺 Step 4: Waiting for %s...", self.config.health.url)
            checker = HealthChecker(
                self.config.health_check(), probe=self.probe, sleeper=self.sleeper
            )
            checker.wait_until_healthy()
            stages.append("health")
            status = DeploymentStatus.SUCCESS
        except DeployError as exc:
            last_error = str(exc)
            logger.error("❌ Deployment failed: %s", exc)

        result = DeploymentResult(
            status=status,
            attempts=checker.attempts if checker else 0,
            last_error=last_error,
            artifact=artifact,
            stages=tuple(stages),
            started_at=started_at,
            finished_at=datetime.now(),
        )
        if result.ok:
            logger.info("🎉 Deployment succeeded (%s)", ", ".join(stages))

        if self.config.reports.enabled:
            path = RunReportWriter(self.config.reports.directory).write(
                result, target=target, host_facts=self.host_facts
            )
            logger.info("Run report written to %s", path)
        return result

    def _deploy(
        self, target: DeploymentTarget, artifact: Artifact, stages: List[str]
    ) -> None:
        paths = target.remote_service_paths
        dest_path = paths.destination_for(artifact)

        with self.session_factory(target.credential_ref) as session:
            stages.append("connect")
            self.host_facts = self.remote_probe.collect(session, paths.service_home)
            logger.info(
                "   Remote host: %s (%s / %s)",
                self.host_facts.hostname,
                self.host_facts.kernel,
                self.host_facts.java_version,
            )
            if not self.host_facts.service_home_exists:
                logger.warning("   Service home %s not found on target", paths.service_home)

            deployer = RemoteDeployer(session, paths)
            if deployer.stop_service():
                stages.append("stop")
            if deployer.clean_previous(dest_path):
                stages.append("clean")
            deployer.transfer(artifact, dest_path)
            stages.append("transfer")
            deployer.start_service()
            stages.append("start")
