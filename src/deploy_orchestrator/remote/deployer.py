"""Stop, replace and start a remote service over an SSH session."""

from __future__ import annotations

import logging
import posixpath
import shlex
from typing import Optional

import paramiko

from ..artifacts import Artifact
from ..exceptions import DeployError, RemoteCommandFailed, TransferFailed
from ..models import ServicePaths
from ..ssh import SSHSession

logger = logging.getLogger(__name__)


class RemoteDeployer:
    """
    Deploys an artifact to a service managed by shell scripts on the target.

    Every operation runs through the given session; the deployer never opens
    or closes connections itself.
    """

    def __init__(self, session: SSHSession, paths: ServicePaths) -> None:
        self.session = session
        self.paths = paths

    def _in_home(self, command: str) -> str:
        return f"cd {shlex.quote(self.paths.service_home)} && {command}"

    def stop_service(self) -> bool:
        """Stop the service. Failures are logged and tolerated."""
        command = self._in_home(self.paths.stop_command)
        try:
            result = self.session.run(command)
        except DeployError as exc:
            logger.warning("Stop command failed, continuing: %s", exc)
            return False
        if not result.ok:
            logger.warning(
                "Stop command exited %d (service may already be stopped): %s",
                result.exit_status,
                result.stderr,
            )
            return False
        logger.info("Service stopped")
        return True

    def clean_previous(self, dest_path: str) -> bool:
        """Remove the directory the previous archive was exploded into."""
        if not self.paths.clean_exploded:
            return False
        exploded, ext = posixpath.splitext(dest_path)
        if ext.lower() != ".war":
            return False
        try:
            result = self.session.run(f"rm -rf {shlex.quote(exploded)}")
        except DeployError as exc:
            logger.warning("Could not remove %s: %s", exploded, exc)
            return False
        if not result.ok:
            logger.warning("Could not remove %s: %s", exploded, result.stderr)
            return False
        return True

    def transfer(self, artifact: Artifact, dest_path: str) -> str:
        """
        Upload ``artifact`` to ``dest_path`` and verify it arrived intact.

        The file is written to ``<dest_path>.part`` first and renamed into place
        only after its size (and checksum, when known) match.

        Raises:
            TransferFailed: upload error, size mismatch, checksum mismatch or a
                channel failure at any step; the partial file is removed
        """
        part_path = f"{dest_path}.part"
        try:
            self._transfer(artifact, dest_path, part_path)
        except TransferFailed:
            self._discard(part_path)
            raise
        except (DeployError, OSError, paramiko.SSHException) as exc:
            self._discard(part_path)
            raise TransferFailed(f"Transfer of {artifact.name} failed: {exc}") from exc

        logger.info("Transferred %s to %s (%d bytes)", artifact.name, dest_path, artifact.size)
        return dest_path

    def _transfer(self, artifact: Artifact, dest_path: str, part_path: str) -> None:
        quoted_part = shlex.quote(part_path)
        expected_size = artifact.size

        self.session.run(f"mkdir -p {shlex.quote(posixpath.dirname(dest_path))}").check()
        remote_size = self.session.upload(str(artifact.local_path), part_path)
        if remote_size != expected_size:
            raise TransferFailed(
                f"Size mismatch for {part_path}: local {expected_size} bytes, "
                f"remote {remote_size} bytes"
            )

        if artifact.checksum:
            result = self.session.run(f"sha256sum {quoted_part}")
            if not result.ok:
                raise TransferFailed(f"Could not checksum {part_path}: {result.stderr}")
            remote_checksum = result.stdout.split()[0] if result.stdout else ""
            if remote_checksum != artifact.checksum:
                raise TransferFailed(
                    f"Checksum mismatch for {part_path}: local {artifact.checksum}, "
                    f"remote {remote_checksum or '<empty>'}"
                )

        result = self.session.run(f"mv -f {quoted_part} {shlex.quote(dest_path)}")
        if not result.ok:
            raise TransferFailed(f"Could not move {part_path} into place: {result.stderr}")

    def start_service(self) -> Optional[int]:
        """
        Start the service detached from this SSH session.

        The command runs under ``nohup setsid`` with every stdio stream
        redirected, so closing the session neither hangs nor kills it. The
        launcher is checked for existence first; anything that goes wrong
        after the fork (a crashing JVM, a bad port) is only visible in the
        start log and surfaces as an exhausted health check.

        Returns:
            PID of the detached process when the shell reports one.

        Raises:
            RemoteCommandFailed: the launcher is missing or the launch command
                exited non-zero
        """
        self._check_launcher()
        log_path = shlex.quote(self.paths.start_log)
        command = self._in_home(
            f"mkdir -p \"$(dirname {log_path})\" && "
            f"{{ nohup setsid {self.paths.start_command} </dev/null >{log_path} 2>&1 & "
            f"echo $!; }}"
        )
        result = self.session.run(command)
        if not result.ok:
            raise RemoteCommandFailed(result.command, result.exit_status, result.stderr)

        pid: Optional[int] = None
        try:
            pid = int(result.stdout.strip().splitlines()[-1])
        except (ValueError, IndexError):
            logger.debug("Start command printed no PID: %r", result.stdout)
        logger.info("Service started%s", f" (PID {pid})" if pid else "")
        return pid

    def _check_launcher(self) -> None:
        try:
            launcher = shlex.split(self.paths.start_command)[0]
        except (ValueError, IndexError):
            raise RemoteCommandFailed(
                self.paths.start_command, -1, "", message="Start command is empty or malformed"
            ) from None
        quoted = shlex.quote(launcher)
        command = self._in_home(
            f"{{ test -x {quoted} || command -v {quoted} >/dev/null 2>&1; }}"
        )
        result = self.session.run(command)
        if not result.ok:
            raise RemoteCommandFailed(
                command,
                result.exit_status,
                result.stderr,
                message=(
                    f"Start command not found or not executable: {launcher} "
                    f"(in {self.paths.service_home})"
                ),
            )

    def deploy(self, artifact: Artifact) -> str:
        """Stop, clean, transfer and start. Returns the remote artifact path."""
        dest_path = self.paths.destination_for(artifact)
        self.stop_service()
        self.clean_previous(dest_path)
        self.transfer(artifact, dest_path)
        self.start_service()
        return dest_path

    def _discard(self, path: str) -> None:
        try:
            self.session.run(f"rm -f {shlex.quote(path)}")
        except (DeployError, OSError, paramiko.SSHException) as exc:
            logger.debug("Could not remove %s: %s", path, exc)
