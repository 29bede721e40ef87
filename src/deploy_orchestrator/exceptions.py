"""Error hierarchy for deployment runs.

Everything a run can fail with derives from :class:`DeployError`, so callers
can catch one type and turn it into a failed :class:`DeploymentResult`.
"""

from __future__ import annotations

from typing import Optional


class DeployError(RuntimeError):
    """Base class for expected deployment failures."""

    pass


class ArtifactError(DeployError):
    """Raised when the build artifact cannot be selected."""

    pass


class ArtifactMissing(ArtifactError):
    """No file matched the artifact pattern."""

    pass


class ArtifactAmbiguous(ArtifactError):
    """More than one file matched the artifact pattern."""

    def __init__(self, pattern: str, candidates: list[str]) -> None:
        self.pattern = pattern
        self.candidates = candidates
        super().__init__(
            f"Pattern {pattern!r} matched {len(candidates)} artifacts: {', '.join(candidates)}"
        )


class BuildFailed(DeployError):
    """Raised when the local build command exits non-zero."""

    pass


class TransferFailed(DeployError):
    """Raised when the artifact could not be copied intact to the target."""

    pass


class RemoteCommandFailed(DeployError):
    """Raised when a remote command exits non-zero."""

    def __init__(
        self,
        command: str,
        exit_status: int,
        stderr: str = "",
        message: Optional[str] = None,
    ) -> None:
        self.command = command
        self.exit_status = exit_status
        self.stderr = stderr
        super().__init__(
            message
            or f"Remote command {command!r} failed with code {exit_status}: {stderr}"
        )


class HealthCheckExhausted(DeployError):
    """Raised when the readiness probe never succeeded."""

    def __init__(self, url: str, attempts: int, last_error: Optional[str]) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{url} not healthy after {attempts} attempts (last error: {last_error})"
        )
