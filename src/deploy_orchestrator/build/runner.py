"""Local build step (e.g. ``mvn -B package``)."""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from ..exceptions import BuildFailed

logger = logging.getLogger(__name__)

_STDERR_TAIL = 2000


@dataclass
class BuildResult:
    command: list[str]
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class BuildRunner:
    """Runs the configured build command in a working directory."""

    def __init__(
        self,
        command: Union[str, Sequence[str]],
        workdir: Union[str, Path] = ".",
        *,
        timeout: Optional[int] = None,
    ) -> None:
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        self.workdir = Path(workdir)
        self.timeout = timeout

    def run(self) -> BuildResult:
        if not self.command:
            raise BuildFailed("Empty build command")
        logger.info("🔨 Building: %s (in %s)", " ".join(self.command), self.workdir)
        try:
            process = subprocess.run(
                self.command,
                cwd=str(self.workdir),
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise BuildFailed(f"Build tool not found: {self.command[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise BuildFailed(f"Build timed out after {self.timeout} seconds") from exc

        result = BuildResult(
            command=self.command,
            stdout=process.stdout,
            stderr=process.stderr,
            exit_status=process.returncode,
        )
        if not result.ok:
            tail = (result.stderr or result.stdout)[-_STDERR_TAIL:]
            raise BuildFailed(
                f"Build command {' '.join(self.command)} failed with code "
                f"{result.exit_status}:\n{tail}"
            )
        return result
