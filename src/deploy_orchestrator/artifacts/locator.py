"""Locate the single build artifact produced by a build step."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import ArtifactAmbiguous, ArtifactMissing

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class Artifact:
    """A located build artifact. Read-only once created."""

    local_path: Path
    checksum: Optional[str] = None

    @property
    def name(self) -> str:
        return self.local_path.name

    @property
    def size(self) -> int:
        return self.local_path.stat().st_size

    def to_payload(self) -> dict:
        return {
            "local_path": str(self.local_path),
            "name": self.name,
            "checksum": self.checksum,
        }


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class ArtifactLocator:
    """Finds exactly one file matching a glob in a build output directory."""

    def __init__(self, *, compute_checksum: bool = True) -> None:
        self.compute_checksum = compute_checksum

    def locate(self, directory: Path | str, pattern: str) -> Artifact:
        """
        Return the single file in ``directory`` matching ``pattern``.

        Raises:
            ArtifactMissing: the directory does not exist or nothing matched
            ArtifactAmbiguous: more than one file matched
        """
        root = Path(directory)
        if not root.is_dir():
            raise ArtifactMissing(f"Artifact directory does not exist: {root}")

        matches = sorted(p for p in root.glob(pattern) if p.is_file())
        if not matches:
            raise ArtifactMissing(f"No artifact matching {pattern!r} in {root}")
        if len(matches) > 1:
            raise ArtifactAmbiguous(pattern, [str(p) for p in matches])

        path = matches[0].resolve()
        checksum = sha256_file(path) if self.compute_checksum else None
        logger.info("Located artifact %s (%d bytes)", path, path.stat().st_size)
        return Artifact(local_path=path, checksum=checksum)
