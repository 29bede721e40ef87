"""Build artifact discovery."""

from .locator import Artifact, ArtifactLocator, sha256_file

__all__ = ["Artifact", "ArtifactLocator", "sha256_file"]
