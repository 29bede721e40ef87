"""Local build step."""

from .runner import BuildResult, BuildRunner

__all__ = ["BuildResult", "BuildRunner"]
