"""JSON run reports written after every deployment."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models import DeploymentResult, DeploymentTarget
from ..ssh import RemoteHostFacts


class RunReportWriter:
    """Writes ``deploy_<timestamp>.json`` files into a reports directory."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def write(
        self,
        result: DeploymentResult,
        *,
        target: Optional[DeploymentTarget] = None,
        host_facts: Optional[RemoteHostFacts] = None,
    ) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        stamp = (result.finished_at or datetime.now()).strftime("%Y%m%d_%H%M%S_%f")
        path = self.directory / f"deploy_{stamp}.json"
        payload: Dict[str, Any] = {
            **result.to_payload(),
            "target": target.to_payload() if target else None,
            "host_facts": host_facts.to_payload() if host_facts else None,
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return path


def list_reports(directory: Path | str) -> List[Path]:
    """Return report files, newest first."""
    root = Path(directory)
    if not root.is_dir():
        return []
    return sorted(root.glob("deploy_*.json"), key=lambda p: p.name, reverse=True)


def load_report(path: Path | str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)
