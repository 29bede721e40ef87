"""Readiness probes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import requests

logger = logging.getLogger(__name__)


@dataclass
class ProbeOutcome:
    healthy: bool
    detail: str = ""
    status_code: Optional[int] = None


class ReadinessProbe(Protocol):
    def __call__(self) -> ProbeOutcome:
        ...


class HttpProbe:
    """GET a URL and judge readiness from the status code and optional body text."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        expected_status: Sequence[int] = (200,),
        expected_text: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.expected_status = tuple(expected_status)
        self.expected_text = expected_text
        self.session = session or requests.Session()

    def __call__(self) -> ProbeOutcome:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
        except requests.RequestException as exc:
            return ProbeOutcome(healthy=False, detail=f"{type(exc).__name__}: {exc}")

        if response.status_code not in self.expected_status:
            return ProbeOutcome(
                healthy=False,
                detail=f"HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if self.expected_text and self.expected_text not in response.text:
            return ProbeOutcome(
                healthy=False,
                detail=f"HTTP {response.status_code} without {self.expected_text!r} in body",
                status_code=response.status_code,
            )
        return ProbeOutcome(
            healthy=True,
            detail=f"HTTP {response.status_code}",
            status_code=response.status_code,
        )
