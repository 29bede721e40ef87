"""Deployment orchestration.

- DeployOrchestrator: runs build, locate, remote deploy and health check
- RunReportWriter: persists each run as a JSON report
"""

from .orchestrator import DeployOrchestrator
from .report import RunReportWriter, list_reports, load_report

__all__ = ["DeployOrchestrator", "RunReportWriter", "list_reports", "load_report"]
