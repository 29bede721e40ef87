import json
import sys
import tempfile
import unittest
from pathlib import Path

import paramiko

from deploy_orchestrator.config import AppConfig
from deploy_orchestrator.health import ProbeOutcome
from deploy_orchestrator.models import DeploymentStatus
from deploy_orchestrator.orchestrator import DeployOrchestrator, list_reports
from deploy_orchestrator.ssh import SSHConnectionError, SSHSession

from fakes import FakeSSHClient, StubSession


class CountingProbe:
    def __init__(self, healthy_after: int) -> None:
        self.healthy_after = healthy_after
        self.calls = 0

    def __call__(self) -> ProbeOutcome:
        self.calls += 1
        if self.calls >= self.healthy_after:
            return ProbeOutcome(True, "HTTP 200", 200)
        return ProbeOutcome(False, "HTTP 503", 503)


class DeployOrchestratorTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.target_dir = self.root / "target"
        self.target_dir.mkdir()
        (self.target_dir / "shop.war").write_bytes(b"war")

        self.config = AppConfig.from_dict(
            {
                "artifact": {"directory": str(self.target_dir), "pattern": "*.war"},
                "target": {"host": "tomcat", "username": "jenkins", "key_path": "/keys/id"},
                "service": {"service_home": "/usr/local/tomcat"},
                "health": {"url": "http://tomcat:8080/shop/", "max_attempts": 4, "interval": 0},
                "reports": {"directory": str(self.root / "reports")},
            }
        )
        self.session = StubSession()
        self.created_with = []

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _factory(self, credentials):
        self.created_with.append(credentials)
        return self.session

    def _orchestrator(self, probe, **kwargs) -> DeployOrchestrator:
        return DeployOrchestrator(
            self.config,
            session_factory=self._factory,
            probe=probe,
            sleeper=lambda _: None,
            **kwargs,
        )

    def test_successful_run(self) -> None:
        probe = CountingProbe(healthy_after=2)
        result = self._orchestrator(probe).run()

        self.assertTrue(result.ok)
        self.assertEqual(result.attempts, 2)
        self.assertIsNone(result.last_error)
        self.assertEqual(result.artifact.name, "shop.war")
        self.assertEqual(
            result.stages,
            ("locate", "connect", "stop", "clean", "transfer", "start", "health"),
        )
        self.assertTrue(self.session.closed)
        self.assertEqual(self.created_with[0].username, "jenkins")

    def test_stop_failure_still_deploys(self) -> None:
        self.session = StubSession({"shutdown.sh": (1, "", "Connection refused")})
        result = self._orchestrator(CountingProbe(1)).run()

        self.assertTrue(result.ok)
        self.assertNotIn("stop", result.stages)
        self.assertIn("transfer", result.stages)

    def test_health_exhausted_fails_run(self) -> None:
        probe = CountingProbe(healthy_after=99)
        result = self._orchestrator(probe).run()

        self.assertEqual(result.status, DeploymentStatus.FAILED)
        self.assertEqual(result.attempts, 4)
        self.assertEqual(probe.calls, 4)
        self.assertIn("HTTP 503", result.last_error)
        self.assertIn("start", result.stages)

    def test_ambiguous_artifact_fails_before_connecting(self) -> None:
        (self.target_dir / "shop-old.war").write_bytes(b"old")
        result = self._orchestrator(CountingProbe(1)).run()

        self.assertFalse(result.ok)
        self.assertEqual(result.attempts, 0)
        self.assertEqual(self.created_with, [])
        self.assertIn("matched 2 artifacts", result.last_error)

    def test_transfer_failure_skips_start_and_health(self) -> None:
        self.session = StubSession(upload_size=0)
        probe = CountingProbe(1)
        result = self._orchestrator(probe).run()

        self.assertFalse(result.ok)
        self.assertNotIn("start", result.stages)
        self.assertEqual(probe.calls, 0)
        self.assertTrue(self.session.closed)

    def test_connection_error_fails_run(self) -> None:
        def refuse(credentials):
            raise SSHConnectionError(credentials.destination, "timed out")

        orchestrator = DeployOrchestrator(
            self.config, session_factory=refuse, probe=CountingProbe(1), sleeper=lambda _: None
        )
        result = orchestrator.run()
        self.assertFalse(result.ok)
        self.assertIn("timed out", result.last_error)

    def test_build_step_runs_when_configured(self) -> None:
        self.config.build.command = f'"{sys.executable}" -c "print(1)"'
        result = self._orchestrator(CountingProbe(1)).run()
        self.assertEqual(result.stages[0], "build")

        skipped = self._orchestrator(CountingProbe(1), skip_build=True).run()
        self.assertNotIn("build", skipped.stages)

    def test_failing_build_fails_run(self) -> None:
        self.config.build.command = f'"{sys.executable}" -c "import sys; sys.exit(2)"'
        result = self._orchestrator(CountingProbe(1)).run()
        self.assertFalse(result.ok)
        self.assertEqual(result.stages, ())

    def test_report_written(self) -> None:
        self._orchestrator(CountingProbe(1)).run()

        reports = list_reports(self.root / "reports")
        self.assertEqual(len(reports), 1)
        payload = json.loads(reports[0].read_text(encoding="utf-8"))
        self.assertEqual(payload["status"], "success")
        self.assertEqual(payload["target"]["host"], "tomcat")
        self.assertEqual(payload["artifact"]["name"], "shop.war")
        self.assertIsNotNone(payload["host_facts"])

    def test_incomplete_config_rejected(self) -> None:
        self.config.target.host = None
        with self.assertRaises(ValueError) as ctx:
            self._orchestrator(CountingProbe(1))
        self.assertIn("host", str(ctx.exception))

    def test_invalid_health_config_rejected_before_connecting(self) -> None:
        self.config.health.backoff = "linear"
        with self.assertRaises(ValueError) as ctx:
            self._orchestrator(CountingProbe(1))
        self.assertIn("linear", str(ctx.exception))
        self.assertEqual(self.created_with, [])
        self.assertEqual(self.session.uploads, [])
        self.assertEqual(list_reports(self.root / "reports"), [])

    def test_result_stages_are_immutable(self) -> None:
        result = self._orchestrator(CountingProbe(1)).run()
        self.assertIsInstance(result.stages, tuple)
        with self.assertRaises(AttributeError):
            result.stages.append("rollback")  # type: ignore[attr-defined]

    def test_channel_errors_from_paramiko_do_not_abort_run(self) -> None:
        client = FakeSSHClient(
            {
                "shutdown.sh": paramiko.SSHException("Channel closed."),
                "uname": EOFError(),
            }
        )
        orchestrator = DeployOrchestrator(
            self.config,
            session_factory=lambda c: SSHSession(c, client_factory=lambda: client),
            probe=CountingProbe(1),
            sleeper=lambda _: None,
        )
        result = orchestrator.run()

        self.assertTrue(result.ok, result.last_error)
        self.assertNotIn("stop", result.stages)
        self.assertIn("transfer", result.stages)
        self.assertEqual(orchestrator.host_facts.kernel, "unknown")
        self.assertTrue(client.closed)


if __name__ == "__main__":
    unittest.main()
