import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from deploy_orchestrator.config import AppConfig, load_config


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, payload: dict) -> str:
        path = self.root / "config.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return str(path)

    def test_loads_default_config(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            config = load_config()
        self.assertIsInstance(config, AppConfig)
        self.assertEqual(config.artifact.pattern, "*.war")
        self.assertEqual(config.service.stop_command, "bin/shutdown.sh")
        self.assertEqual(config.health.max_attempts, 10)

    def test_loads_custom_config(self) -> None:
        path = self._write(
            {
                "target": {"host": "web-1", "username": "deploy", "key_path": "/k"},
                "service": {"service_home": "/opt/tomcat", "_note": "ignored"},
                "health": {"url": "http://web-1:8080/", "max_attempts": 5, "expected_status": [200, 204]},
            }
        )
        with mock.patch.dict(os.environ, {}, clear=True):
            config = load_config(path)
        self.assertEqual(config.target.host, "web-1")
        self.assertEqual(config.service.service_home, "/opt/tomcat")
        self.assertEqual(config.validate(), [])
        health = config.health_check()
        self.assertEqual(health.max_attempts, 5)
        self.assertEqual(health.expected_status, (200, 204))

    def test_missing_explicit_file_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_config(str(self.root / "nope.json"))

    def test_env_vars_override_file(self) -> None:
        path = self._write({"target": {"host": "from-file", "username": "deploy"}})
        env = {
            "DEPLOY_ORCHESTRATOR_SSH_HOST": "from-env",
            "DEPLOY_ORCHESTRATOR_SSH_PORT": "2222",
            "DEPLOY_ORCHESTRATOR_SSH_KEY_PATH": "/env/key",
            "DEPLOY_ORCHESTRATOR_HEALTH_URL": "http://from-env/",
            "DEPLOY_ORCHESTRATOR_HEALTH_MAX_ATTEMPTS": "7",
            "DEPLOY_ORCHESTRATOR_HEALTH_INTERVAL": "0.5",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            config = load_config(path)
        self.assertEqual(config.target.host, "from-env")
        self.assertEqual(config.target.port, 2222)
        self.assertEqual(config.target.key_path, "/env/key")
        self.assertEqual(config.target.auth_method, "key")
        self.assertEqual(config.health.url, "http://from-env/")
        self.assertEqual(config.health.max_attempts, 7)
        self.assertEqual(config.health.interval, 0.5)

    def test_env_password_switches_auth_method(self) -> None:
        path = self._write({})
        with mock.patch.dict(os.environ, {"DEPLOY_ORCHESTRATOR_SSH_PASSWORD": "s3cret"}, clear=True):
            config = load_config(path)
        self.assertEqual(config.target.auth_method, "password")
        self.assertEqual(config.target.password, "s3cret")

    def test_validate_lists_missing_values(self) -> None:
        missing = AppConfig().validate()
        self.assertEqual(missing, ["host", "user", "key-path", "health-url"])

    def test_deployment_target_is_consistent(self) -> None:
        config = AppConfig.from_dict(
            {"target": {"host": "h", "port": 2200, "username": "u", "key_path": "~/.ssh/id"}}
        )
        target = config.deployment_target()
        self.assertEqual(target.host, target.credential_ref.host)
        self.assertEqual(target.port, 2200)
        self.assertFalse(target.credential_ref.key_path.startswith("~"))
        self.assertIs(target.remote_service_paths, config.service)


if __name__ == "__main__":
    unittest.main()
