"""Configuration loading utilities for the deploy orchestrator."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .health import HealthCheckConfig
from .models import DeploymentTarget, ServicePaths
from .ssh import SSHCredentials

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = Path("config/default_config.json")
_ENV_PREFIX = "DEPLOY_ORCHESTRATOR_"


@dataclass
class BuildConfig:
    """Local build step; skipped when ``command`` is empty."""

    command: Optional[str] = None
    workdir: str = "."
    timeout: Optional[int] = None


@dataclass
class ArtifactConfig:
    directory: str = "target"
    pattern: str = "*.war"
    checksum: bool = True


@dataclass
class TargetConfig:
    """SSH connection settings for the deployment target."""

    host: Optional[str] = None
    port: int = 22
    username: Optional[str] = None
    auth_method: str = "key"
    key_path: Optional[str] = None
    passphrase: Optional[str] = None
    password: Optional[str] = None
    timeout: int = 20
    strict_host_keys: bool = False


@dataclass
class HealthConfig:
    url: Optional[str] = None
    max_attempts: int = 10
    interval: float = 3.0
    backoff: str = "fixed"
    backoff_factor: float = 2.0
    max_interval: float = 60.0
    timeout: float = 5.0
    expected_status: List[int] = field(default_factory=lambda: [200])
    expected_text: Optional[str] = None


@dataclass
class ReportsConfig:
    enabled: bool = True
    directory: str = "reports"


def _section(payload: Dict[str, Any], name: str) -> Dict[str, Any]:
    # Keys starting with "_" are comments
    section = payload.get(name, {}) or {}
    return {k: v for k, v in section.items() if not k.startswith("_")}


@dataclass
class AppConfig:
    """Top-level configuration, passed explicitly to every component."""

    build: BuildConfig = field(default_factory=BuildConfig)
    artifact: ArtifactConfig = field(default_factory=ArtifactConfig)
    target: TargetConfig = field(default_factory=TargetConfig)
    service: ServicePaths = field(default_factory=ServicePaths)
    health: HealthConfig = field(default_factory=HealthConfig)
    reports: ReportsConfig = field(default_factory=ReportsConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        return cls(
            build=BuildConfig(**_section(payload, "build")),
            artifact=ArtifactConfig(**_section(payload, "artifact")),
            target=TargetConfig(**_section(payload, "target")),
            service=ServicePaths(**_section(payload, "service")),
            health=HealthConfig(**_section(payload, "health")),
            reports=ReportsConfig(**_section(payload, "reports")),
        )

    def validate(self) -> List[str]:
        """Return the names of missing or invalid values (empty when usable)."""
        missing = []
        if not self.target.host:
            missing.append("host")
        if not self.target.username:
            missing.append("user")
        if self.target.auth_method not in ("key", "password"):
            missing.append("auth-method")
        if self.target.auth_method == "key" and not self.target.key_path:
            missing.append("key-path")
        if self.target.auth_method == "password" and not self.target.password:
            missing.append("password")
        if not self.health.url:
            missing.append("health-url")
        if self.health.max_attempts < 1:
            missing.append("max-attempts")
        return missing

    def credentials(self) -> SSHCredentials:
        assert self.target.host is not None
        assert self.target.username is not None
        return SSHCredentials(
            host=self.target.host,
            username=self.target.username,
            port=self.target.port,
            auth_method=self.target.auth_method,
            password=self.target.password,
            key_path=os.path.expanduser(self.target.key_path) if self.target.key_path else None,
            passphrase=self.target.passphrase,
            timeout=self.target.timeout,
            strict_host_keys=self.target.strict_host_keys,
        )

    def deployment_target(self) -> DeploymentTarget:
        credentials = self.credentials()
        return DeploymentTarget(
            host=credentials.host,
            port=credentials.port,
            credential_ref=credentials,
            remote_service_paths=self.service,
        )

    def health_check(self) -> HealthCheckConfig:
        assert self.health.url is not None
        return HealthCheckConfig(
            url=self.health.url,
            max_attempts=self.health.max_attempts,
            interval=self.health.interval,
            backoff=self.health.backoff,
            backoff_factor=self.health.backoff_factor,
            max_interval=self.health.max_interval,
            timeout=self.health.timeout,
            expected_status=tuple(self.health.expected_status),
            expected_text=self.health.expected_text,
        )


def _env(name: str) -> Optional[str]:
    return os.getenv(_ENV_PREFIX + name) or None


def apply_env_overrides(config: AppConfig) -> AppConfig:
    """Apply DEPLOY_ORCHESTRATOR_* environment variables on top of ``config``."""
    env_host = _env("SSH_HOST")
    if env_host:
        config.target.host = env_host

    env_port = _env("SSH_PORT")
    if env_port:
        config.target.port = int(env_port)

    env_username = _env("SSH_USERNAME")
    if env_username:
        config.target.username = env_username

    env_key_path = _env("SSH_KEY_PATH")
    if env_key_path:
        config.target.key_path = env_key_path
        config.target.auth_method = "key"

    env_passphrase = _env("SSH_PASSPHRASE")
    if env_passphrase:
        config.target.passphrase = env_passphrase

    env_password = _env("SSH_PASSWORD")
    if env_password:
        config.target.password = env_password
        if not env_key_path:
            config.target.auth_method = "password"

    env_url = _env("HEALTH_URL")
    if env_url:
        config.health.url = env_url

    env_attempts = _env("HEALTH_MAX_ATTEMPTS")
    if env_attempts:
        config.health.max_attempts = int(env_attempts)

    env_interval = _env("HEALTH_INTERVAL")
    if env_interval:
        config.health.interval = float(env_interval)

    return config


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path` or the default location.

    An explicit ``path`` must exist. Without one, ``config/default_config.json``
    is used when present and built-in defaults otherwise. Environment variables
    (see :func:`apply_env_overrides`) take precedence over the file.
    """
    if path:
        candidate = Path(path)
        if not candidate.is_file():
            raise FileNotFoundError(f"Could not find configuration file: {candidate}")
    else:
        candidate = _DEFAULT_CONFIG_PATH

    if candidate.is_file():
        with candidate.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        config = AppConfig.from_dict(data)
    else:
        config = AppConfig()

    return apply_env_overrides(config)
