"""SSH credential helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SSHCredentials:
    """Normalized credential payload from CLI/config."""

    host: str
    username: str
    port: int = 22
    auth_method: str = "key"
    password: Optional[str] = None
    key_path: Optional[str] = None
    passphrase: Optional[str] = None
    timeout: int = 20
    strict_host_keys: bool = False

    def validate(self) -> None:
        if self.auth_method not in ("key", "password"):
            raise ValueError(f"Unknown SSH auth method: {self.auth_method}")
        if self.auth_method == "password" and not self.password:
            raise ValueError("Password authentication selected but no password provided")
        if self.auth_method == "key" and not self.key_path:
            raise ValueError("Key authentication selected but no key_path provided")

    @property
    def destination(self) -> str:
        return f"{self.username}@{self.host}:{self.port}"
