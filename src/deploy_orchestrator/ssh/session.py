"""SSH session management built on Paramiko."""

from __future__ import annotations

import logging
import socket
import time
from dataclasses import dataclass
from typing import Callable, Optional

import paramiko

from ..exceptions import RemoteCommandFailed
from .credentials import SSHCredentials

logger = logging.getLogger(__name__)

# socket.error is OSError; paramiko raises SSHException and EOFError on a dead channel
_CHANNEL_ERRORS = (paramiko.SSHException, EOFError, socket.error)
_POLL_INTERVAL = 0.1
_READ_SIZE = 32768


class SSHConnectionError(RemoteCommandFailed):
    """Raised when an SSH connection cannot be established."""

    def __init__(self, destination: str, reason: str) -> None:
        super().__init__(
            command="<connect>",
            exit_status=-1,
            stderr=reason,
            message=f"Cannot connect to {destination}: {reason}",
        )


@dataclass
class SSHCommandResult:
    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0

    def check(self) -> "SSHCommandResult":
        """Raise :class:`RemoteCommandFailed` unless the command succeeded."""
        if not self.ok:
            raise RemoteCommandFailed(self.command, self.exit_status, self.stderr)
        return self


class SSHSession:
    """High-level wrapper around paramiko.SSHClient."""

    def __init__(
        self,
        credentials: SSHCredentials,
        *,
        client_factory: Callable[[], paramiko.SSHClient] | None = None,
    ) -> None:
        self.credentials = credentials
        self._client_factory = client_factory or paramiko.SSHClient
        self._client: Optional[paramiko.SSHClient] = None

    def __enter__(self) -> "SSHSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    @property
    def connected(self) -> bool:
        return self._client is not None

    def connect(self) -> None:
        if self._client:
            return
        client = self._client_factory()
        if self.credentials.strict_host_keys:
            client.load_system_host_keys()
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            connect_kwargs = {
                "hostname": self.credentials.host,
                "port": self.credentials.port,
                "username": self.credentials.username,
                "timeout": self.credentials.timeout,
                "look_for_keys": False,
                "allow_agent": False,
            }
            if self.credentials.auth_method == "password":
                connect_kwargs["password"] = self.credentials.password
            else:
                connect_kwargs["key_filename"] = self.credentials.key_path
                if self.credentials.passphrase:
                    connect_kwargs["passphrase"] = self.credentials.passphrase
            client.connect(**connect_kwargs)
        except Exception as exc:  # pragma: no cover - network errors hard to simulate
            client.close()
            raise SSHConnectionError(self.credentials.destination, str(exc)) from exc
        logger.debug("Connected to %s", self.credentials.destination)
        self._client = client

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def run(self, command: str, *, timeout: Optional[int] = None) -> SSHCommandResult:
        """
        Execute a command on the remote server and wait for it to finish.

        Output is drained while waiting so a chatty command cannot stall on a
        full channel window.

        Args:
            command: The command to execute
            timeout: Seconds to wait for the exit status (default: 600)

        Returns:
            SSHCommandResult with command output and exit status. A command that
            does not finish in time yields exit status -1.

        Raises:
            RemoteCommandFailed: the channel failed (closed, reset, protocol error)
        """
        if not self._client:
            self.connect()
        assert self._client is not None

        if timeout is None:
            timeout = 600

        logger.debug("$ %s", command)
        try:
            return self._exec(command, timeout)
        except _CHANNEL_ERRORS as exc:
            raise RemoteCommandFailed(command, -1, str(exc)) from exc

    def _exec(self, command: str, timeout: int) -> SSHCommandResult:
        assert self._client is not None
        _, stdout, _ = self._client.exec_command(command, timeout=timeout)
        channel = stdout.channel
        stdout_chunks: list[str] = []
        stderr_chunks: list[str] = []
        deadline = time.monotonic() + timeout

        while not channel.exit_status_ready():
            self._drain(channel, stdout_chunks, stderr_chunks)
            if time.monotonic() >= deadline:
                channel.close()
                return SSHCommandResult(
                    command=command,
                    stdout="".join(stdout_chunks).strip(),
                    stderr=f"TIMEOUT: Command did not complete within {timeout} seconds.",
                    exit_status=-1,
                )
            time.sleep(_POLL_INTERVAL)

        self._drain(channel, stdout_chunks, stderr_chunks)
        exit_status = channel.recv_exit_status()
        return SSHCommandResult(
            command=command,
            stdout="".join(stdout_chunks).strip(),
            stderr="".join(stderr_chunks).strip(),
            exit_status=exit_status,
        )

    @staticmethod
    def _drain(channel, stdout_chunks: list[str], stderr_chunks: list[str]) -> None:
        while channel.recv_ready():
            stdout_chunks.append(channel.recv(_READ_SIZE).decode("utf-8", errors="replace"))
        while channel.recv_stderr_ready():
            stderr_chunks.append(
                channel.recv_stderr(_READ_SIZE).decode("utf-8", errors="replace")
            )

    def upload(self, local_path: str, remote_path: str) -> int:
        """Copy a local file to ``remote_path`` over SFTP and return the remote size."""
        if not self._client:
            self.connect()
        assert self._client is not None

        try:
            sftp = self._client.open_sftp()
            try:
                attributes = sftp.put(local_path, remote_path, confirm=True)
            finally:
                sftp.close()
        except _CHANNEL_ERRORS as exc:
            raise RemoteCommandFailed(f"<sftp put {remote_path}>", -1, str(exc)) from exc
        return int(attributes.st_size or 0)
