"""
SSH client used to run mysqlsh on a remote database host.
Uses Paramiko for the connection.
"""

import threading
import time
from pathlib import Path
from typing import Optional

import paramiko


class RemoteKillError(paramiko.SSHException):
    """An aborted remote command could not be stopped."""


def _remaining(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return deadline - time.monotonic()


def _aborted(cancel: Optional[threading.Event], deadline: Optional[float]) -> bool:
    if cancel is not None and cancel.is_set():
        return True
    remaining = _remaining(deadline)
    return remaining is not None and remaining <= 0


class SSHClient:
    """SSH client with connect retries and cancellable command execution."""

    def __init__(
        self,
        hostname: str,
        username: str = "root",
        password: Optional[str] = None,
        key_file: Optional[Path] = None,
        port: int = 22,
        timeout: int = 30,
        poll_interval: float = 0.1,
        kill_timeout: float = 5.0
    ):
        """
        Initialize SSH client.

        Args:
            hostname: Remote hostname or IP
            username: SSH username
            password: SSH password (if not using key)
            key_file: Path to SSH private key file
            port: SSH port
            timeout: Connection timeout in seconds
            poll_interval: How often a running command checks for cancellation
            kill_timeout: How long to wait for an aborted command to exit
                after each kill signal
        """
        self.hostname = hostname
        self.username = username
        self.password = password
        self.key_file = key_file
        self.port = port
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.kill_timeout = kill_timeout
        self._client: Optional[paramiko.SSHClient] = None

    def connect(
        self,
        retries: int = 3,
        delay: int = 5,
        cancel: Optional[threading.Event] = None,
        deadline: Optional[float] = None
    ) -> bool:
        """
        Establish SSH connection with retry logic.

        Each attempt's timeout and the wait between attempts are capped by
        ``deadline``; setting ``cancel`` stops the retries.

        Args:
            retries: Number of retry attempts
            delay: Delay between retries in seconds
            cancel: Event that aborts connecting when set
            deadline: time.monotonic() value after which connecting is aborted

        Returns:
            True once connected, False if aborted by cancel or deadline

        Raises:
            paramiko.SSHException: If connection fails after retries
        """
        for attempt in range(retries):
            if _aborted(cancel, deadline):
                return False

            timeout = self.timeout
            remaining = _remaining(deadline)
            if remaining is not None:
                timeout = min(timeout, remaining)

            try:
                client = paramiko.SSHClient()
                client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

                auth_kwargs = {
                    'hostname': self.hostname,
                    'username': self.username,
                    'port': self.port,
                    'timeout': timeout
                }

                if self.key_file:
                    auth_kwargs['key_filename'] = str(self.key_file)
                elif self.password:
                    auth_kwargs['password'] = self.password

                client.connect(**auth_kwargs)
                self._client = client
                return True
            except (paramiko.SSHException, OSError) as e:
                if _aborted(cancel, deadline):
                    return False
                if attempt == retries - 1:
                    raise paramiko.SSHException(
                        f"Failed to connect to {self.hostname} after {retries} attempts: {e}"
                    )

            wait = delay
            remaining = _remaining(deadline)
            if remaining is not None:
                wait = max(0, min(wait, remaining))
            if cancel is not None:
                cancel.wait(wait)
            else:
                time.sleep(wait)

        return False

    def disconnect(self) -> None:
        """Close SSH connection."""
        if self._client:
            self._client.close()
            self._client = None

    def execute(
        self,
        command: str,
        cancel: Optional[threading.Event] = None,
        deadline: Optional[float] = None
    ) -> Optional[tuple]:
        """
        Execute command on remote host.

        The command is exec'd from a shell that first prints its PID, so an
        aborted command can be killed from a second session. The channel is
        polled until the command exits. If ``cancel`` is set or the monotonic
        ``deadline`` passes first, the remote process is killed and waited
        for, and None is returned.

        Args:
            command: Shell command line to execute
            cancel: Event that aborts the command when set
            deadline: time.monotonic() value after which the command is aborted

        Returns:
            Tuple of (exit_code, stdout, stderr) as bytes, or None if aborted
        """
        if not self._client and not self.connect(cancel=cancel, deadline=deadline):
            return None
        if _aborted(cancel, deadline):
            return None

        channel = self._client.get_transport().open_session()
        stdout = bytearray()
        stderr = bytearray()
        pid = None
        try:
            channel.exec_command(f"echo $$; exec {command}")
            while True:
                while channel.recv_ready():
                    stdout.extend(channel.recv(32768))
                while channel.recv_stderr_ready():
                    stderr.extend(channel.recv_stderr(32768))
                if pid is None:
                    pid, stdout = self._take_pid(stdout)
                if channel.exit_status_ready() and not channel.recv_ready() \
                        and not channel.recv_stderr_ready():
                    break
                if _aborted(cancel, deadline):
                    self._terminate(channel, pid, stdout)
                    return None
                time.sleep(self.poll_interval)

            exit_code = channel.recv_exit_status()
            return exit_code, bytes(stdout), bytes(stderr)
        finally:
            channel.close()

    @staticmethod
    def _take_pid(stdout: bytearray):
        """Split the PID line printed by the wrapper off the front of stdout."""
        line, sep, rest = stdout.partition(b"\n")
        if not sep:
            return None, stdout
        return int(line.strip()), bytearray(rest)

    def _terminate(self, channel, pid: Optional[int], stdout: bytearray) -> None:
        """Kill the remote command behind ``channel`` and wait for it to exit."""
        if pid is None:
            # The wrapper has not printed its PID yet
            give_up = time.monotonic() + self.kill_timeout
            while pid is None and time.monotonic() < give_up:
                while channel.recv_ready():
                    stdout.extend(channel.recv(32768))
                pid, stdout = self._take_pid(stdout)
                if pid is None:
                    if channel.exit_status_ready():
                        return
                    time.sleep(self.poll_interval)
            if pid is None:
                raise RemoteKillError(
                    f"Could not stop remote command on {self.hostname}: no PID reported"
                )

        for signal in ("TERM", "KILL"):
            self._run_quietly(f"kill -{signal} {pid}")
            give_up = time.monotonic() + self.kill_timeout
            while time.monotonic() < give_up:
                if channel.exit_status_ready():
                    return
                time.sleep(self.poll_interval)

        raise RemoteKillError(
            f"Remote command {pid} on {self.hostname} did not exit after SIGKILL"
        )

    def _run_quietly(self, command: str) -> int:
        """Run a short command on its own session and return its exit status."""
        channel = self._client.get_transport().open_session()
        try:
            channel.exec_command(command)
            return channel.recv_exit_status()
        finally:
            channel.close()

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()
