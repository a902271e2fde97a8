"""
Process execution backends for mysqlsh.

An executor runs one argv to completion and returns its captured output.
Callers pass a threading.Event to cancel a run and/or a timeout in seconds;
either one kills the process and raises CommandCancelledError.
"""

import shlex
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import List, Optional

import paramiko

from .errors import CommandCancelledError, CommandError, CommandStartError
from .utils.ssh_client import RemoteKillError, SSHClient


@dataclass
class CommandResult:
    """Captured outcome of one process run."""
    exit_code: int
    stdout: bytes = b""
    stderr: bytes = b""


def _deadline(timeout: Optional[float]) -> Optional[float]:
    if timeout is None:
        return None
    return time.monotonic() + timeout


def _check_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise CommandCancelledError("command cancelled before start")


class ProcessExecutor:
    """Interface for running a command line."""

    def run(
        self,
        args: List[str],
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None
    ) -> CommandResult:
        raise NotImplementedError


class LocalProcessExecutor(ProcessExecutor):
    """Runs commands as local subprocesses."""

    def __init__(self, poll_interval: float = 0.1):
        self.poll_interval = poll_interval

    def run(self, args, cancel=None, timeout=None):
        _check_cancelled(cancel)
        deadline = _deadline(timeout)

        try:
            proc = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise CommandStartError(args, str(e)) from e

        try:
            while True:
                try:
                    stdout, stderr = proc.communicate(timeout=self.poll_interval)
                    break
                except subprocess.TimeoutExpired:
                    if cancel is not None and cancel.is_set():
                        self._kill(proc)
                        raise CommandCancelledError("command cancelled")
                    if deadline is not None and time.monotonic() >= deadline:
                        self._kill(proc)
                        raise CommandCancelledError(f"command timed out after {timeout}s")
        except KeyboardInterrupt:
            self._kill(proc)
            raise

        return CommandResult(proc.returncode, stdout, stderr)

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        proc.kill()
        proc.communicate()


class RemoteProcessExecutor(ProcessExecutor):
    """Runs commands on another host over SSH."""

    def __init__(self, ssh_client: SSHClient):
        self.ssh = ssh_client

    def run(self, args, cancel=None, timeout=None):
        _check_cancelled(cancel)
        command = ' '.join(shlex.quote(arg) for arg in args)

        try:
            result = self.ssh.execute(command, cancel=cancel, deadline=_deadline(timeout))
        except RemoteKillError as e:
            raise CommandError(args, None, message=f"failed to stop remote mysqlsh: {e}") from e
        except (OSError, paramiko.SSHException) as e:
            raise CommandStartError(args, str(e)) from e

        if result is None:
            raise CommandCancelledError("remote command cancelled")
        exit_code, stdout, stderr = result
        # 127 is what the remote shell returns when mysqlsh is not installed
        if exit_code == 127 and not stdout:
            raise CommandStartError(args, stderr.decode('utf-8', errors='replace').strip())
        return CommandResult(exit_code, stdout, stderr)
