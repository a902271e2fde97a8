"""Tests for SSHClient.connect and SSHClient.execute against fake paramiko channels."""

import threading
import time
from unittest.mock import MagicMock, patch

import paramiko
import pytest

from mysqlsh_cluster.errors import CommandCancelledError
from mysqlsh_cluster.process import RemoteProcessExecutor
from mysqlsh_cluster.utils.ssh_client import RemoteKillError, SSHClient


class FakeChannel:
    """A paramiko channel whose output arrives one event per poll.

    ``events`` is a list of ('out' | 'err', bytes). Each exit_status_ready()
    call makes the next event readable; once they are all delivered the
    channel reports ``finished``.
    """

    def __init__(self, events=(), exit_code=0, finished=True, on_exec=None):
        self.events = list(events)
        self.exit_code = exit_code
        self.finished = finished
        self.on_exec = on_exec
        self.command = None
        self.closed = False
        self.out = []
        self.err = []

    def finish(self, exit_code):
        self.exit_code = exit_code
        self.finished = True

    def exec_command(self, command):
        self.command = command
        if self.on_exec:
            self.on_exec(command)

    def exit_status_ready(self):
        if self.events:
            stream, data = self.events.pop(0)
            (self.out if stream == 'out' else self.err).append(data)
            return False
        return self.finished

    def recv_ready(self):
        return bool(self.out)

    def recv(self, size):
        return self.out.pop(0)

    def recv_stderr_ready(self):
        return bool(self.err)

    def recv_stderr(self, size):
        return self.err.pop(0)

    def recv_exit_status(self):
        return self.exit_code

    def close(self):
        self.closed = True


def connected_client(*channels, **kwargs):
    kwargs.setdefault('poll_interval', 0.001)
    ssh = SSHClient("db1", **kwargs)
    ssh._client = MagicMock()
    ssh._client.get_transport.return_value.open_session.side_effect = list(channels)
    return ssh


def test_execute_returns_output_and_exit_code():
    channel = FakeChannel([('out', b"4242\n"), ('out', b'{"a": 1}\n'), ('err', b"warning\n")], exit_code=0)
    ssh = connected_client(channel)

    result = ssh.execute("mysqlsh --no-wizard -e x")

    assert result == (0, b'{"a": 1}\n', b"warning\n")
    assert channel.command == "echo $$; exec mysqlsh --no-wizard -e x"
    assert channel.closed


def test_execute_interleaved_streams_and_split_pid_line():
    channel = FakeChannel([
        ('out', b"42"),
        ('err', b"Traceback (most recent call last):\n"),
        ('out', b"42\nfirst "),
        ('err', b'  File "<string>", line 1\n'),
        ('out', b"second\n"),
        ('err', b"SystemError: boom\n"),
    ], exit_code=1)
    ssh = connected_client(channel)

    exit_code, stdout, stderr = ssh.execute("mysqlsh")

    assert exit_code == 1
    assert stdout == b"first second\n"
    assert stderr == (
        b"Traceback (most recent call last):\n"
        b'  File "<string>", line 1\n'
        b"SystemError: boom\n"
    )


class LateOutputChannel(FakeChannel):
    """Reports exit while output is still arriving."""

    late_sent = False

    def exit_status_ready(self):
        if not self.late_sent:
            self.late_sent = True
            self.out.append(b"late")
        return True


def test_output_after_exit_status_is_drained():
    channel = LateOutputChannel(exit_code=0)
    channel.out.append(b"7\n")
    ssh = connected_client(channel)

    assert ssh.execute("mysqlsh") == (0, b"late", b"")


def test_cancel_kills_remote_process_and_waits_for_exit():
    main = FakeChannel([('out', b"4242\n"), ('out', b"partial")], finished=False)
    kill = FakeChannel(on_exec=lambda command: main.finish(143))
    ssh = connected_client(main, kill)
    cancel = threading.Event()
    cancel.set()

    assert ssh.execute("mysqlsh", cancel=cancel) is None

    assert kill.command == "kill -TERM 4242"
    assert main.finished
    assert main.closed and kill.closed


def test_deadline_kills_remote_process():
    main = FakeChannel([('out', b"99\n")], finished=False)
    kill = FakeChannel(on_exec=lambda command: main.finish(143))
    ssh = connected_client(main, kill)

    started = time.monotonic()
    assert ssh.execute("mysqlsh", deadline=time.monotonic() + 0.05) is None
    assert time.monotonic() - started < 2
    assert kill.command == "kill -TERM 99"
    assert main.finished


def test_sigkill_when_sigterm_is_ignored():
    main = FakeChannel([('out', b"99\n")], finished=False)
    term = FakeChannel()
    kill = FakeChannel(on_exec=lambda command: main.finish(137))
    ssh = connected_client(main, term, kill, kill_timeout=0.05)
    cancel = threading.Event()
    cancel.set()

    assert ssh.execute("mysqlsh", cancel=cancel) is None
    assert (term.command, kill.command) == ("kill -TERM 99", "kill -KILL 99")


def test_unkillable_remote_process_raises():
    main = FakeChannel([('out', b"99\n")], finished=False)
    ssh = connected_client(main, FakeChannel(), FakeChannel(), kill_timeout=0.02)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(RemoteKillError):
        ssh.execute("mysqlsh", cancel=cancel)
    assert main.closed


def test_cancel_before_pid_waits_for_pid():
    main = FakeChannel([('out', b"12")], finished=False)
    main.events.append(('out', b"34\n"))
    kill = FakeChannel(on_exec=lambda command: main.finish(143))
    ssh = connected_client(main, kill)
    cancel = threading.Event()
    cancel.set()

    assert ssh.execute("mysqlsh", cancel=cancel) is None
    assert kill.command == "kill -TERM 1234"


@pytest.fixture
def refused():
    with patch("paramiko.SSHClient") as client_cls:
        client_cls.return_value.connect.side_effect = OSError("Connection refused")
        yield client_cls


def test_connect_not_attempted_when_cancelled(refused):
    cancel = threading.Event()
    cancel.set()

    assert SSHClient("db1").execute("mysqlsh", cancel=cancel) is None
    refused.assert_not_called()


def test_connect_retries_stop_at_deadline(refused):
    ssh = SSHClient("db1", timeout=30)

    started = time.monotonic()
    assert ssh.connect(delay=5, deadline=time.monotonic() + 0.2) is False
    assert time.monotonic() - started < 2

    attempt_timeout = refused.return_value.connect.call_args.kwargs['timeout']
    assert attempt_timeout <= 0.2


def test_connect_retries_stop_when_cancelled(refused):
    cancel = threading.Event()
    threading.Timer(0.1, cancel.set).start()

    started = time.monotonic()
    assert SSHClient("db1").connect(delay=5, cancel=cancel) is False
    assert time.monotonic() - started < 2


def test_connect_gives_up_after_retries(refused):
    with pytest.raises(paramiko.SSHException) as excinfo:
        SSHClient("db1").connect(retries=2, delay=0)
    assert "after 2 attempts" in str(excinfo.value)
    assert refused.return_value.connect.call_count == 2


def test_remote_run_times_out_while_connecting(refused):
    executor = RemoteProcessExecutor(SSHClient("127.0.0.1", port=1, timeout=1))

    started = time.monotonic()
    with pytest.raises(CommandCancelledError):
        executor.run(["mysqlsh"], timeout=0.3)
    assert time.monotonic() - started < 2
