"""Tests for recovering mysqlsh errors from stderr."""

from mysqlsh_cluster.errors import CommandError, OutputDecodeError, ShellError, error_from_stderr

from tests.conftest import traceback_text


def test_no_traceback_returns_none():
    assert error_from_stderr("") is None
    assert error_from_stderr("mysqlsh: command failed\nsomething else\n") is None


def test_traceback_without_frame_lines_is_ignored():
    assert error_from_stderr("Traceback (most recent call last):\nSystemError: boom\n") is None


def test_single_traceback_is_parsed():
    stderr = traceback_text(
        "SystemError",
        "RuntimeError: Dba.get_cluster: This function is not available through a session to a standalone instance",
    )
    err = error_from_stderr(stderr)
    assert err == ShellError(
        "SystemError",
        "RuntimeError: Dba.get_cluster: This function is not available through a session to a standalone instance",
    )


def test_last_traceback_wins():
    stderr = (
        "WARNING: something noisy\n"
        + traceback_text("SystemError", "first failure")
        + "retrying...\n"
        + "Traceback (most recent call last):\n"
        + '  File "<string>", line 1, in <module>\n'
        + '  File "<string>", line 7, in helper\n'
        + "mysqlsh.DBError: MySQL Error (1045): Access denied for user 'root'@'localhost'\n"
    )
    err = error_from_stderr(stderr)
    assert err.type == "mysqlsh.DBError"
    assert err.message == "MySQL Error (1045): Access denied for user 'root'@'localhost'"


def test_message_may_be_last_line_without_newline():
    stderr = "Traceback (most recent call last):\n  File \"<string>\", line 1\nValueError: bad value"
    err = error_from_stderr(stderr)
    assert (err.type, err.message) == ("ValueError", "bad value")


def test_shell_error_renders_type_and_message():
    err = ShellError("SystemError", "it broke")
    assert str(err) == "SystemError: it broke"
    assert err.message == "it broke"


def test_command_error_keeps_process_details():
    err = CommandError(["mysqlsh", "-e", "x"], 1, b"oops")
    assert err.exit_code == 1
    assert err.stderr == b"oops"
    assert err.command == ["mysqlsh", "-e", "x"]
    assert "status 1" in str(err)


def test_output_decode_error_includes_output():
    err = OutputDecodeError("no json found in output", b"garbage")
    assert "garbage" in str(err)
    assert isinstance(err, ValueError)
