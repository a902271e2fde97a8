"""
Exceptions raised by the cluster driver, and the classifier that recovers
structured errors from mysqlsh diagnostic output.
"""

import re
from typing import List, Optional

# A Python traceback printed by the mysqlsh scripting runtime: the header,
# indented frame lines, then "<dotted.type>: <message>".
TRACEBACK_RE = re.compile(
    r"Traceback.*\n(?:  .*\n)+(?P<type>[\w.]+): (?P<message>.*)"
)


class Error(Exception):
    """Base class for exceptions in this package."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self):
        return "<{}.{} {}>".format(type(self).__module__, type(self).__name__, self.args)


class ShellError(Error):
    """Error reported by mysqlsh itself, parsed from a traceback on stderr."""

    def __init__(self, error_type: str, message: str) -> None:
        super().__init__(f"{error_type}: {message}")
        self.type = error_type
        self.message = message

    def __str__(self):
        return f"{self.type}: {self.message}"

    def __eq__(self, other):
        if not isinstance(other, ShellError):
            return NotImplemented
        return (self.type, self.message) == (other.type, other.message)

    def __hash__(self):
        return hash((self.type, self.message))


class CommandError(Error):
    """mysqlsh exited non-zero and stderr held nothing recognisable."""

    def __init__(
        self,
        args: List[str],
        exit_code: Optional[int],
        stderr: bytes = b"",
        message: str = ""
    ) -> None:
        super().__init__(message or f"mysqlsh exited with status {exit_code}")
        self.command = list(args)
        self.exit_code = exit_code
        self.stderr = stderr


class CommandStartError(CommandError):
    """mysqlsh could not be started at all."""

    def __init__(self, args: List[str], reason: str) -> None:
        super().__init__(args, None, b"", f"failed to start mysqlsh: {reason}")


class CommandCancelledError(Error):
    """The command was cancelled or ran past its deadline and was killed."""


class OutputDecodeError(Error, ValueError):
    """mysqlsh output did not contain the JSON document we expected."""

    def __init__(self, message: str, output) -> None:
        super().__init__(f"{message}: {output!r}")
        self.output = output


def error_from_stderr(stderr: str) -> Optional[ShellError]:
    """Return the last traceback in ``stderr`` as a ShellError, or None.

    mysqlsh can print several tracebacks for one invocation; the most recent
    one is the error that ended the run.
    """
    matches = list(TRACEBACK_RE.finditer(stderr))
    if not matches:
        return None
    last = matches[-1]
    return ShellError(last.group('type'), last.group('message'))
