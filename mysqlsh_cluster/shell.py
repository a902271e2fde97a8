"""
Runs mysqlsh against one server and normalises its outcome.
"""

import enum
import re
import threading
from typing import List, Optional

from .errors import CommandError, Error, error_from_stderr
from .process import LocalProcessExecutor, ProcessExecutor
from .utils.logger import setup_logger

# Printed on stdout because the password is part of --uri.
PASSWORD_WARNING = b"mysqlx: [Warning] Using a password on the command line interface can be insecure.\n"

# [scheme://]user:password@ anywhere in a string; the password runs to the
# last @ before whitespace or a quote.
_URI_PASSWORD_RE = re.compile(
    r"(?P<user>(?:[A-Za-z][\w+.-]*://)?[^\s:@/'\"(),{}]+):[^\s'\"]*@"
)


class Mode(enum.Enum):
    """How mysqlsh interprets the -e text."""
    PYTHON = "--py"
    SQL = "--sql"


def mask_password(text: str) -> str:
    """Replace every password in ``user:pass@host`` URIs within ``text`` with asterisks."""
    return _URI_PASSWORD_RE.sub(r"\g<user>:****@", text)


def strip_password_warning(stdout: bytes) -> bytes:
    """Remove the first password warning line from mysqlsh stdout."""
    return stdout.replace(PASSWORD_WARNING, b"", 1)


class Shell:
    """Runs mysqlsh commands against a single server URI.

    Runs through one Shell are serialised: mysqlsh is never invoked
    concurrently by the same instance.
    """

    def __init__(
        self,
        uri: str,
        executor: Optional[ProcessExecutor] = None,
        binary: str = "mysqlsh",
        logger=None
    ):
        """
        Initialize the shell runner.

        Args:
            uri: Server to connect to, [user[:pass]@]host[:port][/db]
            executor: Process backend (default: local subprocess)
            binary: mysqlsh executable name or path
            logger: Logger instance (optional)
        """
        self._uri = uri
        self.executor = executor or LocalProcessExecutor()
        self.binary = binary
        self.logger = logger or setup_logger(__name__)
        self._lock = threading.Lock()

    @property
    def uri(self) -> str:
        return self._uri

    def build_args(self, mode: Mode, text: str) -> List[str]:
        return [self.binary, "--no-wizard", "--uri", self._uri, mode.value, "-e", text]

    def run(
        self,
        mode: Mode,
        text: str,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None
    ) -> bytes:
        """
        Run ``text`` through mysqlsh and return its stdout.

        Args:
            mode: Mode.PYTHON for dba/cluster calls, Mode.SQL for statements
            text: Code passed with -e
            cancel: Event that kills the process when set
            timeout: Seconds after which the process is killed

        Returns:
            stdout with the password warning removed

        Raises:
            ShellError: mysqlsh failed and printed a traceback
            CommandError: mysqlsh failed or could not be started
            CommandCancelledError: cancelled or timed out
        """
        args = self.build_args(mode, text)
        with self._lock:
            self.logger.debug(f"Running command: {self._loggable(args)}")
            try:
                result = self.executor.run(args, cancel=cancel, timeout=timeout)
            except Error as e:
                self.logger.debug(f"    err: {mask_password(str(e))}")
                raise
            self.logger.debug(
                f"    stdout: {mask_password(repr(result.stdout))}\n"
                f"    stderr: {mask_password(repr(result.stderr))}\n"
                f"    exit code: {result.exit_code}"
            )

        if result.exit_code != 0:
            process_error = CommandError(args, result.exit_code, result.stderr)
            underlying = error_from_stderr(result.stderr.decode('utf-8', errors='replace'))
            if underlying is not None:
                raise underlying from process_error
            raise process_error

        return strip_password_warning(result.stdout)

    def _loggable(self, args: List[str]) -> str:
        return mask_password(' '.join(args))
