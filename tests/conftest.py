"""Shared fixtures for the cluster driver tests."""

import logging
import threading
from typing import List, Optional

import pytest

from mysqlsh_cluster.process import CommandResult, ProcessExecutor

URI = "root:secret@mysql-0:3306"


class FakeExecutor(ProcessExecutor):
    """Records every argv and replays scripted results in order."""

    def __init__(self, results: Optional[List] = None):
        self.results = list(results or [])
        self.calls: List[List[str]] = []
        self.lock = threading.Lock()

    def push(self, exit_code=0, stdout=b"", stderr=b""):
        self.results.append(CommandResult(exit_code, stdout, stderr))

    def run(self, args, cancel=None, timeout=None):
        with self.lock:
            self.calls.append(list(args))
            if not self.results:
                return CommandResult(0, b"", b"")
            result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result

    @property
    def last_args(self) -> List[str]:
        return self.calls[-1]

    @property
    def last_text(self) -> str:
        return self.calls[-1][-1]


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def logger():
    return logging.getLogger("tests.mysqlsh_cluster")


def traceback_text(error_type: str, message: str) -> str:
    return (
        "Traceback (most recent call last):\n"
        '  File "<string>", line 1, in <module>\n'
        f"{error_type}: {message}\n"
    )
