"""
Drive MySQL Shell (mysqlsh) to manage an InnoDB cluster.
"""

from .cluster_manager import ClusterManager
from .errors import (
    CommandCancelledError,
    CommandError,
    CommandStartError,
    Error,
    OutputDecodeError,
    ShellError,
    error_from_stderr,
)
from .innodb import DEFAULT_CLUSTER_NAME, ClusterStatus, InstanceState, InstanceStatus
from .options import Options
from .process import CommandResult, LocalProcessExecutor, ProcessExecutor, RemoteProcessExecutor
from .shell import Mode, Shell

__version__ = "0.1.0"
