"""
InnoDB cluster management module.
Creates the cluster and manages its membership through mysqlsh.
"""

import threading
from typing import Optional

from .errors import Error
from .innodb import DEFAULT_CLUSTER_NAME, ClusterStatus, InstanceState
from .options import Options, format_options, quote
from .output import decode_document, decode_first_json_line
from .process import ProcessExecutor
from .shell import Mode, Shell, mask_password
from .utils.logger import setup_logger

# Run as SQL rather than dba.reboot_cluster_from_complete_outage(), which is
# broken for this case (https://bugs.mysql.com/90793).
REBOOT_STATEMENTS = " ".join([
    "RESET PERSIST group_replication_bootstrap_group;",
    "SET GLOBAL group_replication_bootstrap_group=ON;",
    "start group_replication;",
])


class ClusterManager:
    """Manages an InnoDB cluster through mysqlsh connected to one instance."""

    def __init__(
        self,
        uri: str,
        shell: Optional[Shell] = None,
        executor: Optional[ProcessExecutor] = None,
        cluster_name: str = DEFAULT_CLUSTER_NAME,
        binary: str = "mysqlsh",
        logger=None
    ):
        """
        Initialize cluster manager.

        Args:
            uri: Instance mysqlsh connects to, [user[:pass]@]host[:port][/db]
            shell: Shell to run commands with (built from uri if omitted)
            executor: Process backend for the Shell built from uri
            cluster_name: Name of the managed cluster
            binary: mysqlsh executable for the Shell built from uri
            logger: Logger instance (optional)
        """
        self.logger = logger or setup_logger(__name__)
        self.shell = shell or Shell(uri, executor=executor, binary=binary, logger=self.logger)
        self.cluster_name = cluster_name

    @property
    def uri(self) -> str:
        return self.shell.uri

    def _get_cluster(self) -> str:
        return f"dba.get_cluster({quote(self.cluster_name)})"

    def _run_python(self, python: str, cancel=None, timeout=None) -> bytes:
        return self.shell.run(Mode.PYTHON, python, cancel=cancel, timeout=timeout)

    def is_clustered(
        self,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None
    ) -> bool:
        """
        Check whether the instance belongs to the cluster.

        Any failure, including mysqlsh errors, means "not clustered".
        """
        try:
            self._run_python(self._get_cluster(), cancel=cancel, timeout=timeout)
        except Error as e:
            self.logger.debug(f"Instance is not clustered: {e}")
            return False
        return True

    def create_cluster(
        self,
        options: Optional[Options] = None,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None
    ) -> ClusterStatus:
        """
        Create the cluster with the connected instance as its seed.

        Args:
            options: Options for dba.create_cluster()
            cancel: Event that aborts the command
            timeout: Seconds before the command is aborted

        Returns:
            Status of the new cluster
        """
        self.logger.info(f"Creating cluster: {self.cluster_name}")
        python = "print(dba.create_cluster({}, {}).status())".format(
            quote(self.cluster_name), format_options(options or {})
        )
        output = self._run_python(python, cancel=cancel, timeout=timeout)

        # create_cluster() prints progress text before the status document
        status = ClusterStatus.from_dict(decode_first_json_line(output))
        self.logger.info(f"Cluster {self.cluster_name} created")
        return status

    def get_cluster_status(
        self,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None
    ) -> ClusterStatus:
        """Get the status of the cluster."""
        python = f"print({self._get_cluster()}.status())"
        output = self._run_python(python, cancel=cancel, timeout=timeout)
        return ClusterStatus.from_dict(decode_document(output))

    def check_instance_state(
        self,
        uri: str,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None
    ) -> InstanceState:
        """
        Verify that the data on an instance does not prevent it joining the cluster.

        Args:
            uri: Instance to check
            cancel: Event that aborts the command
            timeout: Seconds before the command is aborted
        """
        python = f"print({self._get_cluster()}.check_instance_state({quote(uri)}))"
        output = self._run_python(python, cancel=cancel, timeout=timeout)
        return InstanceState.from_dict(decode_document(output))

    def _instance_call(self, method, uri, options, cancel, timeout) -> None:
        python = "{}.{}({}, {})".format(
            self._get_cluster(), method, quote(uri), format_options(options or {})
        )
        self._run_python(python, cancel=cancel, timeout=timeout)

    def add_instance_to_cluster(
        self,
        uri: str,
        options: Optional[Options] = None,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None
    ) -> None:
        """Add the instance at ``uri`` to the cluster."""
        self.logger.info(f"Adding instance {mask_password(uri)} to cluster {self.cluster_name}")
        self._instance_call('add_instance', uri, options, cancel, timeout)

    def rejoin_instance_to_cluster(
        self,
        uri: str,
        options: Optional[Options] = None,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None
    ) -> None:
        """Rejoin the instance at ``uri`` to the cluster."""
        self.logger.info(f"Rejoining instance {mask_password(uri)} to cluster {self.cluster_name}")
        self._instance_call('rejoin_instance', uri, options, cancel, timeout)

    def remove_instance_from_cluster(
        self,
        uri: str,
        options: Optional[Options] = None,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None
    ) -> None:
        """Remove the instance at ``uri`` from the cluster."""
        self.logger.info(f"Removing instance {mask_password(uri)} from cluster {self.cluster_name}")
        self._instance_call('remove_instance', uri, options, cancel, timeout)

    def reboot_cluster_from_complete_outage(
        self,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None
    ) -> None:
        """Bootstrap group replication again after every member went down."""
        self.logger.info(f"Rebooting cluster {self.cluster_name} from complete outage")
        self.shell.run(Mode.SQL, REBOOT_STATEMENTS, cancel=cancel, timeout=timeout)
