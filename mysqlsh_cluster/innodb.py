"""
Records describing an InnoDB cluster as reported by mysqlsh.

The schema belongs to mysqlsh; only the commonly used fields are exposed as
attributes and the full decoded document is kept in ``raw``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# Name of the cluster created and managed by ClusterManager.
DEFAULT_CLUSTER_NAME = "Cluster"


class InstanceStatus:
    """Member status strings reported in the cluster topology."""
    ONLINE = "ONLINE"
    RECOVERING = "RECOVERING"
    ERROR = "ERROR"
    OFFLINE = "OFFLINE"
    UNREACHABLE = "UNREACHABLE"
    MISSING = "(MISSING)"


@dataclass
class Instance:
    """A cluster member as listed in the topology."""
    address: str = ""
    mode: str = ""
    role: str = ""
    status: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Instance':
        return cls(
            address=data.get('address', ''),
            mode=data.get('mode', ''),
            role=data.get('role', ''),
            status=data.get('status', ''),
        )


@dataclass
class ReplicaSet:
    """The cluster's default replica set."""
    name: str = ""
    primary: str = ""
    status: str = ""
    status_text: str = ""
    topology: Dict[str, Instance] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReplicaSet':
        topology = {
            name: Instance.from_dict(member or {})
            for name, member in (data.get('topology') or {}).items()
        }
        return cls(
            name=data.get('name', ''),
            primary=data.get('primary', ''),
            status=data.get('status', ''),
            status_text=data.get('statusText', ''),
            topology=topology,
        )


@dataclass
class ClusterStatus:
    """Output of ``cluster.status()``."""
    cluster_name: str = ""
    default_replica_set: ReplicaSet = field(default_factory=ReplicaSet)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClusterStatus':
        return cls(
            cluster_name=data.get('clusterName', ''),
            default_replica_set=ReplicaSet.from_dict(data.get('defaultReplicaSet') or {}),
            raw=data,
        )

    def get_instance_status(self, address: str) -> Optional[str]:
        """Status of the member at ``address``, or None if it is not in the topology."""
        instance = self.default_replica_set.topology.get(address)
        if instance is None:
            return None
        return instance.status


@dataclass
class InstanceState:
    """Output of ``cluster.check_instance_state(uri)``."""
    reason: str = ""
    state: str = ""
    status: str = ""
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InstanceState':
        return cls(
            reason=data.get('reason', ''),
            state=data.get('state', ''),
            status=data.get('status', ''),
            raw=data,
        )
