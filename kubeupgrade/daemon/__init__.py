"""Node daemon: per-node upgrade state machine."""

from .config import DaemonConfig, load_config
from .daemon import Daemon, Trigger
from .node import find_node_name, node_has_correct_stream, node_needs_upgrade

__all__ = [
    "DaemonConfig",
    "load_config",
    "Daemon",
    "Trigger",
    "find_node_name",
    "node_has_correct_stream",
    "node_needs_upgrade",
]
