"""Plan controller: configuration resolver, status aggregator and group scheduler."""

from .config import apply_config_annotations, create_config_annotations, resolve_config
from .reconciler import Controller, PlanReconciler
from .scheduler import create_status_summary, gate_groups, group_waits_for_dependency
from .status import GroupResult, reconcile_nodes

__all__ = [
    "apply_config_annotations",
    "create_config_annotations",
    "resolve_config",
    "Controller",
    "PlanReconciler",
    "create_status_summary",
    "gate_groups",
    "group_waits_for_dependency",
    "GroupResult",
    "reconcile_nodes",
]
