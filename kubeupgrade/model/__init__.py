"""Data models for kube-upgrade."""

from .kubernetes import K8sResource, Node
from .plan import Plan, PlanGroup, PlanSpec, PlanStatus, UpgradedConfig
from .validation import validate_plan

__all__ = [
    "K8sResource",
    "Node",
    "Plan",
    "PlanGroup",
    "PlanSpec",
    "PlanStatus",
    "UpgradedConfig",
    "validate_plan",
]
