"""Derive group status from the node annotation protocol."""

from dataclasses import dataclass, field
from typing import Dict, List

from ..constants import NODE_DESIRED_VERSION, NODE_PHASE, PHASE_COMPLETED, PHASE_ERROR, PHASE_PENDING
from ..errors import DowngradeNotAllowedError
from ..model.kubernetes import Node
from ..model.plan import PLAN_STATUS_COMPLETE, PLAN_STATUS_ERROR, PLAN_STATUS_PROGRESSING, PLAN_STATUS_UNKNOWN
from ..upgrade.versions import compare_versions
from .config import apply_config_annotations


@dataclass
class GroupResult:
    """Outcome of evaluating the nodes of a single group."""

    status: str
    nodes_to_update: List[Node] = field(default_factory=list)

    @property
    def needs_update(self) -> bool:
        return bool(self.nodes_to_update)


def format_list(names: List[str]) -> str:
    return "[" + ", ".join(names) + "]"


def progressing_status(completed: int, total: int) -> str:
    return f"{PLAN_STATUS_PROGRESSING}: {completed}/{total} nodes upgraded"


def error_status(nodes: List[str]) -> str:
    return f"{PLAN_STATUS_ERROR}: The nodes {format_list(nodes)} are reporting errors"


def reconcile_nodes(
    kube_version: str,
    allow_downgrade: bool,
    nodes: List[Node],
    cfg_annotations: Dict[str, str],
) -> GroupResult:
    """Compute the status of a group and the node annotations it still needs.

    The nodes are modified in place. Nothing is written to the cluster, the
    caller decides whether the group may progress.
    """
    if not nodes:
        return GroupResult(status=PLAN_STATUS_UNKNOWN)

    for node in nodes:
        if not allow_downgrade and compare_versions(kube_version, node.kubelet_version) < 0:
            raise DowngradeNotAllowedError(node.name, node.kubelet_version, kube_version)

    completed = 0
    error_nodes: List[str] = []
    to_update: List[Node] = []

    for node in nodes:
        annotations = node.annotations
        changed = apply_config_annotations(annotations, cfg_annotations)

        if annotations.get(NODE_DESIRED_VERSION) == kube_version:
            phase = annotations.get(NODE_PHASE)
            if phase == PHASE_COMPLETED:
                completed += 1
            elif phase == PHASE_ERROR:
                error_nodes.append(node.name)
        else:
            annotations[NODE_DESIRED_VERSION] = kube_version
            annotations[NODE_PHASE] = PHASE_PENDING
            changed = True

        if changed:
            to_update.append(node)

    if error_nodes:
        status = error_status(sorted(error_nodes))
    elif completed == len(nodes):
        status = PLAN_STATUS_COMPLETE
    else:
        status = progressing_status(completed, len(nodes))

    return GroupResult(status=status, nodes_to_update=to_update)
