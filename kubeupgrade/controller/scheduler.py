"""Dependency ordering between groups and the plan summary."""

from typing import Dict, List, Mapping, Tuple, TypeVar

from ..model.plan import (
    PLAN_STATUS_COMPLETE,
    PLAN_STATUS_ERROR,
    PLAN_STATUS_PROGRESSING,
    PLAN_STATUS_UNKNOWN,
    PLAN_STATUS_WAITING,
    PlanGroup,
)
from ..utils.logger import get_logger
from .status import format_list

logger = get_logger(__name__)

T = TypeVar("T")


def group_waits_for_dependency(depends_on: List[str], status: Mapping[str, str]) -> bool:
    """Check if the given group needs to wait on another one."""
    return any(status.get(dependency) != PLAN_STATUS_COMPLETE for dependency in depends_on)


def gate_groups(
    groups: Mapping[str, PlanGroup],
    status: Mapping[str, str],
    pending: Mapping[str, List[T]],
) -> Tuple[Dict[str, str], Dict[str, List[T]]]:
    """Decide which groups may progress in this reconciliation.

    A group with unmet dependencies is reported as Waiting and its pending
    writes are dropped. Groups reporting errors or without nodes keep their
    status. Dependencies are checked against the gated status, repeated until
    nothing changes, so a group never passes a dependency that is itself
    waiting. Statuses only ever change to Waiting, which makes the result
    independent of the order of groups.

    Returns the final status per group and the writes that may be applied.
    """
    final = dict(status)

    changed = True
    while changed:
        changed = False
        for name, group in groups.items():
            current = final.get(name, PLAN_STATUS_UNKNOWN)
            if current == PLAN_STATUS_WAITING:
                continue

            gated_status = (
                name in pending
                or current == PLAN_STATUS_COMPLETE
                or current.startswith(PLAN_STATUS_PROGRESSING)
            )
            if gated_status and group_waits_for_dependency(group.depends_on, final):
                logger.info(f"Group {name} is waiting on dependencies {group.depends_on}")
                final[name] = PLAN_STATUS_WAITING
                changed = True

    allowed = {
        name: writes
        for name, writes in pending.items()
        if name in groups and final.get(name) != PLAN_STATUS_WAITING
    }
    return final, allowed


def create_status_summary(status: Mapping[str, str]) -> str:
    """Summarize the group status by priority: Unknown, Error, Progressing, Waiting."""
    if not status:
        return PLAN_STATUS_UNKNOWN

    unknown = False
    errors: List[str] = []
    progressing: List[str] = []
    waiting = False

    for name in sorted(status):
        value = status[name]
        if value == PLAN_STATUS_COMPLETE:
            continue
        if value == PLAN_STATUS_WAITING:
            waiting = True
        elif value.startswith(PLAN_STATUS_PROGRESSING):
            progressing.append(name)
        elif value.startswith(PLAN_STATUS_ERROR):
            errors.append(name)
        else:
            unknown = True

    if unknown:
        return PLAN_STATUS_UNKNOWN
    if errors:
        return f"{PLAN_STATUS_ERROR}: Some groups encountered errors {format_list(errors)}"
    if progressing:
        return f"{PLAN_STATUS_PROGRESSING}: {format_list(progressing)}"
    if waiting:
        return PLAN_STATUS_WAITING
    return PLAN_STATUS_COMPLETE
