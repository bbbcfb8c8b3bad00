"""Admission checks for KubeUpgradePlans."""

from typing import List

from ..errors import ConfigError, PlanValidationError
from ..upgrade.versions import is_valid_semver
from ..utils.duration import parse_interval
from ..utils.logger import LOG_LEVELS
from .plan import Plan, UpgradedConfig


def _check_config(cfg: UpgradedConfig, where: str) -> List[str]:
    problems = []
    for field, value in (
        ("checkInterval", cfg.check_interval),
        ("retryInterval", cfg.retry_interval),
    ):
        if not value:
            continue
        try:
            parse_interval(value)
        except ConfigError:
            problems.append(f"{where}.{field} '{value}' is not a valid positive duration")

    if cfg.log_level and cfg.log_level.lower() not in LOG_LEVELS:
        problems.append(f"{where}.logLevel '{cfg.log_level}' is not a known log level")
    return problems


def validate_plan(plan: Plan) -> None:
    """Reject plans the controller must never see.

    Dependency cycles are not detected; groups in a cycle simply keep
    waiting on each other.
    """
    spec = plan.spec
    problems: List[str] = []

    if not is_valid_semver(spec.kubernetes_version):
        problems.append(f"kubernetesVersion '{spec.kubernetes_version}' is not a valid semantic version")

    if not spec.groups:
        problems.append("at least one group is required")

    if not spec.upgraded.fleetlock_url:
        problems.append("upgraded.fleetlockUrl is required")

    problems.extend(_check_config(spec.upgraded, "upgraded"))

    for name, group in sorted(spec.groups.items()):
        for dependency in group.depends_on:
            if dependency not in spec.groups:
                problems.append(f"group '{name}' depends on unknown group '{dependency}'")
        if group.upgraded is not None:
            problems.extend(_check_config(group.upgraded, f"groups.{name}.upgraded"))

    if problems:
        raise PlanValidationError(problems)
