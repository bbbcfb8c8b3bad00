"""Merging of global and per-group daemon configuration."""

from typing import Dict, Optional

from ..constants import (
    CONFIG_CHECK_INTERVAL,
    CONFIG_LOCK_GROUP,
    CONFIG_LOCK_URL,
    CONFIG_PREFIX,
    CONFIG_RETRY_INTERVAL,
    CONFIG_STREAM,
)
from ..model.plan import UpgradedConfig

# Config fields that are pushed to the nodes as annotations
CONFIG_ANNOTATIONS = {
    "stream": CONFIG_STREAM,
    "fleetlock_url": CONFIG_LOCK_URL,
    "fleetlock_group": CONFIG_LOCK_GROUP,
    "check_interval": CONFIG_CHECK_INTERVAL,
    "retry_interval": CONFIG_RETRY_INTERVAL,
}


def resolve_config(
    global_cfg: UpgradedConfig, override: Optional[UpgradedConfig] = None
) -> UpgradedConfig:
    """Combine two configs, where every non-empty field of override wins."""
    if override is None:
        return global_cfg

    update = {
        field: value
        for field, value in override
        if value not in ("", None, False, 0)
    }
    return global_cfg.model_copy(update=update)


def create_config_annotations(cfg: Optional[UpgradedConfig]) -> Dict[str, str]:
    """Convert the provided config to node annotations."""
    if cfg is None:
        return {}

    return {
        annotation: getattr(cfg, field)
        for field, annotation in CONFIG_ANNOTATIONS.items()
        if getattr(cfg, field)
    }


def apply_config_annotations(annotations: Dict[str, str], cfg: Dict[str, str]) -> bool:
    """Replace the config annotations of a node with cfg.

    Config annotations that are no longer configured are removed.
    Returns whether the annotations changed.
    """
    original = dict(annotations)

    for key in [k for k in annotations if k.startswith(CONFIG_PREFIX)]:
        del annotations[key]
    annotations.update(cfg)

    return original != annotations
