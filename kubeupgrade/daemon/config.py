"""Daemon configuration file."""

from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from ..constants import DEFAULT_CONFIG_PATH
from ..core.rpm_ostree import DEFAULT_RPM_OSTREE_PATH
from ..errors import ConfigError
from ..model.plan import (
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_FLEETLOCK_GROUP,
    DEFAULT_KUBEADM_PATH,
    DEFAULT_KUBELET_CONFIG,
    DEFAULT_LOG_LEVEL,
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_STREAM,
)
from ..utils.duration import parse_interval
from ..utils.logger import parse_log_level


class DaemonConfig(BaseModel):
    """Settings of a node daemon, read from its YAML config file.

    The keys rendered by the controller for a group (kubeletConfig,
    kubeadmPath) are accepted as aliases of kubeconfig and upgradeToolPath.
    """

    log_level: str = Field(default=DEFAULT_LOG_LEVEL, alias="logLevel")
    kubeconfig: str = Field(
        default=DEFAULT_KUBELET_CONFIG,
        validation_alias=AliasChoices("kubeconfig", "kubeletConfig"),
    )
    upgrade_tool_path: str = Field(
        default=DEFAULT_KUBEADM_PATH,
        validation_alias=AliasChoices("upgradeToolPath", "kubeadmPath", "upgrade_tool_path"),
    )
    os_tool_path: str = Field(default=DEFAULT_RPM_OSTREE_PATH, alias="osToolPath")

    stream: str = DEFAULT_STREAM
    fleetlock_url: str = Field(default="", alias="fleetlockUrl")
    fleetlock_group: str = Field(default=DEFAULT_FLEETLOCK_GROUP, alias="fleetlockGroup")
    check_interval: str = Field(default=DEFAULT_CHECK_INTERVAL, alias="checkInterval")
    retry_interval: str = Field(default=DEFAULT_RETRY_INTERVAL, alias="retryInterval")
    allow_unsigned_ostree_images: bool = Field(default=False, alias="allowUnsignedOstreeImages")

    class Config:
        populate_by_name = True
        extra = "ignore"

    def validate_values(self):
        """Check the values that can not be expressed as types."""
        if not self.fleetlock_url:
            raise ConfigError("invalid config, missing fleetlockUrl")
        if not self.fleetlock_group:
            raise ConfigError("invalid config, missing fleetlockGroup")
        if not self.stream:
            raise ConfigError("invalid config, missing stream")
        parse_interval(self.check_interval)
        parse_interval(self.retry_interval)
        parse_log_level(self.log_level)


def load_config(path: Optional[Union[str, Path]] = None) -> DaemonConfig:
    """Load and validate the config from path, falling back to the default location.

    Keys missing from the file take their defaults.
    """
    path = Path(path or DEFAULT_CONFIG_PATH)

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse config file {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")

    # Empty values mean "use the default"
    data = {key: value for key, value in data.items() if value not in ("", None)}

    try:
        cfg = DaemonConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid config file {path}: {e}")

    cfg.validate_values()
    return cfg
