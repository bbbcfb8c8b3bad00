"""KubeUpgradePlan resource models."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

PLAN_STATUS_UNKNOWN = "Unknown"
PLAN_STATUS_PROGRESSING = "Progressing"
PLAN_STATUS_WAITING = "Waiting"
PLAN_STATUS_COMPLETE = "Complete"
PLAN_STATUS_ERROR = "Error"

DEFAULT_STREAM = "ghcr.io/heathcliff26/fcos-k8s"
DEFAULT_FLEETLOCK_GROUP = "default"
DEFAULT_CHECK_INTERVAL = "3h"
DEFAULT_RETRY_INTERVAL = "1m"
DEFAULT_LOG_LEVEL = "info"
DEFAULT_KUBELET_CONFIG = "/etc/kubernetes/kubelet.conf"
DEFAULT_KUBEADM_PATH = "/usr/bin/kubeadm"


class UpgradedConfig(BaseModel):
    """Configuration for the node daemons, globally or per group.

    Every field is empty by default so that a group override only carries
    the values it actually sets.
    """

    stream: str = ""
    fleetlock_url: str = Field(default="", alias="fleetlockUrl")
    fleetlock_group: str = Field(default="", alias="fleetlockGroup")
    check_interval: str = Field(default="", alias="checkInterval")
    retry_interval: str = Field(default="", alias="retryInterval")
    log_level: str = Field(default="", alias="logLevel")
    kubelet_config: str = Field(default="", alias="kubeletConfig")
    kubeadm_path: str = Field(default="", alias="kubeadmPath")
    allow_unsigned_ostree_images: bool = Field(default=False, alias="allowUnsignedOstreeImages")

    class Config:
        populate_by_name = True

    def with_defaults(self) -> "UpgradedConfig":
        """Return a copy with the global defaults filled in."""
        defaults = {
            "stream": DEFAULT_STREAM,
            "fleetlock_group": DEFAULT_FLEETLOCK_GROUP,
            "check_interval": DEFAULT_CHECK_INTERVAL,
            "retry_interval": DEFAULT_RETRY_INTERVAL,
            "log_level": DEFAULT_LOG_LEVEL,
            "kubelet_config": DEFAULT_KUBELET_CONFIG,
            "kubeadm_path": DEFAULT_KUBEADM_PATH,
        }
        update = {key: value for key, value in defaults.items() if not getattr(self, key)}
        return self.model_copy(update=update)


class PlanGroup(BaseModel):
    """A named partition of nodes."""

    depends_on: List[str] = Field(default_factory=list, alias="dependsOn")
    labels: Dict[str, str] = Field(default_factory=dict)
    upgraded: Optional[UpgradedConfig] = None

    class Config:
        populate_by_name = True

    @property
    def label_selector(self) -> str:
        """Render the node labels as a kubectl label selector."""
        return ",".join(
            f"{key}={value}" for key, value in sorted(self.labels.items())
        )


class PlanSpec(BaseModel):
    """Desired state of the cluster."""

    kubernetes_version: str = Field(alias="kubernetesVersion")
    allow_downgrade: bool = Field(default=False, alias="allowDowngrade")
    groups: Dict[str, PlanGroup] = Field(default_factory=dict)
    upgraded: UpgradedConfig = Field(default_factory=UpgradedConfig)

    class Config:
        populate_by_name = True


class PlanStatus(BaseModel):
    """Observed state of the cluster, derived from node annotations."""

    summary: str = ""
    groups: Dict[str, str] = Field(default_factory=dict)


class Plan(BaseModel):
    """Cluster scoped KubeUpgradePlan."""

    api_version: str = Field(default="kubeupgrade.heathcliff.eu/v1alpha3", alias="apiVersion")
    kind: str = "KubeUpgradePlan"
    metadata: Dict[str, Any] = Field(default_factory=dict)
    spec: PlanSpec
    status: PlanStatus = Field(default_factory=PlanStatus)

    class Config:
        populate_by_name = True

    @property
    def name(self) -> str:
        """Get plan name."""
        return self.metadata.get("name", "")

    @property
    def resource_version(self) -> str:
        """Get the resourceVersion of the stored object."""
        return self.metadata.get("resourceVersion", "")

    @classmethod
    def from_manifest(cls, data: Dict[str, Any]) -> "Plan":
        """Build a plan from a decoded manifest."""
        return cls.model_validate(data)

    def to_manifest(self) -> Dict[str, Any]:
        """Serialize the plan the way the API server expects it."""
        return self.model_dump(by_alias=True, exclude_none=True)
