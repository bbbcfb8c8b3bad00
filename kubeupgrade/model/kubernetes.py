"""Kubernetes resource models."""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class K8sResource(BaseModel):
    """Kubernetes resource."""

    api_version: str = ""
    kind: str
    metadata: Dict[str, Any]
    spec: Optional[Dict[str, Any]] = None
    status: Optional[Dict[str, Any]] = None
    data: Optional[Dict[str, Any]] = None  # For ConfigMaps

    @classmethod
    def from_manifest(cls, item: Dict[str, Any]) -> "K8sResource":
        """Create a resource from kubectl JSON output."""
        return cls(
            api_version=item.get("apiVersion", ""),
            kind=item.get("kind", ""),
            metadata=item.get("metadata", {}),
            spec=item.get("spec"),
            status=item.get("status"),
            data=item.get("data"),
        )

    def to_manifest(self) -> Dict[str, Any]:
        """Convert back into the shape kubectl accepts."""
        data: Dict[str, Any] = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": self.metadata,
        }
        for field in ("spec", "status", "data"):
            value = getattr(self, field)
            if value is not None:
                data[field] = value
        return data

    @property
    def name(self) -> str:
        """Get resource name."""
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> Optional[str]:
        """Get resource namespace."""
        return self.metadata.get("namespace")

    @property
    def resource_version(self) -> str:
        """Get the resourceVersion used for change detection."""
        return self.metadata.get("resourceVersion", "")

    @property
    def labels(self) -> Dict[str, str]:
        """Get resource labels."""
        return self.metadata.get("labels") or {}

    @property
    def annotations(self) -> Dict[str, str]:
        """Get resource annotations, creating the map if it is missing."""
        if self.metadata.get("annotations") is None:
            self.metadata["annotations"] = {}
        return self.metadata["annotations"]


class Node(K8sResource):
    """A cluster node."""

    kind: str = "Node"

    @property
    def node_info(self) -> Dict[str, Any]:
        return (self.status or {}).get("nodeInfo", {})

    @property
    def kubelet_version(self) -> str:
        """Kubernetes version currently applied on the node."""
        return self.node_info.get("kubeletVersion", "")

    @property
    def machine_id(self) -> str:
        return self.node_info.get("machineID", "")
