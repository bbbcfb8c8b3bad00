"""Reading the node annotation protocol from the daemon's side."""

import os

import yaml

from ..constants import NODE_DESIRED_VERSION, NODE_NAME_ENV, NODE_PHASE, PHASE_COMPLETED
from ..errors import ConfigError, KubernetesAPIError
from ..k8s import K8sClient
from ..model.kubernetes import K8sResource, Node
from ..utils.logger import get_logger

logger = get_logger(__name__)


def node_needs_upgrade(node: Node) -> bool:
    """Check if the node has a Kubernetes upgrade that is not completed yet."""
    annotations = node.metadata.get("annotations") or {}
    if not annotations:
        return False
    if annotations.get(NODE_PHASE) == PHASE_COMPLETED:
        return False
    if NODE_DESIRED_VERSION not in annotations:
        logger.warning(
            f"Missing version annotation {NODE_DESIRED_VERSION} on node {node.name}"
        )
        return False
    return True


def expected_image_ref(transport: str, stream: str, version: str) -> str:
    return f"{transport}{stream}:{version}"


def node_has_correct_stream(node: Node, transport: str, stream: str, booted_image_ref: str) -> bool:
    """Check if the booted OS image belongs to the configured stream and desired version."""
    version = (node.metadata.get("annotations") or {}).get(NODE_DESIRED_VERSION)
    if not version:
        return True
    return booted_image_ref == expected_image_ref(transport, stream, version)


def find_node_name(client: K8sClient, machine_id: str) -> str:
    """Return the node name from NODE_NAME, verified against the host machine-id."""
    name = os.environ.get(NODE_NAME_ENV, "")
    if not name:
        raise ConfigError(f"{NODE_NAME_ENV} environment variable is empty")

    node = client.get_node(name)
    if node.machine_id != machine_id:
        raise ConfigError(
            f"node '{name}' machineID '{node.machine_id}' does not match host machineID '{machine_id}'"
        )
    return name


def cluster_version_from_kubeadm_config(configmap: K8sResource) -> str:
    """Extract the kubernetesVersion from the kubeadm-config ConfigMap."""
    if not configmap.data:
        raise KubernetesAPIError("kubeadm configmap contains no data")

    try:
        cluster_config = yaml.safe_load(configmap.data.get("ClusterConfiguration", "")) or {}
    except yaml.YAMLError as e:
        raise KubernetesAPIError(f"failed to parse kubeadm-config: {e}")

    if not isinstance(cluster_config, dict):
        raise KubernetesAPIError("failed to parse kubeadm-config: not a mapping")
    return cluster_config.get("kubernetesVersion", "")
