"""Tests for reading the node annotation protocol."""

import pytest
from unittest.mock import Mock, patch

from kubeupgrade.constants import NODE_DESIRED_VERSION, NODE_PHASE
from kubeupgrade.daemon.node import (
    cluster_version_from_kubeadm_config,
    find_node_name,
    node_has_correct_stream,
    node_needs_upgrade,
)
from kubeupgrade.errors import ConfigError, KubernetesAPIError
from kubeupgrade.model.kubernetes import K8sResource

SIGNED = "ostree-image-signed:docker://"


@pytest.mark.unit
class TestNodeNeedsUpgrade:
    @pytest.mark.parametrize(
        "annotations,expected",
        [
            (None, False),
            ({}, False),
            ({NODE_PHASE: "pending"}, False),
            ({NODE_DESIRED_VERSION: "v1.31.0", NODE_PHASE: "completed"}, False),
            ({NODE_DESIRED_VERSION: "v1.31.0", NODE_PHASE: "pending"}, True),
            ({NODE_DESIRED_VERSION: "v1.31.0", NODE_PHASE: "error"}, True),
            ({NODE_DESIRED_VERSION: "v1.31.0"}, True),
        ],
    )
    def test_needs_upgrade(self, node_factory, annotations, expected):
        """Test which annotation states ask for an upgrade."""
        assert node_needs_upgrade(node_factory("node-1", annotations=annotations)) is expected


@pytest.mark.unit
class TestNodeHasCorrectStream:
    def test_matching_image(self, node_factory):
        """Test a node booted from the desired image."""
        node = node_factory("node-1", annotations={NODE_DESIRED_VERSION: "v1.31.0"})
        assert node_has_correct_stream(node, SIGNED, "ghcr.io/os", SIGNED + "ghcr.io/os:v1.31.0")

    def test_other_version_or_transport(self, node_factory):
        """Test that version and transport are both part of the comparison."""
        node = node_factory("node-1", annotations={NODE_DESIRED_VERSION: "v1.31.0"})
        assert not node_has_correct_stream(node, SIGNED, "ghcr.io/os", SIGNED + "ghcr.io/os:v1.30.4")
        assert not node_has_correct_stream(
            node, SIGNED, "ghcr.io/os", "ostree-unverified-registry:ghcr.io/os:v1.31.0"
        )

    def test_without_desired_version(self, node_factory):
        """Test that a node without a target is never rebased."""
        assert node_has_correct_stream(node_factory("node-1"), SIGNED, "ghcr.io/os", "anything")


@pytest.mark.unit
class TestFindNodeName:
    def test_node_name_verified(self, node_factory):
        """Test that the node's machine id must match the host."""
        client = Mock()
        client.get_node.return_value = node_factory("node-1", machine_id="abc")

        with patch.dict("os.environ", {"NODE_NAME": "node-1"}):
            assert find_node_name(client, "abc") == "node-1"
            with pytest.raises(ConfigError, match="does not match"):
                find_node_name(client, "def")

    def test_missing_env(self):
        """Test that NODE_NAME is required."""
        with patch.dict("os.environ", {"NODE_NAME": ""}):
            with pytest.raises(ConfigError):
                find_node_name(Mock(), "abc")


@pytest.mark.unit
class TestClusterVersion:
    def test_read_version(self):
        """Test reading kubernetesVersion from the kubeadm ConfigMap."""
        configmap = K8sResource(
            kind="ConfigMap",
            metadata={"name": "kubeadm-config"},
            data={"ClusterConfiguration": "kind: ClusterConfiguration\nkubernetesVersion: v1.30.4\n"},
        )
        assert cluster_version_from_kubeadm_config(configmap) == "v1.30.4"

    def test_empty_configmap(self):
        """Test that a ConfigMap without data is an error."""
        with pytest.raises(KubernetesAPIError):
            cluster_version_from_kubeadm_config(K8sResource(kind="ConfigMap", metadata={}))
