"""Test configuration and fixtures."""

import copy
from typing import Dict, List, Optional

import pytest

pytest_plugins = ("pytest_asyncio",)

from kubeupgrade.constants import NODE_PHASE
from kubeupgrade.errors import NotFoundError
from kubeupgrade.model.kubernetes import K8sResource, Node
from kubeupgrade.model.plan import Plan

KUBEADM_CLUSTER_CONFIGURATION = """\
apiVersion: kubeadm.k8s.io/v1beta3
kind: ClusterConfiguration
kubernetesVersion: {version}
"""


def make_node(
    name: str,
    labels: Optional[Dict[str, str]] = None,
    annotations: Optional[Dict[str, str]] = None,
    kubelet_version: str = "v1.30.4",
    machine_id: str = "",
) -> Node:
    """Build a node as kubectl would return it."""
    metadata = {"name": name, "labels": dict(labels or {}), "resourceVersion": "1"}
    if annotations is not None:
        metadata["annotations"] = dict(annotations)
    return Node(
        api_version="v1",
        metadata=metadata,
        status={"nodeInfo": {"kubeletVersion": kubelet_version, "machineID": machine_id}},
    )


def make_plan(
    groups: Dict[str, dict],
    kubernetes_version: str = "v1.31.0",
    upgraded: Optional[dict] = None,
    allow_downgrade: bool = False,
    name: str = "upgrade-plan",
) -> Plan:
    """Build a plan from its manifest form."""
    return Plan.from_manifest(
        {
            "apiVersion": "kubeupgrade.heathcliff.eu/v1alpha3",
            "kind": "KubeUpgradePlan",
            "metadata": {"name": name, "resourceVersion": "1"},
            "spec": {
                "kubernetesVersion": kubernetes_version,
                "allowDowngrade": allow_downgrade,
                "groups": groups,
                "upgraded": upgraded or {"fleetlockUrl": "https://fleetlock.example.com"},
            },
        }
    )


class FakeCluster:
    """In-memory stand-in for K8sClient."""

    def __init__(self, nodes: Optional[List[Node]] = None, plans: Optional[List[Plan]] = None):
        self.nodes: Dict[str, Node] = {node.name: node for node in nodes or []}
        self.plans: Dict[str, Plan] = {plan.name: plan for plan in plans or []}
        self.cluster_version = "v1.30.4"
        self.node_updates: List[str] = []
        self.status_updates: List[Plan] = []
        self._revision = 100

    def add_node(self, node: Node) -> Node:
        self.nodes[node.name] = node
        return node

    def _bump(self) -> str:
        self._revision += 1
        return str(self._revision)

    def list_nodes(self, selector: Optional[str] = None) -> List[Node]:
        wanted = {}
        if selector:
            for term in selector.split(","):
                key, _, value = term.partition("=")
                wanted[key] = value
        return [
            copy.deepcopy(node)
            for node in self.nodes.values()
            if all(node.labels.get(k) == v for k, v in wanted.items())
        ]

    def get_node(self, name: str) -> Node:
        if name not in self.nodes:
            raise NotFoundError(f'nodes "{name}" not found')
        return copy.deepcopy(self.nodes[name])

    def update_node(self, node: Node) -> Node:
        stored = copy.deepcopy(node)
        stored.metadata["resourceVersion"] = self._bump()
        self.nodes[node.name] = stored
        self.node_updates.append(node.name)
        return copy.deepcopy(stored)

    def set_phase(self, name: str, phase: str):
        self.nodes[name].annotations[NODE_PHASE] = phase
        self.nodes[name].metadata["resourceVersion"] = self._bump()

    def get_configmap(self, name: str, namespace: str) -> K8sResource:
        return K8sResource(
            api_version="v1",
            kind="ConfigMap",
            metadata={"name": name, "namespace": namespace},
            data={"ClusterConfiguration": KUBEADM_CLUSTER_CONFIGURATION.format(version=self.cluster_version)},
        )

    def list_plans(self) -> List[Plan]:
        return [plan.model_copy(deep=True) for plan in self.plans.values()]

    def update_plan_status(self, plan: Plan) -> Plan:
        stored = plan.model_copy(deep=True)
        stored.metadata["resourceVersion"] = self._bump()
        self.plans[plan.name] = stored
        self.status_updates.append(stored)
        return stored.model_copy(deep=True)


@pytest.fixture
def node_factory():
    return make_node


@pytest.fixture
def plan_factory():
    return make_plan


@pytest.fixture
def fake_cluster():
    return FakeCluster()
