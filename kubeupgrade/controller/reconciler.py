"""Reconciliation of a KubeUpgradePlan against the cluster nodes."""

import threading
import time
from typing import Dict, List, Optional, Tuple

from ..errors import DowngradeNotAllowedError, KubeUpgradeError
from ..k8s import K8sClient
from ..model.kubernetes import Node
from ..model.plan import Plan, PlanStatus
from ..utils.logger import get_logger
from .config import create_config_annotations, resolve_config
from .scheduler import create_status_summary, gate_groups
from .status import reconcile_nodes

logger = get_logger(__name__)

REQUEUE_INTERVAL = 60.0
POLL_INTERVAL = 5.0


class PlanReconciler:
    """Computes plan status and pushes desired state to the nodes."""

    def __init__(self, client: K8sClient):
        self.client = client
        # resourceVersions of the nodes written by the last reconcile
        self.last_writes: Dict[str, str] = {}

    def reconcile(self, plan: Plan) -> PlanStatus:
        """Run one reconciliation pass and set plan.status.

        Every group is evaluated before the first write, so a failure leaves
        both nodes and status untouched.
        """
        spec = plan.spec
        new_status: Dict[str, str] = {}
        pending: Dict[str, List[Node]] = {}

        for name, group in sorted(spec.groups.items()):
            cfg = resolve_config(spec.upgraded, group.upgraded)
            nodes = self.client.list_nodes(group.label_selector)

            try:
                result = reconcile_nodes(
                    spec.kubernetes_version,
                    spec.allow_downgrade,
                    nodes,
                    create_config_annotations(cfg),
                )
            except DowngradeNotAllowedError as e:
                logger.error(f"Failed to reconcile nodes for group {name}: {e}")
                raise

            new_status[name] = result.status
            if result.needs_update:
                pending[name] = result.nodes_to_update

        final_status, allowed = gate_groups(spec.groups, new_status, pending)

        for name, status in sorted(final_status.items()):
            if plan.status.groups.get(name) != status:
                logger.info(f"Group {name} changed status to '{status}'")

        self.last_writes = {}
        for name, nodes in sorted(allowed.items()):
            for node in nodes:
                logger.debug(f"Updating node {node.name} of group {name}")
                updated = self.client.update_node(node)
                self.last_writes[updated.name] = updated.resource_version

        plan.status = PlanStatus(
            summary=create_status_summary(final_status),
            groups=final_status,
        )
        return plan.status


class Controller:
    """Periodically reconciles every plan in the cluster.

    A plan is reconciled when it or any node changed since the last pass,
    or when the requeue interval elapsed.
    """

    def __init__(
        self,
        client: K8sClient,
        requeue_interval: float = REQUEUE_INTERVAL,
        poll_interval: float = POLL_INTERVAL,
    ):
        self.client = client
        self.reconciler = PlanReconciler(client)
        self.requeue_interval = requeue_interval
        self.poll_interval = poll_interval
        self._seen: Dict[str, Tuple[str, Tuple]] = {}
        self._last_run: Dict[str, float] = {}

    def reconcile_plan(self, plan: Plan) -> Plan:
        """Reconcile a plan and publish its status."""
        self.reconciler.reconcile(plan)
        updated = self.client.update_plan_status(plan)
        logger.info(f"Plan {plan.name}: {plan.status.summary}")
        return updated

    def _due(self, plan: Plan, fingerprint: Tuple, now: float) -> bool:
        seen = self._seen.get(plan.name)
        if seen is None or seen != (plan.resource_version, fingerprint):
            return True
        return now - self._last_run.get(plan.name, 0.0) >= self.requeue_interval

    def run_once(self, now: Optional[float] = None) -> int:
        """Reconcile all plans that are due. Returns the number of reconciled plans."""
        now = time.monotonic() if now is None else now
        plans = self.client.list_plans()
        versions = {node.name: node.resource_version for node in self.client.list_nodes()}
        fingerprint = tuple(sorted(versions.items()))

        reconciled = 0
        for plan in plans:
            if not self._due(plan, fingerprint, now):
                continue
            try:
                updated = self.reconcile_plan(plan)
            except KubeUpgradeError as e:
                logger.error(f"Failed to reconcile plan {plan.name}: {e}")
                continue

            # Our own writes must not count as a change on the next pass
            versions.update(self.reconciler.last_writes)
            fingerprint = tuple(sorted(versions.items()))
            self._seen[plan.name] = (updated.resource_version, fingerprint)
            self._last_run[plan.name] = now
            reconciled += 1
        return reconciled

    def run(self, stop: threading.Event):
        """Reconcile until stop is set."""
        logger.info("Starting controller")
        while not stop.is_set():
            try:
                self.run_once()
            except KubeUpgradeError as e:
                logger.error(f"Failed to list plans or nodes: {e}")
            stop.wait(self.poll_interval)
        logger.info("Controller stopped")
