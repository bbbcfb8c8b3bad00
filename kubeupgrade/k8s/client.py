"""Kubernetes client wrapper."""

import subprocess
import json
from typing import List, Tuple, Optional, Dict, Any

from pydantic import ValidationError

from ..constants import PLAN_RESOURCE
from ..errors import KubernetesAPIError, NotFoundError
from ..model.kubernetes import K8sResource, Node
from ..model.plan import Plan
from ..utils.logger import get_logger

logger = get_logger(__name__)


class K8sClient:
    """Wrapper for kubectl commands."""

    def __init__(self, context: Optional[str] = None, kubeconfig: Optional[str] = None):
        self.context = context
        self.kubeconfig = kubeconfig
        self._verify_kubectl()

    def _verify_kubectl(self):
        """Verify kubectl is available and configured."""
        try:
            subprocess.run(
                ["kubectl", "version", "--client", "-o", "json"],
                capture_output=True,
                text=True,
                check=True,
            )
            logger.debug("kubectl verified successfully")
        except FileNotFoundError:
            raise RuntimeError("kubectl command not found. Please install kubectl.")
        except subprocess.CalledProcessError:
            logger.warning("kubectl verification failed")

    def _build_command(self, args: List[str], namespace: Optional[str] = None) -> List[str]:
        """Build kubectl command with kubeconfig, context and namespace."""
        cmd = ["kubectl"]

        if self.kubeconfig:
            cmd.extend(["--kubeconfig", self.kubeconfig])

        if self.context:
            cmd.extend(["--context", self.context])

        cmd.extend(args)

        if namespace:
            cmd.extend(["-n", namespace])

        return cmd

    def execute(
        self, args: List[str], namespace: Optional[str] = None, stdin: Optional[str] = None
    ) -> Tuple[bool, str]:
        """Execute kubectl command and return success status and output."""
        cmd = self._build_command(args, namespace)
        logger.debug(f"Executing: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, input=stdin, capture_output=True, text=True, check=True)
            return True, result.stdout
        except subprocess.CalledProcessError as e:
            logger.debug(f"Command failed: {e.stderr}")
            return False, e.stderr

    def _json_call(
        self, args: List[str], namespace: Optional[str] = None, stdin: Optional[str] = None
    ) -> Dict[str, Any]:
        """Run a kubectl call that answers with JSON, raising on any failure."""
        success, output = self.execute(args, namespace=namespace, stdin=stdin)
        if not success:
            if "NotFound" in output or "not found" in output:
                raise NotFoundError(output.strip() or f"kubectl {' '.join(args)}: not found")
            raise KubernetesAPIError(
                f"kubectl {' '.join(args)} failed: {output.strip()}", {"args": args}
            )
        try:
            return json.loads(output)
        except json.JSONDecodeError:
            raise KubernetesAPIError(f"kubectl {' '.join(args)} returned invalid JSON")

    def _replace(self, manifest: Dict[str, Any], subresource: Optional[str] = None) -> Dict[str, Any]:
        args = ["replace", "-f", "-", "-o", "json"]
        if subresource:
            args.append(f"--subresource={subresource}")
        return self._json_call(args, stdin=json.dumps(manifest))

    def get_node(self, name: str) -> Node:
        """Get a single node."""
        return Node.from_manifest(self._json_call(["get", "node", name, "-o", "json"]))

    def list_nodes(self, selector: Optional[str] = None) -> List[Node]:
        """List nodes, optionally filtered by a label selector."""
        args = ["get", "nodes", "-o", "json"]
        if selector:
            args.extend(["-l", selector])
        data = self._json_call(args)
        return [Node.from_manifest(item) for item in data.get("items", [])]

    def update_node(self, node: Node) -> Node:
        """Write the node back. The last writer wins."""
        manifest = node.to_manifest()
        manifest["metadata"] = {k: v for k, v in node.metadata.items() if k != "resourceVersion"}
        return Node.from_manifest(self._replace(manifest))

    def get_configmap(self, name: str, namespace: str) -> K8sResource:
        """Get a ConfigMap."""
        return K8sResource.from_manifest(
            self._json_call(["get", "configmap", name, "-o", "json"], namespace=namespace)
        )

    def _plan_from_manifest(self, item: Dict[str, Any]) -> Plan:
        try:
            return Plan.from_manifest(item)
        except ValidationError as e:
            name = (item.get("metadata") or {}).get("name", "")
            raise KubernetesAPIError(f"malformed KubeUpgradePlan '{name}': {e}", {"plan": name})

    def list_plans(self) -> List[Plan]:
        """List all KubeUpgradePlans."""
        data = self._json_call(["get", PLAN_RESOURCE, "-o", "json"])
        return [self._plan_from_manifest(item) for item in data.get("items", [])]

    def get_plan(self, name: str) -> Plan:
        """Get a single KubeUpgradePlan."""
        return self._plan_from_manifest(self._json_call(["get", PLAN_RESOURCE, name, "-o", "json"]))

    def update_plan_status(self, plan: Plan) -> Plan:
        """Persist the status sub-resource of a plan."""
        return self._plan_from_manifest(self._replace(plan.to_manifest(), subresource="status"))
