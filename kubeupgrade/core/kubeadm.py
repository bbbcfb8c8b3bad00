"""kubeadm wrapper for cluster and node upgrades."""

import subprocess
import threading
from typing import List

from ..errors import ToolError
from ..utils.logger import get_logger
from .rpm_ostree import check_executable

logger = get_logger(__name__)

HOST_PREFIX = "/host"


class Kubeadm:
    """Runs the host's kubeadm binary inside a chroot of the host filesystem."""

    def __init__(self, binary: str, chroot: str = HOST_PREFIX):
        check_executable(chroot + binary)
        self.binary = binary
        self.chroot = chroot
        self._mutex = threading.Lock()
        self._version = self._read_version()

    def _command(self, args: List[str]) -> List[str]:
        if self.chroot and self.chroot != "/":
            return ["chroot", self.chroot, self.binary] + args
        return [self.binary] + args

    def _read_version(self) -> str:
        cmd = [self.chroot + self.binary, "version", "--output", "short"]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            raise ToolError(cmd, e.returncode, e.stderr)
        return result.stdout.strip()

    def _run(self, args: List[str]):
        cmd = self._command(args)
        logger.debug(f"Executing: {' '.join(cmd)}")
        with self._mutex:
            result = subprocess.run(cmd)
        if result.returncode != 0:
            raise ToolError(cmd, result.returncode)

    def version(self) -> str:
        """Kubernetes version shipped with the booted OS image."""
        return self._version

    def upgrade_cluster(self, version: str):
        """Run kubeadm upgrade apply, upgrading the control plane to version."""
        self._run(["upgrade", "apply", "--yes", version])

    def upgrade_node(self):
        """Run kubeadm upgrade node."""
        self._run(["upgrade", "node"])
