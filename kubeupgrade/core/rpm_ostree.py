"""rpm-ostree wrapper for OS image checks, rebases and upgrades."""

import json
import os
import subprocess
import threading
from typing import List

from ..errors import ToolError
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_RPM_OSTREE_PATH = "/usr/bin/rpm-ostree"

# rpm-ostree upgrade --check exits with 77 when there is nothing to do
EXIT_NO_UPGRADE = 77

UNVERIFIED_TRANSPORT = "ostree-unverified-registry:"
SIGNED_TRANSPORT = "ostree-image-signed:docker://"


def image_transport(allow_unsigned: bool) -> str:
    """The ostree image reference prefix used for rebases."""
    return UNVERIFIED_TRANSPORT if allow_unsigned else SIGNED_TRANSPORT


def check_executable(path: str):
    """Check if the given file exists and is executable."""
    if not os.path.isfile(path):
        raise FileNotFoundError(f"{path} does not exist")
    if not os.access(path, os.X_OK):
        raise PermissionError(f"{path} is not an executable")


class RpmOstree:
    """Client for rpm-ostree operations.

    Calls are serialized, rpm-ostree only runs one transaction at a time.
    """

    def __init__(self, binary: str = DEFAULT_RPM_OSTREE_PATH):
        check_executable(binary)
        self.binary = binary
        self._mutex = threading.Lock()

    def _run(self, args: List[str]):
        """Run rpm-ostree with output going to the daemon's stdout/stderr."""
        cmd = [self.binary] + args
        logger.debug(f"Executing: {' '.join(cmd)}")
        with self._mutex:
            result = subprocess.run(cmd)
        if result.returncode != 0:
            raise ToolError(cmd, result.returncode)

    def check_for_upgrade(self) -> bool:
        """Check if there is a new OS image available."""
        cmd = [self.binary, "upgrade", "--check"]
        with self._mutex:
            result = subprocess.run(cmd, capture_output=True, text=True)

        if result.returncode == 0:
            return True
        if result.returncode == EXIT_NO_UPGRADE:
            return False

        logger.error(f"rpm-ostree exited with unknown exit code {result.returncode}")
        raise ToolError(cmd, result.returncode, result.stdout + result.stderr)

    def upgrade(self):
        """Upgrade the OS to the newest image of the booted stream.

        WARNING: Reboots the system when successful.
        """
        self._run(["upgrade", "--reboot"])

    def rebase(self, image: str):
        """Rebase the OS to the given image reference.

        WARNING: Reboots the system when successful.
        """
        self._run(["rebase", "--reboot", image])

    def register_as_driver(self):
        """Register as the update driver, so rpm-ostree refuses manual updates."""
        self._run(["deploy", "--register-driver=upgraded"])

    def booted_image_ref(self) -> str:
        """Return the container image reference of the booted deployment."""
        cmd = [self.binary, "status", "--json"]
        with self._mutex:
            result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            raise ToolError(cmd, result.returncode, result.stderr)

        try:
            status = json.loads(result.stdout)
        except json.JSONDecodeError:
            raise ToolError(cmd, result.returncode, "failed to parse rpm-ostree status")

        for deployment in status.get("deployments", []):
            if deployment.get("booted"):
                return deployment.get("container-image-reference", "")
        raise ToolError(cmd, result.returncode, "no booted deployment found")
