"""Exception hierarchy for kube-upgrade."""

from typing import Any, Dict, List, Optional


class KubeUpgradeError(Exception):
    """Base exception carrying optional structured details."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def __str__(self) -> str:
        return self.message


class ConfigError(KubeUpgradeError):
    """Raised when a configuration value is missing or invalid."""


class PlanValidationError(KubeUpgradeError):
    """Raised when a plan would be rejected at admission."""

    def __init__(self, problems: List[str]):
        super().__init__(f"invalid plan: {'; '.join(problems)}", {"problems": problems})
        self.problems = problems


class KubernetesAPIError(KubeUpgradeError):
    """Raised when a call against the cluster API fails."""


class NotFoundError(KubernetesAPIError):
    """Raised when the requested object does not exist."""


class DowngradeNotAllowedError(KubeUpgradeError):
    """Raised when a node runs a newer version than desired and downgrades are off."""

    def __init__(self, node: str, node_version: str, desired_version: str):
        super().__init__(
            f"node {node} version {node_version} is newer than {desired_version}, "
            "but downgrade is disabled",
            {"node": node, "nodeVersion": node_version, "desiredVersion": desired_version},
        )
        self.node = node


class LockError(KubeUpgradeError):
    """Base class for reboot lock failures."""


class LockDeniedError(LockError):
    """The lock service answered, but the lock is held elsewhere."""

    def __init__(self, status_code: int, kind: str = "", value: str = ""):
        super().__init__(
            f'failed to acquire lock status={status_code} kind="{kind}" reason="{value}"',
            {"statusCode": status_code, "kind": kind, "value": value},
        )
        self.status_code = status_code


class LockTransportError(LockError):
    """The lock service could not be reached or sent an unreadable answer."""


class ToolError(KubeUpgradeError):
    """Raised when an OS or Kubernetes tool command fails."""

    def __init__(self, command: List[str], returncode: Optional[int] = None, output: str = ""):
        super().__init__(
            f"command '{' '.join(command)}' failed with exit code {returncode}",
            {"command": command, "returncode": returncode, "output": output},
        )
        self.command = command
        self.returncode = returncode
