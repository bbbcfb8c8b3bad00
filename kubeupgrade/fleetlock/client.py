"""FleetLock client used as the cluster wide reboot lock."""

from typing import Any, Dict, Optional, Tuple

import requests

from ..errors import LockDeniedError, LockError, LockTransportError
from ..utils.logger import get_logger
from .utils import get_zincati_app_id, trim_trailing_slash

logger = get_logger(__name__)

PRE_REBOOT_PATH = "/v1/pre-reboot"
STEADY_STATE_PATH = "/v1/steady-state"


class FleetlockClient:
    """Acquires and releases the reboot lock of a group.

    Holds no lock state of its own, every call is a fresh request.
    """

    def __init__(
        self,
        url: str,
        group: str,
        app_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        if not url or not group:
            raise LockError("at least one of the required parameters url or group is empty")

        self.url = trim_trailing_slash(url)
        self.group = group
        self.app_id = app_id or get_zincati_app_id()
        self._session = session or requests.Session()

    def acquire(self):
        """Acquire the lock for this machine, raising LockDeniedError if it is held elsewhere."""
        ok, status_code, body = self._do_request(PRE_REBOOT_PATH)
        if not ok:
            raise LockDeniedError(status_code, body.get("kind", ""), body.get("value", ""))
        logger.debug(f"Acquired lock for group {self.group}")

    def release(self):
        """Release the lock held by this machine."""
        ok, status_code, body = self._do_request(STEADY_STATE_PATH)
        if not ok:
            raise LockError(
                f'failed to release lock status={status_code} kind="{body.get("kind", "")}" '
                f'reason="{body.get("value", "")}"'
            )
        logger.debug(f"Released lock for group {self.group}")

    def _do_request(self, path: str) -> Tuple[bool, int, Dict[str, Any]]:
        payload = {"client_params": {"id": self.app_id, "group": self.group}}
        headers = {"fleet-lock-protocol": "true", "Content-Type": "application/json"}

        try:
            response = self._session.post(self.url + path, json=payload, headers=headers)
        except requests.RequestException as e:
            raise LockTransportError(f"failed to send request to server: {e}")

        try:
            body = response.json()
        except ValueError as e:
            if response.status_code != 200:
                return False, response.status_code, {}
            raise LockTransportError(f"failed to parse response body: {e}")
        if not isinstance(body, dict):
            body = {}

        return response.status_code == 200, response.status_code, body
