"""Tests for the FleetLock client."""

import pytest
import requests
from unittest.mock import MagicMock, Mock

from kubeupgrade.errors import LockDeniedError, LockError, LockTransportError
from kubeupgrade.fleetlock.client import FleetlockClient


def response(status_code=200, body=None):
    mock = MagicMock(status_code=status_code)
    if isinstance(body, Exception):
        mock.json.side_effect = body
    else:
        mock.json.return_value = body if body is not None else {}
    return mock


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def client(session):
    return FleetlockClient("https://fleetlock.example.com/", "control", app_id="abc123", session=session)


@pytest.mark.unit
class TestFleetlockClient:
    def test_requires_url_and_group(self, session):
        """Test that url and group are mandatory."""
        with pytest.raises(LockError):
            FleetlockClient("", "default", app_id="abc", session=session)
        with pytest.raises(LockError):
            FleetlockClient("https://lock", "", app_id="abc", session=session)

    def test_trailing_slash_removed(self, client):
        """Test that the base URL is normalized."""
        assert client.url == "https://fleetlock.example.com"

    def test_acquire_request(self, client, session):
        """Test the wire format of a lock request."""
        session.post.return_value = response(200)

        client.acquire()

        session.post.assert_called_once_with(
            "https://fleetlock.example.com/v1/pre-reboot",
            json={"client_params": {"id": "abc123", "group": "control"}},
            headers={"fleet-lock-protocol": "true", "Content-Type": "application/json"},
        )

    def test_release_request(self, client, session):
        """Test that releasing posts to the steady-state endpoint."""
        session.post.return_value = response(200)

        client.release()

        assert session.post.call_args[0][0] == "https://fleetlock.example.com/v1/steady-state"

    def test_acquire_denied(self, client, session):
        """Test that a held lock is reported with the server's reason."""
        session.post.return_value = response(
            409, {"kind": "failed_lock", "value": "semaphore currently full"}
        )

        with pytest.raises(LockDeniedError) as exc_info:
            client.acquire()

        assert exc_info.value.status_code == 409
        assert "semaphore currently full" in str(exc_info.value)

    def test_acquire_denied_without_json(self, client, session):
        """Test that an error page without a JSON body still counts as denied."""
        session.post.return_value = response(500, ValueError("no json"))

        with pytest.raises(LockDeniedError):
            client.acquire()

    def test_release_failure(self, client, session):
        """Test that a failed release raises a lock error."""
        session.post.return_value = response(500, {"kind": "error", "value": "database down"})

        with pytest.raises(LockError, match="failed to release lock"):
            client.release()

    def test_connection_error(self, client, session):
        """Test that transport failures are not confused with denial."""
        session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(LockTransportError):
            client.acquire()

    def test_unparseable_success_body(self, client, session):
        """Test that a 200 with a broken body is a transport error."""
        session.post.return_value = response(200, ValueError("broken"))

        with pytest.raises(LockTransportError):
            client.acquire()
