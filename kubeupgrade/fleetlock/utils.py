"""Helpers for talking to a FleetLock server."""

import hashlib
import hmac
from pathlib import Path

from ..utils.logger import get_logger

logger = get_logger(__name__)

MACHINE_ID_PATH = Path("/etc/machine-id")

# Application id used by zincati, so that both agents identify a machine the same way
ZINCATI_APP_ID = "de35106b6ec24688b63afddaa156679b"


def get_machine_id(path: Path = MACHINE_ID_PATH) -> str:
    """Read the machine-id of the host."""
    return Path(path).read_text().rstrip("\r\n")


def app_specific_machine_id(machine_id: str, app_id: str = ZINCATI_APP_ID) -> str:
    """Derive an application specific id the way systemd does.

    HMAC-SHA256 of the app id keyed with the machine id, truncated to 128 bit
    and formatted as a version 4 UUID without dashes.
    """
    try:
        key = bytes.fromhex(machine_id)
        message = bytes.fromhex(app_id)
    except ValueError:
        raise ValueError(f"invalid machine-id '{machine_id}'")
    if len(key) != 16:
        raise ValueError(f"invalid machine-id '{machine_id}'")

    digest = bytearray(hmac.new(key, message, hashlib.sha256).digest()[:16])
    digest[6] = (digest[6] & 0x0F) | 0x40
    digest[8] = (digest[8] & 0x3F) | 0x80
    return digest.hex()


def get_zincati_app_id(path: Path = MACHINE_ID_PATH) -> str:
    """Find the machine-id of the current node and generate a zincati app id from it."""
    return app_specific_machine_id(get_machine_id(path))


def trim_trailing_slash(url: str) -> str:
    """Remove a trailing slash, a "//" in the request path breaks some servers."""
    if url.endswith("/"):
        logger.warning("Removed trailing slash in URL, as this could lead to undefined behaviour")
        return url[:-1]
    return url
