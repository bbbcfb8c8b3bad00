"""Distributed reboot lock."""

from .client import FleetlockClient
from .utils import app_specific_machine_id, get_machine_id, get_zincati_app_id

__all__ = ["FleetlockClient", "app_specific_machine_id", "get_machine_id", "get_zincati_app_id"]
