"""Tests for machine id handling."""

import pytest

from kubeupgrade.fleetlock.utils import (
    app_specific_machine_id,
    get_machine_id,
    get_zincati_app_id,
    trim_trailing_slash,
)

MACHINE_ID = "dfd7882acda64c34aca76193c46f5d4e"


@pytest.mark.unit
class TestMachineId:
    def test_read_machine_id(self, tmp_path):
        """Test reading the machine-id without the newline."""
        path = tmp_path / "machine-id"
        path.write_text(MACHINE_ID + "\n")
        assert get_machine_id(path) == MACHINE_ID

    def test_app_id_is_uuid_v4(self):
        """Test the derived id carries version 4 and variant bits."""
        app_id = app_specific_machine_id(MACHINE_ID)

        assert len(app_id) == 32
        assert app_id[12] == "4"
        assert app_id[16] in "89ab"

    def test_app_id_is_stable(self, tmp_path):
        """Test that the same machine always gets the same id."""
        path = tmp_path / "machine-id"
        path.write_text(MACHINE_ID + "\n")

        assert get_zincati_app_id(path) == app_specific_machine_id(MACHINE_ID)
        assert app_specific_machine_id(MACHINE_ID) != app_specific_machine_id("0" * 32)

    def test_invalid_machine_id(self):
        """Test that a malformed machine-id is rejected."""
        with pytest.raises(ValueError):
            app_specific_machine_id("not-a-machine-id")
        with pytest.raises(ValueError):
            app_specific_machine_id("abcd")

    def test_trim_trailing_slash(self):
        """Test URL normalization."""
        assert trim_trailing_slash("https://lock/") == "https://lock"
        assert trim_trailing_slash("https://lock") == "https://lock"
