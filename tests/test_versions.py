"""Test version parsing and comparison."""

import pytest

from kubeupgrade.upgrade.versions import compare_versions, is_valid_semver, parse_version


class TestVersions:
    def test_parse_version(self):
        """Test version parsing."""
        assert parse_version("v1.31.0")[:3] == (1, 31, 0)
        assert parse_version("v1.31")[:3] == (1, 31, 0)
        assert parse_version("1.31.0") is None
        assert parse_version("invalid") is None
        assert parse_version("") is None

    @pytest.mark.parametrize(
        "version,valid",
        [
            ("v1.31.0", True),
            ("v1.31.0-rc.1", True),
            ("v1.31.0+build.5", True),
            ("v1.31", False),
            ("1.31.0", False),
            ("v01.31.0", False),
            ("latest", False),
        ],
    )
    def test_is_valid_semver(self, version, valid):
        """Test which versions a plan accepts."""
        assert is_valid_semver(version) is valid

    @pytest.mark.parametrize(
        "left,right,expected",
        [
            ("v1.31.0", "v1.31.0", 0),
            ("v1.31.0", "v1.31.1", -1),
            ("v1.31.1", "v1.31.0", 1),
            ("v1.30.9", "v1.31.0", -1),
            ("v2.0.0", "v1.99.99", 1),
            ("v1.31.0-rc.1", "v1.31.0", -1),
            ("v1.31.0-alpha.1", "v1.31.0-beta", -1),
            ("v1.31.0-rc.2", "v1.31.0-rc.10", -1),
            ("invalid", "v1.0.0", -1),
            ("invalid", "other", 0),
        ],
    )
    def test_compare_versions(self, left, right, expected):
        """Test version ordering."""
        assert compare_versions(left, right) == expected
