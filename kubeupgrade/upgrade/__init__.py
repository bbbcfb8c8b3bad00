"""Kubernetes version handling."""

from .versions import compare_versions, is_valid_semver, parse_version

__all__ = ["compare_versions", "is_valid_semver", "parse_version"]
