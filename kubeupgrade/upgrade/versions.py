"""Semantic version handling for Kubernetes release strings."""

import re
from typing import Optional, Tuple

_SEMVER = re.compile(
    r"^v(?P<major>0|[1-9]\d*)"
    r"(?:\.(?P<minor>0|[1-9]\d*))?"
    r"(?:\.(?P<patch>0|[1-9]\d*))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+[0-9A-Za-z.-]+)?$"
)

VersionKey = Tuple[int, int, int, Tuple]


def parse_version(version_string: str) -> Optional[VersionKey]:
    """Parse "v1.31.0" style versions into a sortable key.

    Minor and patch default to 0. Pre-releases sort before the release.
    """
    if not version_string:
        return None

    match = _SEMVER.match(version_string.strip())
    if not match:
        return None

    major = int(match.group("major"))
    minor = int(match.group("minor") or 0)
    patch = int(match.group("patch") or 0)

    pre = match.group("pre")
    if pre is None:
        # releases rank above any pre-release of the same version
        pre_key: Tuple = ((2, 0, ""),)
    else:
        pre_key = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part) for part in pre.split(".")
        )
    return major, minor, patch, pre_key


def is_valid_semver(version_string: str) -> bool:
    """Check for a full vMAJOR.MINOR.PATCH version."""
    match = _SEMVER.match(version_string or "")
    return bool(match and match.group("minor") is not None and match.group("patch") is not None)


def compare_versions(left: str, right: str) -> int:
    """Compare two versions, returning -1, 0 or 1.

    An invalid version is considered less than a valid one, two invalid
    versions are equal.
    """
    a = parse_version(left)
    b = parse_version(right)

    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    if a < b:
        return -1
    if a > b:
        return 1
    return 0
