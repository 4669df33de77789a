"""Version parsing and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0").
"""

from __future__ import annotations

from typing import Literal

import semver

VersionPart = Literal["major", "minor", "patch"]
VERSION_PARTS: tuple[VersionPart, ...] = ("major", "minor", "patch")


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3" → "1.2.3"

    Full three-part versions keep any prerelease/build suffix.
    """
    parts = version_str.split(".")
    if len(parts) >= 3:
        return semver.Version.parse(version_str)
    # Pad with zeros to ensure we have 3 parts
    while len(parts) < 3:
        parts.append("0")
    return semver.Version.parse(".".join(parts))


def bump_version(version_str: str, part: str) -> str:
    """Increment one component of a version and return it as a string.

    Lower-precision components are reset to zero and any prerelease or
    build metadata is dropped.

    Examples:
        bump_version("1.2.3", "major") → "2.0.0"
        bump_version("1.2.3", "minor") → "1.3.0"
        bump_version("1.2.3", "patch") → "1.2.4"

    Raises:
        ValueError: If part is not one of major, minor or patch.
    """
    if part not in VERSION_PARTS:
        raise ValueError(f"Unknown version part: {part}")
    return str(getattr(parse_version(version_str), f"bump_{part}")())

