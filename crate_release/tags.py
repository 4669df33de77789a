"""Version tag lookup.

Repositories differ on whether release tags carry a "v" prefix (v1.2.3 or
1.2.3). New tags follow whatever the most recent version tag did.
"""

from __future__ import annotations

import re

import semver

from .versions import parse_version

VERSION_TAG_RE = re.compile(r"^v?[0-9]+\.[0-9]+\.[0-9]+$")


class RepoTags:
    """The set of tags in a repository."""

    def __init__(self, names: list[str]) -> None:
        self.names = names
        self._names = set(names)

    def has(self, tag_name: str) -> bool:
        return tag_name in self._names

    def version_tags(self) -> list[tuple[semver.Version, str]]:
        """Tags that look like versions, lowest version first."""
        tags = [
            (parse_version(name.removeprefix("v")), name)
            for name in self.names
            if VERSION_TAG_RE.match(name)
        ]
        return sorted(tags)

    def get_tag_name_for_version(self, version: str) -> str:
        """The tag a release of version should get.

        Uses the "v" prefix when the most recent version tag has one, or
        when there are no version tags yet.
        """
        tags = self.version_tags()
        if not tags or tags[-1][1].startswith("v"):
            return f"v{version}"
        return version

    def get_previous_version_tag(self, version: str) -> str | None:
        """The highest version tag below version, if any."""
        target = parse_version(version)
        previous = [name for v, name in self.version_tags() if v < target]
        return previous[-1] if previous else None
