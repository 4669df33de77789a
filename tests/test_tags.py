"""Tests for crate_release.tags."""

from __future__ import annotations

from crate_release.tags import RepoTags


class TestGetTagNameForVersion:
    """Tests for RepoTags.get_tag_name_for_version()."""

    def test_follows_prefixed_tags(self) -> None:
        assert RepoTags(["v0.1.0", "v0.2.0"]).get_tag_name_for_version("0.3.0") == "v0.3.0"

    def test_follows_unprefixed_tags(self) -> None:
        assert RepoTags(["0.1.0", "0.2.0"]).get_tag_name_for_version("0.3.0") == "0.3.0"

    def test_most_recent_version_tag_wins(self) -> None:
        """The repo switched to bare versions after 0.9.0."""
        tags = RepoTags(["1.0.0", "v0.9.0", "v0.8.0"])
        assert tags.get_tag_name_for_version("1.1.0") == "1.1.0"

    def test_defaults_to_prefix(self) -> None:
        assert RepoTags([]).get_tag_name_for_version("1.0.0") == "v1.0.0"
        assert RepoTags(["nightly"]).get_tag_name_for_version("1.0.0") == "v1.0.0"


class TestVersionTags:
    def test_sorted_by_version_not_name(self) -> None:
        tags = RepoTags(["v0.10.0", "v0.9.0", "v0.2.0", "release-1", "v1.0.0-rc.1"])
        assert [name for _, name in tags.version_tags()] == [
            "v0.2.0",
            "v0.9.0",
            "v0.10.0",
        ]

    def test_has(self) -> None:
        tags = RepoTags(["v1.0.0"])
        assert tags.has("v1.0.0")
        assert not tags.has("1.0.0")


class TestGetPreviousVersionTag:
    def test_highest_lower_version(self) -> None:
        tags = RepoTags(["v0.1.0", "v0.3.0", "v0.2.0", "v0.4.0"])
        assert tags.get_previous_version_tag("0.4.0") == "v0.3.0"

    def test_new_version_not_tagged_yet(self) -> None:
        tags = RepoTags(["v0.1.0", "v0.2.0"])
        assert tags.get_previous_version_tag("0.3.0") == "v0.2.0"

    def test_none_below(self) -> None:
        assert RepoTags(["v1.0.0"]).get_previous_version_tag("1.0.0") is None
        assert RepoTags([]).get_previous_version_tag("1.0.0") is None
