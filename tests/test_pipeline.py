"""Tests for crate_release.pipeline."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, call, patch

import pytest

from crate_release.changelog import GitLogOutput
from crate_release.errors import ConfigurationError, PublishError
from crate_release.models import (
    CratesIoCrate,
    CratesIoMetadata,
    PublishResult,
    VersionBump,
)
from crate_release.pipeline import (
    bump_dependencies,
    bump_versions,
    get_main_crate,
    print_publish_order,
    publish_crates,
    publish_release,
    release_on_version_change,
    tag_on_version_change,
)
from crate_release.repo import Repo
from crate_release.tags import RepoTags


def git_repo(repo, branch: str = "main", tags: list[str] | None = None):
    """Replace the git side of a Repo with mocks."""
    repo.current_branch = MagicMock(return_value=branch)
    repo.assert_current_branch = MagicMock()
    repo.get_git_tags = MagicMock(return_value=RepoTags(tags or []))
    for name in ("fetch_tags", "add", "commit", "push", "tag", "branch"):
        setattr(repo, name, MagicMock())
    repo.get_git_log_from_tags = MagicMock(
        return_value=GitLogOutput("1a2b3c4 fix: a bug\nabcdef0 chore: tidy")
    )
    return repo


class TestGetMainCrate:
    """Tests for get_main_crate()."""

    def test_single_crate_needs_no_name(self, make_repo) -> None:
        repo = make_repo({"core": []})
        assert get_main_crate(repo, None).name == "core"

    def test_named_crate(self, make_repo) -> None:
        repo = make_repo({"core": [], "app": []})
        assert get_main_crate(repo, "app").name == "app"

    def test_ambiguous_raises(self, make_repo) -> None:
        repo = make_repo({"core": [], "app": []})
        with pytest.raises(ConfigurationError, match="You must supply a crate name"):
            get_main_crate(repo, None)


@patch("crate_release.crate.step")
@patch("crate_release.pipeline.step")
def test_bump_versions_skips_unversioned(
    mock_step: MagicMock, mock_crate_step: MagicMock, make_repo
) -> None:
    """Crates at 0.0.0 are not released and keep their version."""
    repo = make_repo(
        {"core": [], "app": [("core", None)], "scratch": []},
        versions={"core": "1.0.0", "app": "0.4.2", "scratch": "0.0.0"},
    )

    bumped = bump_versions(repo, "minor")

    assert bumped == {
        "core": VersionBump(old="1.0.0", new="1.1.0"),
        "app": VersionBump(old="0.4.2", new="0.5.0"),
    }
    assert repo.get_crate("scratch").version == "0.0.0"


class TestPublishCrates:
    """Tests for publish_crates()."""

    @patch("crate_release.pipeline.step")
    def test_publishes_in_dependency_order(self, mock_step: MagicMock, make_repo) -> None:
        repo = make_repo({"app": [("core", None)], "core": []})
        published: list[str] = []
        for crate in repo.crates:
            crate.publish = MagicMock(
                side_effect=lambda *args, name=crate.name: published.append(name)
                or PublishResult.PUBLISHED
            )

        results = publish_crates(repo, "--no-verify")

        assert published == ["core", "app"]
        assert results == {"core": PublishResult.PUBLISHED, "app": PublishResult.PUBLISHED}
        repo.get_crate("core").publish.assert_called_once_with("--no-verify")

    @patch("crate_release.pipeline.step")
    def test_stops_at_first_failure(self, mock_step: MagicMock, make_repo) -> None:
        repo = make_repo({"app": [("core", None)], "core": [], "cli": [("app", None)]})
        repo.get_crate("core").publish = MagicMock(return_value=PublishResult.SKIPPED)
        repo.get_crate("app").publish = MagicMock(side_effect=PublishError("boom"))
        repo.get_crate("cli").publish = MagicMock()

        with pytest.raises(PublishError):
            publish_crates(repo)
        repo.get_crate("cli").publish.assert_not_called()


@patch("crate_release.crate.cargo")
@patch("crate_release.crate.step")
@patch("crate_release.pipeline.step")
class TestPublishRelease:
    """Tests for publish_release()."""

    def test_not_on_main_does_nothing(
        self, mock_step, mock_crate_step, mock_cargo, make_repo
    ) -> None:
        repo = git_repo(make_repo({"core": []}), branch="feature")
        github = MagicMock()

        assert publish_release(repo, github=github) is None
        assert repo.get_crate("core").version == "1.0.0"
        repo.commit.assert_not_called()
        github.create_release.assert_not_called()

    def test_full_release(
        self, mock_step, mock_crate_step, mock_cargo, make_repo
    ) -> None:
        repo = git_repo(make_repo({"core": []}), tags=["v0.9.0", "v1.0.0"])
        github = MagicMock()

        tag = publish_release(repo, kind="minor", github=github)

        assert tag == "v1.1.0"
        assert repo.get_crate("core").version == "1.1.0"
        mock_cargo.assert_called_once_with("check", cwd=repo.get_crate("core").folder_path)
        repo.commit.assert_called_once_with("v1.1.0")
        repo.tag.assert_called_once_with("v1.1.0")
        assert repo.push.call_args_list == [
            call("-u", "origin", "HEAD"),
            call("origin", "v1.1.0"),
        ]
        # release notes cover the tagged release commit
        repo.get_git_log_from_tags.assert_called_once_with("origin", "v1.0.0", "v1.1.0")
        github.create_release.assert_called_once_with(
            "v1.1.0", name="v1.1.0", body="- fix: a bug", draft=False
        )

    def test_release_notes_read_after_tagging(
        self, mock_step, mock_crate_step, mock_cargo, make_repo
    ) -> None:
        repo = git_repo(make_repo({"core": []}), tags=["v1.0.0"])
        tagged_first: list[bool] = []

        def git_log(remote, start, end):
            tagged_first.append(repo.tag.called)
            return GitLogOutput("1a2b3c4 fix: a bug")

        repo.get_git_log_from_tags.side_effect = git_log

        publish_release(repo, github=MagicMock())

        assert tagged_first == [True]

    def test_skip_release_and_update_releases_md(
        self, mock_step, mock_crate_step, mock_cargo, make_repo, tmp_path: Path
    ) -> None:
        releases_md = tmp_path / "Releases.md"
        releases_md.write_text("")
        repo = git_repo(make_repo({"core": []}), tags=["1.0.0"])

        tag = publish_release(repo, create_release=False, releases_md=releases_md)

        assert tag == "1.0.1"
        repo.get_git_log_from_tags.assert_called_once_with("origin", "1.0.0", None)
        assert releases_md.read_text().startswith("### 1.0.1 / ")
        assert "- fix: a bug" in releases_md.read_text()

    @patch("crate_release.pipeline.publish_crates")
    def test_publish_after_tagging(
        self, mock_publish, mock_step, mock_crate_step, mock_cargo, make_repo
    ) -> None:
        repo = git_repo(make_repo({"core": []}))

        publish_release(repo, create_release=False, publish=True)

        mock_publish.assert_called_once_with(repo)


class TestTagOnVersionChange:
    """Tests for tag_on_version_change() and release_on_version_change()."""

    def test_tags_new_version(self, make_repo) -> None:
        repo = git_repo(make_repo({"core": []}), tags=["v0.9.0"])

        assert tag_on_version_change(repo) == "v1.0.0"
        repo.assert_current_branch.assert_called_once_with("main")
        repo.tag.assert_called_once_with("v1.0.0")
        repo.push.assert_called_once_with("origin", "v1.0.0")

    def test_existing_tag_is_left_alone(self, make_repo) -> None:
        repo = git_repo(make_repo({"core": []}), tags=["v1.0.0"])

        assert tag_on_version_change(repo) is None
        repo.tag.assert_not_called()

    def test_release_uses_generated_notes(self, make_repo) -> None:
        repo = git_repo(make_repo({"core": [], "app": []}), tags=["0.9.0"])
        github = MagicMock()

        assert release_on_version_change(repo, "app", github=github) is True
        github.create_release.assert_called_once_with(
            "1.0.0", generate_release_notes=True, draft=False
        )

    def test_no_release_without_new_tag(self, make_repo) -> None:
        repo = git_repo(make_repo({"core": []}), tags=["v1.0.0"])
        github = MagicMock()

        assert release_on_version_change(repo, github=github) is False
        github.create_release.assert_not_called()


@patch("crate_release.crate.cargo")
@patch("crate_release.pipeline.step")
class TestBumpDependencies:
    """Tests for bump_dependencies()."""

    @pytest.fixture
    def cache(self) -> MagicMock:
        cache = MagicMock()
        cache.has_owner.side_effect = lambda name: name.startswith("acme-")
        cache.get_metadata.return_value = CratesIoMetadata(
            crate=CratesIoCrate(id="acme-util", name="acme-util", max_stable_version="2.0.0")
        )
        return cache

    def test_updates_owned_dependencies_and_opens_pr(
        self, mock_step, mock_cargo, make_repo, cache: MagicMock
    ) -> None:
        repo = git_repo(
            make_repo({"core": [("acme-util", None), ("serde", None)], "app": [("core", None)]})
        )
        repo.has_local_changes = MagicMock(return_value=True)
        github = MagicMock()
        github.create_pull_request.return_value = {"html_url": "https://example/pr/1"}

        branch = bump_dependencies(repo, cache, github)

        core = repo.get_crate("core")
        assert "acme-util = { version = \"2.0.0\"" in core.manifest_path.read_text()
        assert "serde = { version = \"1.0.0\"" in core.manifest_path.read_text()
        cache.has_owner.assert_any_call("serde")
        assert call("core") not in cache.has_owner.call_args_list
        assert mock_cargo.call_count == 2
        repo.commit.assert_called_once_with("chore: update acme-util 2.0.0")
        assert branch is not None and branch.startswith("chore_update_deps_")
        github.create_pull_request.assert_called_once_with(
            base="main",
            head=branch,
            title="chore: update acme-util 2.0.0",
            body="Updated versions.",
            draft=True,
        )

    def test_no_changes_opens_no_pr(
        self, mock_step, mock_cargo, make_repo, cache: MagicMock
    ) -> None:
        repo = git_repo(make_repo({"core": [("serde", None)]}))
        repo.has_local_changes = MagicMock(return_value=False)
        github = MagicMock()

        assert bump_dependencies(repo, cache, github) is None
        repo.commit.assert_not_called()
        github.create_pull_request.assert_not_called()

    def test_owned_crate_without_version_raises(
        self, mock_step, mock_cargo, make_repo, cache: MagicMock
    ) -> None:
        cache.get_metadata.return_value = None
        repo = git_repo(make_repo({"core": [("acme-util", None)]}))

        with pytest.raises(ConfigurationError, match="acme-util"):
            bump_dependencies(repo, cache, MagicMock())


class TestPrintPublishOrder:
    def test_prints_names(self, make_repo, capsys: pytest.CaptureFixture[str]) -> None:
        repo = make_repo({"app": [("core", None)], "core": []})
        print_publish_order(repo)
        assert capsys.readouterr().out == "core\napp\n"

    def test_empty_workspace_exits(self, workspace_root: Path) -> None:
        with pytest.raises(SystemExit):
            print_publish_order(Repo("empty", workspace_root))
