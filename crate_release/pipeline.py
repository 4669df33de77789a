"""Release tasks: bump → check → commit → tag → release → publish.

Each public function here is one end-to-end task run from CI:

- publish_release: bump every crate, tag the repo and create a GitHub release,
  optionally publishing to crates.io.
- tag_on_version_change / release_on_version_change: tag (and release) when a
  merged commit changed the main crate's version.
- bump_dependencies: move dependencies owned by a crates.io user to their
  latest versions and open a pull request.
- publish_crates: publish every crate in dependency order.

Steps run strictly one after another. The first failure stops the task;
nothing already pushed or published is undone.
"""

from __future__ import annotations

import time
from pathlib import Path

from .changelog import ReleasesMdFile
from .crate import Crate
from .errors import ConfigurationError
from .github import GitHubClient
from .models import PublishResult, VersionBump
from .registry import CratesIoCache
from .repo import Repo
from .shell import fatal, step, warn

MAIN_BRANCH = "main"
REMOTE = "origin"


def load_repo(path: Path | str = ".") -> Repo:
    """Load the workspace in path, named after its folder."""
    folder = Path(path).resolve()
    return Repo.load(folder.name, folder)


def get_main_crate(repo: Repo, crate_name: str | None) -> Crate:
    """The crate whose version names the release tag.

    Raises:
        ConfigurationError: If the workspace has several crates and none
            was named.
    """
    crates = repo.crates
    if len(crates) == 1:
        return crates[0]
    if crate_name is not None:
        return repo.get_crate(crate_name)
    raise ConfigurationError(
        f"You must supply a crate name CLI argument.\n{repo.crate_names_text()}"
    )


def bump_versions(repo: Repo, kind: str) -> dict[str, VersionBump]:
    """Increment every crate, skipping unversioned ones (0.0.0)."""
    step(f"Bumping versions ({kind})")

    bumped: dict[str, VersionBump] = {}
    for crate in repo.crates:
        if crate.version == "0.0.0":
            print(f"  {crate.name}: skipped (0.0.0)")
            continue
        old = crate.version
        new = crate.increment(kind)
        bumped[crate.name] = VersionBump(old=old, new=new)
        print(f"  {crate.name}: {old} → {new}")
    return bumped


def publish_crates(repo: Repo, *additional_args: str) -> dict[str, PublishResult]:
    """Publish every crate in publish order, one at a time.

    A failure stops at that crate; crates published before it stay
    published.
    """
    step("Publishing crates")

    order = repo.get_crates_publish_order()
    print("  Order: " + ", ".join(c.name for c in order))
    results: dict[str, PublishResult] = {}
    for crate in order:
        results[crate.name] = crate.publish(*additional_args)
    return results


def publish_release(
    repo: Repo,
    *,
    kind: str = "patch",
    crate_name: str | None = None,
    create_release: bool = True,
    publish: bool = False,
    releases_md: Path | None = None,
    github: GitHubClient | None = None,
) -> str | None:
    """Bump, tag and release the repository.

    Args:
        repo: Workspace to release.
        kind: "major", "minor" or "patch".
        crate_name: Crate that names the tag when there are several.
        create_release: Create a GitHub release for the new tag.
        publish: Publish every crate to crates.io after tagging.
        releases_md: Releases.md file to prepend the release notes to.
        github: Client to use; built from the environment when omitted.

    Returns:
        The tag created, or None when not run on the main branch.
    """
    # safeguard for when this is run off the main branch
    if repo.current_branch() != MAIN_BRANCH:
        print(f"Exiting: Not on {MAIN_BRANCH} branch.")
        return None
    if create_release and github is None:
        github = GitHubClient.from_env()

    main_crate = get_main_crate(repo, crate_name)
    bump_versions(repo, kind)

    step("Checking crates to update lockfiles")
    for crate in repo.crates:
        crate.cargo_check()

    repo.fetch_tags(REMOTE)
    repo_tags = repo.get_git_tags()
    tag_name = repo_tags.get_tag_name_for_version(main_crate.version)
    previous_tag = repo_tags.get_previous_version_tag(main_crate.version)

    if releases_md is not None:
        # the notes are part of the release commit, so they end at HEAD
        step(f"Updating {releases_md}")
        git_log = repo.get_git_log_from_tags(REMOTE, previous_tag, None)
        ReleasesMdFile(releases_md).update_with_git_log(git_log, main_crate.version)

    step("Committing...")
    repo.add()
    repo.commit(tag_name)

    step(f"Pushing to {MAIN_BRANCH}...")
    repo.push("-u", REMOTE, "HEAD")

    step(f"Tagging {tag_name}...")
    repo.tag(tag_name)
    repo.push(REMOTE, tag_name)

    if create_release:
        step("Creating release...")
        git_log = repo.get_git_log_from_tags(REMOTE, previous_tag, tag_name)
        github.create_release(
            tag_name,
            name=tag_name,
            body=git_log.format_for_release_markdown(),
            draft=False,
        )

    if publish:
        publish_crates(repo)

    return tag_name


def tag_on_version_change(
    repo: Repo, crate_name: str | None = None
) -> str | None:
    """Tag the repo with the main crate's version if it is not tagged yet.

    Returns:
        The tag created, or None if it already existed.
    """
    repo.assert_current_branch(MAIN_BRANCH)

    repo_tags = repo.get_git_tags()
    tag_name = repo_tags.get_tag_name_for_version(
        get_main_crate(repo, crate_name).version
    )
    if repo_tags.has(tag_name):
        print(f"Tag {tag_name} already exists.")
        return None

    print(f"Tagging {tag_name}...")
    repo.tag(tag_name)
    repo.push(REMOTE, tag_name)
    return tag_name


def release_on_version_change(
    repo: Repo,
    crate_name: str | None = None,
    github: GitHubClient | None = None,
) -> bool:
    """Like tag_on_version_change(), also creating a GitHub release.

    Returns:
        True if a tag and release were created.
    """
    github = github or GitHubClient.from_env()
    tag_name = tag_on_version_change(repo, crate_name)
    if tag_name is None:
        return False

    print("Creating release...")
    github.create_release(tag_name, generate_release_notes=True, draft=False)
    return True


def bump_dependencies(
    repo: Repo,
    cache: CratesIoCache,
    github: GitHubClient | None = None,
) -> str | None:
    """Update owned dependencies to their latest versions and open a PR.

    A dependency is "owned" when the cache says so: its name matches the
    configured prefix or the configured crates.io login is an owner.

    Returns:
        The branch pushed, or None if nothing changed.
    """
    github = github or GitHubClient.from_env()
    updates: set[str] = set()

    step("Bumping dependencies...")
    for crate in repo.crates:
        for dep in list(crate.dependencies):
            if dep.req == "*":
                continue  # nothing to bump
            if repo.find_crate(dep.name) is not None:
                continue  # versioned by the workspace itself
            if not cache.has_owner(dep.name):
                continue
            metadata = cache.get_metadata(dep.name)
            latest = metadata.crate.max_stable_version if metadata else None
            if latest is None:
                raise ConfigurationError(f"Could not find crate version for {dep.name}")
            if dep.req.lstrip("^=") == latest:
                continue
            print(f"  Updating {dep.name} from {dep.req} to {latest}...")
            crate.set_dependency_version(dep.name, latest)
            updates.add(f"{dep.name} {latest}")
        crate.cargo_update("--workspace")

    step("Committing...")
    original_branch = repo.current_branch()
    new_branch = f"chore_update_deps_{int(time.time() * 1000)}"
    repo.branch(new_branch)
    repo.add()
    if not repo.has_local_changes():
        warn("Found no changes")
        return None
    commit_message = f"chore: update {', '.join(sorted(updates))}"
    repo.commit(commit_message)

    step("Pushing branch...")
    repo.push("-u", REMOTE, "HEAD")

    step("Opening PR...")
    pr = github.create_pull_request(
        base=original_branch,
        head=new_branch,
        title=commit_message,
        body="Updated versions.",
        draft=True,
    )
    print(f"Opened PR at {pr.get('html_url', pr.get('url', ''))}")
    return new_branch


def print_publish_order(repo: Repo) -> None:
    order = repo.get_crates_publish_order()
    if not order:
        fatal("No crates found in the workspace")
    for crate in order:
        print(crate.name)
