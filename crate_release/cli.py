"""CLI entry point for crate-release."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
import httpx

from .errors import ReleaseError
from .github import GitHubClient
from .pipeline import (
    bump_dependencies,
    load_repo,
    print_publish_order,
    publish_crates,
    publish_release,
    release_on_version_change,
    tag_on_version_change,
)
from .registry import CratesIoCache
from .repo import Repo


@contextmanager
def _errors_as_click() -> Iterator[None]:
    """Report release failures as a clean error message and exit code 1."""
    try:
        yield
    except (ReleaseError, httpx.HTTPError) as exc:
        raise click.ClickException(str(exc)) from exc


def _repo(ctx: click.Context) -> Repo:
    with _errors_as_click():
        repo = load_repo(ctx.obj["path"])
    ctx.call_on_close(repo.close)
    return repo


def _github(ctx: click.Context) -> GitHubClient:
    with _errors_as_click():
        github = GitHubClient.from_env()
    ctx.call_on_close(github.close)
    return github


@click.group()
@click.version_option(package_name="crate-release")
@click.option(
    "--path",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
    help="Root of the Cargo workspace.",
)
@click.pass_context
def cli(ctx: click.Context, path: str) -> None:
    """Version, tag, release and publish the crates of a Cargo workspace."""
    ctx.ensure_object(dict)
    ctx.obj["path"] = path


@cli.command("publish-release")
@click.argument("crate", required=False)
@click.option("--major", "kind", flag_value="major", help="Do a major release.")
@click.option("--minor", "kind", flag_value="minor", help="Do a minor release.")
@click.option(
    "--patch", "kind", flag_value="patch", default="patch", help="Do a patch release."
)
@click.option("--skip-release", is_flag=True, help="Skip creating a GitHub release.")
@click.option("--publish", is_flag=True, help="Publish the crates to crates.io.")
@click.option(
    "--releases-md",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Releases.md file to add the release notes to.",
)
@click.pass_context
def publish_release_cmd(
    ctx: click.Context,
    crate: str | None,
    kind: str,
    skip_release: bool,
    publish: bool,
    releases_md: Path | None,
) -> None:
    """Bump the version, tag and release the repo.

    CRATE names the crate whose version is used for the tag; it is required
    when the workspace has more than one crate.
    """
    repo = _repo(ctx)
    github = None if skip_release else _github(ctx)
    with _errors_as_click():
        publish_release(
            repo,
            kind=kind,
            crate_name=crate,
            create_release=not skip_release,
            publish=publish,
            releases_md=releases_md,
            github=github,
        )


@cli.command("tag-on-version-change")
@click.argument("crate", required=False)
@click.pass_context
def tag_on_version_change_cmd(ctx: click.Context, crate: str | None) -> None:
    """Tag the repo when the crate version has no tag yet."""
    repo = _repo(ctx)
    with _errors_as_click():
        tag_on_version_change(repo, crate)


@cli.command("release-on-version-change")
@click.argument("crate", required=False)
@click.pass_context
def release_on_version_change_cmd(ctx: click.Context, crate: str | None) -> None:
    """Tag and create a GitHub release when the crate version has no tag yet."""
    repo = _repo(ctx)
    with _errors_as_click():
        release_on_version_change(repo, crate, github=_github(ctx))


@cli.command("bump-deps")
@click.option(
    "--owner",
    "owner_login",
    default=None,
    help="crates.io login (e.g. github:org:team) whose crates are bumped.",
)
@click.option(
    "--name-prefix",
    default=None,
    help="Also bump every dependency whose name starts with this prefix.",
)
@click.pass_context
def bump_deps_cmd(
    ctx: click.Context, owner_login: str | None, name_prefix: str | None
) -> None:
    """Update owned dependencies to their latest versions and open a PR."""
    if owner_login is None and name_prefix is None:
        raise click.UsageError("Pass --owner, --name-prefix, or both.")
    repo = _repo(ctx)
    with _errors_as_click():
        cache = CratesIoCache(
            repo.crates_io, owner_login=owner_login, name_prefix=name_prefix
        )
        bump_dependencies(repo, cache, _github(ctx))


@cli.command("publish-order")
@click.pass_context
def publish_order_cmd(ctx: click.Context) -> None:
    """Print the crates in the order they must be published."""
    repo = _repo(ctx)
    with _errors_as_click():
        print_publish_order(repo)


@cli.command("publish")
@click.argument("cargo_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def publish_cmd(ctx: click.Context, cargo_args: tuple[str, ...]) -> None:
    """Publish every crate to crates.io in dependency order.

    Arguments after -- are passed on to `cargo publish`.
    """
    repo = _repo(ctx)
    with _errors_as_click():
        publish_crates(repo, *cargo_args)
