"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from crate_release.models import CargoDependency, CargoPackageMetadata
from crate_release.repo import Repo

# (dependency name, kind) where kind is None, "dev" or "build"
DepSpec = tuple[str, str | None]

ROOT_MANIFEST = """\
[workspace]
resolver = "2"
members = ["crates/*"]
"""


def write_crate(
    root: Path,
    name: str,
    version: str = "1.0.0",
    deps: list[DepSpec] | None = None,
    dep_version: str = "1.0.0",
) -> CargoPackageMetadata:
    """Write crates/<name>/Cargo.toml and return matching cargo metadata.

    Every dependency is declared with both a version and a local path, the
    way workspace members usually depend on each other.
    """
    deps = deps or []
    folder = root / "crates" / name
    folder.mkdir(parents=True, exist_ok=True)

    sections: dict[str, list[str]] = {}
    for dep_name, kind in deps:
        table = {None: "dependencies", "dev": "dev-dependencies"}.get(
            kind, "build-dependencies"
        )
        sections.setdefault(table, []).append(
            f'{dep_name} = {{ version = "{dep_version}", path = "../{dep_name}" }}'
        )

    lines = [
        "[package]",
        f'name = "{name}"',
        f'version = "{version}"',
        'edition = "2021"',
    ]
    for table, entries in sections.items():
        lines += ["", f"[{table}]", *entries]
    manifest = folder / "Cargo.toml"
    manifest.write_text("\n".join(lines) + "\n")

    return CargoPackageMetadata(
        id=f"path+file://{folder}#{name}@{version}",
        name=name,
        version=version,
        dependencies=[
            CargoDependency(name=dep_name, req=f"^{dep_version}", kind=kind)
            for dep_name, kind in deps
        ],
        manifest_path=str(manifest),
    )


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    """A workspace root holding only a virtual Cargo.toml."""
    root = tmp_path.resolve()
    (root / "Cargo.toml").write_text(ROOT_MANIFEST)
    return root


@pytest.fixture
def crates_io() -> MagicMock:
    """Stand-in for the crates.io client; every crate is unknown by default."""
    client = MagicMock()
    client.get_metadata.return_value = None
    return client


@pytest.fixture
def make_repo(
    workspace_root: Path, crates_io: MagicMock
) -> Callable[..., Repo]:
    """Build a Repo whose crates exist on disk.

    Usage:
        repo = make_repo({"app": [("core", None)], "core": []})
    """

    def _make(
        crates: dict[str, list[DepSpec]], versions: dict[str, str] | None = None
    ) -> Repo:
        versions = versions or {}
        repo = Repo("test-repo", workspace_root, crates_io=crates_io)
        for name, deps in crates.items():
            repo.add_crate(
                write_crate(workspace_root, name, versions.get(name, "1.0.0"), deps)
            )
        return repo

    return _make
