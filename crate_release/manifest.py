"""Cargo.toml reading and rewriting utilities.

Uses tomlkit to preserve formatting and comments when modifying manifests.
Every edit goes through update_file_ensure_change(), which refuses to treat
an edit that changed nothing as a success: a rewrite that silently misses
would leave the manifest and the in-memory version out of sync.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import tomlkit

from .errors import ManifestLockedError, ManifestUnchangedError

ManifestAction = Callable[[Path, str], str]

DEPENDENCY_TABLES = ("dependencies", "dev-dependencies", "build-dependencies")


def update_file_ensure_change(path: Path, action: ManifestAction) -> None:
    """Rewrite a file with action(path, text), insisting that it changes.

    Raises:
        ManifestUnchangedError: If action returned the text unmodified.
    """
    original_text = path.read_text()
    new_text = action(path, original_text)
    if new_text == original_text:
        raise ManifestUnchangedError(f"The file didn't change: {path}")
    path.write_text(new_text)


class ManifestLock:
    """In-flight edit guard for one manifest file.

    Text edits of the same file must not overlap, so a second edit started
    while the first is still running fails instead of racing it.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    @contextmanager
    def hold(self) -> Iterator[Path]:
        if self._held:
            raise ManifestLockedError(
                f"Cannot update {self.path} while it is already being updated."
            )
        self._held = True
        try:
            yield self.path
        finally:
            self._held = False

    def edit(self, action: ManifestAction) -> None:
        """Apply action to the manifest while holding the lock."""
        with self.hold() as path:
            update_file_ensure_change(path, action)


def set_package_version(text: str, old_version: str, new_version: str) -> str:
    """Replace [package].version when it currently equals old_version.

    Returns the text untouched when the version is inherited from the
    workspace or does not match, which callers treat as a failed edit.
    """
    doc = tomlkit.parse(text)
    package = doc.get("package")
    if not isinstance(package, dict):
        return text
    version = package.get("version")
    if not isinstance(version, str) or version != old_version:
        return text
    package["version"] = new_version
    return tomlkit.dumps(doc)


def set_dependency_version(text: str, dependency_name: str, version: str) -> str:
    """Pin every declaration of dependency_name to the given version.

    Looks in [dependencies], [dev-dependencies], [build-dependencies],
    [workspace.dependencies] and their [target.<cfg>.*] variants. Both the
    string form (`foo = "1.0"`) and the table form
    (`foo = { version = "1.0", path = "../foo" }`) are handled, as are
    renamed dependencies that set `package = "foo"`. Entries that carry no
    version of their own (`foo = { workspace = true }`) are left alone.
    """
    doc = tomlkit.parse(text)
    changed = False
    for table in _dependency_tables(doc):
        for key in list(table.keys()):
            entry = table[key]
            if isinstance(entry, dict):
                if entry.get("package", key) != dependency_name:
                    continue
                if "version" in entry:
                    entry["version"] = version
                    changed = True
            elif isinstance(entry, str) and key == dependency_name:
                table[key] = version
                changed = True
    return tomlkit.dumps(doc) if changed else text


def _dependency_tables(doc: tomlkit.TOMLDocument) -> Iterator[dict[str, Any]]:
    for name in DEPENDENCY_TABLES:
        table = doc.get(name)
        if isinstance(table, dict):
            yield table

    workspace = doc.get("workspace")
    if isinstance(workspace, dict):
        table = workspace.get("dependencies")
        if isinstance(table, dict):
            yield table

    # [target.'cfg(windows)'.dependencies] and friends
    targets = doc.get("target")
    if isinstance(targets, dict):
        for target in targets.values():
            if not isinstance(target, dict):
                continue
            for name in DEPENDENCY_TABLES:
                table = target.get(name)
                if isinstance(table, dict):
                    yield table


def local_patch_text(manifest_path: Path, crate_name: str, crate_folder: Path) -> str:
    """Build a [patch.crates-io] section pointing a crate at its local folder."""
    relative_path = os.path.relpath(crate_folder, manifest_path.parent)
    relative_path = relative_path.replace("\\", "/")
    return f'[patch.crates-io.{crate_name}]\npath = "{relative_path}"\n'


def add_local_patch(
    manifest_path: Path, text: str, crate_name: str, crate_folder: Path
) -> str:
    return text + local_patch_text(manifest_path, crate_name, crate_folder)


def remove_local_patch(
    manifest_path: Path, text: str, crate_name: str, crate_folder: Path
) -> str:
    return text.replace(local_patch_text(manifest_path, crate_name, crate_folder), "")
