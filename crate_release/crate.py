"""A single crate of a Cargo workspace.

Wraps the `cargo metadata` entry for the crate and carries the operations a
release performs on it: bumping its version, rewriting the manifests that
mention it, checking the registry and publishing.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from .errors import ConfigurationError, PublishError, ReleaseError
from .manifest import (
    ManifestAction,
    ManifestLock,
    add_local_patch,
    remove_local_patch,
    set_dependency_version,
    set_package_version,
)
from .models import CargoDependency, CargoPackageMetadata, PublishResult, PublishStatus
from .shell import cargo, step, with_retries
from .versions import bump_version

if TYPE_CHECKING:
    from .repo import Repo

# crates.io can take a while to index a freshly published dependency, so a
# dependent published right after it may fail at first.
PUBLISH_RETRY_COUNT = 5
PUBLISH_RETRY_DELAY = 10.0


class CrateDep(NamedTuple):
    """An edge from one workspace crate to another it depends on."""

    crate: Crate
    is_dev: bool


class Crate:
    def __init__(self, repo: Repo, metadata: CargoPackageMetadata) -> None:
        manifest_path = Path(metadata.manifest_path)
        if not manifest_path.exists():
            raise ConfigurationError(
                f"Could not find crate at {metadata.manifest_path}"
            )
        self.repo = repo
        self._pkg = metadata
        self.manifest_lock = ManifestLock(manifest_path)

    def __repr__(self) -> str:
        return f"Crate({self.name!r}, {self.version!r})"

    @property
    def name(self) -> str:
        return self._pkg.name

    @property
    def version(self) -> str:
        return self._pkg.version

    @property
    def manifest_path(self) -> Path:
        return Path(self._pkg.manifest_path)

    @property
    def folder_path(self) -> Path:
        return self.manifest_path.parent

    @property
    def dependencies(self) -> list[CargoDependency]:
        return self._pkg.dependencies

    def immediate_dependencies_in_repo(self) -> list[CrateDep]:
        """Dependencies on other crates of the same workspace.

        External crates are ignored. Build dependencies count as normal
        dependencies since they are needed to compile the crate.
        """
        deps: list[CrateDep] = []
        for dep in self._pkg.dependencies:
            crate = self.repo.find_crate(dep.name)
            if crate is not None and crate is not self:
                deps.append(CrateDep(crate=crate, is_dev=dep.kind == "dev"))
        return deps

    def descendant_dependencies_in_repo(self) -> list[Crate]:
        """All workspace crates this crate depends on, directly or not."""
        crates: dict[str, Crate] = {}
        stack = [dep.crate for dep in self.immediate_dependencies_in_repo()]
        while stack:
            crate = stack.pop()
            if crate.name not in crates:
                crates[crate.name] = crate
                stack.extend(d.crate for d in crate.immediate_dependencies_in_repo())
        return list(crates.values())

    def increment(self, part: str) -> str:
        """Bump the crate by a major, minor or patch increment.

        Returns:
            The new version string.
        """
        new_version = bump_version(self.version, part)
        self.set_version(new_version)
        return new_version

    def set_version(self, version: str) -> None:
        """Set the crate version and every pin on it inside the workspace.

        A workspace that pins member versions in the root
        [workspace.dependencies] table gets that pin updated. Otherwise each
        member that depends on this crate has its own requirement rewritten.
        """
        step(f"Setting {self.name} to {version}...")

        if self.repo.folder_path != self.folder_path:
            root_lock = self.repo.root_manifest_lock
            updated_root = False
            if root_lock.path.exists():
                with root_lock.hold() as root_path:
                    original_text = root_path.read_text()
                    new_text = set_dependency_version(original_text, self.name, version)
                    updated_root = new_text != original_text
                    if updated_root:
                        root_path.write_text(new_text)
            if not updated_root:
                # the root manifest does not keep member versions
                for crate in self.repo.crates:
                    crate.set_dependency_version(self.name, version)

        old_version = self.version
        self._update_manifest(
            lambda _path, text: set_package_version(text, old_version, version)
        )
        self._pkg.version = version

    def set_dependency_version(self, dependency_name: str, version: str) -> None:
        """Pin this crate's dependency on dependency_name to version.

        Nothing happens when the crate does not depend on it or accepts any
        version ("*").
        """
        dependency = next(
            (d for d in self._pkg.dependencies if d.name == dependency_name), None
        )
        if dependency is None or dependency.req == "*":
            return
        self._update_manifest(
            lambda _path, text: set_dependency_version(text, dependency_name, version)
        )
        for dep in self._pkg.dependencies:
            if dep.name == dependency_name:
                dep.req = f"^{version}"

    def to_local_source(self, crate: Crate) -> None:
        """Patch crates.io so crate resolves to its folder in this workspace."""
        self._update_root_manifest(
            lambda path, text: add_local_patch(path, text, crate.name, crate.folder_path)
        )

    def revert_local_source(self, crate: Crate) -> None:
        self._update_root_manifest(
            lambda path, text: remove_local_patch(
                path, text, crate.name, crate.folder_path
            )
        )

    def get_latest_version(self) -> str | None:
        """Latest stable version on crates.io, or None if never published."""
        metadata = self.repo.crates_io.get_metadata(self.name)
        if metadata is None:
            return None
        return metadata.crate.max_stable_version

    def publish_status(self) -> PublishStatus:
        metadata = self.repo.crates_io.get_metadata(self.name)
        if metadata is None:
            return PublishStatus.NEVER_PUBLISHED
        if any(v.num == self.version for v in metadata.versions):
            return PublishStatus.PUBLISHED
        return PublishStatus.OTHER_VERSION

    def publish(self, *additional_args: str) -> PublishResult:
        """Publish the current version to crates.io unless already there.

        Crates that were never published are skipped too: the first release
        of a crate is left to a person.

        Raises:
            PublishError: If `cargo publish` fails on every attempt.
        """
        status = self.publish_status()
        if status == PublishStatus.NEVER_PUBLISHED:
            print(f"Never published, so skipping {self.name} {self.version}")
            return PublishResult.SKIPPED
        if status == PublishStatus.PUBLISHED:
            print(f"Already published {self.name} {self.version}")
            return PublishResult.SKIPPED

        step(f"Publishing {self.name} {self.version}...")
        try:
            with_retries(
                lambda: cargo("publish", *additional_args, cwd=self.folder_path),
                count=PUBLISH_RETRY_COUNT,
                delay=PUBLISH_RETRY_DELAY,
            )
        except ReleaseError as exc:
            raise PublishError(
                f"Failed to publish {self.name} {self.version}: {exc}"
            ) from exc
        return PublishResult.PUBLISHED

    def cargo_check(self, *additional_args: str) -> None:
        cargo("check", *additional_args, cwd=self.folder_path)

    def cargo_update(self, *additional_args: str) -> None:
        cargo("update", *additional_args, cwd=self.folder_path)

    def build(
        self, *, all_features: bool = False, additional_args: tuple[str, ...] = ()
    ) -> None:
        args = ["build"]
        if all_features:
            args.append("--all-features")
        cargo(*args, *additional_args, cwd=self.folder_path)

    def test(
        self, *, all_features: bool = False, additional_args: tuple[str, ...] = ()
    ) -> None:
        args = ["test"]
        if all_features:
            args.append("--all-features")
        cargo(*args, *additional_args, cwd=self.folder_path)

    def _update_manifest(self, action: ManifestAction) -> None:
        self.manifest_lock.edit(action)

    def _update_root_manifest(self, action: ManifestAction) -> None:
        root_lock = self.repo.root_manifest_lock
        if root_lock.path == self.manifest_path or not root_lock.path.exists():
            self._update_manifest(action)
        else:
            root_lock.edit(action)
