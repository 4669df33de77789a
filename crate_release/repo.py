"""A git repository holding a Cargo workspace.

Repo owns the workspace crates, indexed by name, and the git operations a
release runs against the checkout.
"""

from __future__ import annotations

from pathlib import Path

from .cargo import get_cargo_metadata
from .changelog import GitLogOutput
from .crate import Crate
from .errors import ConfigurationError
from .graph import resolve_publish_order
from .manifest import ManifestLock
from .models import CargoPackageMetadata
from .registry import CratesIoClient
from .shell import git
from .tags import RepoTags


class Repo:
    def __init__(
        self,
        name: str,
        folder_path: Path | str,
        crates_io: CratesIoClient | None = None,
    ) -> None:
        self.name = name
        self.folder_path = Path(folder_path).resolve()
        self._crates: list[Crate] = []
        self._crates_io = crates_io
        self._root_manifest_lock = ManifestLock(self.folder_path / "Cargo.toml")

    @classmethod
    def load(
        cls,
        name: str,
        folder_path: Path | str,
        crates_io: CratesIoClient | None = None,
    ) -> Repo:
        """Load every workspace member found by `cargo metadata`.

        A folder without a Cargo.toml yields a repo with no crates.

        Raises:
            ConfigurationError: If a workspace member has no package entry,
                or two members share a name.
        """
        repo = cls(name, folder_path, crates_io)
        if (repo.folder_path / "Cargo.toml").exists():
            metadata = get_cargo_metadata(repo.folder_path)
            packages = {pkg.id: pkg for pkg in metadata.packages}
            for member_id in metadata.workspace_members:
                pkg = packages.get(member_id)
                if pkg is None:
                    raise ConfigurationError(
                        f"Could not find package with id {member_id}"
                    )
                repo.add_crate(pkg)
        return repo

    @property
    def crates(self) -> list[Crate]:
        return list(self._crates)

    @property
    def crates_io(self) -> CratesIoClient:
        if self._crates_io is None:
            self._crates_io = CratesIoClient()
        return self._crates_io

    @property
    def root_manifest_lock(self) -> ManifestLock:
        """The edit lock of the workspace root Cargo.toml.

        When the root is itself a crate, its lock is shared with that crate
        so both views of the file guard the same edits.
        """
        for crate in self._crates:
            if crate.manifest_path == self._root_manifest_lock.path:
                return crate.manifest_lock
        return self._root_manifest_lock

    def close(self) -> None:
        """Close the crates.io client, if one was opened."""
        if self._crates_io is not None:
            self._crates_io.close()

    def find_crate(self, name: str) -> Crate | None:
        return next((c for c in self._crates if c.name == name), None)

    def get_crate(self, name: str) -> Crate:
        crate = self.find_crate(name)
        if crate is None:
            raise ConfigurationError(
                f"Could not find crate with name: {name}\n{self.crate_names_text()}"
            )
        return crate

    def add_crate(self, metadata: CargoPackageMetadata) -> Crate:
        if self.find_crate(metadata.name) is not None:
            raise ConfigurationError(f"Cannot add {metadata.name} twice to a repo.")
        crate = Crate(self, metadata)
        self._crates.append(crate)
        return crate

    def load_crate_in_sub_dir(self, name: str, sub_dir: str) -> Crate:
        """Add a crate that lives outside the root workspace."""
        metadata = get_cargo_metadata(self.folder_path / sub_dir)
        pkg = next((p for p in metadata.packages if p.name == name), None)
        if pkg is None:
            raise ConfigurationError(f"Could not find package with name {name}")
        return self.add_crate(pkg)

    def crate_names_text(self) -> str:
        names = "\n".join(f"  - {c.name}" for c in self._crates)
        return f"Crates:\n{names}"

    def get_crates_publish_order(self) -> list[Crate]:
        return resolve_publish_order(self._crates)

    # git

    def git(self, *args: str) -> str:
        return git(*args, cwd=self.folder_path)

    def has_local_changes(self) -> bool:
        return bool(self.git("status", "--porcelain", "--untracked-files=no"))

    def current_branch(self) -> str:
        return self.git("rev-parse", "--abbrev-ref", "HEAD")

    def assert_current_branch(self, expected: str) -> None:
        current = self.current_branch()
        if current != expected:
            raise ConfigurationError(
                f"Expected branch {expected}, but current branch was {current}."
            )

    def switch(self, branch: str) -> None:
        self.git("switch", branch)

    def pull(self, remote: str, branch: str) -> None:
        self.git("pull", remote, branch)

    def reset_hard(self) -> None:
        self.git("reset", "--hard")

    def branch(self, name: str) -> None:
        """Create a branch and switch to it."""
        self.git("checkout", "-b", name)

    def add(self) -> None:
        self.git("add", ".")

    def commit(self, message: str) -> None:
        self.git("commit", "-m", message)

    def tag(self, name: str) -> None:
        self.git("tag", name)

    def push(self, *args: str) -> None:
        self.git("push", *args)

    def fetch_tags(self, remote: str) -> None:
        self.git("fetch", remote, "--tags")

    def is_shallow(self) -> bool:
        return self.git("rev-parse", "--is-shallow-repository") == "true"

    def fetch_unshallow(self, remote: str) -> None:
        """Fetch full history when CI checked out a shallow clone."""
        if self.is_shallow():
            self.git("fetch", remote, "--unshallow")

    def remote_names(self) -> list[str]:
        return self.git("remote").splitlines()

    def get_git_tags(self) -> RepoTags:
        return RepoTags(self.git("tag").splitlines())

    def rev_count(self, revision_range: str) -> int:
        return int(self.git("rev-list", "--count", revision_range))

    def get_git_log_from_tags(
        self, remote: str, start: str | None, end: str | None
    ) -> GitLogOutput:
        """Commits after start up to end (or HEAD).

        With no start tag the whole history up to end is used, which needs
        the full history, so shallow clones are deepened first.
        """
        self.fetch_unshallow(remote)
        self.fetch_tags(remote)
        end = end or "HEAD"
        revision_range = f"{start}..{end}" if start else end
        return GitLogOutput(self.git("log", "--oneline", revision_range))
