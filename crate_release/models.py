"""Data models for crate-release.

These Pydantic models mirror the parts of `cargo metadata` and the crates.io
API that the release tooling reads, plus a few small value types shared
across modules.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class CargoDependency(BaseModel):
    """A dependency declared in a crate's Cargo.toml.

    Attributes:
        name: Name of the depended-upon crate.
        req: Version requirement (e.g. "^0.1.0", or "*" for any).
        kind: None for a normal dependency, otherwise "dev" or "build".
    """

    name: str
    req: str = "*"
    kind: Literal["dev", "build"] | None = None


class CargoPackageMetadata(BaseModel):
    """One entry of the `packages` array in `cargo metadata` output."""

    id: str
    name: str
    version: str
    dependencies: list[CargoDependency] = Field(default_factory=list)
    manifest_path: str


class CargoMetadata(BaseModel):
    """The subset of `cargo metadata --format-version 1` that we use.

    Attributes:
        packages: Every package cargo resolved, including external ones.
        workspace_members: Package ids of the workspace members.
        workspace_root: Absolute path of the workspace root directory.
    """

    packages: list[CargoPackageMetadata]
    workspace_members: list[str]
    workspace_root: str


class VersionBump(BaseModel):
    """Records a version change for a crate."""

    old: str
    new: str


class CratesIoCrate(BaseModel):
    id: str
    name: str
    max_stable_version: str | None = None


class CratesIoVersion(BaseModel):
    crate: str
    num: str


class CratesIoMetadata(BaseModel):
    """Response body of `GET /api/v1/crates/{name}`."""

    crate: CratesIoCrate
    versions: list[CratesIoVersion] = Field(default_factory=list)


class CratesIoOwner(BaseModel):
    id: int
    login: str
    kind: Literal["user", "team"]
    name: str | None = None
    avatar: str | None = None
    url: str | None = None


class PublishStatus(str, Enum):
    """Where a crate version stands on the registry."""

    NEVER_PUBLISHED = "never-published"
    OTHER_VERSION = "published-other-version"
    PUBLISHED = "published"


class PublishResult(str, Enum):
    PUBLISHED = "published"
    SKIPPED = "skipped"
