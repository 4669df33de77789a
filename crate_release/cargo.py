"""Reading workspace metadata from cargo."""

from __future__ import annotations

from pathlib import Path

from .models import CargoMetadata
from .shell import run_command


def get_cargo_metadata(directory: Path | str) -> CargoMetadata:
    """Run `cargo metadata` in directory and parse its JSON output.

    Dependencies are not resolved (--no-deps), which keeps the call fast and
    offline; only workspace members appear in `packages`.
    """
    output = run_command(
        "cargo", "metadata", "--format-version", "1", "--no-deps", cwd=directory
    )
    return CargoMetadata.model_validate_json(output)
