"""Exception types raised by crate-release.

Library code raises these; the CLI turns them into a non-zero exit with the
message printed.
"""

from __future__ import annotations


class ReleaseError(RuntimeError):
    """Base class for all crate-release failures."""


class ConfigurationError(ReleaseError):
    """The workspace, environment or CLI input is unusable as given."""


class CircularDependencyError(ConfigurationError):
    """Two crates depend on each other with edges of the same kind."""

    def __init__(self, first: str, second: str) -> None:
        super().__init__(f"Circular dependency found between {first} and {second}")
        self.first = first
        self.second = second


class ManifestUnchangedError(ReleaseError):
    """A manifest rewrite produced exactly the text it started from."""


class ManifestLockedError(ReleaseError):
    """A manifest edit was started while another edit of it was in flight."""


class CommandError(ReleaseError):
    """An external command exited with a non-zero status."""

    def __init__(self, cmd: list[str] | tuple[str, ...], stderr: str = "") -> None:
        message = f"Error executing {cmd[0]}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)
        self.cmd = list(cmd)
        self.stderr = stderr


class PublishError(ReleaseError):
    """Publishing to the registry kept failing after every retry."""
