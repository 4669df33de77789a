"""Release notes built from git history.

Turns `git log --oneline` output into a markdown bullet list and keeps a
Releases.md file with one `### <version> / <date>` section per release,
newest first.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from datetime import date as Date
from pathlib import Path

IGNORED_COMMIT_PREFIXES = ("build", "chore", "ci", "docs", "refactor", "test")

_SHORT_HASH_RE = re.compile(r"^[a-f0-9]{7,40} ", re.IGNORECASE)
_VERSION_RE = re.compile(r"\b[0-9]+\.[0-9]+\.[0-9]+\b")
_SECTION_RE = re.compile(r"^### ", re.MULTILINE)


class GitLogOutput:
    """Output of `git log --oneline` for a range of commits."""

    def __init__(self, output: str) -> None:
        self.output_text = output

    def format_for_release_markdown(self) -> str:
        """Format commit subjects as a sorted markdown list.

        Hashes are dropped, as are maintenance commits (chore:, ci:, docs:,
        ...) which are of no interest to users.
        """
        lines = (
            _SHORT_HASH_RE.sub("", line).strip()
            for line in self.output_text.splitlines()
        )
        kept = [
            line
            for line in lines
            if line and not line.startswith(IGNORED_COMMIT_PREFIXES)
        ]
        return "\n".join(f"- {line}" for line in sorted(kept))


class VersionReleaseText:
    """One `### ...` section of a Releases.md file."""

    def __init__(self, full_text: str) -> None:
        self._full_text = full_text

    @property
    def full_text(self) -> str:
        return self._full_text.strip()

    @property
    def version(self) -> str:
        match = _VERSION_RE.search(self._full_text)
        if match is None:
            raise ValueError(f"Could not find version in {self._full_text}.")
        return match.group(0)


class ReleasesMdFile:
    """A Releases.md file whose sections start with `### `."""

    def __init__(self, file_path: Path | str) -> None:
        self.file_path = Path(file_path)
        self.file_text = self.file_path.read_text()

    def update_with_git_log(
        self,
        git_log: GitLogOutput,
        version: str,
        date: Date | None = None,
        body_pre_text: str | None = None,
    ) -> None:
        """Insert a section for version above the newest existing one.

        Args:
            git_log: Commits that went into the release.
            version: The version being released.
            date: Release date, today when omitted.
            body_pre_text: Text placed between the title and the commit list.
        """
        formatted_date = (date or Date.today()).strftime("%Y.%m.%d")
        text = f"### {version} / {formatted_date}\n\n"
        if body_pre_text:
            text += f"{body_pre_text}\n\n"
        text += git_log.format_for_release_markdown()

        if _SECTION_RE.search(self.file_text):
            new_text = _SECTION_RE.sub(
                lambda _m: text + "\n\n### ", self.file_text, count=1
            )
        else:
            new_text = self.file_text.rstrip("\n")
            new_text = f"{new_text}\n\n{text}\n" if new_text else f"{text}\n"
        self._update_text(new_text)

    def get_latest_release_text(self) -> VersionReleaseText:
        for release_text in self.get_all_release_texts():
            return release_text
        raise ValueError("Expected at least one version.")

    def get_all_release_texts(self) -> Iterator[VersionReleaseText]:
        starts = [m.start() for m in _SECTION_RE.finditer(self.file_text)]
        for start, end in zip(starts, starts[1:] + [len(self.file_text)]):
            yield VersionReleaseText(self.file_text[start:end])

    def _update_text(self, new_text: str) -> None:
        self.file_text = new_text
        self.file_path.write_text(new_text)
