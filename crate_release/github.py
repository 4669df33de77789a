"""GitHub API helpers for creating releases and pull requests.

Expects to run inside GitHub Actions: the repository comes from
GITHUB_REPOSITORY and the credentials from GITHUB_TOKEN.
"""

from __future__ import annotations

import os
from typing import Any, NamedTuple

import httpx

from .errors import ConfigurationError

GITHUB_API_URL = "https://api.github.com"


class GitHubRepository(NamedTuple):
    owner: str
    repo: str


def get_env_var(name: str) -> str:
    """Read a required environment variable.

    Raises:
        ConfigurationError: If the variable is not set.
    """
    value = os.environ.get(name)
    if value is None:
        raise ConfigurationError(
            f"Could not find environment variable {name}. "
            "Ensure you are running in a GitHub action."
        )
    return value


def get_github_repository() -> GitHubRepository:
    """Split GITHUB_REPOSITORY ("{owner}/{repo}") into its parts."""
    value = get_env_var("GITHUB_REPOSITORY")
    owner, _, repo = value.partition("/")
    if not owner or not repo or "/" in repo:
        raise ConfigurationError(
            'Environment variable GITHUB_REPOSITORY must be formatted as "{owner}/{repo}".'
        )
    return GitHubRepository(owner=owner, repo=repo)


def get_github_token() -> str:
    return get_env_var("GITHUB_TOKEN")


class GitHubClient:
    """Minimal client for the GitHub REST endpoints used in a release."""

    def __init__(
        self,
        repository: GitHubRepository,
        token: str,
        client: httpx.Client | None = None,
    ) -> None:
        self.repository = repository
        self._client = client or httpx.Client(base_url=GITHUB_API_URL, timeout=30)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
        }

    @classmethod
    def from_env(cls) -> GitHubClient:
        return cls(get_github_repository(), get_github_token())

    def close(self) -> None:
        self._client.close()

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        owner, repo = self.repository
        response = self._client.post(
            f"/repos/{owner}/{repo}/{path}", json=payload, headers=self._headers
        )
        response.raise_for_status()
        return response.json()

    def create_release(
        self,
        tag_name: str,
        *,
        name: str | None = None,
        body: str | None = None,
        draft: bool = False,
        generate_release_notes: bool = False,
    ) -> dict[str, Any]:
        """Create a release for an existing tag.

        When generate_release_notes is set, GitHub writes the notes and body
        may be omitted.
        """
        payload: dict[str, Any] = {"tag_name": tag_name, "draft": draft}
        if name is not None:
            payload["name"] = name
        if body is not None:
            payload["body"] = body
        if generate_release_notes:
            payload["generate_release_notes"] = True
        return self._post("releases", payload)

    def create_pull_request(
        self,
        *,
        base: str,
        head: str,
        title: str,
        body: str,
        draft: bool = False,
    ) -> dict[str, Any]:
        return self._post(
            "pulls",
            {"base": base, "head": head, "title": title, "body": body, "draft": draft},
        )
