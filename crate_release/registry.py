"""crates.io API client.

Only the two read endpoints the release tooling needs are wrapped. A short
pause precedes every request to stay well inside the crates.io crawler
policy of one request per second on average.
"""

from __future__ import annotations

import time

import httpx

from .models import CratesIoMetadata, CratesIoOwner

CRATES_IO_API_URL = "https://crates.io/api/v1"
RATE_LIMIT_DELAY = 0.1
USER_AGENT = "crate-release (https://github.com/crate-release/crate-release)"


def create_client(**kwargs) -> httpx.Client:
    """Create an httpx client configured for the crates.io API."""
    kwargs.setdefault("base_url", CRATES_IO_API_URL)
    kwargs.setdefault("headers", {"User-Agent": USER_AGENT})
    kwargs.setdefault("timeout", 30)
    return httpx.Client(**kwargs)


class CratesIoClient:
    """Thin wrapper over the crates.io REST API.

    A 404 means the crate has never been published and is reported as None;
    any other error status raises httpx.HTTPStatusError.
    """

    def __init__(self, client: httpx.Client | None = None) -> None:
        self._client = client or create_client()

    def _get(self, path: str) -> dict | None:
        time.sleep(RATE_LIMIT_DELAY)
        response = self._client.get(path)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    def get_metadata(self, crate_name: str) -> CratesIoMetadata | None:
        """Fetch `GET /crates/{name}`, or None if the crate does not exist."""
        data = self._get(f"/crates/{crate_name}")
        if data is None:
            return None
        return CratesIoMetadata.model_validate(data)

    def get_owners(self, crate_name: str) -> list[CratesIoOwner] | None:
        """Fetch the user owners of a crate, or None if it does not exist."""
        data = self._get(f"/crates/{crate_name}/owners")
        if data is None:
            return None
        return [CratesIoOwner.model_validate(u) for u in data.get("users", [])]

    def close(self) -> None:
        self._client.close()


class CratesIoCache:
    """Memoizes crates.io lookups for the duration of one run.

    Bumping dependencies queries the same crate once per workspace member
    that uses it, so both metadata (including "not found") and ownership
    answers are cached by crate name.
    """

    def __init__(
        self,
        client: CratesIoClient | None = None,
        *,
        owner_login: str | None = None,
        name_prefix: str | None = None,
    ) -> None:
        self.client = client or CratesIoClient()
        self.owner_login = owner_login
        self.name_prefix = name_prefix
        self._metadata: dict[str, CratesIoMetadata | None] = {}
        self._has_owner: dict[str, bool] = {}

    def get_metadata(self, crate_name: str) -> CratesIoMetadata | None:
        if crate_name not in self._metadata:
            self._metadata[crate_name] = self.client.get_metadata(crate_name)
        return self._metadata[crate_name]

    def has_owner(self, crate_name: str) -> bool:
        """Whether the crate matches the name prefix or is owned by the login."""
        if self.name_prefix and crate_name.startswith(self.name_prefix):
            return True
        if self.owner_login is None:
            return False
        if crate_name not in self._has_owner:
            owners = self.client.get_owners(crate_name) or []
            self._has_owner[crate_name] = any(
                o.login == self.owner_login for o in owners
            )
        return self._has_owner[crate_name]
