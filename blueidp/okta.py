from __future__ import annotations

from typing import Any, Optional

from blueidp.directory import array_list


class OktaOperations:
    """Read-only Okta tool operations. Okta list endpoints return bare JSON arrays."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def _list(self, path: str, what: str, limit: int, extra: Optional[dict[str, str]] = None) -> list[Any]:
        params = {"limit": str(limit)}
        if extra:
            params.update(extra)
        return array_list(self._client.get(path, params), what)

    def list_users(self, *, limit: int = 5) -> list[Any]:
        return self._list("api/v1/users", "users", limit)

    def list_groups(self, *, limit: int = 5) -> list[Any]:
        return self._list("api/v1/groups", "groups", limit)

    def list_apps(self, *, limit: int = 5) -> list[Any]:
        return self._list("api/v1/apps", "apps", limit)

    def recent_logs(self, *, limit: int = 5) -> list[Any]:
        # Okta returns oldest first unless asked otherwise.
        return self._list("api/v1/logs", "logs", limit, {"sortOrder": "DESCENDING"})
