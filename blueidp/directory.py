from __future__ import annotations

from typing import Any, Optional

import requests

from blueidp import log
from blueidp.errors import DirectoryError, UnexpectedShapeError, capture_body


GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
DEFAULT_MAX_ITEMS = 1000


def value_list(data: Any, what: str) -> list[Any]:
    """Items of a `{value: [...]}` list envelope."""
    if not isinstance(data, dict) or not isinstance(data.get("value"), list):
        raise UnexpectedShapeError(what, "missing 'value' list envelope")
    return data["value"]


def array_list(data: Any, what: str) -> list[Any]:
    if not isinstance(data, list):
        raise UnexpectedShapeError(what, f"expected a JSON array, got {type(data).__name__}")
    return data


class DirectoryClient:
    """
    Authenticated JSON calls against an identity-provider REST API.
    Relative URLs are joined to `base_url`; absolute URLs (e.g. nextLink) are used as-is.
    """

    def __init__(
        self,
        token_cache: Any,
        *,
        base_url: str = "",
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        name: str = "Directory",
    ) -> None:
        self._tokens = token_cache
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._name = name

    def url(self, path: str) -> str:
        if path.startswith("https://") or path.startswith("http://"):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        body: Any = None,
    ) -> requests.Response:
        url = self.url(path)
        token = self._tokens.get_token()
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        kwargs: dict[str, Any] = {}
        if body is not None:
            headers["Content-Type"] = "application/json"
            kwargs["json"] = body
        try:
            r = self._session.request(
                method,
                url,
                headers=headers,
                params=params,
                timeout=self._timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            log.error(f"{self._name} {method} failed", url=url, error=str(e))
            raise DirectoryError(method=method, status=None, url=url, body=str(e)) from e

        if r.status_code < 200 or r.status_code >= 300:
            text = capture_body(r)
            log.error(f"{self._name} {method} failed", status=r.status_code, url=url, body=text[:200])
            if r.status_code == 401:
                # Next call re-issues; this one still fails.
                self._tokens.invalidate()
            raise DirectoryError(method=method, status=r.status_code, url=url, body=text)
        return r

    def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        r = self._request("GET", path, params=params)
        try:
            return r.json()
        except ValueError as e:
            raise UnexpectedShapeError(f"{self._name} GET", "body is not JSON") from e

    def _write_result(self, r: requests.Response) -> Any:
        if r.status_code == 204 or not r.content:
            return {}
        try:
            return r.json()
        except ValueError:
            return {}

    def patch(self, path: str, body: Any) -> Any:
        return self._write_result(self._request("PATCH", path, body=body))

    def post(self, path: str, body: Any = None) -> Any:
        return self._write_result(self._request("POST", path, body=body))

    def get_list(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        *,
        what: str,
        max_items: int = DEFAULT_MAX_ITEMS,
    ) -> list[Any]:
        """Collect a `{value: [...]}` collection, following `@odata.nextLink` up to max_items."""
        out: list[Any] = []
        url: Optional[str] = path
        while url and len(out) < max_items:
            data = self.get(url, params)
            params = None  # nextLink includes query
            for item in value_list(data, what):
                out.append(item)
                if len(out) >= max_items:
                    break
            url = data.get("@odata.nextLink")
        return out
