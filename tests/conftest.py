import json
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa


NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        *,
        text: Optional[str] = None,
        text_error: Optional[Exception] = None,
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self._text = text
        self._text_error = text_error

    @property
    def text(self) -> str:
        if self._text_error is not None:
            raise self._text_error
        return self._text

    @property
    def content(self) -> bytes:
        return self._text.encode("utf-8")

    def json(self) -> Any:
        if self._payload is not None:
            return self._payload
        return json.loads(self._text)


Route = Union[FakeResponse, Exception, Callable[..., FakeResponse]]


class FakeSession:
    """Stands in for requests.Session; routes on (METHOD, url) with query params kept separate."""

    def __init__(self, routes: Optional[dict[tuple[str, str], Route]] = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[dict[str, Any]] = []

    def _dispatch(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        route = self.routes.get((method, url))
        if route is None:
            return FakeResponse(404, {"error": {"code": "Request_ResourceNotFound"}})
        if isinstance(route, Exception):
            raise route
        if callable(route) and not isinstance(route, FakeResponse):
            return route(method=method, url=url, **kwargs)
        return route

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        return self._dispatch(method, url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._dispatch("POST", url, **kwargs)


class FakeTokenCache:
    def __init__(self, token: str = "tok-1") -> None:
        self.token = token
        self.calls = 0
        self.invalidated = 0

    def get_token(self) -> str:
        self.calls += 1
        return self.token

    def invalidate(self) -> None:
        self.invalidated += 1


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def token_cache():
    return FakeTokenCache()
