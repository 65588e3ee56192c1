from __future__ import annotations

import json
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, NamedTuple, Optional

import msal
import requests

from blueidp import log
from blueidp.assertion import JWT_BEARER_ASSERTION_TYPE, build_client_assertion
from blueidp.errors import AuthError, capture_body


GRAPH_DEFAULT_SCOPE = "https://graph.microsoft.com/.default"
ENTRA_AUTHORITY_HOST = "https://login.microsoftonline.com"

DEFAULT_TTL_SECONDS = 300
SAFETY_MARGIN_SECONDS = 10

_TOKEN_FIELDS = ("access_token", "refresh_token", "id_token")
_TOKEN_FIELD_RE = re.compile(r'("(?:access_token|refresh_token|id_token)"\s*:\s*)"[^"]*"')
REDACTED = "[REDACTED]"


class IssuedToken(NamedTuple):
    access_token: str
    ttl_seconds: Optional[int]


def redact_token_fields(text: str) -> str:
    if not text:
        return ""
    try:
        obj = json.loads(text)
    except ValueError:
        return _TOKEN_FIELD_RE.sub(rf'\1"{REDACTED}"', text)
    if not isinstance(obj, dict):
        return text
    for field in _TOKEN_FIELDS:
        if field in obj:
            obj[field] = REDACTED
    return json.dumps(obj)


def _ttl_from(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class SecretFlow:
    """
    Shared-secret client-credentials grant against the tenant's Entra token endpoint.
    The TTL is whatever lifetime MSAL reports for the token it hands back.
    """

    def __init__(
        self,
        *,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        scope: str = GRAPH_DEFAULT_SCOPE,
        authority_host: str = ENTRA_AUTHORITY_HOST,
        app_factory: Callable[..., Any] = msal.ConfidentialClientApplication,
    ) -> None:
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._scope = scope
        self._authority = f"{authority_host.rstrip('/')}/{tenant_id}"
        self._app_factory = app_factory
        self._app: Any = None

    def _get_app(self) -> Any:
        # MSAL runs authority discovery on construction, so build it on first use.
        if self._app is None:
            self._app = self._app_factory(
                self._client_id,
                authority=self._authority,
                client_credential=self._client_secret,
            )
        return self._app

    def issue(self) -> IssuedToken:
        try:
            result = self._get_app().acquire_token_for_client(scopes=[self._scope])
        except (requests.RequestException, ValueError) as e:
            raise AuthError(f"Token request to {self._authority} failed: {e}") from e

        if not isinstance(result, dict) or not result.get("access_token"):
            detail = "no access token returned"
            if isinstance(result, dict):
                detail = result.get("error_description") or result.get("error") or detail
            raise AuthError(f"Failed to acquire Microsoft Graph access token: {detail}")
        return IssuedToken(result["access_token"], _ttl_from(result.get("expires_in")))


class AssertionFlow:
    """Client-credentials grant authenticated with a signed JWT client assertion (private_key_jwt)."""

    def __init__(
        self,
        *,
        org_url: str,
        client_id: str,
        kid: str,
        private_key: Any,
        scopes: str,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._org_url = org_url.rstrip("/")
        self._client_id = client_id
        self._kid = kid
        self._key = private_key
        self._scopes = scopes
        self._session = session or requests.Session()
        self._clock = clock

    @property
    def token_url(self) -> str:
        return f"{self._org_url}/oauth2/v1/token"

    def issue(self) -> IssuedToken:
        assertion = build_client_assertion(
            client_id=self._client_id,
            audience=self.token_url,
            key=self._key,
            kid=self._kid,
            now=int(self._clock()),
        )
        form = {
            "grant_type": "client_credentials",
            "scope": self._scopes,
            "client_assertion_type": JWT_BEARER_ASSERTION_TYPE,
            "client_assertion": assertion,
        }
        try:
            r = self._session.post(
                self.token_url,
                data=form,
                headers={"Accept": "application/json"},
            )
        except requests.RequestException as e:
            raise AuthError(f"Token request to {self.token_url} failed: {e}") from e

        if r.status_code < 200 or r.status_code >= 300:
            body = redact_token_fields(capture_body(r))
            log.error("Token request failed", status=r.status_code, url=self.token_url, body=body)
            raise AuthError(
                f"Token request failed: HTTP {r.status_code}",
                status=r.status_code,
                body=body,
            )

        try:
            data = r.json()
        except ValueError as e:
            raise AuthError("Token endpoint returned a non-JSON body", status=r.status_code) from e
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthError("Token endpoint response has no access_token", status=r.status_code)
        return IssuedToken(token, _ttl_from(data.get("expires_in")))


@dataclass(frozen=True)
class CachedToken:
    access_token: str
    expires_at: float

    def usable(self, now: float, margin: float = SAFETY_MARGIN_SECONDS) -> bool:
        return now < self.expires_at - margin


class TokenCache:
    """
    Remembers the last token issued by one provider and reissues only when it
    is expired or inside the safety margin. Refreshes are serialized: callers
    arriving during a refresh wait for it and reuse its token.
    """

    def __init__(
        self,
        provider: Any,
        *,
        clock: Callable[[], float] = time.time,
        safety_margin: float = SAFETY_MARGIN_SECONDS,
        default_ttl: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        if safety_margin < SAFETY_MARGIN_SECONDS:
            raise ValueError(f"safety_margin must be at least {SAFETY_MARGIN_SECONDS} seconds")
        self._provider = provider
        self._clock = clock
        self._margin = safety_margin
        self._default_ttl = default_ttl
        self._lock = threading.Lock()
        self._cached: Optional[CachedToken] = None

    @property
    def cached(self) -> Optional[CachedToken]:
        return self._cached

    def get_token(self) -> str:
        cached = self._cached
        if cached is not None and cached.usable(self._clock(), self._margin):
            return cached.access_token

        with self._lock:
            # Another caller may have refreshed while we waited.
            cached = self._cached
            if cached is not None and cached.usable(self._clock(), self._margin):
                return cached.access_token

            issued = self._provider.issue()
            ttl = issued.ttl_seconds if issued.ttl_seconds is not None else self._default_ttl
            if ttl <= self._margin:
                log.warn("Issued token lifetime is inside the refresh margin", ttl_seconds=ttl)
            self._cached = CachedToken(issued.access_token, self._clock() + ttl)
            log.debug("Access token refreshed", ttl_seconds=ttl)
            return issued.access_token

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None
