from __future__ import annotations

from typing import Optional


class ConfigError(ValueError):
    """Required configuration is missing or malformed. Fatal at startup."""


class AuthError(RuntimeError):
    def __init__(self, message: str, *, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class DirectoryError(RuntimeError):
    def __init__(self, *, method: str, status: Optional[int], url: str, body: str = "") -> None:
        # status is None when no HTTP response was received at all.
        super().__init__(f"{method} {url} failed ({status if status is not None else 'no response'})")
        self.method = method
        self.status = status
        self.url = url
        self.body = body


class UnexpectedShapeError(RuntimeError):
    """A remote response did not have the structure the caller relies on."""

    def __init__(self, what: str, detail: str = "") -> None:
        msg = f"Unexpected {what} response"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
        self.what = what
        self.detail = detail


def capture_body(response) -> str:
    # Diagnostics only: a failed read must not replace the status error being raised.
    try:
        text = response.text
    except Exception:
        return ""
    return text if isinstance(text, str) else ""
