from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from blueidp.assertion import load_private_key
from blueidp.directory import GRAPH_BASE_URL
from blueidp.errors import ConfigError
from blueidp.tokens import GRAPH_DEFAULT_SCOPE


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def parse_bool(value: Optional[str], *, name: str, default: bool = False) -> bool:
    # A non-empty string is not "true" by itself: only the listed spellings are accepted.
    if value is None:
        return default
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {name}: '{value}'. Use true/false.")


def load_env_file(path: Optional[str] = None) -> Optional[str]:
    """
    Seed os.environ from a dotenv file. Variables already set in the
    environment win. Without an explicit path, ./.env is used if present.
    """
    if path:
        if not os.path.isfile(path):
            raise ConfigError(f"Env file not found: {path}")
        load_dotenv(path, override=False)
        return path
    if os.path.isfile(".env"):
        load_dotenv(".env", override=False)
        return ".env"
    return None


def _first(env: Mapping[str, str], *names: str) -> Optional[str]:
    for n in names:
        v = env.get(n)
        if v is not None and v.strip():
            return v.strip()
    return None


def _missing_error(missing: list[str]) -> ConfigError:
    return ConfigError(f"Missing required environment variables: {' '.join(missing)}")


@dataclass(frozen=True)
class EntraSettings:
    tenant_id: str
    client_id: str
    client_secret: str = field(repr=False)
    write_actions_enabled: bool = False
    graph_base_url: str = GRAPH_BASE_URL
    graph_scope: str = GRAPH_DEFAULT_SCOPE
    log_level: str = "info"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "EntraSettings":
        env = os.environ if env is None else env
        tenant_id = _first(env, "TENANT_ID", "AZURE_TENANT_ID")
        client_id = _first(env, "CLIENT_ID", "AZURE_CLIENT_ID")
        client_secret = _first(env, "CLIENT_SECRET", "AZURE_CLIENT_SECRET")

        missing = [
            name
            for name, value in (("TENANT_ID", tenant_id), ("CLIENT_ID", client_id), ("CLIENT_SECRET", client_secret))
            if not value
        ]
        if missing:
            raise _missing_error(missing)

        return cls(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret,
            write_actions_enabled=parse_bool(env.get("ALLOW_WRITE_ACTIONS"), name="ALLOW_WRITE_ACTIONS"),
            graph_base_url=(_first(env, "GRAPH_BASE_URL") or GRAPH_BASE_URL).rstrip("/"),
            graph_scope=_first(env, "GRAPH_SCOPE") or GRAPH_DEFAULT_SCOPE,
            log_level=_first(env, "LOG_LEVEL") or "info",
        )


@dataclass(frozen=True)
class OktaSettings:
    org_url: str
    client_id: str
    kid: str
    pem_path: str
    scopes: str
    private_key: Any = field(repr=False, compare=False)
    log_level: str = "info"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "OktaSettings":
        env = os.environ if env is None else env
        required = {
            "OKTA_ORG_URL": _first(env, "OKTA_ORG_URL"),
            "OKTA_OAUTH_CLIENT_ID": _first(env, "OKTA_OAUTH_CLIENT_ID"),
            "OKTA_OAUTH_KID": _first(env, "OKTA_OAUTH_KID"),
            "OKTA_OAUTH_PEM_PATH": _first(env, "OKTA_OAUTH_PEM_PATH"),
            "OKTA_OAUTH_SCOPES": _first(env, "OKTA_OAUTH_SCOPES"),
        }
        missing = [k for k, v in required.items() if not v]
        if missing:
            raise _missing_error(missing)

        pem_path = required["OKTA_OAUTH_PEM_PATH"]
        try:
            with open(pem_path, "rb") as f:
                pem = f.read()
        except OSError as e:
            raise ConfigError(f"Cannot read OKTA_OAUTH_PEM_PATH '{pem_path}': {e}") from e
        try:
            key = load_private_key(pem)
        except (ValueError, TypeError) as e:
            raise ConfigError(f"Invalid private key in '{pem_path}': {e}") from e

        return cls(
            org_url=required["OKTA_ORG_URL"].rstrip("/"),
            client_id=required["OKTA_OAUTH_CLIENT_ID"],
            kid=required["OKTA_OAUTH_KID"],
            pem_path=pem_path,
            scopes=required["OKTA_OAUTH_SCOPES"],
            private_key=key,
            log_level=_first(env, "LOG_LEVEL") or "info",
        )
