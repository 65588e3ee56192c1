from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

from blueidp.errors import UnexpectedShapeError
from blueidp.models import (
    KeyCredential,
    PasswordCredential,
    PrincipalRef,
    RiskAssessment,
    ServicePrincipalSnapshot,
)


# Graph emits 0 to 7 fractional digits; older datetime parsers accept only 3 or 6.
_FRACTION_RE = re.compile(r"\.(\d+)")
_SECONDS_PER_DAY = 86400


def _six_digit_fraction(m: re.Match) -> str:
    return "." + m.group(1)[:6].ljust(6, "0")


def parse_iso_dt(s: Any) -> Optional[datetime]:
    if not isinstance(s, str) or not s.strip():
        return None
    try:
        dt = datetime.fromisoformat(_FRACTION_RE.sub(_six_digit_fraction, s.strip()).replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def iso_utc(dt: Optional[datetime]) -> Optional[str]:
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def days_until(value: Any, now: Optional[datetime] = None) -> Optional[int]:
    """
    Whole days from now until `value`, rounded up (negative when in the past).
    None when value is missing or unparseable.
    """
    dt = value if isinstance(value, datetime) else parse_iso_dt(value)
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return math.ceil((dt - now).total_seconds() / _SECONDS_PER_DAY)


def _str_or_none(v: Any) -> Optional[str]:
    return v if isinstance(v, str) and v else None


def _pick(obj: Any, keys: tuple[str, ...]) -> Optional[dict[str, Any]]:
    if not isinstance(obj, dict):
        return None
    return {k: obj.get(k) for k in keys}


def normalize_signin_event(e: dict[str, Any]) -> dict[str, Any]:
    status = e.get("status") if isinstance(e.get("status"), dict) else {}
    return {
        "createdDateTime": e.get("createdDateTime"),
        "userPrincipalName": e.get("userPrincipalName"),
        "userId": e.get("userId"),
        "ipAddress": e.get("ipAddress"),
        "appDisplayName": e.get("appDisplayName"),
        "resourceDisplayName": e.get("resourceDisplayName"),
        "clientAppUsed": e.get("clientAppUsed"),
        "isInteractive": e.get("isInteractive"),
        "conditionalAccessStatus": e.get("conditionalAccessStatus"),
        "status": "success" if status.get("errorCode") == 0 else "failure",
        "failureReason": status.get("failureReason"),
        "riskLevelAggregated": e.get("riskLevelAggregated"),
        "riskState": e.get("riskState"),
        "deviceDetail": _pick(e.get("deviceDetail"), ("operatingSystem", "browser", "deviceId", "trustType")),
        "location": _pick(e.get("location"), ("city", "state", "countryOrRegion")),
    }


def _credential_list(sp: dict[str, Any], key: str) -> list[dict[str, Any]]:
    raw = sp.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise UnexpectedShapeError("servicePrincipal", f"'{key}' is not a list")
    return [c for c in raw if isinstance(c, dict)]


def password_credentials(sp: dict[str, Any]) -> tuple[PasswordCredential, ...]:
    return tuple(
        PasswordCredential(
            key_id=_str_or_none(c.get("keyId")),
            display_name=_str_or_none(c.get("displayName")),
            start=parse_iso_dt(c.get("startDateTime")),
            end=parse_iso_dt(c.get("endDateTime")),
        )
        for c in _credential_list(sp, "passwordCredentials")
    )


def key_credentials(sp: dict[str, Any]) -> tuple[KeyCredential, ...]:
    return tuple(
        KeyCredential(
            key_id=_str_or_none(c.get("keyId")),
            display_name=_str_or_none(c.get("displayName")),
            type=_str_or_none(c.get("type")),
            usage=_str_or_none(c.get("usage")),
            start=parse_iso_dt(c.get("startDateTime")),
            end=parse_iso_dt(c.get("endDateTime")),
        )
        for c in _credential_list(sp, "keyCredentials")
    )


def principal_refs(items: list[Any]) -> tuple[PrincipalRef, ...]:
    return tuple(
        PrincipalRef(
            id=_str_or_none(o.get("id")),
            display_name=_str_or_none(o.get("displayName")),
            user_principal_name=_str_or_none(o.get("userPrincipalName")),
        )
        for o in items
        if isinstance(o, dict)
    )


def service_principal_snapshot(
    sp: Any,
    *,
    owners: Optional[list[Any]],
    assignments_out: Optional[int],
    assignments_in: Optional[int],
) -> ServicePrincipalSnapshot:
    if not isinstance(sp, dict) or not isinstance(sp.get("id"), str) or not sp["id"]:
        raise UnexpectedShapeError("servicePrincipal", "missing 'id'")
    enabled = sp.get("accountEnabled")
    return ServicePrincipalSnapshot(
        id=sp["id"],
        display_name=_str_or_none(sp.get("displayName")),
        app_id=_str_or_none(sp.get("appId")),
        type=_str_or_none(sp.get("servicePrincipalType")),
        created_at=parse_iso_dt(sp.get("createdDateTime")),
        enabled=enabled if isinstance(enabled, bool) else None,
        password_credentials=password_credentials(sp),
        key_credentials=key_credentials(sp),
        owners=principal_refs(owners) if owners is not None else None,
        role_assignments_out=assignments_out,
        role_assignments_in=assignments_in,
    )


def service_principal_report(
    snapshot: ServicePrincipalSnapshot,
    risk: RiskAssessment,
    *,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    assignments = None
    if snapshot.role_assignments_out is not None or snapshot.role_assignments_in is not None:
        assignments = {
            "appRoleAssignmentsCount": snapshot.role_assignments_out or 0,
            "appRoleAssignedToCount": snapshot.role_assignments_in or 0,
        }
    return {
        "servicePrincipal": {
            "id": snapshot.id,
            "displayName": snapshot.display_name,
            "appId": snapshot.app_id,
            "servicePrincipalType": snapshot.type,
            "createdDateTime": iso_utc(snapshot.created_at),
            "accountEnabled": snapshot.enabled,
        },
        "owners": [o.to_dict() for o in snapshot.owners or ()],
        "ownersCollected": snapshot.owners is not None,
        "credentials": {
            "passwordCredentials": [
                {
                    "keyId": c.key_id,
                    "displayName": c.display_name,
                    "startDateTime": iso_utc(c.start),
                    "endDateTime": iso_utc(c.end),
                    "daysRemaining": days_until(c.end, now),
                }
                for c in snapshot.password_credentials
            ],
            "keyCredentials": [
                {
                    "keyId": c.key_id,
                    "displayName": c.display_name,
                    "type": c.type,
                    "usage": c.usage,
                    "startDateTime": iso_utc(c.start),
                    "endDateTime": iso_utc(c.end),
                    "daysRemaining": days_until(c.end, now),
                }
                for c in snapshot.key_credentials
            ],
        },
        "assignments": assignments,
        "riskAssessment": risk.to_dict(),
    }
