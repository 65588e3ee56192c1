from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from urllib.parse import quote

from blueidp import log
from blueidp.approval import evaluate
from blueidp.directory import value_list
from blueidp.errors import AuthError, DirectoryError
from blueidp.normalize import normalize_signin_event, service_principal_report, service_principal_snapshot
from blueidp.risk import score_service_principal


STATE_BLOCKED = "BLOCKED"
STATE_SUCCEEDED = "SUCCEEDED"
STATE_FAILED = "FAILED"

SP_SELECT = "id,displayName,appId,servicePrincipalType,createdDateTime,accountEnabled,passwordCredentials,keyCredentials"
OWNER_SELECT = "id,displayName,userPrincipalName"
ASSIGNMENT_PAGE_SIZE = 200
MAX_RELATED_ITEMS = 1000


def _fmt_utc_z(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _odata_literal(s: str) -> str:
    return s.replace("'", "''")


def _segment(object_id: str) -> str:
    return quote(object_id.strip(), safe="")


class EntraOperations:
    """
    Microsoft Entra ID tool operations over Microsoft Graph.

    Reads go straight to the Directory Client. Writes are evaluated by the
    approval gate first and only reach Graph when the gate allows them.
    """

    def __init__(
        self,
        client: Any,
        *,
        write_actions_enabled: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._client = client
        self._write_actions_enabled = bool(write_actions_enabled)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def signin_recent(
        self,
        *,
        window_minutes: int = 60,
        user_principal_name: Optional[str] = None,
        top: int = 10,
    ) -> dict[str, Any]:
        start = self._clock() - timedelta(minutes=window_minutes)
        filters = [f"createdDateTime ge {_fmt_utc_z(start)}"]
        if user_principal_name:
            filters.append(f"userPrincipalName eq '{_odata_literal(user_principal_name)}'")
        params = {
            "$top": str(top),
            "$orderby": "createdDateTime desc",
            "$filter": " and ".join(filters),
        }
        data = self._client.get("auditLogs/signIns", params)
        events = [normalize_signin_event(e) for e in value_list(data, "signIns") if isinstance(e, dict)]
        return {"windowMinutes": window_minutes, "count": len(events), "events": events}

    def investigate_service_principal(
        self,
        *,
        service_principal_id: str,
        include_assignments: bool = True,
        include_owners: bool = True,
    ) -> dict[str, Any]:
        sp_path = f"servicePrincipals/{_segment(service_principal_id)}"
        sp = self._client.get(sp_path, {"$select": SP_SELECT})

        owners: Optional[list[Any]] = None
        if include_owners:
            owners = self._client.get_list(
                f"{sp_path}/owners",
                {"$select": OWNER_SELECT},
                what="owners",
                max_items=MAX_RELATED_ITEMS,
            )

        assignments_out: Optional[int] = None
        assignments_in: Optional[int] = None
        if include_assignments:
            page = {"$top": str(ASSIGNMENT_PAGE_SIZE)}
            assignments_out = len(
                self._client.get_list(f"{sp_path}/appRoleAssignments", page, what="appRoleAssignments", max_items=MAX_RELATED_ITEMS)
            )
            assignments_in = len(
                self._client.get_list(f"{sp_path}/appRoleAssignedTo", page, what="appRoleAssignedTo", max_items=MAX_RELATED_ITEMS)
            )

        snapshot = service_principal_snapshot(
            sp,
            owners=owners,
            assignments_out=assignments_out,
            assignments_in=assignments_in,
        )
        now = self._clock()
        risk = score_service_principal(snapshot, now)
        log.info(
            "Service principal investigated",
            service_principal_id=snapshot.id,
            risk_level=risk.level,
            risk_score=risk.score,
        )
        return service_principal_report(snapshot, risk, now=now)

    def _gated_write(
        self,
        *,
        action: str,
        target_id: str,
        justification: str,
        approved: bool,
        dry_run: bool,
        execute: Callable[[], Any],
    ) -> dict[str, Any]:
        decision = evaluate(
            action=action,
            target_id=target_id,
            justification=justification,
            approved=approved,
            dry_run=dry_run,
            write_actions_enabled=self._write_actions_enabled,
        )
        if not decision.can_execute:
            log.info("Write action blocked", action=action, target_id=target_id, reasons=list(decision.blocking_reasons))
            return {"ok": True, "executed": False, "state": STATE_BLOCKED, "gate": decision.to_dict()}

        log.warn("Executing write action", action=action, target_id=target_id, justification=justification)
        try:
            result = execute()
        except (AuthError, DirectoryError) as e:
            log.error("Write action failed", action=action, target_id=target_id, state=STATE_FAILED, error=str(e))
            raise
        log.info("Write action succeeded", action=action, target_id=target_id)
        return {
            "ok": True,
            "executed": True,
            "state": STATE_SUCCEEDED,
            "gate": decision.to_dict(),
            "result": result,
        }

    def disable_service_principal(
        self,
        *,
        service_principal_id: str,
        justification: str,
        approved: bool = False,
        dry_run: bool = True,
    ) -> dict[str, Any]:
        path = f"servicePrincipals/{_segment(service_principal_id)}"
        return self._gated_write(
            action="disable_service_principal",
            target_id=service_principal_id,
            justification=justification,
            approved=approved,
            dry_run=dry_run,
            execute=lambda: self._client.patch(path, {"accountEnabled": False}),
        )

    def revoke_service_principal_sessions(
        self,
        *,
        service_principal_id: str,
        justification: str,
        approved: bool = False,
        dry_run: bool = True,
    ) -> dict[str, Any]:
        path = f"servicePrincipals/{_segment(service_principal_id)}/revokeSignInSessions"
        return self._gated_write(
            action="revoke_service_principal_sessions",
            target_id=service_principal_id,
            justification=justification,
            approved=approved,
            dry_run=dry_run,
            execute=lambda: self._client.post(path),
        )

    def revoke_user_sessions(
        self,
        *,
        user_id: str,
        justification: str,
        approved: bool = False,
        dry_run: bool = True,
    ) -> dict[str, Any]:
        path = f"users/{_segment(user_id)}/revokeSignInSessions"
        return self._gated_write(
            action="revoke_user_sessions",
            target_id=user_id,
            justification=justification,
            approved=approved,
            dry_run=dry_run,
            execute=lambda: self._client.post(path),
        )
