from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class PasswordCredential:
    key_id: Optional[str]
    display_name: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass(frozen=True)
class KeyCredential:
    key_id: Optional[str]
    display_name: Optional[str] = None
    type: Optional[str] = None
    usage: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass(frozen=True)
class PrincipalRef:
    id: Optional[str]
    display_name: Optional[str] = None
    user_principal_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "userPrincipalName": self.user_principal_name,
        }


@dataclass(frozen=True)
class ServicePrincipalSnapshot:
    """
    Facts about one service principal, assembled fresh for a single investigation.

    owners / role assignment counts are None when they were not collected. The
    report keeps that distinction; for scoring, None counts as empty.
    """

    id: str
    display_name: Optional[str] = None
    app_id: Optional[str] = None
    type: Optional[str] = None
    created_at: Optional[datetime] = None
    enabled: Optional[bool] = None
    password_credentials: tuple[PasswordCredential, ...] = ()
    key_credentials: tuple[KeyCredential, ...] = ()
    owners: Optional[tuple[PrincipalRef, ...]] = ()
    role_assignments_out: Optional[int] = 0
    role_assignments_in: Optional[int] = 0


@dataclass(frozen=True)
class RiskAssessment:
    score: int
    level: str
    signals: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {"riskScore": self.score, "riskLevel": self.level, "signals": list(self.signals)}


@dataclass(frozen=True)
class ApprovalDecision:
    action: str
    target_id: str
    approved: bool
    dry_run: bool
    write_actions_enabled: bool
    justification: str
    can_execute: bool
    blocking_reasons: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "targetId": self.target_id,
            "approved": self.approved,
            "dryRun": self.dry_run,
            "writeActionsEnabled": self.write_actions_enabled,
            "justification": self.justification,
            "canExecute": self.can_execute,
            "blockingReasons": list(self.blocking_reasons),
        }
