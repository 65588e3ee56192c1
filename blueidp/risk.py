from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from blueidp.models import RiskAssessment, ServicePrincipalSnapshot
from blueidp.normalize import days_until


RISK_LEVELS = ("LOW", "MEDIUM", "HIGH")
RISK_ORDER = {"LOW": 0, "MEDIUM": 1, "HIGH": 2}

HIGH_THRESHOLD = 60
MEDIUM_THRESHOLD = 30

EXPIRY_WINDOW_DAYS = 30
RECENT_WINDOW_DAYS = 30
ASSIGNMENT_THRESHOLD = 10

SIGNAL_NO_OWNERS = "No owners assigned"
SIGNAL_SECRET_EXPIRING = "Client secret expires within 30 days"
SIGNAL_CERT_EXPIRING = "Certificate expires within 30 days"
SIGNAL_MANY_ASSIGNMENTS_OUT = "High number of app role assignments"
SIGNAL_MANY_ASSIGNMENTS_IN = "Many principals assigned to this app"
SIGNAL_RECENTLY_CREATED = "Recently created service principal"


def risk_level(score: int) -> str:
    if score >= HIGH_THRESHOLD:
        return "HIGH"
    if score >= MEDIUM_THRESHOLD:
        return "MEDIUM"
    return "LOW"


def _any_expiring(ends: Iterable[Optional[datetime]], now: datetime) -> bool:
    for end in ends:
        remaining = days_until(end, now)
        if remaining is not None and remaining <= EXPIRY_WINDOW_DAYS:
            return True
    return False


def score_service_principal(
    snapshot: ServicePrincipalSnapshot,
    now: Optional[datetime] = None,
) -> RiskAssessment:
    # Rules are additive and independent; signal order follows rule order.
    # Owners that were not collected score the same as an empty owner set.
    now = now or datetime.now(timezone.utc)
    score = 0
    signals: list[str] = []

    if not snapshot.owners:
        score += 15
        signals.append(SIGNAL_NO_OWNERS)

    if _any_expiring((c.end for c in snapshot.password_credentials), now):
        score += 20
        signals.append(SIGNAL_SECRET_EXPIRING)

    if _any_expiring((c.end for c in snapshot.key_credentials), now):
        score += 10
        signals.append(SIGNAL_CERT_EXPIRING)

    if (snapshot.role_assignments_out or 0) > ASSIGNMENT_THRESHOLD:
        score += 15
        signals.append(SIGNAL_MANY_ASSIGNMENTS_OUT)

    if (snapshot.role_assignments_in or 0) > ASSIGNMENT_THRESHOLD:
        score += 10
        signals.append(SIGNAL_MANY_ASSIGNMENTS_IN)

    if snapshot.created_at is not None:
        created = days_until(snapshot.created_at, now)
        if created is not None and created > -RECENT_WINDOW_DAYS:
            score += 10
            signals.append(SIGNAL_RECENTLY_CREATED)

    return RiskAssessment(score=score, level=risk_level(score), signals=tuple(signals))
