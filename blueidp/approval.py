from __future__ import annotations

from blueidp.models import ApprovalDecision


REASON_WRITES_DISABLED = "ALLOW_WRITE_ACTIONS is false"
REASON_NOT_APPROVED = "approved is not true"
REASON_DRY_RUN = "dryRun is true"


def evaluate(
    *,
    action: str,
    target_id: str,
    justification: str,
    approved: bool,
    dry_run: bool,
    write_actions_enabled: bool,
) -> ApprovalDecision:
    """
    Decide whether a write action may run. All three conditions must hold:
    writes enabled for the process, explicit approval, and not a dry run.
    Every failing condition is reported, not just the first.
    """
    reasons: list[str] = []
    if not write_actions_enabled:
        reasons.append(REASON_WRITES_DISABLED)
    if approved is not True:
        reasons.append(REASON_NOT_APPROVED)
    if dry_run is not False:
        reasons.append(REASON_DRY_RUN)

    return ApprovalDecision(
        action=action,
        target_id=target_id,
        approved=approved is True,
        dry_run=dry_run is not False,
        write_actions_enabled=bool(write_actions_enabled),
        justification=justification,
        can_execute=not reasons,
        blocking_reasons=tuple(reasons),
    )
