"""Cheque lifecycle - status changes and their timestamps"""

import logging
from datetime import datetime
from typing import Any, Optional

from agency_ledger.domain.exceptions import ValidationError
from agency_ledger.domain.models import TERMINAL_CHEQUE_STATUSES, ChequeStatus

logger = logging.getLogger(__name__)


def parse_cheque_status(status: str) -> ChequeStatus:
    try:
        return ChequeStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in ChequeStatus)
        raise ValidationError(f"Cheque status must be one of: {allowed}", field="status")


def apply_status_change(
    cheque: Any,
    new_status: str,
    now: datetime,
    notes: Optional[str] = None,
    returned_reason: Optional[str] = None,
) -> str:
    """
    Move a cheque to a new status and stamp the transition.

    Any status may follow any other: corrections such as cleared -> pending
    are accepted and only logged. The owning policy's ledger is not touched,
    so a returned cheque keeps counting towards the paid amount.

    Returns the previous status.
    """
    target = parse_cheque_status(new_status)
    old_status = cheque.status

    if old_status in {s.value for s in TERMINAL_CHEQUE_STATUSES} and old_status != target.value:
        logger.warning(
            "Cheque leaving terminal status",
            extra={"cheque_id": str(cheque.id), "from_status": old_status, "to_status": target.value},
        )

    cheque.status = target.value

    if target == ChequeStatus.RETURNED:
        cheque.returned_at = now
        cheque.returned_reason = returned_reason or ""
    elif target == ChequeStatus.CLEARED:
        cheque.cleared_at = now

    if notes:
        cheque.notes = notes

    return old_status
