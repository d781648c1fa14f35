"""Unit tests for cheque status changes"""

import logging
import uuid
import pytest
from datetime import datetime, timezone
from types import SimpleNamespace
from agency_ledger.domain.cheques import apply_status_change
from agency_ledger.domain.exceptions import ValidationError

NOW = datetime(2024, 7, 1, 12, 0, tzinfo=timezone.utc)


def make_cheque(status="pending"):
    return SimpleNamespace(
        id=uuid.uuid4(),
        status=status,
        notes=None,
        returned_at=None,
        returned_reason=None,
        cleared_at=None,
    )


def test_returned_stamps_date_and_reason():
    cheque = make_cheque()
    old = apply_status_change(cheque, "returned", NOW, returned_reason="Insufficient funds")

    assert old == "pending"
    assert cheque.status == "returned"
    assert cheque.returned_at == NOW
    assert cheque.returned_reason == "Insufficient funds"
    assert cheque.cleared_at is None


def test_returned_without_reason_stores_empty_reason():
    cheque = make_cheque()
    apply_status_change(cheque, "returned", NOW)
    assert cheque.returned_reason == ""


def test_cleared_stamps_date():
    cheque = make_cheque()
    apply_status_change(cheque, "cleared", NOW)
    assert cheque.status == "cleared"
    assert cheque.cleared_at == NOW
    assert cheque.returned_at is None


def test_notes_overwritten_only_when_given():
    cheque = make_cheque()
    cheque.notes = "original"
    apply_status_change(cheque, "cancelled", NOW)
    assert cheque.notes == "original"

    apply_status_change(cheque, "cancelled", NOW, notes="customer asked")
    assert cheque.notes == "customer asked"


def test_unknown_status_rejected():
    cheque = make_cheque()
    with pytest.raises(ValidationError) as exc:
        apply_status_change(cheque, "bounced", NOW)
    assert exc.value.field == "status"
    assert cheque.status == "pending"


def test_backward_transition_allowed_and_logged(caplog):
    """cleared -> pending is accepted as a correction, with a warning"""
    cheque = make_cheque("cleared")
    with caplog.at_level(logging.WARNING, logger="agency_ledger.domain.cheques"):
        old = apply_status_change(cheque, "pending", NOW)

    assert old == "cleared"
    assert cheque.status == "pending"
    assert "Cheque leaving terminal status" in caplog.text
