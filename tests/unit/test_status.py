"""Unit tests for the entry status state machine"""

import pytest
from ledger_engine.domain.exceptions import InvalidStatusTransition, ValidationError
from ledger_engine.domain.models import EntryStatus
from ledger_engine.domain.status import can_transition, ensure_transition

P, C, X = EntryStatus.PENDENTE, EntryStatus.CONFIRMADO, EntryStatus.CANCELADO


@pytest.mark.parametrize(
    "current,requested,allowed",
    [
        (P, C, True),
        (C, P, True),
        (P, X, True),
        (C, X, True),
        (X, P, False),
        (X, C, False),
        (P, P, True),
        (X, X, True),
    ],
)
def test_can_transition(current, requested, allowed):
    assert can_transition(current, requested) is allowed


def test_cancelled_is_terminal():
    with pytest.raises(InvalidStatusTransition) as exc:
        ensure_transition(X, C)

    assert isinstance(exc.value, ValidationError)
    assert exc.value.current == "CANCELADO"
    assert exc.value.requested == "CONFIRMADO"
    assert "status" in exc.value.errors
