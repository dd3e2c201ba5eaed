"""Entry status state machine"""

from typing import Dict, FrozenSet

from ledger_engine.domain.exceptions import InvalidStatusTransition
from ledger_engine.domain.models import EntryStatus

# CANCELADO is terminal: a cancelled entry is recreated, never revived.
ALLOWED_TRANSITIONS: Dict[EntryStatus, FrozenSet[EntryStatus]] = {
    EntryStatus.PENDENTE: frozenset({EntryStatus.CONFIRMADO, EntryStatus.CANCELADO}),
    EntryStatus.CONFIRMADO: frozenset({EntryStatus.PENDENTE, EntryStatus.CANCELADO}),
    EntryStatus.CANCELADO: frozenset(),
}


def can_transition(current: EntryStatus, requested: EntryStatus) -> bool:
    return current == requested or requested in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: EntryStatus, requested: EntryStatus) -> None:
    """Raise InvalidStatusTransition unless current -> requested is permitted (same state is a no-op)"""
    if not can_transition(current, requested):
        raise InvalidStatusTransition(current.value, requested.value)
