"""
E2E scenarios over the full engine (store, transfers, settlement) with an in-memory repository.

Scenarios:
- card_cycle: installment purchase, monthly invoice, full payment, next month
- overspender: utilization climbs through advisory into warning, partial payment
- regret: purchase cancelled, then removed as a whole group
- expired_session: the store rejects the session mid-unit and nothing is left behind
"""

import pytest
from datetime import date
from decimal import Decimal
from ledger_engine.domain.exceptions import NotAuthenticated
from ledger_engine.domain.models import EntryKind, EntryStatus, UtilizationAlert
from ledger_engine.infrastructure.clients.identity import HeaderIdentity
from ledger_engine.services.session import session_guard

OWNER = "user-1"


@pytest.mark.e2e
def test_card_cycle(store, settlement_service, card_purchase, make_entry, repository):
    """
    Notebook bought in 4x on the 15th, groceries on the card, pay March in full.
    Expected: March invoice = first installment + groceries, April shows the next installment.
    """
    store.create_installments(card_purchase("2000.00", description="Notebook"), 4)
    store.create_entry(card_purchase("150.00", description="Supermercado", category_id="cat-food"))
    store.create_entry(make_entry("3000.00", kind=EntryKind.RECEITA, description="Salario"))

    march = store.invoice_for(OWNER, "acc-card")
    assert march.total == Decimal("650.00")
    assert march.installment_entry_count == 1
    assert [c.category_name for c in march.by_category] == ["Eletronicos", "Alimentacao"]

    usage = store.utilization_for(OWNER, "acc-card")
    assert usage.forward_utilization == Decimal("2150.00")
    assert usage.alert == UtilizationAlert.WARNING

    settlement = settlement_service.settle(OWNER, "acc-card", "acc-checking", march.total, march.start, march.end)
    assert settlement.remaining == Decimal("0.00")

    usage = store.utilization_for(OWNER, "acc-card")
    assert usage.forward_utilization == Decimal("1500.00")
    assert usage.invoice_outstanding == Decimal("0.00")
    assert store.balance_for(OWNER, "acc-checking").current_balance == Decimal("3350.00")

    april = store.invoice_for(OWNER, "acc-card", date(2024, 4, 1), date(2024, 4, 30))
    assert april.total == Decimal("500.00")
    assert april.entries[0].description == "Notebook (2/4)"


@pytest.mark.e2e
def test_overspender(store, settlement_service, card_purchase):
    """Limit 1000: 500 is ok, 650 is advisory, 900 is warning; a partial payment brings it back down"""
    store.create_entry(card_purchase("500.00"))
    assert store.utilization_for(OWNER, "acc-card").alert == UtilizationAlert.OK

    store.create_entry(card_purchase("150.00"))
    assert store.utilization_for(OWNER, "acc-card").alert == UtilizationAlert.ADVISORY

    store.create_entry(card_purchase("250.00"))
    assert store.utilization_for(OWNER, "acc-card").alert == UtilizationAlert.WARNING

    settlement = settlement_service.settle(
        OWNER, "acc-card", "acc-checking", "400.00", date(2024, 3, 1), date(2024, 3, 31), is_partial=True
    )

    assert settlement.remaining == Decimal("500.00")
    usage = store.utilization_for(OWNER, "acc-card")
    assert usage.utilization_percent == Decimal("50.00")
    assert usage.alert == UtilizationAlert.OK


@pytest.mark.e2e
def test_regret(store, card_purchase, repository):
    """Cancelling the head cancels every installment; the group then goes away in one call"""
    entries = store.create_installments(card_purchase("1200.00", description="Celular"), 12)

    store.change_status(OWNER, entries[0].id, EntryStatus.CANCELADO)

    assert {e.status for e in repository.entries.values()} == {EntryStatus.CANCELADO}
    assert store.utilization_for(OWNER, "acc-card").forward_utilization == Decimal("0.00")
    assert store.invoice_for(OWNER, "acc-card").total == Decimal("0.00")

    assert store.delete_group(OWNER, entries[0].installment_group_id) == 12
    assert repository.entries == {}


@pytest.mark.e2e
def test_expired_session(store, card_purchase, repository):
    """Session expires during a unit: compensation runs, the user is signed out, nothing persists"""
    identity = HeaderIdentity(OWNER)
    original = repository.create_entry
    writes = []

    def expire_after_two(entry):
        if len(writes) == 2:
            raise NotAuthenticated("token expired")
        writes.append(entry)
        return original(entry)

    repository.create_entry = expire_after_two

    with pytest.raises(NotAuthenticated):
        with session_guard(identity) as owner_id:
            assert owner_id == OWNER
            store.create_installments(card_purchase("300.00"), 6)

    assert identity.current_user_id() is None
    assert repository.entries == {}
    with pytest.raises(NotAuthenticated):
        with session_guard(identity):
            pass
