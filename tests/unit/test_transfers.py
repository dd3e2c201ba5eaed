"""Unit tests for transfers between own accounts"""

import pytest
from datetime import date
from decimal import Decimal
from ledger_engine.domain.exceptions import InvalidTransfer, PartialWriteFailure, ValidationError
from ledger_engine.domain.models import Account, AccountKind, EntryKind, EntryStatus
from ledger_engine.services.transfers import TransferService

OWNER = "user-1"


def test_transfer_creates_linked_legs(transfer_service, repository):
    transfer = transfer_service.transfer(OWNER, "acc-checking", "acc-card", "250.00", "Reserva", on=date(2024, 3, 10))

    assert transfer.amount == Decimal("250.00")
    assert transfer.date == date(2024, 3, 10)
    assert transfer.source_account_id == "acc-checking"
    assert transfer.destination_account_id == "acc-card"

    legs = list(repository.entries.values())
    assert len(legs) == 2
    assert {leg.kind for leg in legs} == {EntryKind.DESPESA, EntryKind.RECEITA}
    assert {leg.transfer_id for leg in legs} == {transfer.transfer_id}
    assert {leg.amount for leg in legs} == {Decimal("250.00")}
    assert {leg.status for leg in legs} == {EntryStatus.CONFIRMADO}
    assert {leg.category_id for leg in legs} == {None}


def test_transfer_defaults_to_today(transfer_service):
    transfer = transfer_service.transfer(OWNER, "acc-checking", "acc-card", "1.00", "Teste")
    assert transfer.date == date(2024, 3, 15)


def test_transfer_moves_balances(transfer_service, store):
    transfer_service.transfer(OWNER, "acc-checking", "acc-card", "250.00", "Reserva")

    assert store.balance_for(OWNER, "acc-checking").current_balance == Decimal("750.00")
    assert store.balance_for(OWNER, "acc-card").current_balance == Decimal("250.00")


def test_transfer_same_account_rejected(transfer_service, repository):
    with pytest.raises(InvalidTransfer):
        transfer_service.transfer(OWNER, "acc-checking", "acc-checking", "10.00", "Nada")
    assert repository.entries == {}


def test_transfer_foreign_account_rejected(transfer_service, repository):
    repository.create_account(Account(id="acc-foreign", owner_id="user-2", name="Outro", kind=AccountKind.CORRENTE))

    with pytest.raises(InvalidTransfer):
        transfer_service.transfer(OWNER, "acc-checking", "acc-foreign", "10.00", "Nada")
    assert repository.entries == {}


@pytest.mark.parametrize("amount,description", [("abc", "Reserva"), ("5.001", "Reserva"), ("5.00", " ")])
def test_transfer_form_errors(transfer_service, amount, description):
    with pytest.raises(ValidationError):
        transfer_service.transfer(OWNER, "acc-checking", "acc-card", amount, description)


@pytest.mark.parametrize("amount", ["0", "0.00", "-5.00"])
def test_transfer_amount_must_be_positive(transfer_service, repository, amount):
    with pytest.raises(InvalidTransfer):
        transfer_service.transfer(OWNER, "acc-checking", "acc-card", amount, "Reserva")
    assert repository.entries == {}


def test_transfer_second_leg_failure_leaves_nothing(flaky_store):
    store, repo = flaky_store(fail_create_at=2)
    service = TransferService(store)

    with pytest.raises(PartialWriteFailure) as exc:
        service.transfer(OWNER, "acc-checking", "acc-card", "100.00", "Reserva")

    assert exc.value.written == 1
    assert repo.entries == {}


def test_list_and_delete_transfers(transfer_service, store, make_entry):
    first = transfer_service.transfer(OWNER, "acc-checking", "acc-card", "10.00", "A", on=date(2024, 3, 1))
    second = transfer_service.transfer(OWNER, "acc-card", "acc-checking", "20.00", "B", on=date(2024, 3, 5))
    store.create_entry(make_entry())

    transfers = transfer_service.list_transfers(OWNER)
    assert [t.transfer_id for t in transfers] == [second.transfer_id, first.transfer_id]

    assert transfer_service.delete_transfer(OWNER, first.transfer_id) == 2
    assert [t.transfer_id for t in transfer_service.list_transfers(OWNER)] == [second.transfer_id]


def test_deleting_one_leg_deletes_both(transfer_service, store, repository):
    transfer = transfer_service.transfer(OWNER, "acc-checking", "acc-card", "10.00", "A")

    assert store.delete_entry(OWNER, transfer.debit.id) == 2
    assert repository.entries == {}


def test_transfer_legs_change_status_together(transfer_service, store):
    transfer = transfer_service.transfer(OWNER, "acc-checking", "acc-card", "10.00", "A")

    store.change_status(OWNER, transfer.credit.id, EntryStatus.PENDENTE)

    assert {e.status for e in store.transfer_legs(OWNER, transfer.transfer_id)} == {EntryStatus.PENDENTE}


def test_transfer_leg_amount_is_locked(transfer_service, store):
    transfer = transfer_service.transfer(OWNER, "acc-checking", "acc-card", "10.00", "A")

    with pytest.raises(ValidationError):
        store.update_entry(OWNER, transfer.debit.id, {"amount": "11.00"})
    assert store.update_entry(OWNER, transfer.debit.id, {"notes": "ok"}).notes == "ok"
