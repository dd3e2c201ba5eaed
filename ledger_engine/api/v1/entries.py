"""Ledger entry endpoints: single entries, installment purchases, status and deletion"""

from typing import List

from fastapi import APIRouter, Depends, Query

from ledger_engine.api.dependencies import get_identity, get_store
from ledger_engine.api.v1.schemas import (
    DeleteResponse,
    EntryCreate,
    EntryResponse,
    InstallmentCreate,
    InstallmentPreviewItem,
    InstallmentPreviewRequest,
    InstallmentPreviewResponse,
    StatusChangeRequest,
)
from ledger_engine.domain.installments import installment_schedule
from ledger_engine.domain.models import LedgerEntry
from ledger_engine.infrastructure.clients.identity import HeaderIdentity
from ledger_engine.services.session import session_guard
from ledger_engine.services.store import LedgerStore

router = APIRouter()


def _draft(owner_id: str, body: EntryCreate) -> LedgerEntry:
    return LedgerEntry(
        id=None,
        owner_id=owner_id,
        description=body.description,
        amount=body.amount,
        date=body.date,
        kind=body.kind,
        account_id=body.account_id,
        category_id=body.category_id,
        status=body.status,
        notes=body.notes,
        payment_method=body.payment_method,
        card_label=body.card_label,
    )


@router.get("/entries", response_model=List[EntryResponse])
def list_entries(
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    with session_guard(identity) as owner_id:
        return store.list_entries(owner_id)


@router.post("/entries", response_model=EntryResponse, status_code=201)
def create_entry(
    body: EntryCreate,
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    with session_guard(identity) as owner_id:
        return store.create_entry(_draft(owner_id, body))


@router.post("/entries/installments", response_model=List[EntryResponse], status_code=201)
def create_installments(
    body: InstallmentCreate,
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    """
    Split a card purchase into monthly installments.

    All installments are written or none are: a failure part-way deletes
    the ones already written and answers 503.
    """
    with session_guard(identity) as owner_id:
        return store.create_installments(_draft(owner_id, body), body.installment_count)


@router.patch("/entries/{entry_id}/status", response_model=List[EntryResponse])
def change_status(
    entry_id: str,
    body: StatusChangeRequest,
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    """Change status; propagates to installment siblings unless scope is 'single'"""
    with session_guard(identity) as owner_id:
        return store.change_status(owner_id, entry_id, body.status, body.scope)


@router.delete("/entries/{entry_id}", response_model=DeleteResponse)
def delete_entry(
    entry_id: str,
    single_installment: bool = Query(False, description="Remove only this installment of a group"),
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    with session_guard(identity) as owner_id:
        return DeleteResponse(deleted=store.delete_entry(owner_id, entry_id, single_installment))


@router.delete("/installment-groups/{group_id}", response_model=DeleteResponse)
def delete_group(
    group_id: str,
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    with session_guard(identity) as owner_id:
        return DeleteResponse(deleted=store.delete_group(owner_id, group_id))


@router.post("/installments/preview", response_model=InstallmentPreviewResponse)
def preview_installments(body: InstallmentPreviewRequest):
    """Show how a purchase would be split, without writing anything"""
    schedule = installment_schedule(body.amount, body.count, body.first_date)
    return InstallmentPreviewResponse(
        total=sum(amount for _, amount, _ in schedule),
        installments=[InstallmentPreviewItem(index=i, amount=a, date=d) for i, a, d in schedule],
    )
