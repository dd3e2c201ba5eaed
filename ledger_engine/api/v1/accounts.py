"""Account and category endpoints, plus the per-account balance, utilization and invoice views"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ledger_engine.api.dependencies import get_identity, get_settlement_service, get_store
from ledger_engine.api.v1.schemas import (
    AccountCreate,
    AccountResponse,
    BalanceResponse,
    CategoryCreate,
    CategoryResponse,
    InvoicePaymentRequest,
    InvoiceResponse,
    SettlementResponse,
    TransferResponse,
    UtilizationResponse,
)
from ledger_engine.domain.models import Account, Category
from ledger_engine.infrastructure.clients.identity import HeaderIdentity
from ledger_engine.services.session import session_guard
from ledger_engine.services.settlement import SettlementService
from ledger_engine.services.store import LedgerStore

router = APIRouter()


@router.get("/accounts", response_model=List[AccountResponse])
def list_accounts(
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    with session_guard(identity) as owner_id:
        return store.list_accounts(owner_id)


@router.post("/accounts", response_model=AccountResponse, status_code=201)
def create_account(
    body: AccountCreate,
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    with session_guard(identity) as owner_id:
        return store.create_account(Account(id=None, owner_id=owner_id, **body.model_dump()))


@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    with session_guard(identity) as owner_id:
        return store.list_categories(owner_id)


@router.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category(
    body: CategoryCreate,
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    with session_guard(identity) as owner_id:
        return store.create_category(Category(id=None, owner_id=owner_id, **body.model_dump()))


@router.get("/accounts/{account_id}/balance", response_model=BalanceResponse)
def get_balance(
    account_id: str,
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    """Opening balance plus confirmed receipts minus confirmed expenses"""
    with session_guard(identity) as owner_id:
        summary = store.balance_for(owner_id, account_id)
    return BalanceResponse(
        account_id=account_id,
        receipts_total=summary.receipts_total,
        expenses_total=summary.expenses_total,
        current_balance=summary.current_balance,
    )


@router.get("/accounts/{account_id}/utilization", response_model=UtilizationResponse)
def get_utilization(
    account_id: str,
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    """
    Credit limit usage of a card account.

    Returns:
        Current invoice, forward utilization (current and future confirmed
        card charges net of card payments) and the alert level
    """
    with session_guard(identity) as owner_id:
        usage = store.utilization_for(owner_id, account_id)
    return UtilizationResponse(account_id=account_id, **vars(usage))


@router.get("/accounts/{account_id}/invoice", response_model=InvoiceResponse)
def get_invoice(
    account_id: str,
    start: Optional[date] = Query(None, description="First day, defaults to start of current month"),
    end: Optional[date] = Query(None, description="Last day, defaults to end of current month"),
    identity: HeaderIdentity = Depends(get_identity),
    store: LedgerStore = Depends(get_store),
):
    with session_guard(identity) as owner_id:
        return store.invoice_for(owner_id, account_id, start, end)


@router.post("/accounts/{account_id}/invoice/payments", response_model=SettlementResponse, status_code=201)
def pay_invoice(
    account_id: str,
    body: InvoicePaymentRequest,
    identity: HeaderIdentity = Depends(get_identity),
    settlements: SettlementService = Depends(get_settlement_service),
):
    """
    Pay a card invoice from another account.

    A full payment must equal the invoice total for [start, end]; a partial
    one may be any positive amount up to it. Mismatches answer 409.
    """
    with session_guard(identity) as owner_id:
        settlement = settlements.settle(
            owner_id,
            account_id,
            body.origin_account_id,
            body.amount,
            body.start,
            body.end,
            is_partial=body.is_partial,
            on=body.on,
        )
    return SettlementResponse(
        transfer=TransferResponse.from_transfer(settlement.transfer),
        invoice_total=settlement.invoice_total,
        amount_paid=settlement.amount_paid,
        remaining=settlement.remaining,
        is_partial=settlement.is_partial,
    )
