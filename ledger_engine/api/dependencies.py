"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from ledger_engine.infrastructure.clients.identity import HeaderIdentity
from ledger_engine.infrastructure.database.repositories import SqlLedgerRepository
from ledger_engine.infrastructure.database.session import get_db
from ledger_engine.services.settlement import SettlementService
from ledger_engine.services.store import LedgerStore
from ledger_engine.services.transfers import TransferService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_identity(x_user_id: str | None = Header(default=None)) -> HeaderIdentity:
    """Caller identity asserted by the gateway in X-User-Id"""
    return HeaderIdentity(x_user_id)


def get_store(db: Session = Depends(get_db)) -> LedgerStore:
    """Provide a ledger store over the request's database session"""
    return LedgerStore(SqlLedgerRepository(db))


def get_transfer_service(store: LedgerStore = Depends(get_store)) -> TransferService:
    return TransferService(store)


def get_settlement_service(transfers: TransferService = Depends(get_transfer_service)) -> SettlementService:
    return SettlementService(transfers)
