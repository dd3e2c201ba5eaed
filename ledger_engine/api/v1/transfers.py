"""Transfers between the caller's own accounts"""

from typing import List

from fastapi import APIRouter, Depends

from ledger_engine.api.dependencies import get_identity, get_transfer_service
from ledger_engine.api.v1.schemas import DeleteResponse, TransferRequest, TransferResponse
from ledger_engine.infrastructure.clients.identity import HeaderIdentity
from ledger_engine.services.session import session_guard
from ledger_engine.services.transfers import TransferService

router = APIRouter()


@router.post("/transfers", response_model=TransferResponse, status_code=201)
def create_transfer(
    body: TransferRequest,
    identity: HeaderIdentity = Depends(get_identity),
    transfers: TransferService = Depends(get_transfer_service),
):
    with session_guard(identity) as owner_id:
        transfer = transfers.transfer(
            owner_id,
            body.source_account_id,
            body.destination_account_id,
            body.amount,
            body.description,
            on=body.on,
        )
    return TransferResponse.from_transfer(transfer)


@router.get("/transfers", response_model=List[TransferResponse])
def list_transfers(
    identity: HeaderIdentity = Depends(get_identity),
    transfers: TransferService = Depends(get_transfer_service),
):
    with session_guard(identity) as owner_id:
        return [TransferResponse.from_transfer(t) for t in transfers.list_transfers(owner_id)]


@router.delete("/transfers/{transfer_id}", response_model=DeleteResponse)
def delete_transfer(
    transfer_id: str,
    identity: HeaderIdentity = Depends(get_identity),
    transfers: TransferService = Depends(get_transfer_service),
):
    """Remove both legs of a transfer"""
    with session_guard(identity) as owner_id:
        return DeleteResponse(deleted=transfers.delete_transfer(owner_id, transfer_id))
