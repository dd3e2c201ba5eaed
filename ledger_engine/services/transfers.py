"""Transfers between two of the user's accounts as paired debit/credit entries"""

import logging
import uuid
from datetime import date
from typing import Dict, List, Optional

from ledger_engine.domain.exceptions import InvalidTransfer, NotFound
from ledger_engine.domain.models import EntryKind, EntryStatus, LedgerEntry, Transfer
from ledger_engine.domain.money import format_currency, to_money
from ledger_engine.domain.validation import ensure_valid, validate_transfer_form
from ledger_engine.infrastructure.observability.metrics import transfer_counter
from ledger_engine.services.store import LedgerStore

logger = logging.getLogger(__name__)


def pair_transfer_legs(entries: List[LedgerEntry]) -> List[Transfer]:
    """Rebuild Transfer views from entries sharing a transfer id, newest first"""
    legs: Dict[str, Dict[EntryKind, LedgerEntry]] = {}
    for entry in entries:
        if entry.transfer_id:
            legs.setdefault(entry.transfer_id, {})[entry.kind] = entry

    transfers = [
        Transfer(
            transfer_id=transfer_id,
            amount=pair[EntryKind.DESPESA].amount,
            date=pair[EntryKind.DESPESA].date,
            description=pair[EntryKind.DESPESA].description,
            debit=pair[EntryKind.DESPESA],
            credit=pair[EntryKind.RECEITA],
        )
        for transfer_id, pair in legs.items()
        if EntryKind.DESPESA in pair and EntryKind.RECEITA in pair
    ]
    return sorted(transfers, key=lambda t: t.date, reverse=True)


class TransferService:
    """Moves money between accounts of the same owner"""

    def __init__(self, store: LedgerStore):
        self.store = store

    def transfer(
        self,
        owner_id: str,
        source_account_id: str,
        destination_account_id: str,
        amount,
        description: str,
        on: Optional[date] = None,
    ) -> Transfer:
        """
        Create a confirmed DESPESA on the source and RECEITA on the destination.

        Both legs share a new transfer id, amount, date and description and
        are written as one unit: if the second write fails the first is
        deleted and PartialWriteFailure is raised.

        Raises:
            ValidationError: Missing description or an amount that is not a number
            InvalidTransfer: Same account, amount not above zero, or an account
                unknown to this owner
        """
        if source_account_id and source_account_id == destination_account_id:
            transfer_counter.labels(outcome="rejected").inc()
            raise InvalidTransfer("source and destination must be different accounts")
        value = to_money(amount)
        if value <= 0:
            transfer_counter.labels(outcome="rejected").inc()
            raise InvalidTransfer("transfer amount must be greater than zero")
        ensure_valid(
            validate_transfer_form(
                {
                    "source_account_id": source_account_id,
                    "destination_account_id": destination_account_id,
                    "amount": amount,
                    "description": description,
                }
            )
        )

        try:
            source = self.store.get_account(owner_id, source_account_id)
            destination = self.store.get_account(owner_id, destination_account_id)
        except NotFound as e:
            transfer_counter.labels(outcome="rejected").inc()
            raise InvalidTransfer(str(e)) from e
        if source.owner_id != owner_id or destination.owner_id != owner_id:
            transfer_counter.labels(outcome="rejected").inc()
            raise InvalidTransfer("accounts must belong to the same owner")

        transfer_id = str(uuid.uuid4())
        when = on or self.store.today()
        legs = [
            LedgerEntry(
                id=None,
                owner_id=owner_id,
                description=description.strip(),
                amount=value,
                date=when,
                kind=kind,
                account_id=account_id,
                category_id=None,
                status=EntryStatus.CONFIRMADO,
                transfer_id=transfer_id,
            )
            for kind, account_id in ((EntryKind.DESPESA, source.id), (EntryKind.RECEITA, destination.id))
        ]

        try:
            debit, credit = self.store.create_unit("transfer", legs)
        except Exception:
            transfer_counter.labels(outcome="failed").inc()
            raise

        transfer_counter.labels(outcome="created").inc()
        logger.info(
            f"Transfer {format_currency(value)} from {source.name} to {destination.name}",
            extra={"owner_id": owner_id, "transfer_id": transfer_id, "step": "transfer_created"},
        )
        return Transfer(
            transfer_id=transfer_id,
            amount=value,
            date=when,
            description=debit.description,
            debit=debit,
            credit=credit,
        )

    def list_transfers(self, owner_id: str) -> List[Transfer]:
        entries = [e for e in self.store.list_entries(owner_id) if e.transfer_id]
        return pair_transfer_legs(entries)

    def delete_transfer(self, owner_id: str, transfer_id: str) -> int:
        return self.store.delete_transfer(owner_id, transfer_id)
