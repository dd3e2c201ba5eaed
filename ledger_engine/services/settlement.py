"""Card invoice payment through the transfer engine"""

import logging
from datetime import date
from typing import Optional

from ledger_engine.domain.exceptions import AmountMismatch, InvalidTransfer
from ledger_engine.domain.models import Settlement
from ledger_engine.domain.money import format_currency, to_money
from ledger_engine.domain.validation import ensure_valid, validate_invoice_payment_form
from ledger_engine.infrastructure.observability.metrics import record_settlement
from ledger_engine.services.transfers import TransferService

logger = logging.getLogger(__name__)


class SettlementService:
    """Pays a card invoice from another account"""

    def __init__(self, transfers: TransferService):
        self.transfers = transfers
        self.store = transfers.store

    def settle(
        self,
        owner_id: str,
        card_account_id: str,
        origin_account_id: str,
        amount,
        start: date,
        end: date,
        is_partial: bool = False,
        on: Optional[date] = None,
    ) -> Settlement:
        """
        Pay all or part of the invoice for [start, end].

        Flow:
        1. Validate the payment form (origin account, positive amount)
        2. Aggregate the card invoice for the period
        3. Full payment must match the invoice total to the cent; a partial
           one must not exceed it
        4. Transfer origin -> card, dated `on` (default today); the card-side
           RECEITA nets against forward utilization

        The origin account may go negative; no balance floor is enforced.

        Raises:
            ValidationError: Bad form input
            InvalidTransfer: Card account has no credit limit
            AmountMismatch: Amount does not fit the invoice total
        """
        ensure_valid(validate_invoice_payment_form({"origin_account_id": origin_account_id, "amount": amount}))
        value = to_money(amount)

        card = self.store.get_account(owner_id, card_account_id)
        if not card.is_credit_capable:
            raise InvalidTransfer(f"account {card.name} has no credit limit")

        invoice = self.store.invoice_for(owner_id, card_account_id, start, end)
        if not is_partial and value != invoice.total:
            raise AmountMismatch(invoice.total, value)
        if is_partial and value > invoice.total:
            raise AmountMismatch(invoice.total, value, f"partial payment {value} exceeds invoice total {invoice.total}")

        transfer = self.transfers.transfer(
            owner_id,
            origin_account_id,
            card_account_id,
            value,
            f"Pagamento fatura {card.name} {start.isoformat()}..{end.isoformat()}",
            on=on,
        )
        record_settlement(is_partial)
        logger.info(
            f"Invoice payment {format_currency(value)} of {format_currency(invoice.total)}",
            extra={"owner_id": owner_id, "transfer_id": transfer.transfer_id, "step": "invoice_settled"},
        )
        return Settlement(
            transfer=transfer,
            invoice_total=invoice.total,
            amount_paid=value,
            remaining=invoice.total - value,
            is_partial=is_partial,
        )
