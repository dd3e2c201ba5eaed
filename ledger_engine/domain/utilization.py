"""Credit limit utilization for card accounts"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from ledger_engine.config import settings
from ledger_engine.domain.models import Account, CreditUtilization, EntryKind, LedgerEntry, UtilizationAlert
from ledger_engine.domain.money import ZERO, percent_of
from ledger_engine.utils.date_utils import same_month


def is_card_payment(entry: LedgerEntry) -> bool:
    """Confirmed transfer credited to a card account, i.e. an invoice payment"""
    return entry.is_confirmed and entry.kind == EntryKind.RECEITA and entry.is_transfer


def classify_utilization(
    percent: Optional[Decimal],
    advisory_at: float | None = None,
    warning_at: float | None = None,
) -> Optional[UtilizationAlert]:
    """
    Map a utilization percentage to an alert level.

    Thresholds (inclusive):
    - >= 80%: warning
    - >= 60%: advisory
    - below:  ok
    """
    if percent is None:
        return None
    advisory = Decimal(str(advisory_at if advisory_at is not None else settings.utilization_advisory_percent))
    warning = Decimal(str(warning_at if warning_at is not None else settings.utilization_warning_percent))
    if percent >= warning:
        return UtilizationAlert.WARNING
    if percent >= advisory:
        return UtilizationAlert.ADVISORY
    return UtilizationAlert.OK


def calculate_credit_utilization(
    account: Account,
    entries: Iterable[LedgerEntry],
    today: date,
) -> CreditUtilization:
    """
    Compute invoice and limit usage figures as of `today`.

    - current invoice: confirmed CREDITO expenses dated in today's month
    - forward utilization: confirmed CREDITO expenses dated on/after today,
      net of card payments dated on/after today; negative when payments exceed
      the outstanding forward charges (a credit balance on the card)
    - limit remaining may go negative (over limit)
    - percent and alert are None when the account has no credit limit
    """
    current_invoice = ZERO
    forward_charges = ZERO
    forward_payments = ZERO
    paid_this_cycle = ZERO

    for entry in entries:
        if entry.account_id != account.id:
            continue
        if entry.is_credit_charge:
            if same_month(entry.date, today):
                current_invoice += entry.amount
            if entry.date >= today:
                forward_charges += entry.amount
        elif is_card_payment(entry):
            if same_month(entry.date, today):
                paid_this_cycle += entry.amount
            if entry.date >= today:
                forward_payments += entry.amount

    forward = forward_charges - forward_payments

    limit_remaining = None
    percent = None
    if account.is_credit_capable:
        limit_remaining = account.credit_limit - forward
        percent = percent_of(forward, account.credit_limit)

    return CreditUtilization(
        current_invoice_total=current_invoice,
        forward_utilization=forward,
        paid_this_cycle=paid_this_cycle,
        invoice_outstanding=max(current_invoice - paid_this_cycle, ZERO),
        limit_remaining=limit_remaining,
        utilization_percent=percent,
        alert=classify_utilization(percent),
    )
