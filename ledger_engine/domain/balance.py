"""Account balance derivation from confirmed entries"""

from datetime import date
from typing import Iterable, List

from ledger_engine.domain.models import Account, BalanceSummary, EntryKind, LedgerEntry, PortfolioSummary
from ledger_engine.domain.money import ZERO
from ledger_engine.utils.date_utils import same_month


def calculate_balance(account: Account, entries: Iterable[LedgerEntry]) -> BalanceSummary:
    """
    Derive receipts, expenses and current balance for one account.

    Only CONFIRMADO entries posted to this account count; PENDENTE and
    CANCELADO entries are ignored.

    current_balance = opening_balance + receipts_total - expenses_total
    """
    receipts = ZERO
    expenses = ZERO
    for entry in entries:
        if entry.account_id != account.id or not entry.is_confirmed:
            continue
        if entry.kind == EntryKind.RECEITA:
            receipts += entry.amount
        else:
            expenses += entry.amount

    return BalanceSummary(
        receipts_total=receipts,
        expenses_total=expenses,
        current_balance=account.opening_balance + receipts - expenses,
    )


def summarize_accounts(accounts: List[Account], entries: List[LedgerEntry], today: date) -> PortfolioSummary:
    """Overview totals across accounts; card usage is the current cycle's charges"""
    opening = current = receipts = expenses = invested = limit = usage = ZERO
    for account in accounts:
        own = [e for e in entries if e.account_id == account.id]
        summary = calculate_balance(account, own)
        opening += account.opening_balance
        current += summary.current_balance
        receipts += summary.receipts_total
        expenses += summary.expenses_total
        invested += account.invested_amount or ZERO
        if account.is_credit_capable:
            limit += account.credit_limit
            usage += sum((e.amount for e in own if e.is_credit_charge and same_month(e.date, today)), ZERO)

    return PortfolioSummary(
        opening_total=opening,
        current_total=current,
        receipts_total=receipts,
        expenses_total=expenses,
        invested_total=invested,
        credit_limit_total=limit,
        card_usage_total=usage,
        card_available_total=limit - usage,
    )
