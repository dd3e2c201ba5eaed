"""Installment generation for credit card purchases"""

import re
import uuid
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Dict, List, Tuple, Union

from ledger_engine.config import settings
from ledger_engine.domain.exceptions import InstallmentNotAllowed, ValidationError
from ledger_engine.domain.models import Account, EntryStatus, InstallmentGroup, LedgerEntry, PaymentMethod
from ledger_engine.domain.money import ZERO, split_amount, to_money
from ledger_engine.utils.date_utils import add_months

_SUFFIX = re.compile(r" \(\d+/\d+\)$")


def ensure_installments_allowed(draft: LedgerEntry, account: Account) -> None:
    """Installments need a CREDITO payment on the credit-capable account they are charged to"""
    if draft.payment_method != PaymentMethod.CREDITO:
        raise InstallmentNotAllowed("installments require payment method CREDITO")
    if draft.account_id != account.id or not account.is_credit_capable:
        raise InstallmentNotAllowed(f"account {account.id} has no credit limit")


def installment_schedule(
    amount, count: int, first_date: date, max_installments: int | None = None
) -> List[Tuple[int, Decimal, date]]:
    """(index, amount, date) for each installment, without touching any account"""
    limit = max_installments or settings.max_installments
    if not isinstance(count, int) or isinstance(count, bool) or count < 2 or count > limit:
        raise ValidationError(f"installment count must be between 2 and {limit}", field="installment_count")
    amounts = split_amount(to_money(amount), count)
    return [(index, part, add_months(first_date, index - 1)) for index, part in enumerate(amounts, start=1)]


def generate_installment_entries(
    draft: LedgerEntry,
    count: int,
    account: Account,
    max_installments: int | None = None,
) -> List[LedgerEntry]:
    """
    Expand one card purchase into `count` linked monthly entries.

    Requirements:
    - Payment method CREDITO on a credit-capable account
    - 2 <= count <= max_installments (24 by default)
    - Amounts follow split_amount: the last installment absorbs the remainder
    - Dates one calendar month apart, day clamped to shorter months
    - A cancelled draft is rejected; a pending one stays pending

    Args:
        draft: Purchase with the full amount and first installment date
        count: Number of installments
        account: Account the purchase is charged to

    Returns:
        Unsaved entries ordered by installment index

    Example:
        "TV" 100.00 in 3x from 2024-01-31 →
        "TV (1/3)" 33.33 2024-01-31, "TV (2/3)" 33.33 2024-02-29, "TV (3/3)" 33.34 2024-03-31
    """
    schedule = installment_schedule(draft.amount, count, draft.date, max_installments)
    ensure_installments_allowed(draft, account)

    if draft.status == EntryStatus.CANCELADO:
        raise ValidationError("a cancelled purchase cannot be split into installments", field="status")

    group_id = str(uuid.uuid4())
    status = EntryStatus.PENDENTE if draft.status == EntryStatus.PENDENTE else EntryStatus.CONFIRMADO

    return [
        replace(
            draft,
            id=None,
            amount=amount,
            date=when,
            description=f"{draft.description} ({index}/{count})",
            status=status,
            installment_group_id=group_id,
            installment_index=index,
            installment_count=count,
            transfer_id=None,
        )
        for index, amount, when in schedule
    ]


def base_description(description: str) -> str:
    """Strip the trailing ' (i/N)' installment suffix"""
    return _SUFFIX.sub("", description)


def group_installments(entries: List[LedgerEntry]) -> List[Union[LedgerEntry, InstallmentGroup]]:
    """
    Collapse installment siblings into one InstallmentGroup each.

    Stand-alone entries pass through; a group takes the position of its
    first member in the input order.
    """
    members: Dict[str, List[LedgerEntry]] = {}
    for entry in entries:
        if entry.installment_group_id:
            members.setdefault(entry.installment_group_id, []).append(entry)

    result: List[Union[LedgerEntry, InstallmentGroup]] = []
    emitted = set()
    for entry in entries:
        group_id = entry.installment_group_id
        if not group_id:
            result.append(entry)
            continue
        if group_id in emitted:
            continue
        emitted.add(group_id)
        ordered = sorted(members[group_id], key=lambda e: e.installment_index or 0)
        result.append(
            InstallmentGroup(
                group_id=group_id,
                description=base_description(ordered[0].description),
                total=sum((e.amount for e in ordered), ZERO),
                first_date=ordered[0].date,
                members=ordered,
            )
        )
    return result
