"""Card invoice aggregation by category and by day"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Mapping

from ledger_engine.domain.exceptions import ValidationError
from ledger_engine.domain.models import CategoryTotal, DailyTotal, InvoiceSummary, LedgerEntry
from ledger_engine.domain.money import CENT, ZERO, percent_of

UNCATEGORIZED = "Sem categoria"


def aggregate_invoice(
    entries: Iterable[LedgerEntry],
    category_names: Mapping[str, str],
    start: date,
    end: date,
) -> InvoiceSummary:
    """
    Build the invoice for [start, end] from a card account's entries.

    Only confirmed CREDITO expenses inside the range are included. Category
    totals are sorted by total descending, then name ascending; day totals
    are chronological. An empty invoice has zero KPIs and empty groups.

    Args:
        entries: Entries of one card account (other accounts should be pre-filtered)
        category_names: category id -> display name
        start: First day of the billing period (inclusive)
        end: Last day of the billing period (inclusive)
    """
    if start > end:
        raise ValidationError("period start must not be after its end", field="start")

    items = sorted(
        (e for e in entries if e.is_credit_charge and start <= e.date <= end),
        key=lambda e: (e.date, e.installment_index or 0),
    )
    total = sum((e.amount for e in items), ZERO)

    per_category: Dict[str, Decimal] = {}
    per_day: Dict[date, Decimal] = {}
    for entry in items:
        name = category_names.get(entry.category_id or "", UNCATEGORIZED)
        per_category[name] = per_category.get(name, ZERO) + entry.amount
        per_day[entry.date] = per_day.get(entry.date, ZERO) + entry.amount

    by_category = [
        CategoryTotal(category_name=name, total=amount, percent_of_invoice=percent_of(amount, total))
        for name, amount in sorted(per_category.items(), key=lambda kv: (-kv[1], kv[0]))
    ]
    by_day = [DailyTotal(day=day, total=per_day[day]) for day in sorted(per_day)]

    count = len(items)
    return InvoiceSummary(
        start=start,
        end=end,
        total=total,
        entry_count=count,
        average_per_entry=(total / count).quantize(CENT, rounding=ROUND_HALF_UP) if count else ZERO,
        max_entry=max((e.amount for e in items), default=ZERO),
        installment_entry_count=sum(1 for e in items if e.is_installment),
        by_category=by_category,
        by_day=by_day,
        entries=items,
    )
