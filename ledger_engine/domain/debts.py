"""Debt tracking: creation and payment recording"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from ledger_engine.domain.exceptions import ValidationError
from ledger_engine.domain.models import Debt, DebtKind, DebtStatus
from ledger_engine.domain.money import ZERO, split_amount, to_money
from ledger_engine.domain.validation import ensure_valid, validate_debt_form


def new_debt(
    owner_id: str,
    name: str,
    kind: DebtKind,
    principal,
    interest_rate,
    start_date: date,
    due_date: date,
    installments_total: int,
    notes: str | None = None,
) -> Debt:
    """Open a debt with nothing paid; installment value is the even split of the principal"""
    ensure_valid(
        validate_debt_form(
            {
                "name": name,
                "kind": kind,
                "principal": principal,
                "interest_rate": interest_rate,
                "start_date": start_date,
                "due_date": due_date,
                "installments_total": installments_total,
            }
        )
    )
    amount = to_money(principal, field="principal")
    return Debt(
        id=None,
        owner_id=owner_id,
        name=name.strip(),
        kind=DebtKind(kind),
        principal=amount,
        paid_amount=ZERO,
        remaining_amount=amount,
        interest_rate=Decimal(str(interest_rate)),
        installment_value=split_amount(amount, installments_total)[0],
        installments_paid=0,
        installments_total=installments_total,
        start_date=start_date,
        due_date=due_date,
        status=DebtStatus.ATIVA,
        notes=notes,
    )


def record_debt_payment(debt: Debt, amount, installments: int = 1) -> Debt:
    """
    Apply a payment and return the updated debt.

    Raises:
        ValidationError: Non-positive amount, payment on a settled debt, or
            a payment larger than the remaining amount
    """
    paid = to_money(amount)
    if paid <= 0:
        raise ValidationError("must be greater than zero", field="amount")
    if debt.status == DebtStatus.QUITADA:
        raise ValidationError("debt is already settled", field="status")
    if paid > debt.remaining_amount:
        raise ValidationError(f"exceeds remaining amount {debt.remaining_amount}", field="amount")

    remaining = debt.remaining_amount - paid
    return replace(
        debt,
        paid_amount=debt.paid_amount + paid,
        remaining_amount=remaining,
        installments_paid=min(debt.installments_paid + installments, debt.installments_total),
        status=DebtStatus.QUITADA if remaining == ZERO else debt.status,
    )


def refresh_debt_status(debt: Debt, today: date) -> Debt:
    """Flag overdue debts (past due date with a remainder) and clear the flag once current"""
    if debt.status == DebtStatus.QUITADA:
        return debt
    overdue = debt.due_date < today and debt.remaining_amount > 0
    status = DebtStatus.EM_ATRASO if overdue else DebtStatus.ATIVA
    return debt if status == debt.status else replace(debt, status=status)
