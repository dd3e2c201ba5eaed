"""
Form validation rules, independent of any UI.

Each `validate_<form>_field(field, value, form)` returns an error message,
or an empty string when the value is acceptable. `validate_<form>_form`
runs every relevant field over a form snapshot (a plain mapping) and
returns only the failing fields. `ensure_valid` turns a non-empty error
map into a ValidationError.
"""

import re
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from ledger_engine.config import settings
from ledger_engine.domain.exceptions import ValidationError
from ledger_engine.domain.models import AccountKind, DebtKind, EntryKind, EntryStatus, PaymentMethod
from ledger_engine.domain.money import to_money

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")

Form = Mapping[str, Any]


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _money(value: Any) -> Optional[Decimal]:
    if _blank(value):
        return None
    try:
        return to_money(value)
    except ValidationError:
        return None


def _date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            return None
    return None


def _member(enum_cls, value: Any) -> bool:
    try:
        enum_cls(value)
    except ValueError:
        return False
    return True


def _int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _collect(validator: Callable[[str, Any, Form], str], fields: Iterable[str], form: Form) -> Dict[str, str]:
    errors = {}
    for name in fields:
        message = validator(name, form.get(name), form)
        if message:
            errors[name] = message
    return errors


def ensure_valid(errors: Dict[str, str]) -> None:
    if errors:
        raise ValidationError(errors)


# --- Ledger entries ---

def validate_entry_field(field: str, value: Any, form: Form) -> str:
    if field == "owner_id":
        if _blank(value):
            return "Owner is required"
    elif field == "description":
        if _blank(value):
            return "Description is required"
    elif field == "amount":
        amount = _money(value)
        if amount is None or amount <= 0:
            return "Amount must be greater than zero"
    elif field == "date":
        if _date(value) is None:
            return "Invalid date"
    elif field == "kind":
        if not _member(EntryKind, value):
            return "Kind must be RECEITA or DESPESA"
    elif field == "status":
        if value is not None and not _member(EntryStatus, value):
            return "Invalid status"
    elif field == "account_id":
        if _blank(value):
            return "Select an account"
    elif field == "category_id":
        # Transfer legs move money between own accounts and carry no category
        if _blank(value) and not form.get("transfer_id"):
            return "Select a category"
    elif field == "payment_method":
        if value is None:
            return ""
        if not _member(PaymentMethod, value):
            return "Select a payment method"
        if PaymentMethod(value) == PaymentMethod.CREDITO and form.get("credit_capable") is False:
            return "Account has no credit limit"
    elif field == "installment_count":
        count = _int(value)
        limit = settings.max_installments
        if count is None or count < 2 or count > limit:
            return f"Installment count must be between 2 and {limit}"
    return ""


def validate_entry_form(form: Form) -> Dict[str, str]:
    """Validate an entry form; installment_count is checked only when form['installments'] is truthy"""
    fields = ["owner_id", "description", "amount", "date", "kind", "status", "account_id", "category_id", "payment_method"]
    if form.get("installments"):
        fields.append("installment_count")
    return _collect(validate_entry_field, fields, form)


# --- Accounts ---

def validate_account_field(field: str, value: Any, form: Form) -> str:
    if field == "name":
        if _blank(value):
            return "Account name is required"
    elif field == "kind":
        if not _member(AccountKind, value):
            return "Account kind is required"
    elif field == "opening_balance":
        if _blank(value) or _money(value) is None:
            return "Opening balance must be a number"
    elif field in ("credit_limit", "invested_amount"):
        if _blank(value):
            return ""
        amount = _money(value)
        if amount is None:
            return "Must be a number"
        if amount < 0:
            return "Cannot be negative"
    elif field == "color":
        if value is not None and not _HEX_COLOR.match(str(value)):
            return "Color must be a hex value like #3B82F6"
    return ""


def validate_account_form(form: Form) -> Dict[str, str]:
    fields = ["name", "kind", "opening_balance", "credit_limit", "invested_amount", "color"]
    return _collect(validate_account_field, fields, form)


# --- Categories ---

def validate_category_field(field: str, value: Any, form: Form) -> str:
    if field == "name":
        if _blank(value):
            return "Category name is required"
    elif field == "kind":
        if not _member(EntryKind, value):
            return "Kind must be RECEITA or DESPESA"
    elif field == "color":
        if _blank(value) or not _HEX_COLOR.match(str(value)):
            return "Color must be a hex value like #10B981"
    return ""


def validate_category_form(form: Form) -> Dict[str, str]:
    return _collect(validate_category_field, ["name", "kind", "color"], form)


# --- Transfers ---

def validate_transfer_field(field: str, value: Any, form: Form) -> str:
    if field == "source_account_id":
        if _blank(value):
            return "Select the source account"
    elif field == "destination_account_id":
        if _blank(value):
            return "Select the destination account"
        if value == form.get("source_account_id"):
            return "Destination must differ from source"
    elif field == "amount":
        amount = _money(value)
        if amount is None or amount <= 0:
            return "Amount must be greater than zero"
    elif field == "description":
        if _blank(value):
            return "Description is required"
    return ""


def validate_transfer_form(form: Form) -> Dict[str, str]:
    fields = ["source_account_id", "destination_account_id", "amount", "description"]
    return _collect(validate_transfer_field, fields, form)


# --- Invoice payments ---

def validate_invoice_payment_field(field: str, value: Any, form: Form) -> str:
    if field == "origin_account_id":
        if _blank(value):
            return "Select the paying account"
    elif field == "amount":
        amount = _money(value)
        if amount is None or amount <= 0:
            return "Enter a valid payment amount"
    return ""


def validate_invoice_payment_form(form: Form) -> Dict[str, str]:
    return _collect(validate_invoice_payment_field, ["origin_account_id", "amount"], form)


# --- Debts ---

def validate_debt_field(field: str, value: Any, form: Form) -> str:
    if field == "name":
        if _blank(value):
            return "Name is required"
    elif field == "kind":
        if not _member(DebtKind, value):
            return "Kind is required"
    elif field == "principal":
        amount = _money(value)
        if amount is None or amount <= 0:
            return "Total amount must be greater than zero"
    elif field == "interest_rate":
        if _blank(value):
            return "Interest rate is required"
        try:
            rate = Decimal(str(value))
        except ArithmeticError:
            return "Interest rate must be a number"
        if not rate.is_finite() or rate < 0:
            return "Interest rate cannot be negative"
    elif field == "start_date":
        if _date(value) is None:
            return "Invalid start date"
    elif field == "due_date":
        due = _date(value)
        if due is None:
            return "Invalid due date"
        start = _date(form.get("start_date"))
        if start is not None and due < start:
            return "Due date must be after the start date"
    elif field == "installments_total":
        count = _int(value)
        if count is None or count < 1:
            return "Installment count must be at least 1"
    return ""


def validate_debt_form(form: Form) -> Dict[str, str]:
    fields = ["name", "kind", "principal", "interest_rate", "start_date", "due_date", "installments_total"]
    return _collect(validate_debt_field, fields, form)
