"""Unit tests for form validation rules"""

import pytest
from datetime import date
from ledger_engine.domain.exceptions import ValidationError
from ledger_engine.domain.validation import (
    ensure_valid,
    validate_account_form,
    validate_category_form,
    validate_debt_form,
    validate_entry_field,
    validate_entry_form,
    validate_invoice_payment_form,
    validate_transfer_form,
)


@pytest.fixture
def entry_form():
    return {
        "owner_id": "user-1",
        "description": "Mercado",
        "amount": "25.90",
        "date": "2024-03-15",
        "kind": "DESPESA",
        "status": "CONFIRMADO",
        "account_id": "acc-checking",
        "category_id": "cat-food",
        "payment_method": "DEBITO",
    }


def test_valid_entry_form(entry_form):
    assert validate_entry_form(entry_form) == {}


def test_entry_form_reports_every_failing_field(entry_form):
    entry_form.update(description="  ", amount="-1", date="2024-02-30", kind="OUTRO", account_id="")

    errors = validate_entry_form(entry_form)

    assert set(errors) == {"description", "amount", "date", "kind", "account_id"}


@pytest.mark.parametrize("amount", ["0", "0.00", "abc", "1.999", None])
def test_entry_amount_must_be_positive_cents(entry_form, amount):
    assert validate_entry_field("amount", amount, entry_form)


def test_entry_category_optional_for_transfer_legs(entry_form):
    entry_form["category_id"] = None
    assert "category_id" in validate_entry_form(entry_form)

    entry_form["transfer_id"] = "t-1"
    assert validate_entry_form(entry_form) == {}


def test_entry_credit_needs_credit_capable_account(entry_form):
    entry_form.update(payment_method="CREDITO", credit_capable=False)
    assert "payment_method" in validate_entry_form(entry_form)

    entry_form["credit_capable"] = True
    assert validate_entry_form(entry_form) == {}


def test_entry_installment_count_checked_only_for_installments(entry_form):
    entry_form["installment_count"] = 1
    assert validate_entry_form(entry_form) == {}

    entry_form["installments"] = True
    assert "installment_count" in validate_entry_form(entry_form)

    entry_form["installment_count"] = 24
    assert validate_entry_form(entry_form) == {}

    entry_form["installment_count"] = 25
    assert "installment_count" in validate_entry_form(entry_form)


def test_account_form():
    form = {"name": "Nubank", "kind": "CORRENTE", "opening_balance": "-50.00", "credit_limit": "2000",
            "invested_amount": None, "color": "#8A05BE"}
    assert validate_account_form(form) == {}

    form.update(name="", credit_limit="-1", color="purple")
    assert set(validate_account_form(form)) == {"name", "credit_limit", "color"}


def test_category_form():
    assert validate_category_form({"name": "Lazer", "kind": "DESPESA", "color": "#10B981"}) == {}
    assert set(validate_category_form({"name": "", "kind": "X", "color": ""})) == {"name", "kind", "color"}


def test_transfer_form():
    form = {"source_account_id": "a", "destination_account_id": "a", "amount": "10", "description": "Reserva"}
    assert validate_transfer_form(form) == {"destination_account_id": "Destination must differ from source"}

    form.update(destination_account_id="b", amount="0", description="")
    assert set(validate_transfer_form(form)) == {"amount", "description"}


def test_invoice_payment_form():
    assert validate_invoice_payment_form({"origin_account_id": "a", "amount": "10.00"}) == {}
    assert set(validate_invoice_payment_form({"origin_account_id": "", "amount": "-1"})) == {
        "origin_account_id",
        "amount",
    }


def test_debt_form():
    form = {
        "name": "Financiamento carro",
        "kind": "FINANCIAMENTO",
        "principal": "30000.00",
        "interest_rate": "1.5",
        "start_date": date(2024, 1, 10),
        "due_date": date(2026, 1, 10),
        "installments_total": 24,
    }
    assert validate_debt_form(form) == {}

    form.update(interest_rate="-1", due_date=date(2023, 1, 1), installments_total=0)
    assert set(validate_debt_form(form)) == {"interest_rate", "due_date", "installments_total"}


def test_ensure_valid_raises_with_errors():
    ensure_valid({})
    with pytest.raises(ValidationError) as exc:
        ensure_valid({"amount": "Amount must be greater than zero"})
    assert exc.value.errors == {"amount": "Amount must be greater than zero"}
