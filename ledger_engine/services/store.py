"""Ledger entry store adapter: validated writes and multi-record units over a repository"""

import logging
import time
from dataclasses import asdict, fields, replace
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, NoReturn, Optional, Sequence, Tuple, Union

from ledger_engine.domain.balance import calculate_balance, summarize_accounts
from ledger_engine.domain.debts import new_debt, record_debt_payment, refresh_debt_status
from ledger_engine.domain.exceptions import (
    GroupedEntryError,
    InstallmentNotAllowed,
    NotAuthenticated,
    NotFound,
    PartialWriteFailure,
    ValidationError,
)
from ledger_engine.domain.installments import ensure_installments_allowed, generate_installment_entries, group_installments
from ledger_engine.domain.invoice import aggregate_invoice
from ledger_engine.domain.models import (
    Account,
    AccountKind,
    BalanceSummary,
    Category,
    CreditUtilization,
    Debt,
    DebtStatus,
    EntryFilter,
    EntryKind,
    EntryStatus,
    InstallmentGroup,
    InvoiceSummary,
    LedgerEntry,
    PaymentMethod,
    PortfolioSummary,
)
from ledger_engine.domain.money import ZERO, to_money
from ledger_engine.domain.status import can_transition, ensure_transition
from ledger_engine.domain.utilization import calculate_credit_utilization
from ledger_engine.domain.validation import (
    ensure_valid,
    validate_account_form,
    validate_category_form,
    validate_entry_form,
)
from ledger_engine.infrastructure.observability.logging import log_operation
from ledger_engine.infrastructure.observability.metrics import compensation_counter, entries_written_counter
from ledger_engine.services.repository import LedgerRepository
from ledger_engine.utils.date_utils import month_bounds

logger = logging.getLogger(__name__)

# Fields owned by the engine; changed only through dedicated operations
PROTECTED_ENTRY_FIELDS = frozenset(
    {"id", "owner_id", "status", "installment_group_id", "installment_index", "installment_count", "transfer_id"}
)
# Edits that would break the equal-amount/same-date pairing of transfer legs
TRANSFER_LOCKED_FIELDS = frozenset({"amount", "date", "account_id", "kind"})
# Edits that would break the group total or the monthly schedule of a purchase
INSTALLMENT_LOCKED_FIELDS = frozenset({"amount", "date", "account_id", "kind", "payment_method"})
ENTRY_FIELDS = frozenset(f.name for f in fields(LedgerEntry))
ACCOUNT_FIELDS = frozenset(f.name for f in fields(Account))
COSMETIC_CATEGORY_FIELDS = frozenset({"name", "color", "description"})

Undo = Tuple[str, Callable[[], Any]]


class StatusScope(str, Enum):
    GROUP = "group"  # propagate to every installment sibling
    SINGLE = "single"  # only the chosen installment


def _entry_form(entry: LedgerEntry, account: Optional[Account]) -> Dict[str, Any]:
    form = asdict(entry)
    form["credit_capable"] = account.is_credit_capable if account else None
    return form


class LedgerStore:
    """
    Typed, validating wrapper around a LedgerRepository.

    Multi-record operations (installment groups, transfer pairs, group-wide
    status changes and deletes) are written one record at a time. When a
    write fails part-way, the records already written are compensated in
    reverse order before a single PartialWriteFailure is raised, so callers
    never observe a half-written unit reported as success.
    """

    def __init__(self, repository: LedgerRepository, today: Callable[[], date] = date.today):
        self.repository = repository
        self.today = today

    # --- Units of work ---

    def _compensate(self, operation: str, undo: List[Undo]) -> List[str]:
        """Run undo actions newest first; return ids that could not be restored"""
        orphaned = []
        for record_id, action in reversed(undo):
            try:
                action()
            except Exception as e:
                orphaned.append(record_id)
                logger.error(
                    f"Compensation failed for record {record_id}: {e}",
                    extra={"step": "compensate", "operation": operation, "record_id": record_id},
                )
        compensation_counter.labels(operation=operation, outcome="orphaned" if orphaned else "clean").inc()
        return orphaned

    def _abort(self, operation: str, intended: int, undo: List[Undo], error: Exception) -> NoReturn:
        written = len(undo)
        logger.warning(
            f"{operation} failed after {written} of {intended} records: {error}",
            extra={"step": "unit_failed", "operation": operation},
        )
        orphaned = self._compensate(operation, undo) if undo else []
        if isinstance(error, NotAuthenticated) or not undo:
            raise error
        raise PartialWriteFailure(operation, intended, written, cause=error, orphaned=orphaned) from error

    def create_unit(self, operation: str, entries: Sequence[LedgerEntry]) -> List[LedgerEntry]:
        """Persist entries as one unit; on failure delete what was written and raise"""
        start_time = time.time()
        created: List[LedgerEntry] = []
        undo: List[Undo] = []
        try:
            for entry in entries:
                record = self.repository.create_entry(entry)
                created.append(record)
                undo.append((record.id, lambda r=record: self.repository.delete_entry(r.owner_id, r.id)))
        except Exception as e:
            self._abort(operation, len(entries), undo, e)

        entries_written_counter.labels(operation=operation).inc(len(created))
        if created:
            log_operation(operation, created[0].owner_id, len(created), (time.time() - start_time) * 1000)
        return created

    def _delete_unit(self, operation: str, entries: Sequence[LedgerEntry]) -> None:
        undo: List[Undo] = []
        try:
            for entry in entries:
                self.repository.delete_entry(entry.owner_id, entry.id)
                undo.append((entry.id, lambda e=entry: self.repository.create_entry(e)))
        except Exception as e:
            self._abort(operation, len(entries), undo, e)
        if entries:
            entries_written_counter.labels(operation=operation).inc(len(entries))

    def _update_unit(
        self, operation: str, changes: Sequence[Tuple[LedgerEntry, Dict[str, Any]]]
    ) -> List[LedgerEntry]:
        updated: List[LedgerEntry] = []
        undo: List[Undo] = []
        try:
            for entry, patch in changes:
                updated.append(self.repository.update_entry(entry.owner_id, entry.id, patch))
                revert = {key: getattr(entry, key) for key in patch}
                undo.append((entry.id, lambda e=entry, p=revert: self.repository.update_entry(e.owner_id, e.id, p)))
        except Exception as e:
            self._abort(operation, len(changes), undo, e)
        return updated

    # --- Entries ---

    def _check_entry(self, entry: LedgerEntry, account: Account, installments: bool = False) -> LedgerEntry:
        form = _entry_form(entry, account)
        if installments:
            form["installments"] = True
            form["installment_count"] = entry.installment_count
        ensure_valid(validate_entry_form(form))

        if entry.installment_group_id:
            if entry.payment_method != PaymentMethod.CREDITO:
                raise InstallmentNotAllowed("installment entries require payment method CREDITO")
            count, index = entry.installment_count, entry.installment_index
            if not count or count < 2 or not index or not 1 <= index <= count:
                raise ValidationError("installment index must be within 1..count", field="installment_index")
        return replace(
            entry,
            amount=to_money(entry.amount),
            date=entry.date if isinstance(entry.date, date) else date.fromisoformat(entry.date),
            kind=EntryKind(entry.kind),
            status=EntryStatus(entry.status),
            payment_method=PaymentMethod(entry.payment_method) if entry.payment_method else None,
        )

    def list_entries(self, owner_id: str, entry_filter: Optional[EntryFilter] = None) -> List[LedgerEntry]:
        return self.repository.list_entries(owner_id, entry_filter)

    def grouped_entries(
        self, owner_id: str, entry_filter: Optional[EntryFilter] = None
    ) -> List[Union[LedgerEntry, InstallmentGroup]]:
        return group_installments(self.list_entries(owner_id, entry_filter))

    def get_entry(self, owner_id: str, entry_id: str) -> LedgerEntry:
        entry = self.repository.get_entry(owner_id, entry_id)
        if entry is None:
            raise NotFound(f"entry {entry_id} not found")
        return entry

    def create_entry(self, entry: LedgerEntry) -> LedgerEntry:
        """Create a stand-alone entry (installments and transfers have their own operations)"""
        if entry.installment_group_id or entry.transfer_id:
            raise ValidationError("grouped and transfer entries are created as a unit", field="__all__")
        account = self.get_account(entry.owner_id, entry.account_id)
        return self.create_unit("entry", [self._check_entry(entry, account)])[0]

    def create_installments(self, draft: LedgerEntry, count: int) -> List[LedgerEntry]:
        """Split a card purchase into `count` monthly installments and persist them as one unit"""
        account = self.get_account(draft.owner_id, draft.account_id)
        ensure_installments_allowed(draft, account)
        self._check_entry(replace(draft, installment_count=count), account, installments=True)
        entries = generate_installment_entries(replace(draft, amount=to_money(draft.amount)), count, account)
        return self.create_unit("installments", entries)

    def update_entry(self, owner_id: str, entry_id: str, patch: Dict[str, Any]) -> LedgerEntry:
        """Edit entry fields of this entry only; installments keep their share of the purchase"""
        unknown = patch.keys() - ENTRY_FIELDS
        if unknown:
            raise ValidationError(f"unknown fields: {', '.join(sorted(unknown))}", field="__all__")
        protected = PROTECTED_ENTRY_FIELDS & patch.keys()
        if protected:
            raise ValidationError(f"cannot be changed here: {', '.join(sorted(protected))}", field="__all__")
        entry = self.get_entry(owner_id, entry_id)
        if entry.is_transfer and TRANSFER_LOCKED_FIELDS & patch.keys():
            raise ValidationError("transfer legs keep amount, date, account and kind", field="transfer_id")
        locked = INSTALLMENT_LOCKED_FIELDS & patch.keys()
        if entry.is_installment and locked:
            raise ValidationError(
                f"installments keep the purchase split, cannot change: {', '.join(sorted(locked))}",
                field="installment_group_id",
            )

        account = self.get_account(owner_id, patch.get("account_id", entry.account_id))
        checked = self._check_entry(replace(entry, **patch), account)
        return self.repository.update_entry(owner_id, entry_id, {key: getattr(checked, key) for key in patch})

    def group_members(self, owner_id: str, group_id: str) -> List[LedgerEntry]:
        """Installments of one purchase ordered by index"""
        members = self.repository.list_entries(owner_id, EntryFilter(installment_group_id=group_id))
        return sorted(members, key=lambda e: e.installment_index or 0)

    def transfer_legs(self, owner_id: str, transfer_id: str) -> List[LedgerEntry]:
        return self.repository.list_entries(owner_id, EntryFilter(transfer_id=transfer_id))

    def change_status(
        self,
        owner_id: str,
        entry_id: str,
        status: EntryStatus,
        scope: StatusScope = StatusScope.GROUP,
    ) -> List[LedgerEntry]:
        """
        Move an entry to a new status.

        With the default GROUP scope the change reaches every installment
        sibling; transfer legs always change together. Siblings already in
        the target status, and cancelled siblings, are left as they are.

        Returns:
            The entries that were actually updated
        """
        status = EntryStatus(status)
        entry = self.get_entry(owner_id, entry_id)
        ensure_transition(entry.status, status)

        if entry.is_transfer:
            targets = self.transfer_legs(owner_id, entry.transfer_id)
        elif entry.is_installment and StatusScope(scope) == StatusScope.GROUP:
            targets = self.group_members(owner_id, entry.installment_group_id)
        else:
            targets = [entry]

        changes = [
            (target, {"status": status})
            for target in targets
            if target.status != status and can_transition(target.status, status)
        ]
        return self._update_unit("status", changes)

    def delete_entry(self, owner_id: str, entry_id: str, single_installment: bool = False) -> int:
        """
        Delete an entry, keeping grouped records consistent.

        - transfer leg: both legs are removed
        - installment: rejected unless single_installment is requested
          (use delete_group to remove the whole purchase)

        Returns:
            Number of entries removed
        """
        entry = self.get_entry(owner_id, entry_id)
        if entry.is_transfer:
            legs = self.transfer_legs(owner_id, entry.transfer_id)
            self._delete_unit("transfer_delete", legs)
            return len(legs)
        if entry.is_installment and not single_installment:
            raise GroupedEntryError(entry_id, entry.installment_group_id)
        self.repository.delete_entry(owner_id, entry_id)
        return 1

    def delete_group(self, owner_id: str, group_id: str) -> int:
        """Delete every installment of a purchase as one unit"""
        members = self.group_members(owner_id, group_id)
        if not members:
            raise NotFound(f"installment group {group_id} not found")
        self._delete_unit("group_delete", members)
        return len(members)

    def delete_transfer(self, owner_id: str, transfer_id: str) -> int:
        legs = self.transfer_legs(owner_id, transfer_id)
        if not legs:
            raise NotFound(f"transfer {transfer_id} not found")
        self._delete_unit("transfer_delete", legs)
        return len(legs)

    # --- Accounts ---

    def _normalize_account(self, account: Account) -> Account:
        ensure_valid(validate_account_form(asdict(account)))
        limit = to_money(account.credit_limit, field="credit_limit") if account.credit_limit is not None else None
        invested = account.invested_amount
        return replace(
            account,
            name=account.name.strip(),
            kind=AccountKind(account.kind),
            opening_balance=to_money(account.opening_balance, field="opening_balance"),
            credit_limit=limit if limit else None,
            invested_amount=to_money(invested, field="invested_amount") if invested is not None else None,
        )

    def list_accounts(self, owner_id: str) -> List[Account]:
        return self.repository.list_accounts(owner_id)

    def get_account(self, owner_id: str, account_id: str) -> Account:
        account = self.repository.get_account(owner_id, account_id) if account_id else None
        if account is None:
            raise NotFound(f"account {account_id} not found")
        return account

    def create_account(self, account: Account) -> Account:
        return self.repository.create_account(self._normalize_account(account))

    def update_account(self, owner_id: str, account_id: str, patch: Dict[str, Any]) -> Account:
        if patch.keys() - ACCOUNT_FIELDS or {"id", "owner_id"} & patch.keys():
            raise ValidationError("only descriptive account fields can be changed", field="__all__")
        current = self.get_account(owner_id, account_id)
        merged = self._normalize_account(replace(current, **patch))
        normalized = {key: getattr(merged, key) for key in patch}
        return self.repository.update_account(owner_id, account_id, normalized)

    def delete_account(self, owner_id: str, account_id: str) -> None:
        if self.repository.list_entries(owner_id, EntryFilter(account_id=account_id)):
            raise ValidationError("account still has entries", field="account_id")
        self.repository.delete_account(owner_id, account_id)

    # --- Categories ---

    def list_categories(self, owner_id: str) -> List[Category]:
        return self.repository.list_categories(owner_id)

    def create_category(self, category: Category) -> Category:
        ensure_valid(validate_category_form(asdict(category)))
        return self.repository.create_category(replace(category, name=category.name.strip()))

    def update_category(self, owner_id: str, category_id: str, patch: Dict[str, Any]) -> Category:
        """Only cosmetic fields (name, color, description) may change"""
        locked = patch.keys() - COSMETIC_CATEGORY_FIELDS
        if locked:
            raise ValidationError(f"cannot be changed: {', '.join(sorted(locked))}", field="__all__")
        current = next((c for c in self.list_categories(owner_id) if c.id == category_id), None)
        if current is None:
            raise NotFound(f"category {category_id} not found")
        ensure_valid(validate_category_form(asdict(replace(current, **patch))))
        return self.repository.update_category(owner_id, category_id, patch)

    def delete_category(self, owner_id: str, category_id: str) -> None:
        if any(e.category_id == category_id for e in self.repository.list_entries(owner_id)):
            raise ValidationError("category is referenced by entries", field="category_id")
        self.repository.delete_category(owner_id, category_id)

    # --- Debts ---

    def list_debts(self, owner_id: str, today: Optional[date] = None) -> List[Debt]:
        """Debts with status refreshed for `today` (overdue detection is not persisted)"""
        today = today or self.today()
        return [refresh_debt_status(d, today) for d in self.repository.list_debts(owner_id)]

    def create_debt(self, debt: Debt) -> Debt:
        """Open a debt; it must start active with nothing paid and the full principal remaining"""
        opened = new_debt(
            debt.owner_id,
            debt.name,
            debt.kind,
            debt.principal,
            debt.interest_rate,
            debt.start_date,
            debt.due_date,
            debt.installments_total,
            debt.notes,
        )
        errors = {}
        if to_money(debt.paid_amount, field="paid_amount") != ZERO or debt.installments_paid:
            errors["paid_amount"] = "A new debt has nothing paid"
        if to_money(debt.remaining_amount, field="remaining_amount") != opened.principal:
            errors["remaining_amount"] = "Remaining amount must equal the principal"
        if debt.status != DebtStatus.ATIVA:
            errors["status"] = "A new debt starts active"
        ensure_valid(errors)
        return self.repository.create_debt(replace(opened, id=debt.id))

    def record_debt_payment(self, owner_id: str, debt_id: str, amount, installments: int = 1) -> Debt:
        current = next((d for d in self.repository.list_debts(owner_id) if d.id == debt_id), None)
        if current is None:
            raise NotFound(f"debt {debt_id} not found")
        paid = record_debt_payment(current, amount, installments)
        patch = {
            "paid_amount": paid.paid_amount,
            "remaining_amount": paid.remaining_amount,
            "installments_paid": paid.installments_paid,
            "status": paid.status,
        }
        return self.repository.update_debt(owner_id, debt_id, patch)

    def delete_debt(self, owner_id: str, debt_id: str) -> None:
        self.repository.delete_debt(owner_id, debt_id)

    # --- Read-side calculators ---

    def balance_for(self, owner_id: str, account_id: str) -> BalanceSummary:
        account = self.get_account(owner_id, account_id)
        return calculate_balance(account, self.list_entries(owner_id, EntryFilter(account_id=account_id)))

    def utilization_for(self, owner_id: str, account_id: str, today: Optional[date] = None) -> CreditUtilization:
        account = self.get_account(owner_id, account_id)
        entries = self.list_entries(owner_id, EntryFilter(account_id=account_id))
        return calculate_credit_utilization(account, entries, today or self.today())

    def invoice_for(
        self,
        owner_id: str,
        account_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> InvoiceSummary:
        """Invoice of a card account; the range defaults to the current calendar month"""
        account = self.get_account(owner_id, account_id)
        if not account.is_credit_capable:
            raise ValidationError("account has no credit limit", field="account_id")
        if start is None or end is None:
            month_start, month_end = month_bounds(self.today())
            start, end = start or month_start, end or month_end
        entries = self.list_entries(owner_id, EntryFilter(account_id=account_id, start=start, end=end))
        names = {c.id: c.name for c in self.list_categories(owner_id)}
        return aggregate_invoice(entries, names, start, end)

    def portfolio_summary(self, owner_id: str, today: Optional[date] = None) -> PortfolioSummary:
        return summarize_accounts(self.list_accounts(owner_id), self.list_entries(owner_id), today or self.today())
