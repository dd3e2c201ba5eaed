"""Data access layer backed by SQLAlchemy"""

from decimal import Decimal
from enum import Enum
from functools import wraps
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_engine.domain.exceptions import NotAuthenticated, NotFound, StorageError
from ledger_engine.domain.models import (
    Account,
    AccountKind,
    Category,
    Debt,
    DebtKind,
    DebtStatus,
    EntryFilter,
    EntryKind,
    EntryStatus,
    LedgerEntry,
    PaymentMethod,
)
from ledger_engine.infrastructure.database.models import AccountRecord, CategoryRecord, DebtRecord, LedgerEntryRecord
from ledger_engine.services.repository import LedgerRepository

CENT = Decimal("0.01")


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _money(value) -> Optional[Decimal]:
    return None if value is None else Decimal(value).quantize(CENT)


def _to_account(row: AccountRecord) -> Account:
    return Account(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        kind=AccountKind(row.kind),
        opening_balance=_money(row.opening_balance),
        credit_limit=_money(row.credit_limit),
        invested_amount=_money(row.invested_amount),
        color=row.color,
        bank=row.bank,
        branch=row.branch,
        number=row.number,
    )


def _to_category(row: CategoryRecord) -> Category:
    return Category(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        kind=EntryKind(row.kind),
        color=row.color,
        description=row.description,
    )


def _to_entry(row: LedgerEntryRecord) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        owner_id=row.owner_id,
        description=row.description,
        amount=_money(row.amount),
        date=row.date,
        kind=EntryKind(row.kind),
        account_id=row.account_id,
        category_id=row.category_id,
        status=EntryStatus(row.status),
        notes=row.notes,
        payment_method=PaymentMethod(row.payment_method) if row.payment_method else None,
        card_label=row.card_label,
        installment_group_id=row.installment_group_id,
        installment_index=row.installment_index,
        installment_count=row.installment_count,
        transfer_id=row.transfer_id,
    )


def _to_debt(row: DebtRecord) -> Debt:
    return Debt(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        kind=DebtKind(row.kind),
        principal=_money(row.principal),
        paid_amount=_money(row.paid_amount),
        remaining_amount=_money(row.remaining_amount),
        interest_rate=Decimal(row.interest_rate),
        installment_value=_money(row.installment_value),
        installments_paid=row.installments_paid,
        installments_total=row.installments_total,
        start_date=row.start_date,
        due_date=row.due_date,
        status=DebtStatus(row.status),
        notes=row.notes,
    )


def _columns(record) -> Dict[str, Any]:
    """Dataclass fields as column values; a missing id is left to the column default"""
    values = {key: _column_value(value) for key, value in vars(record).items()}
    if values.get("id") is None:
        values.pop("id", None)
    return values


def _storage_errors(method):
    """Roll back and wrap driver failures as StorageError"""

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Database error in {method.__name__}: {e}", cause=e) from e

    return wrapper


class SqlLedgerRepository(LedgerRepository):
    """Repository over one SQLAlchemy session; every write commits on its own"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _check(owner_id: Optional[str]) -> None:
        if not owner_id:
            raise NotAuthenticated("no authenticated user")

    def _owned(self, model, owner_id: str, record_id: str):
        self._check(owner_id)
        row = self.db.query(model).filter(model.id == record_id, model.owner_id == owner_id).first()
        if row is None:
            raise NotFound(f"{model.__tablename__} {record_id} not found")
        return row

    def _insert(self, model, record, convert):
        self._check(record.owner_id)
        row = model(**_columns(record))
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return convert(row)

    def _update(self, model, owner_id: str, record_id: str, patch: Dict[str, Any], convert):
        row = self._owned(model, owner_id, record_id)
        for key, value in patch.items():
            setattr(row, key, _column_value(value))
        self.db.commit()
        self.db.refresh(row)
        return convert(row)

    def _delete(self, model, owner_id: str, record_id: str) -> None:
        row = self._owned(model, owner_id, record_id)
        self.db.delete(row)
        self.db.commit()

    # Entries

    @_storage_errors
    def list_entries(self, owner_id: str, entry_filter: Optional[EntryFilter] = None) -> List[LedgerEntry]:
        """Fetch entries matching the filter, ordered by date then installment index"""
        self._check(owner_id)
        f = entry_filter or EntryFilter()
        query = self.db.query(LedgerEntryRecord).filter(LedgerEntryRecord.owner_id == owner_id)
        if f.account_id is not None:
            query = query.filter(LedgerEntryRecord.account_id == f.account_id)
        if f.start is not None:
            query = query.filter(LedgerEntryRecord.date >= f.start)
        if f.end is not None:
            query = query.filter(LedgerEntryRecord.date <= f.end)
        if f.kind is not None:
            query = query.filter(LedgerEntryRecord.kind == _column_value(f.kind))
        if f.status is not None:
            query = query.filter(LedgerEntryRecord.status == _column_value(f.status))
        if f.payment_method is not None:
            query = query.filter(LedgerEntryRecord.payment_method == _column_value(f.payment_method))
        if f.installment_group_id is not None:
            query = query.filter(LedgerEntryRecord.installment_group_id == f.installment_group_id)
        if f.transfer_id is not None:
            query = query.filter(LedgerEntryRecord.transfer_id == f.transfer_id)
        rows = query.order_by(LedgerEntryRecord.date, LedgerEntryRecord.installment_index).all()
        return [_to_entry(row) for row in rows]

    @_storage_errors
    def get_entry(self, owner_id: str, entry_id: str) -> Optional[LedgerEntry]:
        self._check(owner_id)
        row = (
            self.db.query(LedgerEntryRecord)
            .filter(LedgerEntryRecord.id == entry_id, LedgerEntryRecord.owner_id == owner_id)
            .first()
        )
        return _to_entry(row) if row else None

    @_storage_errors
    def create_entry(self, entry: LedgerEntry) -> LedgerEntry:
        return self._insert(LedgerEntryRecord, entry, _to_entry)

    @_storage_errors
    def update_entry(self, owner_id: str, entry_id: str, patch: Dict[str, Any]) -> LedgerEntry:
        return self._update(LedgerEntryRecord, owner_id, entry_id, patch, _to_entry)

    @_storage_errors
    def delete_entry(self, owner_id: str, entry_id: str) -> None:
        self._delete(LedgerEntryRecord, owner_id, entry_id)

    # Accounts

    @_storage_errors
    def list_accounts(self, owner_id: str) -> List[Account]:
        self._check(owner_id)
        rows = self.db.query(AccountRecord).filter(AccountRecord.owner_id == owner_id).order_by(AccountRecord.name).all()
        return [_to_account(row) for row in rows]

    @_storage_errors
    def get_account(self, owner_id: str, account_id: str) -> Optional[Account]:
        self._check(owner_id)
        row = (
            self.db.query(AccountRecord)
            .filter(AccountRecord.id == account_id, AccountRecord.owner_id == owner_id)
            .first()
        )
        return _to_account(row) if row else None

    @_storage_errors
    def create_account(self, account: Account) -> Account:
        return self._insert(AccountRecord, account, _to_account)

    @_storage_errors
    def update_account(self, owner_id: str, account_id: str, patch: Dict[str, Any]) -> Account:
        return self._update(AccountRecord, owner_id, account_id, patch, _to_account)

    @_storage_errors
    def delete_account(self, owner_id: str, account_id: str) -> None:
        self._delete(AccountRecord, owner_id, account_id)

    # Categories

    @_storage_errors
    def list_categories(self, owner_id: str) -> List[Category]:
        self._check(owner_id)
        rows = (
            self.db.query(CategoryRecord)
            .filter(CategoryRecord.owner_id == owner_id)
            .order_by(CategoryRecord.name)
            .all()
        )
        return [_to_category(row) for row in rows]

    @_storage_errors
    def create_category(self, category: Category) -> Category:
        return self._insert(CategoryRecord, category, _to_category)

    @_storage_errors
    def update_category(self, owner_id: str, category_id: str, patch: Dict[str, Any]) -> Category:
        return self._update(CategoryRecord, owner_id, category_id, patch, _to_category)

    @_storage_errors
    def delete_category(self, owner_id: str, category_id: str) -> None:
        self._delete(CategoryRecord, owner_id, category_id)

    # Debts

    @_storage_errors
    def list_debts(self, owner_id: str) -> List[Debt]:
        self._check(owner_id)
        rows = self.db.query(DebtRecord).filter(DebtRecord.owner_id == owner_id).order_by(DebtRecord.due_date).all()
        return [_to_debt(row) for row in rows]

    @_storage_errors
    def create_debt(self, debt: Debt) -> Debt:
        return self._insert(DebtRecord, debt, _to_debt)

    @_storage_errors
    def update_debt(self, owner_id: str, debt_id: str, patch: Dict[str, Any]) -> Debt:
        return self._update(DebtRecord, owner_id, debt_id, patch, _to_debt)

    @_storage_errors
    def delete_debt(self, owner_id: str, debt_id: str) -> None:
        self._delete(DebtRecord, owner_id, debt_id)
