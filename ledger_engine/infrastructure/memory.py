"""In-memory repository, a drop-in substitute for the remote store"""

import uuid
from dataclasses import replace
from typing import Any, Dict, List, Optional

from ledger_engine.domain.exceptions import NotAuthenticated, NotFound
from ledger_engine.domain.models import Account, Category, Debt, EntryFilter, LedgerEntry
from ledger_engine.services.repository import LedgerRepository


class InMemoryLedgerRepository(LedgerRepository):
    """
    Dict-backed repository keeping copies of every record.

    Set `authenticated = False` to make every call fail the way an expired
    session does on the remote store.
    """

    def __init__(self):
        self.authenticated = True
        self.entries: Dict[str, LedgerEntry] = {}
        self.accounts: Dict[str, Account] = {}
        self.categories: Dict[str, Category] = {}
        self.debts: Dict[str, Debt] = {}

    def _check(self, owner_id: Optional[str]) -> None:
        if not self.authenticated or not owner_id:
            raise NotAuthenticated("session expired")

    def _insert(self, table: Dict[str, Any], record):
        self._check(record.owner_id)
        stored = replace(record, id=record.id or str(uuid.uuid4()))
        table[stored.id] = stored
        return replace(stored)

    def _owned(self, table: Dict[str, Any], owner_id: str, record_id: str):
        self._check(owner_id)
        record = table.get(record_id)
        if record is None or record.owner_id != owner_id:
            raise NotFound(f"{record_id} not found")
        return record

    def _update(self, table: Dict[str, Any], owner_id: str, record_id: str, patch: Dict[str, Any]):
        record = replace(self._owned(table, owner_id, record_id), **patch)
        table[record_id] = record
        return replace(record)

    def _delete(self, table: Dict[str, Any], owner_id: str, record_id: str) -> None:
        self._owned(table, owner_id, record_id)
        del table[record_id]

    def _list(self, table: Dict[str, Any], owner_id: str) -> List[Any]:
        self._check(owner_id)
        return [replace(r) for r in table.values() if r.owner_id == owner_id]

    # Entries

    def list_entries(self, owner_id: str, entry_filter: Optional[EntryFilter] = None) -> List[LedgerEntry]:
        entry_filter = entry_filter or EntryFilter()
        entries = [e for e in self._list(self.entries, owner_id) if entry_filter.matches(e)]
        return sorted(entries, key=lambda e: (e.date, e.installment_index or 0))

    def get_entry(self, owner_id: str, entry_id: str) -> Optional[LedgerEntry]:
        self._check(owner_id)
        entry = self.entries.get(entry_id)
        return replace(entry) if entry and entry.owner_id == owner_id else None

    def create_entry(self, entry: LedgerEntry) -> LedgerEntry:
        return self._insert(self.entries, entry)

    def update_entry(self, owner_id: str, entry_id: str, patch: Dict[str, Any]) -> LedgerEntry:
        return self._update(self.entries, owner_id, entry_id, patch)

    def delete_entry(self, owner_id: str, entry_id: str) -> None:
        self._delete(self.entries, owner_id, entry_id)

    # Accounts

    def list_accounts(self, owner_id: str) -> List[Account]:
        return sorted(self._list(self.accounts, owner_id), key=lambda a: a.name)

    def get_account(self, owner_id: str, account_id: str) -> Optional[Account]:
        self._check(owner_id)
        account = self.accounts.get(account_id)
        return replace(account) if account and account.owner_id == owner_id else None

    def create_account(self, account: Account) -> Account:
        return self._insert(self.accounts, account)

    def update_account(self, owner_id: str, account_id: str, patch: Dict[str, Any]) -> Account:
        return self._update(self.accounts, owner_id, account_id, patch)

    def delete_account(self, owner_id: str, account_id: str) -> None:
        self._delete(self.accounts, owner_id, account_id)

    # Categories

    def list_categories(self, owner_id: str) -> List[Category]:
        return sorted(self._list(self.categories, owner_id), key=lambda c: c.name)

    def create_category(self, category: Category) -> Category:
        return self._insert(self.categories, category)

    def update_category(self, owner_id: str, category_id: str, patch: Dict[str, Any]) -> Category:
        return self._update(self.categories, owner_id, category_id, patch)

    def delete_category(self, owner_id: str, category_id: str) -> None:
        self._delete(self.categories, owner_id, category_id)

    # Debts

    def list_debts(self, owner_id: str) -> List[Debt]:
        return self._list(self.debts, owner_id)

    def create_debt(self, debt: Debt) -> Debt:
        return self._insert(self.debts, debt)

    def update_debt(self, owner_id: str, debt_id: str, patch: Dict[str, Any]) -> Debt:
        return self._update(self.debts, owner_id, debt_id, patch)

    def delete_debt(self, owner_id: str, debt_id: str) -> None:
        self._delete(self.debts, owner_id, debt_id)
