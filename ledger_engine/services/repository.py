"""Persistence and identity collaborator interfaces consumed by the engine"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ledger_engine.domain.models import Account, Category, Debt, EntryFilter, LedgerEntry


class LedgerRepository(ABC):
    """
    Owner-scoped CRUD over entries, accounts, categories and debts.

    Contract:
        - Every call is scoped to owner_id; records of other owners are invisible.
        - Writes are single-record; multi-record units are the caller's job.
        - create_* keeps a caller-supplied id when present, otherwise assigns one.
        - update_* and delete_* raise NotFound for unknown ids.
        - Unauthenticated calls raise NotAuthenticated; any other failure
          raises StorageError with the original error as cause.
    """

    # Entries

    @abstractmethod
    def list_entries(self, owner_id: str, entry_filter: Optional[EntryFilter] = None) -> List[LedgerEntry]:
        ...

    @abstractmethod
    def get_entry(self, owner_id: str, entry_id: str) -> Optional[LedgerEntry]:
        ...

    @abstractmethod
    def create_entry(self, entry: LedgerEntry) -> LedgerEntry:
        ...

    @abstractmethod
    def update_entry(self, owner_id: str, entry_id: str, patch: Dict[str, Any]) -> LedgerEntry:
        ...

    @abstractmethod
    def delete_entry(self, owner_id: str, entry_id: str) -> None:
        ...

    # Accounts

    @abstractmethod
    def list_accounts(self, owner_id: str) -> List[Account]:
        ...

    @abstractmethod
    def get_account(self, owner_id: str, account_id: str) -> Optional[Account]:
        ...

    @abstractmethod
    def create_account(self, account: Account) -> Account:
        ...

    @abstractmethod
    def update_account(self, owner_id: str, account_id: str, patch: Dict[str, Any]) -> Account:
        ...

    @abstractmethod
    def delete_account(self, owner_id: str, account_id: str) -> None:
        ...

    # Categories

    @abstractmethod
    def list_categories(self, owner_id: str) -> List[Category]:
        ...

    @abstractmethod
    def create_category(self, category: Category) -> Category:
        ...

    @abstractmethod
    def update_category(self, owner_id: str, category_id: str, patch: Dict[str, Any]) -> Category:
        ...

    @abstractmethod
    def delete_category(self, owner_id: str, category_id: str) -> None:
        ...

    # Debts

    @abstractmethod
    def list_debts(self, owner_id: str) -> List[Debt]:
        ...

    @abstractmethod
    def create_debt(self, debt: Debt) -> Debt:
        ...

    @abstractmethod
    def update_debt(self, owner_id: str, debt_id: str, patch: Dict[str, Any]) -> Debt:
        ...

    @abstractmethod
    def delete_debt(self, owner_id: str, debt_id: str) -> None:
        ...


class IdentityProvider(ABC):
    """Source of the authenticated user"""

    @abstractmethod
    def current_user_id(self) -> Optional[str]:
        ...

    @abstractmethod
    def sign_out(self) -> None:
        ...
