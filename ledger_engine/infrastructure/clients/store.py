"""Remote store HTTP client implementing the ledger repository"""

import time
from dataclasses import fields
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type

import httpx

from ledger_engine.config import settings
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
from ledger_engine.infrastructure.clients.identity import SessionIdentity
from ledger_engine.infrastructure.observability.metrics import store_latency_histogram, store_request_failures_counter
from ledger_engine.services.repository import LedgerRepository

# Field name -> parser for values that do not survive JSON as-is
_PARSERS: Dict[str, Callable[[Any], Any]] = {
    "amount": Decimal,
    "opening_balance": Decimal,
    "credit_limit": Decimal,
    "invested_amount": Decimal,
    "principal": Decimal,
    "paid_amount": Decimal,
    "remaining_amount": Decimal,
    "interest_rate": Decimal,
    "installment_value": Decimal,
    "date": date.fromisoformat,
    "start_date": date.fromisoformat,
    "due_date": date.fromisoformat,
}

_ENUMS: Dict[Type, Dict[str, Type[Enum]]] = {
    LedgerEntry: {"kind": EntryKind, "status": EntryStatus, "payment_method": PaymentMethod},
    Account: {"kind": AccountKind},
    Category: {"kind": EntryKind},
    Debt: {"kind": DebtKind, "status": DebtStatus},
}


def dump_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def dump_record(record) -> Dict[str, Any]:
    """Dataclass to JSON-safe dict; a missing id is omitted so the store assigns one"""
    data = {f.name: dump_value(getattr(record, f.name)) for f in fields(record)}
    if data.get("id") is None:
        data.pop("id")
    return data


def load_record(cls: Type, data: Dict[str, Any]):
    """JSON dict to dataclass; unknown keys (timestamps, joins) are ignored"""
    enums = _ENUMS[cls]
    values = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        if value is not None:
            if f.name in enums:
                value = enums[f.name](value)
            elif f.name in _PARSERS:
                value = _PARSERS[f.name](value)
        values[f.name] = value
    return cls(**values)


class RemoteLedgerRepository(LedgerRepository):
    """
    Client for the remote REST store.

    Resources live under /entries, /accounts, /categories and /debts with
    GET (list, filters as query params), POST, PATCH /{id} and DELETE /{id}.

    Failure handling:
    - 401/403 → NotAuthenticated (caller signs out)
    - 404 on a single record → NotFound
    - other HTTP errors and transport failures → StorageError with cause
    - GETs retry transport errors and 5xx with exponential backoff;
      writes are never retried
    """

    def __init__(
        self,
        identity: SessionIdentity,
        base_url: str | None = None,
        client: httpx.Client | None = None,
        timeout: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.identity = identity
        self.base_url = (base_url or settings.store_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.client = client or httpx.Client(timeout=self.timeout)
        self.max_retries = settings.store_max_retries
        self.backoff_base = settings.store_backoff_base
        self.sleep = sleep

    def _headers(self) -> Dict[str, str]:
        if not self.identity.current_user_id() or not self.identity.access_token:
            raise NotAuthenticated("no authenticated user")
        return {"Authorization": f"Bearer {self.identity.access_token}"}

    def _request(self, method: str, path: str, params: Dict[str, Any] | None = None, json: Any = None) -> Any:
        headers = self._headers()
        attempts = self.max_retries if method == "GET" else 1
        attempt = 0
        while True:
            attempt += 1
            try:
                with store_latency_histogram.time():
                    response = self.client.request(
                        method,
                        f"{self.base_url}{path}",
                        params=params,
                        json=json,
                        headers=headers,
                        timeout=self.timeout,
                    )
                if response.status_code in (401, 403):
                    raise NotAuthenticated(f"store rejected credentials ({response.status_code})")
                if response.status_code == 404:
                    raise NotFound(f"{path} not found")
                response.raise_for_status()
                return response.json() if response.content else None

            except (httpx.TransportError, httpx.HTTPStatusError) as e:
                store_request_failures_counter.labels(method=method).inc()
                retryable = isinstance(e, httpx.TransportError) or e.response.status_code >= 500
                if not retryable or attempt >= attempts:
                    raise StorageError(f"Store {method} {path} failed: {e}", cause=e) from e

                # Exponential backoff: base, 2*base, 4*base...
                self.sleep(self.backoff_base * (2 ** (attempt - 1)))

            except ValueError as e:
                raise StorageError(f"Invalid JSON from store for {method} {path}", cause=e) from e

    def _load(self, resource: str, cls: Type, data: Any) -> Any:
        """Parse one record or a list of records; malformed payloads are StorageError"""
        try:
            if isinstance(data, list):
                return [load_record(cls, item) for item in data]
            return load_record(cls, data)
        except (KeyError, ValueError, TypeError, AttributeError, ArithmeticError) as e:
            raise StorageError(f"Invalid {resource} data from store: {e}", cause=e) from e

    def _list(self, resource: str, cls: Type, params: Dict[str, Any]) -> List[Any]:
        return self._load(resource, cls, self._request("GET", f"/{resource}", params=params) or [])

    def _get(self, resource: str, cls: Type, owner_id: str, record_id: str) -> Optional[Any]:
        try:
            data = self._request("GET", f"/{resource}/{record_id}", params={"owner_id": owner_id})
        except NotFound:
            return None
        record = self._load(resource, cls, data)
        return record if record.owner_id == owner_id else None

    def _create(self, resource: str, record) -> Any:
        return self._load(resource, type(record), self._request("POST", f"/{resource}", json=dump_record(record)))

    def _update(self, resource: str, cls: Type, owner_id: str, record_id: str, patch: Dict[str, Any]) -> Any:
        body = {key: dump_value(value) for key, value in patch.items()}
        data = self._request("PATCH", f"/{resource}/{record_id}", params={"owner_id": owner_id}, json=body)
        return self._load(resource, cls, data)

    def _delete(self, resource: str, owner_id: str, record_id: str) -> None:
        self._request("DELETE", f"/{resource}/{record_id}", params={"owner_id": owner_id})

    # Entries

    def list_entries(self, owner_id: str, entry_filter: Optional[EntryFilter] = None) -> List[LedgerEntry]:
        params = {"owner_id": owner_id}
        if entry_filter is not None:
            params.update(
                {f.name: dump_value(getattr(entry_filter, f.name)) for f in fields(entry_filter)
                 if getattr(entry_filter, f.name) is not None}
            )
        return self._list("entries", LedgerEntry, params)

    def get_entry(self, owner_id: str, entry_id: str) -> Optional[LedgerEntry]:
        return self._get("entries", LedgerEntry, owner_id, entry_id)

    def create_entry(self, entry: LedgerEntry) -> LedgerEntry:
        return self._create("entries", entry)

    def update_entry(self, owner_id: str, entry_id: str, patch: Dict[str, Any]) -> LedgerEntry:
        return self._update("entries", LedgerEntry, owner_id, entry_id, patch)

    def delete_entry(self, owner_id: str, entry_id: str) -> None:
        self._delete("entries", owner_id, entry_id)

    # Accounts

    def list_accounts(self, owner_id: str) -> List[Account]:
        return self._list("accounts", Account, {"owner_id": owner_id})

    def get_account(self, owner_id: str, account_id: str) -> Optional[Account]:
        return self._get("accounts", Account, owner_id, account_id)

    def create_account(self, account: Account) -> Account:
        return self._create("accounts", account)

    def update_account(self, owner_id: str, account_id: str, patch: Dict[str, Any]) -> Account:
        return self._update("accounts", Account, owner_id, account_id, patch)

    def delete_account(self, owner_id: str, account_id: str) -> None:
        self._delete("accounts", owner_id, account_id)

    # Categories

    def list_categories(self, owner_id: str) -> List[Category]:
        return self._list("categories", Category, {"owner_id": owner_id})

    def create_category(self, category: Category) -> Category:
        return self._create("categories", category)

    def update_category(self, owner_id: str, category_id: str, patch: Dict[str, Any]) -> Category:
        return self._update("categories", Category, owner_id, category_id, patch)

    def delete_category(self, owner_id: str, category_id: str) -> None:
        self._delete("categories", owner_id, category_id)

    # Debts

    def list_debts(self, owner_id: str) -> List[Debt]:
        return self._list("debts", Debt, {"owner_id": owner_id})

    def create_debt(self, debt: Debt) -> Debt:
        return self._create("debts", debt)

    def update_debt(self, owner_id: str, debt_id: str, patch: Dict[str, Any]) -> Debt:
        return self._update("debts", Debt, owner_id, debt_id, patch)

    def delete_debt(self, owner_id: str, debt_id: str) -> None:
        self._delete("debts", owner_id, debt_id)
