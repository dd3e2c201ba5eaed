"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from ledger_engine.api.main import create_app
from ledger_engine.domain.exceptions import StorageError
from ledger_engine.domain.models import Account, AccountKind, Category, EntryKind, LedgerEntry, PaymentMethod
from ledger_engine.infrastructure.database.session import build_engine, drop_db, get_db, init_db
from ledger_engine.infrastructure.memory import InMemoryLedgerRepository
from ledger_engine.services.settlement import SettlementService
from ledger_engine.services.store import LedgerStore
from ledger_engine.services.transfers import TransferService

# Test database
TEST_DATABASE_URL = "sqlite:///./test_ledger.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER = "user-1"
TODAY = date(2024, 3, 15)


class FlakyRepository(InMemoryLedgerRepository):
    """
    In-memory repository that fails on demand.

    fail_create_at / fail_delete_at / fail_update_at: 1-based call number
    that raises StorageError. fail_compensation makes every later write
    after the first injected failure raise too.
    """

    def __init__(self, fail_create_at=None, fail_delete_at=None, fail_update_at=None, fail_compensation=False):
        super().__init__()
        self.fail_create_at = fail_create_at
        self.fail_delete_at = fail_delete_at
        self.fail_update_at = fail_update_at
        self.fail_compensation = fail_compensation
        self.calls = {"create": 0, "delete": 0, "update": 0}
        self.failed = False

    def _maybe_fail(self, kind: str, fail_at) -> None:
        self.calls[kind] += 1
        if fail_at is not None and self.calls[kind] == fail_at:
            self.failed = True
            raise StorageError(f"injected {kind} failure")
        if self.failed and self.fail_compensation:
            raise StorageError(f"injected {kind} failure during compensation")

    def create_entry(self, entry):
        self._maybe_fail("create", self.fail_create_at)
        return super().create_entry(entry)

    def delete_entry(self, owner_id, entry_id):
        self._maybe_fail("delete", self.fail_delete_at)
        super().delete_entry(owner_id, entry_id)

    def update_entry(self, owner_id, entry_id, patch):
        self._maybe_fail("update", self.fail_update_at)
        return super().update_entry(owner_id, entry_id, patch)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    init_db(engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_db(engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def repository() -> InMemoryLedgerRepository:
    return InMemoryLedgerRepository()


def seed(repository: InMemoryLedgerRepository) -> dict:
    """Checking account, credit card and two expense categories for OWNER"""
    checking = repository.create_account(
        Account(id="acc-checking", owner_id=OWNER, name="Conta Corrente", kind=AccountKind.CORRENTE,
                opening_balance=Decimal("1000.00"))
    )
    card = repository.create_account(
        Account(id="acc-card", owner_id=OWNER, name="Cartao Azul", kind=AccountKind.CORRENTE,
                credit_limit=Decimal("1000.00"))
    )
    food = repository.create_category(Category(id="cat-food", owner_id=OWNER, name="Alimentacao", kind=EntryKind.DESPESA))
    tech = repository.create_category(Category(id="cat-tech", owner_id=OWNER, name="Eletronicos", kind=EntryKind.DESPESA))
    return {"checking": checking, "card": card, "food": food, "tech": tech}


@pytest.fixture
def accounts(repository: InMemoryLedgerRepository) -> dict:
    return seed(repository)


@pytest.fixture
def store(repository: InMemoryLedgerRepository, accounts: dict) -> LedgerStore:
    """Store over the seeded in-memory repository with a fixed today"""
    return LedgerStore(repository, today=lambda: TODAY)


@pytest.fixture
def transfer_service(store: LedgerStore) -> TransferService:
    return TransferService(store)


@pytest.fixture
def settlement_service(transfer_service: TransferService) -> SettlementService:
    return SettlementService(transfer_service)


@pytest.fixture
def make_entry():
    """Factory for unsaved entries with sensible defaults"""

    def _make(amount="10.00", on=TODAY, **overrides) -> LedgerEntry:
        values = dict(
            id=None,
            owner_id=OWNER,
            description="Mercado",
            amount=Decimal(amount),
            date=on,
            kind=EntryKind.DESPESA,
            account_id="acc-checking",
            category_id="cat-food",
            payment_method=PaymentMethod.DEBITO,
        )
        values.update(overrides)
        return LedgerEntry(**values)

    return _make


@pytest.fixture
def card_purchase(make_entry):
    """Factory for unsaved card purchases"""

    def _make(amount="100.00", on=TODAY, **overrides) -> LedgerEntry:
        overrides.setdefault("account_id", "acc-card")
        overrides.setdefault("payment_method", PaymentMethod.CREDITO)
        overrides.setdefault("category_id", "cat-tech")
        overrides.setdefault("description", "TV")
        return make_entry(amount, on, **overrides)

    return _make


@pytest.fixture
def flaky_store():
    """Factory: seeded store over a FlakyRepository configured with the given failure points"""

    def _make(**failures):
        repo = FlakyRepository(**failures)
        seed(repo)
        return LedgerStore(repo, today=lambda: TODAY), repo

    return _make
