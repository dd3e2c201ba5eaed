"""Integration tests for the remote store client using httpx MockTransport"""

import json
import pytest
import httpx
from datetime import date
from decimal import Decimal
from ledger_engine.domain.exceptions import NotAuthenticated, NotFound, StorageError
from ledger_engine.domain.models import EntryFilter, EntryKind, EntryStatus, LedgerEntry, PaymentMethod
from ledger_engine.infrastructure.clients.identity import SessionIdentity
from ledger_engine.infrastructure.clients.store import RemoteLedgerRepository, dump_record
from ledger_engine.services.session import session_guard

BASE = "http://store.test/rest/v1"
AUTH = "http://store.test/auth/v1"

ENTRY_JSON = {
    "id": "e-1",
    "owner_id": "user-1",
    "description": "TV (1/3)",
    "amount": "33.33",
    "date": "2024-01-31",
    "kind": "DESPESA",
    "account_id": "acc-card",
    "category_id": "cat-tech",
    "status": "CONFIRMADO",
    "payment_method": "CREDITO",
    "installment_group_id": "g-1",
    "installment_index": 1,
    "installment_count": 3,
    "created_at": "2024-01-31T10:00:00Z",
}


def make_repo(handler, token="token-abc", sleeps=None):
    identity = SessionIdentity("user-1", token, auth_url=AUTH, client=httpx.Client(transport=httpx.MockTransport(handler)))
    client = httpx.Client(transport=httpx.MockTransport(handler))
    sleeper = sleeps.append if sleeps is not None else (lambda seconds: None)
    return RemoteLedgerRepository(identity, base_url=BASE, client=client, sleep=sleeper)


def test_list_entries_sends_token_and_filters():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=[ENTRY_JSON])

    repo = make_repo(handler)
    entries = repo.list_entries("user-1", EntryFilter(account_id="acc-card", start=date(2024, 1, 1), kind=EntryKind.DESPESA))

    assert seen["auth"] == "Bearer token-abc"
    assert seen["params"] == {"owner_id": "user-1", "account_id": "acc-card", "start": "2024-01-01", "kind": "DESPESA"}
    assert entries[0].amount == Decimal("33.33")
    assert entries[0].date == date(2024, 1, 31)
    assert entries[0].status == EntryStatus.CONFIRMADO
    assert entries[0].payment_method == PaymentMethod.CREDITO


def test_create_entry_serializes_record():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json=dict(captured["body"], id="e-new"))

    repo = make_repo(handler)
    draft = LedgerEntry(
        id=None,
        owner_id="user-1",
        description="Mercado",
        amount=Decimal("25.90"),
        date=date(2024, 3, 15),
        kind=EntryKind.DESPESA,
        account_id="acc-checking",
        category_id="cat-food",
    )

    created = repo.create_entry(draft)

    assert "id" not in captured["body"]
    assert captured["body"]["amount"] == "25.90"
    assert captured["body"]["date"] == "2024-03-15"
    assert captured["body"]["status"] == "CONFIRMADO"
    assert created.id == "e-new"
    assert created.amount == Decimal("25.90")


def test_dump_record_keeps_explicit_id():
    entry = LedgerEntry(id="e-1", owner_id="u", description="x", amount=Decimal("1.00"), date=date(2024, 1, 1),
                        kind=EntryKind.RECEITA, account_id="a", category_id=None)
    assert dump_record(entry)["id"] == "e-1"


def test_reads_retry_with_backoff():
    attempts = []
    sleeps = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json=[])

    repo = make_repo(handler, sleeps=sleeps)

    assert repo.list_entries("user-1") == []
    assert len(attempts) == 3
    assert sleeps == [0.5, 1.0]


def test_reads_give_up_after_max_retries():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    sleeps = []
    repo = make_repo(handler, sleeps=sleeps)

    with pytest.raises(StorageError) as exc:
        repo.list_accounts("user-1")
    assert isinstance(exc.value.__cause__, httpx.ConnectError)
    assert len(sleeps) == 2


def test_writes_are_not_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(500)

    repo = make_repo(handler)

    with pytest.raises(StorageError):
        repo.delete_entry("user-1", "e-1")
    assert len(attempts) == 1


def test_client_errors_are_not_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(400, json={"message": "bad filter"})

    repo = make_repo(handler)

    with pytest.raises(StorageError):
        repo.list_entries("user-1")
    assert len(attempts) == 1


def test_not_found_handling():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    repo = make_repo(handler)

    assert repo.get_entry("user-1", "missing") is None
    with pytest.raises(NotFound):
        repo.update_entry("user-1", "missing", {"notes": "x"})


def test_rejected_token_signs_out_through_guard():
    logout_calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/logout"):
            logout_calls.append(request.headers["Authorization"])
            return httpx.Response(204)
        return httpx.Response(401)

    repo = make_repo(handler)

    with pytest.raises(NotAuthenticated):
        with session_guard(repo.identity) as owner_id:
            repo.list_entries(owner_id)

    assert logout_calls == ["Bearer token-abc"]
    assert repo.identity.current_user_id() is None
    assert repo.identity.access_token is None


def test_missing_token_fails_before_any_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    repo = make_repo(handler, token=None)

    with pytest.raises(NotAuthenticated):
        repo.list_debts("user-1")


def test_sign_out_clears_session_even_if_logout_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    identity = SessionIdentity("user-1", "token-abc", auth_url=AUTH,
                               client=httpx.Client(transport=httpx.MockTransport(handler)))

    identity.sign_out()

    assert identity.current_user_id() is None
    assert identity.access_token is None


def test_invalid_payload_is_storage_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[dict(ENTRY_JSON, amount="not-a-number")])

    repo = make_repo(handler)

    with pytest.raises(StorageError):
        repo.list_entries("user-1")


@pytest.mark.parametrize(
    "payload",
    [
        dict(ENTRY_JSON, date="31/01/2024"),
        dict(ENTRY_JSON, status="PAGO"),
        {key: value for key, value in ENTRY_JSON.items() if key != "amount"},
    ],
)
def test_malformed_single_record_is_storage_error(payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    repo = make_repo(handler)

    with pytest.raises(StorageError):
        repo.get_entry("user-1", "e-1")
    with pytest.raises(StorageError):
        repo.update_entry("user-1", "e-1", {"notes": "x"})
