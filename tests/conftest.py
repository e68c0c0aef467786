# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.

The Supabase adapters are replaced by in-memory fakes patched in at every
module that looks them up, the same way the routers' client factories are
patched elsewhere.
"""

import itertools
from contextlib import ExitStack
from typing import Callable, Dict, Generator, List, Optional
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from core.errors import AuthFailure, DataAccessFailure
from core.session import Identity


STORE_TARGETS = (
    "main.get_document_store",
    "dependencies.auth.get_document_store",
    "routers.auth.get_document_store",
    "routers.users.get_document_store",
    "routers.screens.get_document_store",
    "routers.reports.get_document_store",
)

PROVIDER_TARGETS = (
    "dependencies.auth.get_identity_provider",
    "routers.auth.get_identity_provider",
    "routers.users.get_identity_provider",
    "routers.screens.get_identity_provider",
)


# ============================================================
# Fakes
# ============================================================
class FakeStore:
    """In-memory document store with the same snapshot-push behaviour."""

    def __init__(self):
        self.tables: Dict[str, Dict[str, dict]] = {}
        self.subscribers: Dict[str, List[Callable]] = {}
        self.fail = False
        self._clock = itertools.count(1)

    def _check(self, operation):
        if self.fail:
            raise DataAccessFailure(operation, "backend unavailable")

    def seed(self, collection: str, record_id: str, **fields) -> dict:
        row = {"id": record_id, "created_at": f"2024-01-01T00:00:{next(self._clock):02d}+00:00", **fields}
        self.tables.setdefault(collection, {})[record_id] = row
        return row

    def read(self, collection, record_id):
        self._check("Read")
        row = self.tables.get(collection, {}).get(record_id)
        return dict(row) if row else None

    def find_by(self, collection, field, value):
        self._check("Query")
        return [dict(r) for r in self.tables.get(collection, {}).values() if r.get(field) == value]

    def list(self, collection):
        self._check("List")
        rows = [dict(r) for r in self.tables.get(collection, {}).values()]
        return sorted(rows, key=lambda r: r.get("created_at") or "", reverse=True)

    def write(self, collection, record_id, record):
        self._check("Write")
        row = {"created_at": f"2024-01-02T00:00:{next(self._clock):02d}+00:00", **record, "id": record_id}
        self.tables.setdefault(collection, {})[record_id] = row
        self.refresh(collection)
        return dict(row)

    def update(self, collection, record_id, partial):
        self._check("Update")
        row = self.tables.get(collection, {}).get(record_id)
        if row is None:
            return None
        row.update(partial)
        self.refresh(collection)
        return dict(row)

    def delete(self, collection, record_id):
        self._check("Delete")
        self.tables.get(collection, {}).pop(record_id, None)
        self.refresh(collection)

    def subscribe(self, collection, callback):
        snapshot = self.list(collection)
        self.subscribers.setdefault(collection, []).append(callback)

        def unsubscribe():
            if callback in self.subscribers.get(collection, []):
                self.subscribers[collection].remove(callback)

        callback(snapshot)
        return unsubscribe

    def refresh(self, collection):
        for callback in list(self.subscribers.get(collection, [])):
            callback(self.list(collection))


class FakeProvider:
    """In-memory identity provider: accounts by e-mail, tokens by value."""

    def __init__(self):
        self.accounts: Dict[str, dict] = {}
        self.tokens: Dict[str, Identity] = {}
        self.signed_out: List[Optional[str]] = []
        self.listeners: List[Callable] = []
        self.fail_sign_out = False

    def add_account(self, email: str, password: str, uid: str, display_name: str = None) -> str:
        self.accounts[email] = {"password": password, "uid": uid, "display_name": display_name}
        token = f"token-{uid}"
        self.tokens[token] = Identity(uid=uid, email=email, display_name=display_name, access_token=token)
        return token

    def sign_in(self, email, password):
        account = self.accounts.get(email.strip().lower())
        if not account or account["password"] != password:
            raise AuthFailure("Invalid email or password")
        token = f"token-{account['uid']}"
        return self.tokens[token]

    def sign_up(self, email, password, display_name=None):
        uid = f"uid-{len(self.accounts) + 1}"
        self.add_account(email, password, uid, display_name)
        return self.tokens[f"token-{uid}"]

    def create_account(self, email, password, display_name=None):
        uid = f"created-{len(self.accounts) + 1}"
        self.add_account(email, password, uid, display_name)
        return Identity(uid=uid, email=email, display_name=display_name)

    def sign_out(self, access_token=None):
        self.signed_out.append(access_token)
        if self.fail_sign_out:
            raise DataAccessFailure("Sign out", "provider unreachable")

    def get_identity(self, access_token):
        return self.tokens.get(access_token)

    def on_change(self, callback):
        self.listeners.append(callback)

        def unsubscribe():
            if callback in self.listeners:
                self.listeners.remove(callback)

        return unsubscribe

    def emit(self, identity):
        for callback in list(self.listeners):
            callback(identity)


# ============================================================
# Fixtures
# ============================================================
@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def backend(store, provider):
    """Patch the fakes in everywhere the adapters are looked up."""
    with ExitStack() as stack:
        for target in STORE_TARGETS:
            stack.enter_context(patch(target, return_value=store))
        for target in PROVIDER_TARGETS:
            stack.enter_context(patch(target, return_value=provider))
        yield store, provider


@pytest.fixture(scope="function")
def app(backend):
    """Create a test FastAPI application instance."""
    from main import create_app
    return create_app()


@pytest.fixture(scope="function")
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(store, provider):
    """
    Create a user record plus a login; returns auth headers.

        headers = make_user("facility_manager")
    """
    counter = itertools.count(1)

    def factory(role: str, status: str = "active", **fields) -> dict:
        n = next(counter)
        uid = fields.pop("uid", f"{role}-{n}")
        email = fields.pop("email", f"{role.replace('_', '.')}{n}@dims.go.ug")
        store.seed(
            "users",
            uid,
            name=fields.pop("name", f"{role.replace('_', ' ').title()} {n}"),
            email=email,
            phone=fields.pop("phone", f"+25670000{n:04d}"),
            role=role,
            status=status,
            **fields,
        )
        token = provider.add_account(email, "secret123", uid)
        return {"Authorization": f"Bearer {token}"}

    return factory
