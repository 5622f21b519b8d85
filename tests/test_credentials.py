"""
Credential Store Tests
----------------------
"""

import base64
import json
import threading

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from infra.credentials import CredentialStore, InMemoryCredentialStore, extract_customer_id
from conftest import VALID_TOKEN


def make_jwt(claims) -> str:
    payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
    return f"eyJhbGciOiJIUzI1NiJ9.{payload}.c2lnbmF0dXJl"


class TestInMemoryStore:
    """Tests for the in-process store."""

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryCredentialStore(), CredentialStore)

    def test_save_get_clear(self):
        store = InMemoryCredentialStore()
        assert not store.has_token()
        assert store.stored_at is None

        store.save_token(VALID_TOKEN)
        assert store.get_token() == VALID_TOKEN
        assert store.stored_at is not None

        store.clear_token()
        assert store.get_token() is None
        assert store.stored_at is None

    def test_clear_is_idempotent(self):
        store = InMemoryCredentialStore(token=VALID_TOKEN)

        store.clear_token()
        store.clear_token()

        assert store.get_token() is None
        assert store.clear_count == 2

    def test_concurrent_clears(self):
        store = InMemoryCredentialStore(token=VALID_TOKEN)
        threads = [threading.Thread(target=store.clear_token) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.clear_count == 8
        assert not store.has_token()


class TestFromEnvironment:
    """Seeding the store from environment variables."""

    def test_token_and_customer(self, monkeypatch):
        monkeypatch.setenv("GROCER_TOKEN", VALID_TOKEN)
        monkeypatch.setenv("GROCER_CUSTOMER_ID", "cust-1234")

        store = InMemoryCredentialStore.from_environment()

        assert store.get_token() == VALID_TOKEN
        assert store.customer_id == "cust-1234"

    def test_customer_read_from_token(self, monkeypatch):
        monkeypatch.setenv("GROCER_TOKEN", VALID_TOKEN)
        monkeypatch.delenv("GROCER_CUSTOMER_ID", raising=False)

        store = InMemoryCredentialStore.from_environment()

        assert store.customer_id == "abc"

    def test_nothing_set(self, monkeypatch):
        monkeypatch.delenv("GROCER_TOKEN", raising=False)
        monkeypatch.delenv("GROCER_CUSTOMER_ID", raising=False)

        store = InMemoryCredentialStore.from_environment()

        assert not store.has_token()
        assert store.customer_id is None


class TestExtractCustomerId:
    """Reading the customer claim from a JWT."""

    def test_claim_present(self):
        assert extract_customer_id(make_jwt({"customer_uuid": "4c9e-77aa"})) == "4c9e-77aa"

    def test_claim_missing(self):
        assert extract_customer_id(make_jwt({"sub": "someone"})) is None

    @pytest.mark.parametrize("token", [
        "not-a-jwt",
        "a.b",
        "a.!!!.c",
        "eyJhbGciOiJIUzI1NiJ9.bm90IGpzb24.sig",
    ])
    def test_malformed(self, token):
        assert extract_customer_id(token) is None

    def test_non_object_payload(self):
        assert extract_customer_id(make_jwt([1, 2, 3])) is None
