"""
Almanac Test Configuration: shared fixtures for registry and API tests.
"""
import hashlib
import importlib
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from almanac.identity import address_from_public_key, generate_keypair, sign_challenge
from almanac.registry import PeriodRegistry
from almanac.store import RegistryStore


def make_principal():
    private_key, public_key = generate_keypair()
    return {
        "private_key": private_key,
        "public_key": public_key,
        "address": address_from_public_key(public_key),
    }


def sha(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


@pytest.fixture
def admin():
    return make_principal()


@pytest.fixture
def outsider():
    return make_principal()


@pytest.fixture
def store(tmp_path):
    return RegistryStore(tmp_path / "almanac_test.db")


@pytest.fixture
def registry(store, admin):
    return PeriodRegistry.deploy(store, admin["address"], zero_hash_is_absent=True)


@pytest.fixture
def fresh_app(tmp_path, monkeypatch):
    """Fresh API server with an isolated database (not yet deployed)."""
    db_path = tmp_path / "almanac_api.db"
    monkeypatch.setenv("ALMANAC_DB_PATH", str(db_path))
    monkeypatch.delenv("ALMANAC_JWT_SECRET", raising=False)
    monkeypatch.delenv("ALMANAC_CORS_ORIGINS", raising=False)

    # Force reimport to pick up the new DB path
    sys.modules.pop("almanac.api_server", None)
    api_server = importlib.import_module("almanac.api_server")

    client = TestClient(api_server.app)
    return client, api_server, db_path


@pytest.fixture
def deployed_app(fresh_app, admin):
    client, api_server, db_path = fresh_app
    PeriodRegistry.deploy(api_server._store, admin["address"])
    return client, api_server, db_path


def auth_headers(client, principal) -> dict:
    """Helper: challenge-response for ``principal``, returns bearer headers."""
    r = client.post("/auth/challenge", json={"public_key": principal["public_key"].decode()})
    assert r.status_code == 200, r.text
    data = r.json()
    signature = sign_challenge(principal["private_key"], bytes.fromhex(data["challenge"]))
    r = client.post("/auth/verify", json={"address": data["address"], "signature": signature.decode()})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}
