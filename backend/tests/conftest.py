import os
import sys
from pathlib import Path

BACKEND_PATH = Path(__file__).resolve().parents[1]
if str(BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(BACKEND_PATH))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("SUPABASE_URL", "https://identity.example.test")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient

from spendwise.database import postgres_db
from spendwise.services.identity import IdentityProviderError, InvalidTokenError, get_identity_client

ALICE = {"id": "11111111-1111-1111-1111-111111111111", "email": "alice@example.com",
         "user_metadata": {"full_name": "Alice Example"}}
BOB = {"id": "22222222-2222-2222-2222-222222222222", "email": "bob@example.com",
       "user_metadata": {}}


class FakeIdentityClient:
    """Resolves a fixed set of tokens; "provider-down" simulates an outage."""

    def __init__(self, users):
        self.users = users
        self.calls = []

    def get_user(self, access_token):
        self.calls.append(access_token)
        if access_token == "provider-down":
            raise IdentityProviderError("connection refused")
        if access_token not in self.users:
            raise InvalidTokenError("unknown token")
        return self.users[access_token]


@pytest.fixture(autouse=True)
def database():
    postgres_db.init_db("sqlite://")
    yield
    postgres_db.close_db()


@pytest.fixture
def session(database):
    db = postgres_db.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def identity():
    return FakeIdentityClient({"token-alice": ALICE, "token-bob": BOB})


@pytest.fixture
def client(identity):
    from spendwise.main import app

    app.dependency_overrides[get_identity_client] = lambda: identity
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer token-alice"}


@pytest.fixture
def bob_headers():
    return {"Authorization": "Bearer token-bob"}


@pytest.fixture
def categories_by_name(client, auth_headers):
    """Alice's categories keyed by name (also provisions her profile)."""
    response = client.get("/api/categories", headers=auth_headers)
    assert response.status_code == 200
    return {c["name"]: c for c in response.json()}
