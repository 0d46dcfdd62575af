def test_missing_token_is_rejected(client):
    response = client.get("/api/profiles")
    assert response.status_code == 401
    assert response.json() == {"error": {"type": "AuthenticationError", "message": "Authentication required"}}
    assert response.headers["www-authenticate"] == "Bearer"


def test_non_bearer_scheme_is_rejected(client):
    response = client.get("/api/profiles", headers={"Authorization": "Basic abc"})
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Authentication required"


def test_invalid_token(client):
    response = client.get("/api/profiles", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid token"


def test_identity_provider_outage(client):
    response = client.get("/api/profiles", headers={"Authorization": "Bearer provider-down"})
    assert response.status_code == 503
    assert response.json()["error"]["message"] == "Authentication failed"


def test_first_request_provisions_profile_and_default_categories(client, auth_headers):
    response = client.get("/api/profiles", headers=auth_headers)
    assert response.status_code == 200
    profile = response.json()
    assert profile["name"] == "Alice Example"
    assert profile["email"] == "alice@example.com"
    assert profile["initial_balance"] == 0.0

    categories = client.get("/api/categories", headers=auth_headers).json()
    assert len(categories) == 11
    assert all(c["is_default"] for c in categories)
    assert [c["name"] for c in categories if c["type"] == "expense"] == [
        "Food", "Transportation", "Houseware", "Bills", "Shopping",
    ]

    # Provisioning is idempotent
    client.get("/api/profiles", headers=auth_headers)
    assert len(client.get("/api/categories", headers=auth_headers).json()) == 11
