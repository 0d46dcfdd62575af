from datetime import date, timedelta
from types import SimpleNamespace

from rq.exceptions import NoSuchJobError

from spendwise.api import financial


def _cost(**overrides):
    payload = {"amount": 50, "frequency": "monthly", "start_date": "2024-01-15", "note": "Internet"}
    payload.update(overrides)
    return payload


def test_fixed_cost_crud(client, auth_headers, categories_by_name):
    bills_id = categories_by_name["Bills"]["id"]
    created = client.post("/api/financial/fixed-costs", json=_cost(category_id=bills_id), headers=auth_headers)
    assert created.status_code == 201
    body = created.json()
    assert body["is_active"] is True
    assert body["category"]["name"] == "Bills"
    assert body["last_generated_date"] is None

    client.post("/api/financial/fixed-costs", json=_cost(amount=900, note="Rent"), headers=auth_headers)
    listed = client.get("/api/financial/fixed-costs", headers=auth_headers).json()
    assert [c["amount"] for c in listed] == [900.0, 50.0]

    rule_id = body["id"]
    updated = client.put(f"/api/financial/fixed-costs/{rule_id}", json={"amount": 55.5}, headers=auth_headers)
    assert updated.status_code == 200
    assert updated.json()["amount"] == 55.5
    assert updated.json()["note"] == "Internet"
    assert updated.json()["frequency"] == "monthly"

    fetched = client.get(f"/api/financial/fixed-costs/{rule_id}", headers=auth_headers).json()
    assert fetched["amount"] == 55.5

    deleted = client.delete(f"/api/financial/fixed-costs/{rule_id}", headers=auth_headers)
    assert deleted.json() == {"message": "Fixed cost deleted successfully"}
    missing = client.delete(f"/api/financial/fixed-costs/{rule_id}", headers=auth_headers)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Fixed cost not found"


def test_rule_validation(client, auth_headers):
    too_small = client.post("/api/financial/fixed-costs", json=_cost(amount=0), headers=auth_headers)
    assert too_small.status_code == 400

    bad_frequency = client.post("/api/financial/fixed-costs", json=_cost(frequency="hourly"), headers=auth_headers)
    assert bad_frequency.status_code == 400

    backwards = client.post("/api/financial/fixed-costs", json=_cost(end_date="2023-12-31"), headers=auth_headers)
    assert backwards.status_code == 400


def test_update_cannot_end_before_start(client, auth_headers):
    rule = client.post("/api/financial/fixed-costs", json=_cost(), headers=auth_headers).json()
    response = client.put(
        f"/api/financial/fixed-costs/{rule['id']}",
        json={"end_date": "2024-01-01"},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_rule_category_must_match_generated_type(client, auth_headers, categories_by_name):
    response = client.post(
        "/api/financial/periodic-income",
        json=_cost(category_id=categories_by_name["Food"]["id"]),
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_fixed_investment_requires_type(client, auth_headers):
    missing = client.post("/api/financial/fixed-investments", json=_cost(), headers=auth_headers)
    assert missing.status_code == 400

    blank = client.post("/api/financial/fixed-investments", json=_cost(investment_type="   "), headers=auth_headers)
    assert blank.status_code == 400

    rate = client.post(
        "/api/financial/fixed-investments",
        json=_cost(investment_type="ETF", expected_return_rate=1001),
        headers=auth_headers,
    )
    assert rate.status_code == 400

    created = client.post(
        "/api/financial/fixed-investments",
        json=_cost(investment_type=" ETF ", expected_return_rate=7.5),
        headers=auth_headers,
    )
    assert created.status_code == 201
    assert created.json()["investment_type"] == "ETF"
    assert created.json()["expected_return_rate"] == 7.5


def test_periodic_income_is_scoped_to_user(client, auth_headers, bob_headers):
    rule = client.post("/api/financial/periodic-income", json=_cost(amount=2500), headers=auth_headers).json()
    assert client.get(f"/api/financial/periodic-income/{rule['id']}", headers=bob_headers).status_code == 404
    assert client.get("/api/financial/periodic-income", headers=bob_headers).json() == []


def test_generate_endpoint_materializes_transactions(client, auth_headers, categories_by_name):
    client.post(
        "/api/financial/periodic-income",
        json=_cost(amount=2500, start_date="2024-01-31", category_id=categories_by_name["Salary"]["id"]),
        headers=auth_headers,
    )

    response = client.post(
        "/api/financial/recurring/generate",
        params={"as_of": "2024-04-30"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json() == {"as_of": "2024-04-30", "rules_processed": 1, "transactions_created": 4}

    transactions = client.get("/api/transactions", headers=auth_headers).json()
    assert [t["date"] for t in transactions] == ["2024-04-30", "2024-03-31", "2024-02-29", "2024-01-31"]
    assert all(t["source"] == "recurring" and t["type"] == "income" for t in transactions)

    again = client.post("/api/financial/recurring/generate", params={"as_of": "2024-04-30"}, headers=auth_headers)
    assert again.json()["transactions_created"] == 0

    rule = client.get("/api/financial/periodic-income", headers=auth_headers).json()[0]
    assert rule["last_generated_date"] == "2024-04-30"


def test_generate_rejects_future_as_of(client, auth_headers):
    response = client.post(
        "/api/financial/recurring/generate",
        params={"as_of": "2999-01-01"},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_async_generation_and_job_status(client, auth_headers, monkeypatch):
    queued = []

    def fake_enqueue(user_id, as_of=None):
        queued.append(user_id)
        return SimpleNamespace(id="job-1")

    def fake_job_info(job_id):
        if job_id != "job-1":
            raise NoSuchJobError(job_id)
        return {"job_id": job_id, "status": "finished", "meta": {"user_id": queued[0]}}

    monkeypatch.setattr(financial, "enqueue_recurring_generation_job", fake_enqueue)
    monkeypatch.setattr(financial, "get_job_info", fake_job_info)

    response = client.post("/api/financial/recurring/generate/async", headers=auth_headers)
    assert response.json() == {"job_id": "job-1", "status": "queued"}

    status = client.get("/api/financial/recurring/jobs/job-1", headers=auth_headers)
    assert status.status_code == 200
    assert status.json()["status"] == "finished"

    assert client.get("/api/financial/recurring/jobs/other", headers=auth_headers).status_code == 404


def test_job_status_hidden_from_other_users(client, auth_headers, bob_headers, monkeypatch):
    monkeypatch.setattr(
        financial,
        "get_job_info",
        lambda job_id: {"job_id": job_id, "status": "queued", "meta": {"user_id": "someone-else"}},
    )
    assert client.get("/api/financial/recurring/jobs/job-9", headers=bob_headers).status_code == 404


def test_resumed_rule_skips_paused_window(client, auth_headers):
    rule = client.post(
        "/api/financial/fixed-costs",
        json=_cost(amount=3, frequency="daily", start_date="2024-01-01"),
        headers=auth_headers,
    ).json()
    first = client.post("/api/financial/recurring/generate", params={"as_of": "2024-01-05"}, headers=auth_headers)
    assert first.json()["transactions_created"] == 5

    paused = client.put(f"/api/financial/fixed-costs/{rule['id']}", json={"is_active": False}, headers=auth_headers)
    assert paused.json()["next_occurrence"] is None
    assert paused.json()["last_generated_date"] == "2024-01-05"

    resumed = client.put(f"/api/financial/fixed-costs/{rule['id']}", json={"is_active": True}, headers=auth_headers)
    today = date.today()
    assert resumed.json()["last_generated_date"] == (today - timedelta(days=1)).isoformat()
    assert resumed.json()["next_occurrence"] == today.isoformat()

    again = client.post("/api/financial/recurring/generate", headers=auth_headers)
    assert again.json()["transactions_created"] == 1
    assert len(client.get("/api/transactions", headers=auth_headers).json()) == 6
