from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from identity import main
from identity.api import routes
from identity.domain.account import Account
from identity.domain.service import AccountService
from identity.repository import InMemoryAccountRepository


@pytest.fixture
def api_client():
    """Provide a FastAPI test client backed by an isolated in-memory store."""
    repository = InMemoryAccountRepository()
    service = AccountService(repository)

    app = FastAPI()
    app.include_router(routes.router)
    app.state.account_service = service

    with TestClient(app) as client:
        yield client, repository


def _create(client: TestClient, **payload):
    return client.post("/v1/accounts", json=payload)


def test_create_password_account(api_client):
    client, _ = api_client
    response = _create(client, email="a@b.com", username="ab", password="secret", name="Ada")

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "a@b.com"
    assert body["username"] == "ab"
    assert body["selected_cursor"] == "1"
    for secret_field in ("hashed_credential", "salt", "password", "transient_password"):
        assert secret_field not in body


def test_create_without_password_is_rejected(api_client):
    client, repository = api_client
    response = _create(client, email="a@b.com", username="ab", password="")

    assert response.status_code == 422
    assert response.json() == {"detail": "Invalid password", "field": "password"}
    assert repository.list_accounts({}, per_page=10, page=0) == []


def test_create_with_blank_email_is_rejected(api_client):
    client, _ = api_client
    response = _create(client, email="", username="ab", password="secret")

    assert response.status_code == 422
    assert response.json() == {"detail": "Email cannot be blank", "field": "email"}


def test_create_oauth_account_without_fields(api_client):
    client, _ = api_client
    response = _create(client, provider="twitter", profile={"id_str": "12"})

    assert response.status_code == 201
    assert response.json()["provider"] == "twitter"


def test_get_account(api_client):
    client, _ = api_client
    created = _create(client, email="a@b.com", username="ab", password="secret", firefox="ff-1").json()

    response = client.get(f"/v1/accounts/{created['account_id']}")

    assert response.status_code == 200
    body = response.json()
    assert body["account_id"] == created["account_id"]
    assert body["firefox"] == "ff-1"
    assert body["created_at"] == created["created_at"]
    assert body == created


def test_get_oauth_account_reports_provider(api_client):
    client, _ = api_client
    created = _create(client, provider="twitter", name="Tw", skype="tw.sk").json()

    body = client.get(f"/v1/accounts/{created['account_id']}").json()

    assert body["provider"] == "twitter"
    assert (body["name"], body["skype"]) == ("Tw", "tw.sk")
    assert body["created_at"] == created["created_at"]


def test_get_missing_account(api_client):
    client, _ = api_client
    response = client.get("/v1/accounts/missing")
    assert response.status_code == 404
    assert response.json()["detail"] == "account not found"


def test_list_accounts_paginates(api_client):
    client, repository = api_client
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    for idx in range(5):
        repository.insert_account(
            Account(account_id=f"acc-{idx}", username=f"user-{idx}", created_at=base + timedelta(hours=idx))
        )

    response = client.get("/v1/accounts", params={"per_page": 2, "page": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["page"] == 1
    assert body["per_page"] == 2
    assert [item["username"] for item in body["items"]] == ["user-2", "user-1"]


def test_list_accounts_validates_paging(api_client):
    client, _ = api_client
    assert client.get("/v1/accounts", params={"per_page": 0}).status_code == 422
    assert client.get("/v1/accounts", params={"page": -1}).status_code == 422


def test_authenticate(api_client):
    client, _ = api_client
    created = _create(
        client, email="a@b.com", username="ab", password="secret", name="Ada", skype="ada.l"
    ).json()

    ok = client.post("/v1/accounts/authenticate", json={"email": "a@b.com", "password": "secret"})
    assert ok.status_code == 200
    body = ok.json()
    assert body["account_id"] == created["account_id"]
    assert (body["name"], body["skype"], body["provider"]) == ("Ada", "ada.l", "")
    assert body["created_at"] == created["created_at"]

    bad = client.post("/v1/accounts/authenticate", json={"email": "a@b.com", "password": "wrong"})
    assert bad.status_code == 401
    assert bad.json()["detail"] == "invalid credentials"


def test_change_password(api_client):
    client, _ = api_client
    created = _create(client, email="a@b.com", username="ab", password="secret").json()

    response = client.put(f"/v1/accounts/{created['account_id']}/password", json={"password": "rotated"})
    assert response.status_code == 204

    old = client.post("/v1/accounts/authenticate", json={"email": "a@b.com", "password": "secret"})
    new = client.post("/v1/accounts/authenticate", json={"email": "a@b.com", "password": "rotated"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_change_password_for_missing_account(api_client):
    client, _ = api_client
    response = client.put("/v1/accounts/missing/password", json={"password": "x"})
    assert response.status_code == 404


def test_attach_profile(api_client):
    client, repository = api_client
    created = _create(client, provider="facebook").json()

    response = client.put(
        f"/v1/accounts/{created['account_id']}/profiles/linkedin", json={"id": "li-9"}
    )

    assert response.status_code == 200
    stored = repository.load({"account_id": created["account_id"]}, ("profiles",))
    assert stored is not None
    assert stored.profiles == {"linkedin": {"id": "li-9"}}


def test_attach_profile_rejects_unknown_provider(api_client):
    client, _ = api_client
    created = _create(client, provider="facebook").json()

    response = client.put(f"/v1/accounts/{created['account_id']}/profiles/myspace", json={})

    assert response.status_code == 400


def test_healthz_and_metrics():
    client = TestClient(main.app)

    assert client.get("/healthz").json() == {"status": "ok"}
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "account_creations_total" in metrics.text


def test_authenticate_oauth_account_with_local_password(api_client):
    client, _ = api_client
    created = _create(client, provider="facebook", email="f@b.com", name="Fb").json()
    client.put(f"/v1/accounts/{created['account_id']}/password", json={"password": "local"})

    response = client.post("/v1/accounts/authenticate", json={"email": "f@b.com", "password": "local"})

    assert response.status_code == 200
    assert response.json() == created


def test_create_with_profile_for_unknown_provider(api_client):
    client, repository = api_client
    response = _create(client, email="a@b.com", username="ab", password="secret", profile={"id": "1"})

    assert response.status_code == 400
    assert repository.list_accounts({}, per_page=10, page=0) == []


def test_missing_account_lookup_is_logged(api_client, caplog):
    client, _ = api_client
    with caplog.at_level("INFO", logger="identity.api.routes"):
        client.get("/v1/accounts/missing")
    assert "account lookup missed: account_id=missing" in caplog.text
