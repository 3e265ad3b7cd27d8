from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from jose import jwt

import backend.main as backend_main


@pytest.fixture
def fake_bcrypt(monkeypatch):
    fake = SimpleNamespace(
        hash=lambda password: f"hashed:{password}",
        verify=lambda password, hashed: hashed == f"hashed:{password}",
    )
    monkeypatch.setattr(backend_main, "bcrypt", fake)
    return fake


@pytest.fixture
def client(monkeypatch, store, fake_bcrypt):
    monkeypatch.setattr(backend_main, "get_entitlement_store", lambda: store)
    return TestClient(backend_main.app)


def test_verify_access_token_accepts_valid_token():
    token = backend_main.create_access_token(subject="42")

    result = backend_main.verify_access_token(token)

    assert result.ok
    assert result.user_id == 42
    assert result.error is None


def test_verify_access_token_rejects_expired_token():
    token = backend_main.create_access_token(subject="42", expires_delta=timedelta(minutes=-5))

    result = backend_main.verify_access_token(token)

    assert not result.ok
    assert result.error == "invalid_token"


def test_verify_access_token_rejects_garbage_and_missing_subject():
    assert backend_main.verify_access_token("not-a-token").error == "invalid_token"

    no_subject = jwt.encode(
        {"scope": "none"}, backend_main.JWT_SECRET_KEY, algorithm=backend_main.JWT_ALGORITHM
    )
    assert backend_main.verify_access_token(no_subject).error == "invalid_token"


def test_get_current_user_requires_token(monkeypatch, store):
    monkeypatch.setattr(backend_main, "get_entitlement_store", lambda: store)

    with pytest.raises(HTTPException) as excinfo:
        backend_main.get_current_user(authorization=None, session_token=None)

    assert excinfo.value.status_code == 401


def test_get_current_user_rejects_invalid_token(monkeypatch, store):
    monkeypatch.setattr(backend_main, "get_entitlement_store", lambda: store)

    with pytest.raises(HTTPException) as excinfo:
        backend_main.get_current_user(authorization="Bearer broken", session_token=None)

    assert excinfo.value.status_code == 403


def test_get_current_user_rejects_unknown_user(monkeypatch, store):
    monkeypatch.setattr(backend_main, "get_entitlement_store", lambda: store)
    token = backend_main.create_access_token(subject="9999")

    with pytest.raises(HTTPException) as excinfo:
        backend_main.get_current_user(authorization=f"Bearer {token}", session_token=None)

    assert excinfo.value.status_code == 403


def test_get_current_user_prefers_header_then_cookie(monkeypatch, store, user, other_user):
    monkeypatch.setattr(backend_main, "get_entitlement_store", lambda: store)
    header_token = backend_main.create_access_token(subject=str(user.id))
    cookie_token = backend_main.create_access_token(subject=str(other_user.id))

    from_header = backend_main.get_current_user(
        authorization=f"Bearer {header_token}", session_token=cookie_token
    )
    from_cookie = backend_main.get_current_user(authorization=None, session_token=cookie_token)

    assert from_header.id == user.id
    assert from_cookie.id == other_user.id


def test_register_login_and_profile_flow(client):
    registered = client.post(
        "/api/auth/register",
        json={
            "email": "New.Member@Example.com",
            "password": "demo123",
            "firstName": "Nia",
            "lastName": "Lopez",
        },
    )
    assert registered.status_code == 201
    body = registered.json()
    assert body["message"] == "Registration successful"
    assert body["user"]["email"] == "new.member@example.com"
    assert body["user"]["firstName"] == "Nia"
    assert backend_main.verify_access_token(body["token"]).user_id == body["user"]["id"]

    duplicate = client.post(
        "/api/auth/register",
        json={
            "email": "new.member@example.com",
            "password": "other",
            "firstName": "Nia",
            "lastName": "Lopez",
        },
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "email_already_registered"

    wrong = client.post(
        "/api/auth/login", json={"email": "new.member@example.com", "password": "nope"}
    )
    assert wrong.status_code == 401
    assert wrong.json()["error"] == "invalid_credentials"

    login = client.post(
        "/api/auth/login", json={"email": "new.member@example.com", "password": "demo123"}
    )
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['token']}"}

    updated = client.put("/api/auth/me", json={"phone": "555-123-4567"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json() == {"message": "Profile updated successfully"}

    profile = client.get("/api/auth/me", headers=headers).json()
    assert profile["phone"] == "555-123-4567"
    assert profile["firstName"] == "Nia"
    assert profile["lastName"] == "Lopez"


def test_register_validates_payload(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "not-an-email", "password": "x", "firstName": "A", "lastName": "B"},
    )

    assert response.status_code == 422
