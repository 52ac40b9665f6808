from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from jose import jwt
from pydantic import ValidationError
from sqlmodel import Session
import pytest

from conftest import PASSWORD, login, make_user
from crm.config import Settings
from crm.exceptions import ConstraintViolation
from crm.users.models import Role
from crm.users.schemas import UserCreate
from crm.users import service as user_service

def test_register_login_logout(client: TestClient):
    response = client.post("/api/register", json={
        "username": "newrep",
        "email": "newrep@example.com",
        "fullName": "New Rep",
        "password": PASSWORD,
    })
    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "sales_executive"
    assert body["fullName"] == "New Rep"
    assert "password" not in response.text.lower()

    # Registration also opens a cookie session
    response = client.get("/api/user")
    assert response.status_code == 200
    assert response.json()["username"] == "newrep"

    response = client.post("/api/logout")
    assert response.status_code == 204
    client.cookies.clear()
    assert client.get("/api/user").status_code == 401

    response = client.post("/api/login", data={"username": "newrep", "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["user"]["username"] == "newrep"
    assert client.get("/api/user").status_code == 200

def test_register_cannot_pick_privileged_role(client: TestClient):
    response = client.post("/api/register", json={
        "username": "sneaky",
        "email": "sneaky@example.com",
        "fullName": "Sneaky",
        "password": PASSWORD,
        "role": "admin",
    })
    assert response.status_code == 201
    assert response.json()["role"] == "sales_executive"

def test_register_duplicates_rejected(client: TestClient, session: Session):
    make_user(session, "taken")

    response = client.post("/api/register", json={
        "username": "taken", "email": "fresh@example.com", "fullName": "X", "password": PASSWORD,
    })
    assert response.status_code == 400
    assert response.json() == {"error": "Username already exists"}

    response = client.post("/api/register", json={
        "username": "fresh", "email": "taken@example.com", "fullName": "X", "password": PASSWORD,
    })
    assert response.status_code == 400
    assert response.json() == {"error": "Email already registered"}

def test_login_failure_does_not_say_which_field(client: TestClient, session: Session):
    make_user(session, "alice")

    wrong_password = client.post("/api/login", data={"username": "alice", "password": "nope"})
    unknown_user = client.post("/api/login", data={"username": "nobody", "password": "nope"})
    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {"error": "Invalid username or password"}

def test_protected_routes_require_session(client: TestClient):
    for method, path in [
        ("get", "/api/leads"),
        ("get", "/api/leads/1"),
        ("post", "/api/leads"),
        ("put", "/api/leads/1"),
        ("delete", "/api/leads/1"),
        ("post", "/api/activities"),
        ("get", "/api/stats"),
        ("get", "/api/analytics"),
        ("get", "/api/users"),
    ]:
        response = client.request(method, path, json={})
        assert response.status_code == 401, (method, path)
        assert response.json() == {"error": "Unauthorized"}

def test_garbage_token_is_unauthorized(client: TestClient):
    response = client.get("/api/leads", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401

def test_token_of_removed_user_is_unauthorized(client: TestClient, session: Session):
    user = make_user(session, "ghost")
    headers = login(client, "ghost")
    session.delete(user)
    session.commit()

    assert client.get("/api/user", headers=headers).status_code == 401

def test_users_admin_only(client: TestClient, session: Session):
    make_user(session, "boss", Role.ADMIN)
    make_user(session, "lead", Role.MANAGER)
    make_user(session, "seller")

    response = client.get("/api/users", headers=login(client, "boss"))
    assert response.status_code == 200
    users = response.json()
    # Newest first
    assert [u["username"] for u in users] == ["seller", "lead", "boss"]
    for user in users:
        assert "hashedPassword" not in user
        assert "hashed_password" not in user

    assert client.get("/api/users", headers=login(client, "lead")).status_code == 403
    assert client.get("/api/users", headers=login(client, "seller")).status_code == 403

def test_root_and_health(client: TestClient):
    assert client.get("/").json() == {"message": "Welcome to the CRM API"}
    assert client.get("/api/health").json() == {"status": "ok"}

def test_secret_key_is_required(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)

def test_token_signed_with_another_key_is_unauthorized(client: TestClient, session: Session):
    boss = make_user(session, "boss", Role.ADMIN)
    forged = jwt.encode(
        {"sub": str(boss.id), "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "change-me-in-production",
        algorithm="HS256",
    )

    response = client.get("/api/users", headers={"Authorization": f"Bearer {forged}"})
    assert response.status_code == 401

def test_create_user_duplicate_is_constraint_violation(session: Session):
    make_user(session, "taken")

    with pytest.raises(ConstraintViolation):
        make_user(session, "taken")

    duplicate_email = UserCreate(
        username="other", email="taken@example.com", full_name="Other", password=PASSWORD, role=Role.MANAGER,
    )
    with pytest.raises(ConstraintViolation):
        user_service.create_user(session, duplicate_email)

def test_unique_index_catches_duplicate_that_slips_past_lookup(session: Session, monkeypatch):
    make_user(session, "taken")
    monkeypatch.setattr(user_service, "get_user_by_username", lambda session, username: None)

    with pytest.raises(ConstraintViolation):
        user_service.create_user(session, UserCreate(
            username="taken", email="second@example.com", full_name="Second", password=PASSWORD,
        ))

    # The failed commit was rolled back; the session is still usable
    assert [user.username for user in user_service.list_users(session)] == ["taken"]
