import os

# Point the app's default engine at a throwaway database before crm is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from fastapi.testclient import TestClient
from sqlmodel import Session
from sqlmodel.pool import StaticPool
import pytest

from crm.main import app
from crm.database import build_engine, create_db_and_tables, get_session
from crm.users.models import Role
from crm.users.schemas import UserCreate
from crm.users import service as user_service

PASSWORD = "secret-pass"

@pytest.fixture(name="session")
def session_fixture():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_db_and_tables(engine)
    with Session(engine) as session:
        yield session

@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session
    app.dependency_overrides[get_session] = get_session_override
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()

def make_user(session: Session, username: str, role: Role = Role.SALES_EXECUTIVE):
    return user_service.create_user(session, UserCreate(
        username=username,
        email=f"{username}@example.com",
        full_name=username.title(),
        password=PASSWORD,
        role=role,
    ))

def login(client: TestClient, username: str) -> dict:
    response = client.post("/api/login", data={"username": username, "password": PASSWORD})
    assert response.status_code == 200, response.text
    # Each test user authenticates with its own bearer header, not the shared cookie jar
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}

def lead_payload(**overrides) -> dict:
    payload = {
        "companyName": "Acme Corp",
        "contactName": "Jane Doe",
        "email": "jane@acme.com",
        "phone": "+1 555 0100",
        "status": "new",
        "source": "website",
        "value": 5000,
    }
    payload.update(overrides)
    return payload

@pytest.fixture
def admin(session: Session):
    return make_user(session, "admin", Role.ADMIN)

@pytest.fixture
def manager(session: Session):
    return make_user(session, "manager", Role.MANAGER)

@pytest.fixture
def rep(session: Session):
    return make_user(session, "rep", Role.SALES_EXECUTIVE)

@pytest.fixture
def other_rep(session: Session):
    return make_user(session, "otherrep", Role.SALES_EXECUTIVE)
