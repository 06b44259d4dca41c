import os
import tempfile
from pathlib import Path
import pytest

# Point the app at a throwaway SQLite file before anything imports it.
_DB_DIR = Path(tempfile.mkdtemp(prefix="scholarhub-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ.setdefault("ENV", "dev")

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from scholarhub.main import app  # noqa: E402
from scholarhub.database import engine  # noqa: E402
from scholarhub.auth import store  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db():
    """Ensure fresh tables and no live sessions for every test."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    store.clear()
    yield


@pytest.fixture
def make_client():
    """Return a factory of TestClients; one per principal keeps cookies apart."""
    clients = []

    def _make(**kwargs):
        c = TestClient(app, **kwargs)
        clients.append(c)
        return c

    yield _make
    for c in clients:
        c.close()


@pytest.fixture
def client(make_client):
    return make_client()


def register_org(client, registration_id="R1", name="Acme", password="pw"):
    r = client.post('/api/org/register', json={
        'name': name,
        'website_link': f'{name.lower()}.org',
        'registration_id': registration_id,
        'password': password,
    })
    assert r.status_code == 201, r.text
    return r.json()['organisation']


def register_user(client, email="ada@example.com", name="Ada", password="secret"):
    r = client.post('/api/register', json={'name': name, 'email': email, 'password': password})
    assert r.status_code == 201, r.text
    return r.json()['user']


def save_profile(client, **overrides):
    body = {
        'name': 'Ada Lovelace',
        'email': 'ada@example.com',
        'age': 21,
        'gender': 'female',
        'college': 'Analytical College',
        'degree': 'BSc Mathematics',
        'cgpa': 9.1,
    }
    body.update(overrides)
    r = client.post('/api/profile', json=body)
    assert r.status_code == 201, r.text
    return r.json()['profile']


def post_scholarship(client, name="Merit Award", amount=5000):
    r = client.post('/api/scholarship', json={'scholarship_name': name, 'amount': amount})
    assert r.status_code == 201, r.text
    return r.json()['scholarship']
