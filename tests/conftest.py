"""Shared fixtures: an app backed by a throwaway SQLite file."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from money_manager.config import Settings
from money_manager.main import create_app
from money_manager.models import User
from money_manager.security import pwd_context

LEDGERS = ["/spending", "/income"]


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'money.db'}"


@pytest.fixture
def settings(database_url):
    return Settings(database_url=database_url, store_timeout=10.0)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as client:
        yield client


def create_user(client, username="alice", password="s3cret"):
    response = client.post("/users", json={"username": username, "password": password})
    assert response.status_code == 201, response.text
    return response.json()["id"]


def create_entry(client, ledger, user_id, category="food", amount=12.5, date="2024-01-15"):
    response = client.post(
        ledger,
        json={"user_id": user_id, "category": category, "amount": amount, "date": date},
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


def verify_password(plain_password, password_hash):
    return pwd_context.verify(plain_password, password_hash)


def stored_hash(client, user_id):
    """Read a user's password hash straight from the store."""
    store = client.app.state.store
    statement = select(User.hashed_password).where(User.id == user_id)
    return client.portal.call(store.scalar, statement)


@pytest.fixture
def user_id(client):
    return create_user(client)
