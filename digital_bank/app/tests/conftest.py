import itertools
from typing import Callable

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from ..core.config import Settings, get_settings
from ..core.db import create_engine_for_url, get_session, init_db, set_engine
from ..main import app

PASSWORD = "s3cret-pass"
_emails = itertools.count(1)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        secret_key="test-secret-key",
        signup_cooldown_minutes=0,
        bootstrap_admin_email=None,
        bootstrap_admin_password=None,
    )


@pytest.fixture
def engine(tmp_path):
    test_db = tmp_path / "test.db"
    engine = create_engine_for_url(f"sqlite:///{test_db}")
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def client(engine, settings) -> TestClient:
    original_engine = create_engine_for_url(get_settings().database_url)
    set_engine(engine)

    def _get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session_override
    app.dependency_overrides[get_settings] = lambda: settings
    init_db()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    set_engine(original_engine)


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def signup(client: TestClient) -> Callable[..., dict]:
    """Sign a user up and return ``{"id", "headers", "body"}``."""

    def _signup(role: str = "CUSTOMER", email: str | None = None) -> dict:
        email = email or f"user{next(_emails)}@digitalbank.pe"
        response = client.post(
            "/auth/signup",
            json={"email": email, "password": PASSWORD, "role": role},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {
            "id": body["user"]["id"],
            "email": email,
            "headers": auth_headers(body["accessToken"]),
            "body": body,
        }

    return _signup


@pytest.fixture
def admin(signup) -> dict:
    return signup("ADMIN")


@pytest.fixture
def customer(signup) -> dict:
    return signup()


@pytest.fixture
def open_account(client: TestClient, admin: dict) -> Callable[..., dict]:
    """Request an account for ``owner``, activate it and optionally fund it."""

    def _open(owner: dict, currency: str = "PEN", balance: str | None = None) -> dict:
        requested = client.post(
            "/accounts/request", json={"currency": currency}, headers=owner["headers"]
        )
        assert requested.status_code == 201, requested.text
        account_id = requested.json()["id"]

        activated = client.patch(f"/accounts/{account_id}/activate", headers=admin["headers"])
        assert activated.status_code == 200, activated.text
        account = activated.json()

        if balance is not None:
            deposit = client.post(
                f"/admin/accounts/{account_id}/deposit",
                json={"amount": balance},
                headers=admin["headers"],
            )
            assert deposit.status_code == 201, deposit.text
            account = client.get(f"/accounts/{account_id}", headers=owner["headers"]).json()
        return account

    return _open
