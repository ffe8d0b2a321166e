import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from shared.core.auth import verify_token
from shared.core.database import get_plaza_db
from shared.core.exceptions import PersistenceError
from shared.helpers.db_helper import persistence_guard
from plaza_service.app.main import app
from conftest import create_access_token


def test_token_round_trip():
    token = create_access_token({"user_id": "u-7", "name": "Desk", "account_type": "tenant"})
    user = verify_token(token)

    assert user.user_id == "u-7"
    assert user.account_type == "tenant"


def test_unknown_account_type_rejected():
    token = create_access_token({"user_id": "u-8", "account_type": "vendor"})
    with pytest.raises(HTTPException) as exc:
        verify_token(token)
    assert exc.value.status_code == 401


def test_garbage_token_rejected():
    with pytest.raises(HTTPException) as exc:
        verify_token("not-a-jwt")
    assert exc.value.detail["status_code"] == "501"


def test_bearer_token_reaches_the_routes(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_plaza_db] = override_get_db
    try:
        client = TestClient(app)
        token = create_access_token({"user_id": "a-1", "name": "Admin", "account_type": "admin"})

        ok = client.get("/api/businesses/all", headers={"Authorization": f"Bearer {token}"})
        assert ok.status_code == 200
        assert ok.json() == {"businesses": [], "total": 0}

        denied = client.get("/api/businesses/all", headers={"Authorization": "Bearer nope"})
        assert denied.status_code == 401
        assert denied.json()["status"] == "Failure"
    finally:
        app.dependency_overrides.clear()


def test_operational_errors_become_retryable_persistence_errors(db):
    with pytest.raises(PersistenceError) as exc:
        with persistence_guard(db, "write"):
            raise OperationalError("UPDATE bills", {}, Exception("database is locked"))

    assert exc.value.retryable is True
    assert "Failed to write" in exc.value.message
