import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CRON_SECRET"] = "test-cron-secret"

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shared.core.auth import validate_current_token
from shared.core.config import settings
from shared.core.database import Base, get_plaza_db
from shared.core.schemas import UserToken
from plaza_service.app.main import app
from plaza_service.app.models.tenants.businesses import Business

ADMIN = UserToken(user_id="admin-1", name="Plaza Admin", account_type="admin")
TENANT = UserToken(user_id="tenant-1", name="Shop Owner", account_type="tenant")


def create_access_token(data: dict, expires_minutes: int = 60) -> str:
    """Tokens are minted by the identity service; tests sign their own."""
    payload = {**data, "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # let SQLAlchemy drive BEGIN so SAVEPOINTs work on pysqlite
    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def auth():
    return {"user": ADMIN}


@pytest.fixture
def client(session_factory, auth):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_plaza_db] = override_get_db
    app.dependency_overrides[validate_current_token] = lambda: auth["user"]
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_business(db):
    counter = {"n": 0}

    def _make(**overrides) -> Business:
        counter["n"] += 1
        data = dict(
            name=f"Shop {counter['n']}",
            shop_number=f"G-{counter['n']:02d}",
            floor_number=0,
            rent_amount=Decimal("50000"),
            status="active",
            rent_management=True,
            electricity_management=True,
            lease_start_date=date(2026, 1, 1),
        )
        data.update(overrides)
        business = Business(**data)
        db.add(business)
        db.commit()
        db.refresh(business)
        return business

    return _make
