"""Shared fixtures: in-memory database, record store and API client."""

import os
import tempfile

# Settings are read at import time; point them at throwaway resources first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="leasing-uploads-")
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["TELEGRAM_CHAT_ID"] = ""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers all tables
from app.services.lease_service import create_lease
from app.services.payment_lifecycle import PaymentLifecycle
from app.services.record_store import RecordStore
from app.services.upload_service import UploadStorage, get_storage
from app.utils.database import Base, get_db


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
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
def store(db) -> RecordStore:
    return RecordStore(db)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 2, 1, 12, 0, 0))


@pytest.fixture
def lifecycle(store, clock) -> PaymentLifecycle:
    return PaymentLifecycle(store, clock=clock)


LEASE_DEFAULTS = dict(
    full_name="Aziz Karimov",
    phone_number="+998 90 123-45-67",
    car_brand="Chevrolet",
    car_model="Cobalt",
    car_year=2022,
    car_purchase_cost=Decimal("9000.00"),
    leasing_amount=Decimal("10000.00"),
    monthly_installment=Decimal("500.00"),
    lease_duration=3,
    lease_start_date=date(2024, 1, 15),
)


@pytest.fixture
def make_lease(store):
    """Creates a customer with its schedule; keyword arguments override the defaults."""

    def _make(**overrides):
        fields = dict(LEASE_DEFAULTS)
        fields.update(overrides)
        return create_lease(store, **fields)

    return _make


@pytest.fixture
def storage(tmp_path) -> UploadStorage:
    return UploadStorage(tmp_path / "uploads", max_bytes=64 * 1024)


@pytest.fixture
def client(session_factory, storage):
    from main import app as fastapi_app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_storage] = lambda: storage
    try:
        yield TestClient(fastapi_app)
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture
def paid_sum(store):
    """Sum of paid installments for a customer, settlement audit rows excluded."""

    def _sum(customer_id: int) -> Decimal:
        return sum(
            (
                Decimal(p.amount)
                for p in store.get_payments_for_customer(customer_id, "paid")
                if not p.is_settlement
            ),
            Decimal("0.00"),
        )

    return _sum
