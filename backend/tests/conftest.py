from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from rentalhub.config import settings
from rentalhub.db import get_db, init_db, make_engine
from rentalhub.main import app
from rentalhub.repositories.memory_repo import (
    InMemoryProductCatalog,
    InMemoryReservationRepository,
)
from rentalhub.repositories.product_repo import ProductRepository
from rentalhub.repositories.reservation_repo import SqlReservationRepository
from rentalhub.services.reservation_service import ReservationArbiter

# fixed "now" for tests that care about expiry
NOW = datetime(2024, 5, 20, 12, 0, 0)


@pytest.fixture(autouse=True)
def _isolated_locks(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "RESERVATION_LOCKS_DIR", str(tmp_path / "locks"))


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(reset=True, bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def products(session_factory):
    """Seed products and return {sku: id}."""
    db = session_factory()
    try:
        repo = ProductRepository(db)
        seeded = {
            "P5": repo.create_or_update("P5", "Camera", quantity_on_hand=5, vendor_id=1),
            "P1": repo.create_or_update("P1", "Projector", quantity_on_hand=1, vendor_id=1),
            "OFF": repo.create_or_update("OFF", "Sale only", quantity_on_hand=4, vendor_id=1, is_rentable=False),
        }
        db.commit()
        return {sku: p.id for sku, p in seeded.items()}
    finally:
        db.close()


@pytest.fixture
def db(session_factory, products):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def arbiter(db):
    return ReservationArbiter(SqlReservationRepository(db), ProductRepository(db), clock=lambda: NOW)


@pytest.fixture
def memory_arbiter():
    catalog = InMemoryProductCatalog({1: 5, 2: 1})
    return ReservationArbiter(InMemoryReservationRepository(lock_timeout=5), catalog, clock=lambda: NOW)


@pytest.fixture
def client(session_factory, products):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
