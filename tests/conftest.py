"""
Pytest fixtures for the pharmacy purchasing tests.

Every test gets a fresh in-memory SQLite database (foreign keys on) and,
where needed, a FastAPI test client wired to that database.
"""
import os

# must be set before hms_pharmacy.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import hms_pharmacy.models  # noqa: F401
from hms_pharmacy.api.deps import get_db
from hms_pharmacy.db.init_db import create_tables, drop_tables
from hms_pharmacy.main import app
from hms_pharmacy.models import Medication, MedicineBatch, Supplier
from hms_pharmacy.services.pharmacy_store import PharmacyStore


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _fk_on(dbapi_conn, _):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, future=True)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(db):
    return PharmacyStore(db)


@pytest.fixture()
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def supplier(db):
    s = Supplier(supplier_code="SUP001", name="Sri Lakshmi Pharma Distributors", gstin="33ABCDE1234F1Z5")
    db.add(s)
    db.commit()
    return s


def _medication(db, code, name, **kw):
    med = Medication(medication_code=code, name=name, **kw)
    db.add(med)
    db.commit()
    return med


@pytest.fixture()
def paracetamol(db):
    return _medication(db, "MED-PARA-0001", "Paracetamol 500mg", category="Pain Management",
                       purchase_price=Decimal("1.20"), mrp=Decimal("2.00"))


@pytest.fixture()
def amoxicillin(db):
    return _medication(db, "MED-AMOX-0001", "Amoxicillin 250mg", category="Antibiotics")


@pytest.fixture()
def paracetamol_batch(db, paracetamol):
    b = MedicineBatch(
        medicine_id=paracetamol.id,
        batch_number="B1",
        expiry_date=date(2026, 6, 30),
        received_quantity=Decimal("100"),
        current_quantity=Decimal("100"),
    )
    db.add(b)
    db.commit()
    return b
