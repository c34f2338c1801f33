# hms_pharmacy/api/deps.py
from __future__ import annotations

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from hms_pharmacy.db.session import SessionLocal
from hms_pharmacy.services.identity import LocalIdentityProvider
from hms_pharmacy.services.number_series import SeriesPurchaseNumberGenerator
from hms_pharmacy.services.pharmacy_store import PharmacyStore


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> PharmacyStore:
    return PharmacyStore(db)


def get_number_generator(db: Session = Depends(get_db)) -> SeriesPurchaseNumberGenerator:
    return SeriesPurchaseNumberGenerator(db)


def get_identity_provider(db: Session = Depends(get_db)) -> LocalIdentityProvider:
    return LocalIdentityProvider(db)
