# FILE: hms_pharmacy/services/pharmacy_store.py
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from hms_pharmacy.models.pharmacy import (
    DrugPurchase,
    DrugPurchaseItem,
    Medication,
    MedicineBatch,
)
from hms_pharmacy.services.errors import StorageError


class PharmacyStore:
    """
    Storage collaborator for purchasing and bulk import.

    Every write commits on its own; a failing statement rolls the session
    back and surfaces as StorageError carrying the driver's message/code.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError.from_exc(e) from e

    # ---------------- snapshot ----------------
    def medication_names(self) -> List[Tuple[int, str]]:
        with self._guard():
            rows = self.db.execute(
                select(Medication.id, Medication.name).order_by(Medication.id)
            ).all()
        return [(r.id, r.name) for r in rows]

    def batch_keys(self) -> List[Tuple[int, int, str]]:
        with self._guard():
            rows = self.db.execute(
                select(MedicineBatch.id, MedicineBatch.medicine_id, MedicineBatch.batch_number)
            ).all()
        return [(r.id, r.medicine_id, r.batch_number) for r in rows]

    # ---------------- medications ----------------
    def get_medication(self, medication_id: int) -> Optional[Medication]:
        """Point lookup; None means not found, other failures raise."""
        with self._guard():
            return self.db.get(Medication, medication_id)

    def find_medication_by_name(self, name: str) -> Optional[Medication]:
        with self._guard():
            return (
                self.db.query(Medication)
                .filter(func.lower(Medication.name) == (name or "").strip().lower())
                .order_by(Medication.id)
                .first()
            )

    def create_medication(self, values: Dict[str, Any]) -> Medication:
        with self._guard():
            med = Medication(**values)
            self.db.add(med)
            self.db.commit()
            self.db.refresh(med)
        return med

    def update_medication_prices(self, medication_id: int, *,
                                 purchase_price: Optional[Decimal] = None,
                                 mrp: Optional[Decimal] = None) -> None:
        with self._guard():
            med = self.db.get(Medication, medication_id)
            if med is None:
                return
            # zero / missing prices never overwrite known ones
            if purchase_price:
                med.purchase_price = purchase_price
            if mrp:
                med.mrp = mrp
                med.selling_price = mrp
            med.updated_at = datetime.utcnow()
            self.db.commit()

    # ---------------- batches ----------------
    def add_batch(self, values: Dict[str, Any]) -> MedicineBatch:
        """Insert a batch and add its quantity to the medication's stock counters."""
        with self._guard():
            batch = MedicineBatch(**values)
            self.db.add(batch)
            qty = Decimal(str(values.get("received_quantity") or 0))
            med = self.db.get(Medication, values["medicine_id"])
            if med is not None and qty:
                med.total_stock = Decimal(str(med.total_stock or 0)) + qty
                med.available_stock = Decimal(str(med.available_stock or 0)) + qty
                med.updated_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(batch)
        return batch

    # ---------------- purchases ----------------
    def insert_purchase(self, values: Dict[str, Any]) -> DrugPurchase:
        with self._guard():
            purchase = DrugPurchase(**values)
            self.db.add(purchase)
            self.db.commit()
            self.db.refresh(purchase)
        return purchase

    def insert_purchase_items(self, rows: List[Dict[str, Any]]) -> None:
        with self._guard():
            self.db.add_all([DrugPurchaseItem(**r) for r in rows])
            self.db.commit()

    def delete_purchase(self, purchase_id: int) -> None:
        with self._guard():
            self.db.query(DrugPurchase).filter(DrugPurchase.id == purchase_id).delete(
                synchronize_session=False
            )
            self.db.commit()
            self.db.expire_all()

    def get_purchase(self, purchase_id: int) -> Optional[DrugPurchase]:
        with self._guard():
            return (
                self.db.query(DrugPurchase)
                .options(selectinload(DrugPurchase.items).selectinload(DrugPurchaseItem.medication))
                .filter(DrugPurchase.id == purchase_id)
                .first()
            )

    def search_purchases(self, term: str, limit: int = 10) -> List[DrugPurchase]:
        like = f"%{term}%"
        with self._guard():
            return (
                self.db.query(DrugPurchase)
                .options(
                    selectinload(DrugPurchase.supplier),
                    selectinload(DrugPurchase.items).selectinload(DrugPurchaseItem.medication),
                )
                .filter(or_(
                    DrugPurchase.invoice_number.ilike(like),
                    DrugPurchase.purchase_number.ilike(like),
                ))
                .order_by(DrugPurchase.created_at.desc(), DrugPurchase.id.desc())
                .limit(limit)
                .all()
            )
