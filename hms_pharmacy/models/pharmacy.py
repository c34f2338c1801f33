# FILE: hms_pharmacy/models/pharmacy.py
from __future__ import annotations

import enum
from datetime import datetime, date
from decimal import Decimal
from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, Numeric,
    ForeignKey, Enum, CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from hms_pharmacy.db.base import Base

Money = Numeric(14, 2)
Rate = Numeric(14, 4)
Qty = Numeric(14, 4)
Percent = Numeric(5, 2)


# -------------------------
# Enums
# -------------------------
class PurchaseStatus(str, enum.Enum):
    DRAFT = "draft"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class PurchaseItemFlag(str, enum.Enum):
    PURCHASE = "Purchase"
    RETURN = "Return"
    FREE = "Free"


# -------------------------
# Masters
# -------------------------
class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    supplier_code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    gstin = Column(String(50), default="")
    phone = Column(String(50), default="")
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    purchases = relationship("DrugPurchase", back_populates="supplier")


class Medication(Base):
    __tablename__ = "medications"

    id = Column(Integer, primary_key=True, index=True)
    medication_code = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    generic_name = Column(String(255), nullable=True)
    combination = Column(String(500), nullable=True)
    manufacturer = Column(String(255), nullable=True)
    category = Column(String(100), nullable=False, default="General Medicine")
    dosage_form = Column(String(100), nullable=True)
    strength = Column(String(100), nullable=True)
    unit = Column(String(50), nullable=False, default="units")

    total_stock = Column(Qty, nullable=False, default=Decimal("0"))
    available_stock = Column(Qty, nullable=False, default=Decimal("0"))
    minimum_stock_level = Column(Qty, nullable=False, default=Decimal("0"))

    # last known prices (real prices live on batches)
    purchase_price = Column(Rate, nullable=False, default=Decimal("0"))
    selling_price = Column(Rate, nullable=False, default=Decimal("0"))
    mrp = Column(Rate, nullable=False, default=Decimal("0"))

    prescription_required = Column(Boolean, nullable=False, default=True)
    status = Column(String(20), nullable=False, default="active")
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    batches = relationship("MedicineBatch", back_populates="medication")
    purchase_items = relationship("DrugPurchaseItem", back_populates="medication")


class MedicineBatch(Base):
    """
    One lot of a medication. Free stock from a purchase is its own batch
    with the paid batch number plus "-1".
    """
    __tablename__ = "medicine_batches"
    __table_args__ = (
        UniqueConstraint("medicine_id", "batch_number", name="uq_medicine_batch_number"),
        Index("ix_medicine_batches_expiry", "expiry_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    medicine_id = Column(Integer, ForeignKey("medications.id"), nullable=False, index=True)

    batch_number = Column(String(100), nullable=False)
    expiry_date = Column(Date, nullable=True)  # NULL = unknown, not "never expires"

    received_quantity = Column(Qty, nullable=False, default=Decimal("0"))
    current_quantity = Column(Qty, nullable=False, default=Decimal("0"))
    purchase_price = Column(Rate, nullable=False, default=Decimal("0"))
    selling_price = Column(Rate, nullable=False, default=Decimal("0"))
    mrp = Column(Rate, nullable=False, default=Decimal("0"))

    status = Column(String(20), nullable=False, default="active")
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    medication = relationship("Medication", back_populates="batches")


# -------------------------
# Safe number generator
# -------------------------
class InvNumberSeries(Base):
    __tablename__ = "inv_number_series"
    __table_args__ = (
        UniqueConstraint("key", "date_key", name="uq_inv_number_series_key_date"),
    )

    id = Column(Integer, primary_key=True)
    key = Column(String(30), nullable=False)         # PUR etc.
    date_key = Column(Integer, nullable=False)      # YYYYMMDD
    next_seq = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


# -------------------------
# Purchases
# -------------------------
class DrugPurchase(Base):
    __tablename__ = "drug_purchases"
    __table_args__ = (
        Index("ix_drug_purchases_supplier_invoice", "supplier_id", "invoice_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    purchase_number = Column(String(50), unique=True, nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)

    invoice_number = Column(String(100), nullable=True, index=True)
    invoice_date = Column(Date, nullable=True)
    bill_date = Column(Date, nullable=True)
    purchase_date = Column(Date, nullable=False, default=date.today)
    received_date = Column(Date, nullable=False, default=date.today)
    grn_no = Column(String(50), nullable=True)

    status = Column(Enum(PurchaseStatus, name="drug_purchase_status",
                         values_callable=lambda e: [m.value for m in e]),
                    nullable=False, default=PurchaseStatus.RECEIVED)

    total_quantity = Column(Qty, nullable=False, default=0)
    subtotal = Column(Money, nullable=False, default=0)
    discount_amount = Column(Money, nullable=False, default=0)
    taxable_amount = Column(Money, nullable=False, default=0)
    cgst_amount = Column(Money, nullable=False, default=0)
    sgst_amount = Column(Money, nullable=False, default=0)
    igst_amount = Column(Money, nullable=False, default=0)
    total_tax = Column(Money, nullable=False, default=0)
    total_amount = Column(Money, nullable=False, default=0)  # grand total of lines

    bill_amount = Column(Money, nullable=False, default=0)   # as printed by supplier
    disc_amount = Column(Money, nullable=False, default=0)   # bill-level flat discount
    cash_discount = Column(Money, nullable=False, default=0)
    sales_disc_percent = Column(Percent, nullable=False, default=0)
    total_discount = Column(Money, nullable=False, default=0)
    net_payable = Column(Money, nullable=False, default=0)
    round_off = Column(Money, nullable=False, default=0)
    paid_amount = Column(Money, nullable=False, default=0)

    payment_mode = Column(String(30), nullable=False, default="CREDIT")
    purchase_account = Column(String(100), nullable=False, default="PURCHASE ACCOUNT")
    free_bill = Column(Boolean, nullable=False, default=False)

    remarks = Column(String(1000), nullable=True)
    document_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    supplier = relationship("Supplier", back_populates="purchases")
    items = relationship("DrugPurchaseItem", back_populates="purchase",
                         cascade="all, delete-orphan", passive_deletes=True)


class DrugPurchaseItem(Base):
    __tablename__ = "drug_purchase_items"
    __table_args__ = (
        Index("ix_drug_purchase_items_purchase_med", "purchase_id", "medication_id"),
        CheckConstraint("quantity >= 0", name="ck_purchase_item_qty_nonneg"),
    )

    id = Column(Integer, primary_key=True, index=True)
    purchase_id = Column(Integer, ForeignKey("drug_purchases.id", ondelete="CASCADE"),
                         nullable=False, index=True)
    medication_id = Column(Integer, ForeignKey("medications.id"), nullable=False, index=True)

    batch_number = Column(String(100), nullable=False, default="")
    expiry_date = Column(Date, nullable=True)

    quantity = Column(Qty, nullable=False, default=0)
    free_quantity = Column(Qty, nullable=False, default=0)

    mrp = Column(Rate, nullable=True)
    purchase_rate = Column(Rate, nullable=False, default=0)
    selling_rate = Column(Rate, nullable=True)
    single_unit_rate = Column(Rate, nullable=False, default=0)
    pack_size = Column(Integer, nullable=False, default=1)
    profit_percent = Column(Percent, nullable=False, default=0)

    discount_percent = Column(Percent, nullable=False, default=0)
    discount_amount = Column(Money, nullable=False, default=0)
    taxable_amount = Column(Money, nullable=False, default=0)

    gst_percent = Column(Percent, nullable=False, default=0)
    cgst_percent = Column(Percent, nullable=False, default=0)
    cgst_amount = Column(Money, nullable=False, default=0)
    sgst_percent = Column(Percent, nullable=False, default=0)
    sgst_amount = Column(Money, nullable=False, default=0)
    igst_percent = Column(Percent, nullable=False, default=0)
    igst_amount = Column(Money, nullable=False, default=0)

    total_amount = Column(Money, nullable=False, default=0)

    drug_return = Column(Boolean, nullable=False, default=False)
    flag = Column(String(20), nullable=False, default=PurchaseItemFlag.PURCHASE.value)

    purchase = relationship("DrugPurchase", back_populates="items")
    medication = relationship("Medication", back_populates="purchase_items")

    @property
    def medication_name(self) -> str:
        return self.medication.name if self.medication is not None else ""
