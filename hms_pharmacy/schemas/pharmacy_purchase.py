# FILE: hms_pharmacy/schemas/pharmacy_purchase.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

Money = Decimal
Quantity = Decimal
Percent = Decimal


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


# ---------------------------
# Purchase lines - Inputs
# ---------------------------
class PurchaseLineIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    medication_id: Optional[int] = None

    batch_number: str = Field(default="", max_length=100)
    # free text on purpose: "2026-03-31", "31/03/2026", "03-2026", "Mar-26", serials
    expiry_date: Optional[str] = None

    quantity: Quantity = Field(default=Decimal("0"), ge=0)
    free_quantity: Quantity = Field(default=Decimal("0"), ge=0)

    rate: Money = Field(
        default=Decimal("0"),
        ge=0,
        validation_alias=AliasChoices("rate", "unit_price", "purchase_rate"),
    )
    mrp: Money = Field(default=Decimal("0"), ge=0)
    pack_size: int = Field(default=1, ge=0)

    discount_percent: Percent = Field(default=Decimal("0"), ge=0, le=100)
    gst_percent: Percent = Field(default=Decimal("0"), ge=0, le=100)
    profit_percent: Percent = Field(default=Decimal("0"))

    drug_return: bool = False

    # optional overrides for the free (-1) batch
    free_expiry_date: Optional[str] = None
    free_mrp: Optional[Money] = Field(default=None, ge=0)

    @field_validator("batch_number")
    @classmethod
    def _trim(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("expiry_date", "free_expiry_date", mode="before")
    @classmethod
    def _expiry_text(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, datetime):
            return v.date().isoformat()
        if isinstance(v, date):
            return v.isoformat()
        return str(v)

    @field_validator("quantity", "free_quantity", "rate", "mrp", "pack_size", "discount_percent",
                     "gst_percent", "profit_percent", "free_mrp", mode="before")
    @classmethod
    def _blank_number(cls, v: Any, info: ValidationInfo) -> Any:
        if _blank_to_none(v) is None:
            return cls.model_fields[info.field_name].default
        return v


# ---------------------------
# Purchase header - Inputs
# ---------------------------
class PurchaseHeaderIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    supplier_id: Optional[int] = None

    invoice_number: Optional[str] = Field(
        default=None,
        max_length=100,
        validation_alias=AliasChoices("bill_no", "invoice_number"),
    )
    bill_date: Optional[date] = None
    invoice_date: Optional[date] = None
    received_date: Optional[date] = None
    grn_no: Optional[str] = Field(default=None, max_length=50)

    status: str = Field(default="received")

    bill_amount: Optional[Money] = Field(default=None, ge=0)
    disc_amount: Money = Field(default=Decimal("0"), ge=0)     # bill-level flat discount
    cash_discount: Money = Field(default=Decimal("0"), ge=0)
    sales_disc_percent: Percent = Field(default=Decimal("0"), ge=0)
    paid_amount: Money = Field(default=Decimal("0"), ge=0)

    payment_mode: str = Field(default="CREDIT", max_length=30)
    purchase_account: str = Field(default="PURCHASE ACCOUNT", max_length=100)
    free_bill: bool = False

    remarks: Optional[str] = Field(default=None, max_length=1000)
    document_url: Optional[str] = Field(default=None, max_length=500)

    @field_validator("bill_date", "invoice_date", "received_date", "bill_amount",
                     "invoice_number", "grn_no", "remarks", "document_url", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("disc_amount", "cash_discount", "sales_disc_percent", "paid_amount",
                     "payment_mode", "purchase_account", "status", mode="before")
    @classmethod
    def _default_when_blank(cls, v: Any, info: ValidationInfo) -> Any:
        if _blank_to_none(v) is None:
            return cls.model_fields[info.field_name].default
        return v.strip() if isinstance(v, str) else v


class PurchaseCreate(BaseModel):
    purchase: PurchaseHeaderIn = Field(default_factory=PurchaseHeaderIn)
    items: List[PurchaseLineIn] = Field(default_factory=list)


# ---------------------------
# Outputs
# ---------------------------
class SupplierBrief(BaseModel):
    id: int
    name: str
    supplier_code: str
    gstin: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PurchaseItemOut(BaseModel):
    id: int
    purchase_id: int
    medication_id: int
    medication_name: str = ""

    batch_number: str
    expiry_date: Optional[date] = None
    quantity: Quantity
    free_quantity: Quantity
    mrp: Optional[Money] = None
    purchase_rate: Money
    selling_rate: Optional[Money] = None
    single_unit_rate: Money
    pack_size: int
    profit_percent: Percent

    discount_percent: Percent
    discount_amount: Money
    taxable_amount: Money
    gst_percent: Percent
    cgst_percent: Percent
    cgst_amount: Money
    sgst_percent: Percent
    sgst_amount: Money
    igst_percent: Percent
    igst_amount: Money
    total_amount: Money

    drug_return: bool
    flag: str

    model_config = ConfigDict(from_attributes=True)


class PurchaseOut(BaseModel):
    id: int
    purchase_number: str
    supplier_id: int

    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    bill_date: Optional[date] = None
    purchase_date: date
    received_date: date
    grn_no: Optional[str] = None
    status: str

    total_quantity: Quantity
    subtotal: Money
    discount_amount: Money
    taxable_amount: Money
    cgst_amount: Money
    sgst_amount: Money
    igst_amount: Money
    total_tax: Money
    total_amount: Money

    bill_amount: Money
    disc_amount: Money
    cash_discount: Money
    sales_disc_percent: Percent
    total_discount: Money
    net_payable: Money
    round_off: Money
    paid_amount: Money

    payment_mode: str
    purchase_account: str
    free_bill: bool
    remarks: Optional[str] = None
    document_url: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("status", mode="before")
    @classmethod
    def _enum_value(cls, v: Any) -> Any:
        return getattr(v, "value", v)


class PurchaseDetailOut(PurchaseOut):
    supplier: Optional[SupplierBrief] = None
    items: List[PurchaseItemOut] = Field(default_factory=list)


class PurchaseCreatedOut(BaseModel):
    purchase: PurchaseDetailOut


class PurchaseSearchOut(BaseModel):
    purchases: List[PurchaseDetailOut] = Field(default_factory=list)
