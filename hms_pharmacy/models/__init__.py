# hms_pharmacy/models/__init__.py
from .pharmacy import (
    Supplier,
    Medication,
    MedicineBatch,
    InvNumberSeries,
    DrugPurchase,
    DrugPurchaseItem,
    PurchaseStatus,
    PurchaseItemFlag,
)
from .accounts import AuthPrincipal, User, Staff, Doctor, Patient
from .error_log import ErrorLog

__all__ = [
    "Supplier",
    "Medication",
    "MedicineBatch",
    "InvNumberSeries",
    "DrugPurchase",
    "DrugPurchaseItem",
    "PurchaseStatus",
    "PurchaseItemFlag",
    "AuthPrincipal",
    "User",
    "Staff",
    "Doctor",
    "Patient",
    "ErrorLog",
]
