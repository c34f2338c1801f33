# hms_pharmacy/api/router.py
from fastapi import APIRouter

from hms_pharmacy.api import (
    routes_accounts,
    routes_medication_import,
    routes_pharmacy_purchases,
)

api_router = APIRouter()

# Pharmacy
api_router.include_router(routes_pharmacy_purchases.router)
api_router.include_router(routes_medication_import.router)

# Accounts
api_router.include_router(routes_accounts.router)
