# FILE: hms_pharmacy/api/routes_pharmacy_purchases.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from hms_pharmacy.api.deps import get_db, get_number_generator, get_store
from hms_pharmacy.api.exception_handlers import error_response
from hms_pharmacy.core.config import settings
from hms_pharmacy.schemas.pharmacy_purchase import (
    PurchaseCreate,
    PurchaseCreatedOut,
    PurchaseDetailOut,
    PurchaseSearchOut,
)
from hms_pharmacy.services.pharmacy_store import PharmacyStore
from hms_pharmacy.services.purchase_ingest import find_purchases, ingest_purchase

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pharmacy", tags=["Pharmacy - Purchases"])


@router.post("/purchases", response_model=PurchaseCreatedOut)
def create_purchase(
    payload: PurchaseCreate,
    request: Request,
    db: Session = Depends(get_db),
    store: PharmacyStore = Depends(get_store),
    number_generator=Depends(get_number_generator),
):
    try:
        purchase = ingest_purchase(store, number_generator, payload.purchase, payload.items)
        out = PurchaseCreatedOut(purchase=PurchaseDetailOut.model_validate(purchase))
    except Exception as e:
        return error_response(db, request, e, function="create_purchase",
                              payload=jsonable_encoder(payload))
    return out


@router.get("/purchases", response_model=PurchaseSearchOut)
def search_purchases(
    request: Request,
    bill_no: Optional[str] = Query(None, description="Supplier invoice / purchase number (partial)"),
    db: Session = Depends(get_db),
    store: PharmacyStore = Depends(get_store),
):
    try:
        rows = find_purchases(store, bill_no, limit=settings.PURCHASE_SEARCH_LIMIT)
        out = PurchaseSearchOut(purchases=[PurchaseDetailOut.model_validate(p) for p in rows])
    except Exception as e:
        return error_response(db, request, e, function="search_purchases",
                              payload={"bill_no": bill_no})
    return out
