# FILE: hms_pharmacy/services/import_columns.py
from __future__ import annotations

import enum
import re
from typing import Any, Dict, Iterable, Optional

from hms_pharmacy.services.errors import MissingColumnError


class ImportField(str, enum.Enum):
    MEDICINE = "medicine"
    BATCH = "batch"
    PURCHASE_RATE = "purchase_rate"
    MRP = "mrp"
    EXPIRY = "expiry"
    QUANTITY = "quantity"
    PACK = "pack"
    COMBINATION = "combination"
    ROUTE = "route"
    AMPOULE = "ampoule"
    BRAND = "brand"
    PRODUCT = "product"


REQUIRED_FIELDS = (ImportField.MEDICINE,)

# Keys are headers after _norm_header: lower-case, only [a-z0-9].
HEADER_ALIASES: Dict[str, ImportField] = {
    # medicine
    "medicine": ImportField.MEDICINE,
    "medicinename": ImportField.MEDICINE,
    "medicines": ImportField.MEDICINE,
    "medname": ImportField.MEDICINE,
    "drug": ImportField.MEDICINE,
    "drugname": ImportField.MEDICINE,
    "itemname": ImportField.MEDICINE,
    # batch
    "batch": ImportField.BATCH,
    "batchno": ImportField.BATCH,
    "batchnumber": ImportField.BATCH,
    "batchnum": ImportField.BATCH,
    # purchase rate
    "purchaserate": ImportField.PURCHASE_RATE,
    "purchaserat": ImportField.PURCHASE_RATE,
    "purchaseprice": ImportField.PURCHASE_RATE,
    "prate": ImportField.PURCHASE_RATE,
    "rate": ImportField.PURCHASE_RATE,
    # mrp
    "mrp": ImportField.MRP,
    "mrprs": ImportField.MRP,
    # expiry
    "expiry": ImportField.EXPIRY,
    "expirydt": ImportField.EXPIRY,
    "expirydate": ImportField.EXPIRY,
    "expdate": ImportField.EXPIRY,
    "exp": ImportField.EXPIRY,
    # quantity
    "qty": ImportField.QUANTITY,
    "quantity": ImportField.QUANTITY,
    "stock": ImportField.QUANTITY,
    # pack
    "pack": ImportField.PACK,
    "packsize": ImportField.PACK,
    # generic / combination
    "combination": ImportField.COMBINATION,
    "combinations": ImportField.COMBINATION,
    "generic": ImportField.COMBINATION,
    "genericname": ImportField.COMBINATION,
    # route
    "ivim": ImportField.ROUTE,
    "route": ImportField.ROUTE,
    # strength of injectables
    "ampoule": ImportField.AMPOULE,
    "ampolue": ImportField.AMPOULE,
    "ampoules": ImportField.AMPOULE,
    # brand
    "brand": ImportField.BRAND,
    "brandname": ImportField.BRAND,
    "manufacturer": ImportField.BRAND,
    "company": ImportField.BRAND,
    # dosage form
    "product": ImportField.PRODUCT,
    "producttype": ImportField.PRODUCT,
    "dosageform": ImportField.PRODUCT,
    "form": ImportField.PRODUCT,
}

COLUMN_LABELS = {
    ImportField.MEDICINE: "Medicine",
    ImportField.BATCH: "Batch No",
    ImportField.PURCHASE_RATE: "Purchase Rate",
    ImportField.MRP: "MRP",
    ImportField.EXPIRY: "Expiry",
    ImportField.QUANTITY: "Qty",
    ImportField.PACK: "Pack",
    ImportField.COMBINATION: "Combination",
    ImportField.ROUTE: "IV/IM",
    ImportField.AMPOULE: "Ampoule",
    ImportField.BRAND: "Brand",
    ImportField.PRODUCT: "Product",
}


def _norm_header(h: Any) -> str:
    s = ("" if h is None else str(h)).replace("\ufeff", "").strip().lower()
    return re.sub(r"[^a-z0-9]", "", s)


def field_for_header(h: Any) -> Optional[ImportField]:
    return HEADER_ALIASES.get(_norm_header(h))


def map_columns(headers: Iterable[Any], sheet: str = "") -> Dict[ImportField, int]:
    """
    Column index (0-based) per known field. The first matching header wins;
    unknown headers are ignored. Raises MissingColumnError when a required
    field has no column.
    """
    col_map: Dict[ImportField, int] = {}
    for idx, h in enumerate(headers):
        f = field_for_header(h)
        if f is not None and f not in col_map:
            col_map[f] = idx

    for f in REQUIRED_FIELDS:
        if f not in col_map:
            raise MissingColumnError(sheet, COLUMN_LABELS[f])
    return col_map
