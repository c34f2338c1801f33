# FILE: hms_pharmacy/services/medication_import.py
"""
Writes an uploaded medicine/batch sheet into storage.

`commit_preview` works from the same reconciliation result the preview
endpoint returns, so a commit does exactly what the preview showed: new
medications are created, new batches inserted, and anything already
stored (or repeated inside the file) is skipped. Rows are independent; a
failing row is reported and the rest carry on.
"""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from hms_pharmacy.services.drug_category import derive_category, derive_dosage_form, derive_unit
from hms_pharmacy.services.errors import StorageError
from hms_pharmacy.services.expiry_dates import normalize_expiry, parse_iso
from hms_pharmacy.services.medication_reconcile import (
    DUPLICATE,
    EXISTING,
    PreviewBatch,
    PreviewMedication,
    PreviewResult,
)
from hms_pharmacy.services.spreadsheet import ImportSheet

logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"
SKIPPED = "skipped"

_B36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _base36(n: int) -> str:
    if n <= 0:
        return "0"
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = _B36[r] + out
    return out


def generate_medication_code(name: str, index: int, now_ms: Optional[int] = None) -> str:
    """MED-<first 4 alphanumerics of name>-<last 4 base36 digits of time><index>"""
    prefix = re.sub(r"[^A-Za-z0-9]", "", name or "")[:4].upper()
    stamp = _base36(now_ms if now_ms is not None else int(time.time() * 1000))[-4:]
    return f"MED-{prefix}-{stamp}{index}"


@dataclass
class RowResult:
    row: int
    sheet: str
    medicine_name: str
    batch_number: str
    status: str
    message: str


@dataclass
class CommitResult:
    total_processed: int = 0
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    results: List[RowResult] = field(default_factory=list)


class _Collector:
    def __init__(self, limit: int):
        self.limit = limit
        self.out = CommitResult()

    def add(self, status: str, row: int, sheet: str, name: str, batch: str, message: str) -> None:
        if status == SUCCESS:
            self.out.success_count += 1
        elif status == ERROR:
            self.out.error_count += 1
        else:
            self.out.skipped_count += 1
        if len(self.out.results) < self.limit:
            self.out.results.append(RowResult(row, sheet, name, batch, status, message))


def _new_medication_values(med: PreviewMedication, index: int, min_stock: int) -> Dict[str, Any]:
    form = derive_dosage_form(med.name, med.combination, med.product)
    return {
        "medication_code": generate_medication_code(med.name, index),
        "name": med.name,
        "generic_name": med.combination or None,
        "combination": med.combination or None,
        "manufacturer": med.brand or None,
        "category": med.category,
        "dosage_form": form or med.product or None,
        "strength": med.ampoule or None,
        "unit": derive_unit(form),
        "total_stock": Decimal("0"),
        "available_stock": Decimal("0"),
        "minimum_stock_level": Decimal(min_stock),
        "purchase_price": med.purchase_rate,
        "selling_price": med.mrp,
        "mrp": med.mrp,
        "prescription_required": True,
        "status": "active",
        "is_active": True,
    }


def _batch_values(medication_id: int, b: PreviewBatch) -> Dict[str, Any]:
    return {
        "medicine_id": medication_id,
        "batch_number": b.batch_number,
        "expiry_date": parse_iso(b.expiry_date),
        "received_quantity": b.quantity,
        "current_quantity": b.quantity,
        "purchase_price": b.purchase_rate,
        "selling_price": b.mrp,
        "mrp": b.mrp,
        "status": "active",
        "is_active": True,
    }


def _resolve_medication(store, med: PreviewMedication, index: int, min_stock: int) -> int:
    if med.existing_medication_id is not None:
        return med.existing_medication_id
    try:
        return store.create_medication(_new_medication_values(med, index, min_stock)).id
    except StorageError:
        # a concurrent upload may have created it first
        found = store.find_medication_by_name(med.name)
        if found is None:
            raise
        return found.id


def commit_preview(
    store,
    preview: PreviewResult,
    *,
    result_limit: int = 100,
    min_stock: int = 10,
) -> CommitResult:
    col = _Collector(result_limit)
    col.out.total_processed = sum(s.row_count for s in preview.sheets)
    col.out.skipped_count = sum(s.blank_rows for s in preview.sheets)

    # rows the reader already rejected (bad numbers, missing Medicine column)
    col.out.error_count = preview.error_count
    for e in preview.errors:
        if len(col.out.results) < result_limit:
            col.out.results.append(RowResult(e.row, e.sheet, "", "", ERROR, e.message))

    created = 0
    for med in preview.preview_data:
        try:
            medication_id = _resolve_medication(store, med, created + 1, min_stock)
        except StorageError as e:
            logger.warning("Medication %r not created: %s", med.name, e.message)
            rows = med.batches or [None]
            for b in rows:
                col.add(ERROR, b.row if b else med.row, b.sheet if b else med.sheet, med.name,
                        b.batch_number if b else "", f"Failed to create medication: {e.message}")
            continue
        if med.existing_medication_id is None:
            created += 1

        if not med.batches:
            try:
                store.update_medication_prices(medication_id, purchase_price=med.purchase_rate, mrp=med.mrp)
            except StorageError as e:
                col.add(ERROR, med.row, med.sheet, med.name, "(none)", e.message)
                continue
            col.add(SUCCESS, med.row, med.sheet, med.name, "(none)",
                    "Medication created/updated (no batch data)")
            continue

        for b in med.batches:
            if b.status == EXISTING:
                col.add(SKIPPED, b.row, b.sheet, med.name, b.batch_number, "Batch already exists")
                continue
            if b.status == DUPLICATE:
                col.add(SKIPPED, b.row, b.sheet, med.name, b.batch_number, "Batch repeated in upload")
                continue
            try:
                store.add_batch(_batch_values(medication_id, b))
                store.update_medication_prices(medication_id, purchase_price=b.purchase_rate, mrp=b.mrp)
            except StorageError as e:
                logger.warning("Batch %s of %r failed: %s", b.batch_number, med.name, e.message)
                col.add(ERROR, b.row, b.sheet, med.name, b.batch_number, f"Batch insert failed: {e.message}")
                continue
            col.add(SUCCESS, b.row, b.sheet, med.name, b.batch_number, "Medication & batch uploaded")

    out = col.out
    logger.info(
        "Bulk upload committed: processed=%s success=%s error=%s skipped=%s",
        out.total_processed, out.success_count, out.error_count, out.skipped_count,
    )
    return out


# ---------------------------------------------------------------------------
# Medication master (CSV: Medicine / Combination / Brand / Product)
# ---------------------------------------------------------------------------
@dataclass
class MasterRowError:
    row: int
    message: str
    field: Optional[str] = None


@dataclass
class MasterImportResult:
    total_rows: int = 0
    success_count: int = 0
    error_count: int = 0
    duplicate_count: int = 0
    errors: List[MasterRowError] = field(default_factory=list)


def import_medication_master(
    store,
    sheets: Sequence[ImportSheet],
    *,
    error_sample: int = 10,
) -> MasterImportResult:
    out = MasterImportResult()
    errors: List[MasterRowError] = []

    for sheet in sheets:
        if sheet.error:
            errors.append(MasterRowError(row=0, message=sheet.error, field="Medicine"))
            out.error_count += 1
            continue

        out.total_rows += len(sheet.rows)
        for row in sheet.rows:
            name = " ".join(row.medicine_name.split())
            if not name:
                errors.append(MasterRowError(row=row.row, field="Medicine",
                                             message="Medicine name is required"))
                out.error_count += 1
                continue

            try:
                if store.find_medication_by_name(name) is not None:
                    out.duplicate_count += 1
                    continue
                store.create_medication({
                    "medication_code": generate_medication_code(name, out.success_count + 1),
                    "name": name,
                    "generic_name": row.combination or "Not specified",
                    "combination": row.combination or None,
                    "manufacturer": row.brand or "Not specified",
                    "category": derive_category(name, row.combination),
                    "dosage_form": row.product or "Not specified",
                    "strength": "N/A",
                    "unit": "N/A",
                    "minimum_stock_level": Decimal("0"),
                    "prescription_required": False,
                    "status": "active",
                    "is_active": True,
                })
            except StorageError as e:
                logger.warning("Medication master row %s (%r) failed: %s", row.row, name, e.message)
                errors.append(MasterRowError(row=row.row, message=e.message))
                out.error_count += 1
                continue
            out.success_count += 1

    out.errors = errors[:error_sample]
    logger.info("Medication master import: rows=%s created=%s duplicates=%s errors=%s",
                out.total_rows, out.success_count, out.duplicate_count, out.error_count)
    return out


# ---------------------------------------------------------------------------
# Batch upload for known medications
# ---------------------------------------------------------------------------
@dataclass
class BatchUploadResult:
    success_count: int = 0
    error_count: int = 0


def add_batches(store, batches: Sequence[Any]) -> BatchUploadResult:
    """
    `batches` items expose medication_id, batch_number, expiry_date,
    quantity, purchase_rate and mrp (see schemas.medication_import.BatchUploadIn).
    """
    out = BatchUploadResult()
    for b in batches:
        batch_number = (b.batch_number or "").strip()
        if not b.medication_id or not batch_number:
            out.error_count += 1
            continue

        expiry = None
        if b.expiry_date:
            iso = normalize_expiry(b.expiry_date)
            if iso is None:
                logger.warning("Batch %s: unrecognised expiry %r", batch_number, b.expiry_date)
                out.error_count += 1
                continue
            expiry = parse_iso(iso)

        try:
            if store.get_medication(b.medication_id) is None:
                logger.warning("Batch %s: medication id=%s not found", batch_number, b.medication_id)
                out.error_count += 1
                continue
            store.add_batch({
                "medicine_id": b.medication_id,
                "batch_number": batch_number,
                "expiry_date": expiry,
                "received_quantity": b.quantity,
                "current_quantity": b.quantity,
                "purchase_price": b.purchase_rate,
                "selling_price": b.mrp,
                "mrp": b.mrp,
                "status": "active",
                "is_active": True,
            })
        except StorageError as e:
            logger.warning("Batch %s insert failed: %s", batch_number, e.message)
            out.error_count += 1
            continue
        out.success_count += 1
    return out
