# FILE: hms_pharmacy/services/medication_reconcile.py
"""
Dry-run reconciliation of an uploaded medicine/batch sheet against what is
already stored.

The existing medications and batches are loaded once into an
`ExistingSnapshot`; `reconcile()` then classifies every row against that
snapshot without touching storage, so the same snapshot and rows always
give the same preview.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set, Tuple

from hms_pharmacy.services.drug_category import derive_category
from hms_pharmacy.services.expiry_dates import (
    EXPIRED,
    EXPIRING_SOON,
    expiry_status,
)
from hms_pharmacy.services.spreadsheet import ImportRow, ImportSheet
from hms_pharmacy.utils.timezone import today_local

NEW = "new"
EXISTING = "existing"
DUPLICATE = "duplicate"


def normalize_name(name: Optional[str]) -> str:
    return " ".join((name or "").split()).lower()


@dataclass(frozen=True)
class ExistingSnapshot:
    medications: Dict[str, int] = field(default_factory=dict)           # normalized name -> id
    batches: Dict[Tuple[int, str], int] = field(default_factory=dict)   # (medication id, batch no) -> id

    @classmethod
    def from_rows(
        cls,
        medications: Iterable[Tuple[int, str]],
        batches: Iterable[Tuple[int, int, str]],
    ) -> "ExistingSnapshot":
        meds: Dict[str, int] = {}
        for med_id, name in medications:
            # keep the first (oldest) id when names collide after normalizing
            meds.setdefault(normalize_name(name), med_id)
        bmap = {(med_id, batch_no): batch_id for batch_id, med_id, batch_no in batches}
        return cls(medications=meds, batches=bmap)


def load_snapshot(store) -> ExistingSnapshot:
    return ExistingSnapshot.from_rows(store.medication_names(), store.batch_keys())


@dataclass
class PreviewBatch:
    sheet: str
    row: int
    batch_number: str
    expiry_date: Optional[str]
    quantity: Decimal
    purchase_rate: Decimal
    mrp: Decimal
    pack: Decimal
    status: str
    expiry_status: str
    existing_batch_id: Optional[int] = None


@dataclass
class PreviewMedication:
    key: str
    name: str
    category: str
    status: str
    sheet: str
    row: int
    combination: str = ""
    brand: str = ""
    product: str = ""
    route: str = ""
    ampoule: str = ""
    existing_medication_id: Optional[int] = None
    purchase_rate: Decimal = Decimal("0")
    mrp: Decimal = Decimal("0")
    batches: List[PreviewBatch] = field(default_factory=list)


@dataclass
class SheetStats:
    name: str
    row_count: int
    valid_rows: int = 0
    invalid_rows: int = 0
    blank_rows: int = 0    # no medicine name; part of invalid_rows


@dataclass
class MedicationCounts:
    total: int = 0
    new: int = 0
    existing: int = 0
    duplicate: int = 0


@dataclass
class BatchCounts:
    total: int = 0
    new: int = 0
    existing: int = 0
    duplicate: int = 0
    expired: int = 0
    expiring_soon: int = 0


@dataclass
class RowError:
    row: int
    sheet: str
    message: str


@dataclass
class PreviewResult:
    sheets: List[SheetStats] = field(default_factory=list)
    medications: MedicationCounts = field(default_factory=MedicationCounts)
    batches: BatchCounts = field(default_factory=BatchCounts)
    preview_data: List[PreviewMedication] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    error_count: int = 0


def _classify_batch(
    snapshot: ExistingSnapshot,
    seen_new: Set[Tuple[str, str]],
    med_key: str,
    existing_med_id: Optional[int],
    batch_number: str,
) -> Tuple[str, Optional[int]]:
    if existing_med_id is not None:
        batch_id = snapshot.batches.get((existing_med_id, batch_number))
        if batch_id is not None:
            return EXISTING, batch_id

    run_key = (med_key, batch_number)
    if run_key in seen_new:
        return DUPLICATE, None
    seen_new.add(run_key)
    return NEW, None


def reconcile(
    snapshot: ExistingSnapshot,
    sheets: List[ImportSheet],
    *,
    today: Optional[date] = None,
    warning_days: int = 90,
    error_sample: int = 10,
) -> PreviewResult:
    today = today or today_local()
    result = PreviewResult()
    errors: List[RowError] = []

    meds: Dict[str, PreviewMedication] = {}
    seen_new: Set[Tuple[str, str]] = set()

    for sheet in sheets:
        if sheet.error:
            errors.append(RowError(row=0, sheet=sheet.name, message=sheet.error))
            continue

        stats = SheetStats(name=sheet.name, row_count=sheet.row_count)

        for row in sheet.rows:
            if not row.medicine_name:
                stats.invalid_rows += 1
                stats.blank_rows += 1
                continue
            if row.error:
                stats.invalid_rows += 1
                errors.append(RowError(row=row.row, sheet=sheet.name, message=row.error))
                continue

            stats.valid_rows += 1
            _apply_row(result, snapshot, meds, seen_new, row, today, warning_days)

        result.sheets.append(stats)

    result.preview_data = list(meds.values())
    _count(result)
    result.error_count = len(errors)
    result.errors = errors[:error_sample]
    return result


def _apply_row(
    result: PreviewResult,
    snapshot: ExistingSnapshot,
    meds: Dict[str, PreviewMedication],
    seen_new: Set[Tuple[str, str]],
    row: ImportRow,
    today: date,
    warning_days: int,
) -> None:
    key = normalize_name(row.medicine_name)
    existing_id = snapshot.medications.get(key)

    med = meds.get(key)
    if med is None:
        med = PreviewMedication(
            key=key,
            name=" ".join(row.medicine_name.split()),
            category=derive_category(row.medicine_name, row.combination),
            status=EXISTING if existing_id is not None else NEW,
            sheet=row.sheet,
            row=row.row,
            combination=row.combination,
            brand=row.brand,
            product=row.product,
            route=row.route,
            ampoule=row.ampoule,
            existing_medication_id=existing_id,
        )
        meds[key] = med
    else:
        result.medications.duplicate += 1

    if row.purchase_rate:
        med.purchase_rate = row.purchase_rate
    if row.mrp:
        med.mrp = row.mrp

    if not row.batch_number:
        return

    status, batch_id = _classify_batch(snapshot, seen_new, key, existing_id, row.batch_number)
    med.batches.append(PreviewBatch(
        sheet=row.sheet,
        row=row.row,
        batch_number=row.batch_number,
        expiry_date=row.expiry_date,
        quantity=row.quantity,
        purchase_rate=row.purchase_rate,
        mrp=row.mrp,
        pack=row.pack,
        status=status,
        expiry_status=expiry_status(row.expiry_date, today, warning_days),
        existing_batch_id=batch_id,
    ))


def _count(result: PreviewResult) -> None:
    mc = result.medications
    bc = result.batches
    mc.total = len(result.preview_data)
    for med in result.preview_data:
        if med.status == NEW:
            mc.new += 1
        else:
            mc.existing += 1
        for b in med.batches:
            bc.total += 1
            if b.status == NEW:
                bc.new += 1
            elif b.status == EXISTING:
                bc.existing += 1
            else:
                bc.duplicate += 1
            if b.expiry_status == EXPIRED:
                bc.expired += 1
            elif b.expiry_status == EXPIRING_SOON:
                bc.expiring_soon += 1
