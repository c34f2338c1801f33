# FILE: hms_pharmacy/services/purchase_ingest.py
"""
Supplier purchase entry: header + line items.

Each submitted line becomes up to two stored rows:
  * a paid row (quantity > 0) carrying rate, discount and GST;
  * a free row (free_quantity > 0) on batch "<batch>-1" at zero cost.

The header is written first, then all rows in one insert. If the row insert
fails the header is deleted again and the original storage error is raised.
"""
from __future__ import annotations

import logging
import time
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from hms_pharmacy.models.pharmacy import DrugPurchase, PurchaseItemFlag, PurchaseStatus
from hms_pharmacy.schemas.pharmacy_purchase import PurchaseHeaderIn, PurchaseLineIn
from hms_pharmacy.services.errors import ExternalServiceError, StorageError, ValidationError
from hms_pharmacy.services.expiry_dates import normalize_expiry, parse_iso
from hms_pharmacy.services.gst_math import (
    ZERO,
    BillTotals,
    LineAmounts,
    d,
    free_line,
    money,
    round_to_rupee,
    split_line,
)
from hms_pharmacy.utils.timezone import today_local

logger = logging.getLogger(__name__)

FREE_BATCH_SUFFIX = "-1"

PurchaseNumberGenerator = Callable[[], Optional[str]]


def free_batch_number(batch_number: str) -> str:
    base = (batch_number or "").strip()
    return base if base.endswith(FREE_BATCH_SUFFIX) else f"{base}{FREE_BATCH_SUFFIX}"


def fallback_purchase_number() -> str:
    return f"PUR-{int(time.time() * 1000)}"


def _expiry(value: Optional[str], field: str) -> Optional[date]:
    if value is None:
        return None
    iso = normalize_expiry(value)
    if iso is None:
        raise ValidationError(f"Unrecognised expiry date '{value}'", field=field)
    return parse_iso(iso)


def validate_purchase(header: Optional[PurchaseHeaderIn], lines: Sequence[PurchaseLineIn]) -> None:
    if header is None or not header.supplier_id:
        raise ValidationError("supplier_id is required", field="purchase.supplier_id")
    if not lines:
        raise ValidationError("items are required", field="items")
    for i, line in enumerate(lines):
        if not line.medication_id:
            raise ValidationError("medication_id is required", field=f"items[{i}].medication_id")
        if d(line.quantity) <= 0 and d(line.free_quantity) <= 0:
            raise ValidationError("quantity or free_quantity must be greater than 0",
                                  field=f"items[{i}].quantity")
    try:
        PurchaseStatus(header.status)
    except ValueError:
        raise ValidationError(f"Unknown purchase status '{header.status}'", field="purchase.status")


def _item_row(line: PurchaseLineIn, amounts: LineAmounts, *, batch_number: str,
              expiry: Optional[date], mrp: Decimal, flag: PurchaseItemFlag) -> Dict[str, Any]:
    return {
        "medication_id": line.medication_id,
        "batch_number": batch_number,
        "expiry_date": expiry,
        "quantity": amounts.quantity,
        "free_quantity": ZERO,
        "mrp": mrp or None,
        "purchase_rate": amounts.rate,
        "selling_rate": mrp or None,
        "discount_percent": amounts.discount_percent,
        "discount_amount": money(amounts.discount),
        "taxable_amount": money(amounts.taxable),
        "gst_percent": amounts.gst_percent,
        "cgst_percent": amounts.cgst_percent,
        "cgst_amount": money(amounts.cgst),
        "sgst_percent": amounts.sgst_percent,
        "sgst_amount": money(amounts.sgst),
        "igst_percent": ZERO,
        "igst_amount": money(amounts.igst),
        "total_amount": money(amounts.total),
        "pack_size": line.pack_size,
        "single_unit_rate": amounts.single_unit_rate,
        "profit_percent": d(line.profit_percent),
        "drug_return": flag is PurchaseItemFlag.RETURN,
        "flag": flag.value,
    }


def build_item_rows(lines: Sequence[PurchaseLineIn], totals: BillTotals) -> List[Dict[str, Any]]:
    """Split lines into paid / free rows and feed the paid ones into `totals`."""
    rows: List[Dict[str, Any]] = []
    for i, line in enumerate(lines):
        expiry = _expiry(line.expiry_date, f"items[{i}].expiry_date")
        mrp = d(line.mrp)

        if d(line.quantity) > 0:
            amounts = split_line(line.quantity, line.rate, line.discount_percent,
                                 line.gst_percent, line.pack_size)
            totals.add_paid(amounts)
            rows.append(_item_row(
                line, amounts,
                batch_number=line.batch_number,
                expiry=expiry,
                mrp=mrp,
                flag=PurchaseItemFlag.RETURN if line.drug_return else PurchaseItemFlag.PURCHASE,
            ))

        if d(line.free_quantity) > 0:
            free_expiry = _expiry(line.free_expiry_date, f"items[{i}].free_expiry_date") or expiry
            free_mrp = d(line.free_mrp) or mrp
            totals.add_free(line.free_quantity)
            rows.append(_item_row(
                line, free_line(line.free_quantity),
                batch_number=free_batch_number(line.batch_number),
                expiry=free_expiry,
                mrp=free_mrp,
                flag=PurchaseItemFlag.FREE,
            ))
    return rows


def build_header(header: PurchaseHeaderIn, totals: BillTotals, purchase_number: str,
                 today: date) -> Dict[str, Any]:
    totals.apply_bill_adjustments(header.disc_amount, header.cash_discount)
    net_payable = money(totals.net_payable)
    _, round_off = round_to_rupee(net_payable)
    received = header.received_date or today

    return {
        "purchase_number": purchase_number,
        "supplier_id": header.supplier_id,
        "invoice_number": header.invoice_number,
        "invoice_date": header.bill_date or header.invoice_date,
        "bill_date": header.bill_date,
        "purchase_date": received,
        "received_date": received,
        "grn_no": header.grn_no,
        "status": PurchaseStatus(header.status),
        "total_quantity": totals.total_quantity,
        "subtotal": money(totals.subtotal),
        "discount_amount": money(totals.discount),
        "taxable_amount": money(totals.taxable),
        "cgst_amount": money(totals.cgst),
        "sgst_amount": money(totals.sgst),
        "igst_amount": money(totals.igst),
        "total_tax": money(totals.tax),
        "total_amount": money(totals.grand_total),
        "bill_amount": money(header.bill_amount if header.bill_amount is not None else totals.grand_total),
        "disc_amount": money(totals.bill_discount),
        "cash_discount": money(totals.cash_discount),
        "sales_disc_percent": d(header.sales_disc_percent),
        "total_discount": money(totals.total_discount),
        "net_payable": net_payable,
        "round_off": round_off,
        "paid_amount": money(header.paid_amount),
        "payment_mode": header.payment_mode,
        "purchase_account": header.purchase_account,
        "free_bill": header.free_bill,
        "remarks": header.remarks,
        "document_url": header.document_url,
    }


def _purchase_number(number_generator: PurchaseNumberGenerator) -> str:
    try:
        number = number_generator()
    except ExternalServiceError:
        raise
    except Exception as e:
        raise ExternalServiceError(f"Could not generate purchase number: {e}",
                                   code="sequence_unavailable") from e
    if not number:
        number = fallback_purchase_number()
        logger.warning("Purchase number generator returned nothing, using %s", number)
    return number


def ingest_purchase(
    store,
    number_generator: PurchaseNumberGenerator,
    header: Optional[PurchaseHeaderIn],
    lines: Sequence[PurchaseLineIn],
    *,
    today: Optional[date] = None,
) -> DrugPurchase:
    validate_purchase(header, lines)

    # compute everything before any write so bad input never leaves a header
    totals = BillTotals()
    item_rows = build_item_rows(lines, totals)

    purchase_number = _purchase_number(number_generator)
    values = build_header(header, totals, purchase_number, today or today_local())

    purchase = store.insert_purchase(values)
    purchase_id = purchase.id

    for row in item_rows:
        row["purchase_id"] = purchase_id

    try:
        store.insert_purchase_items(item_rows)
    except StorageError as original:
        logger.warning("Item insert failed for purchase %s (%s), removing header",
                       purchase_number, original.message)
        try:
            store.delete_purchase(purchase_id)
        except StorageError as rollback_err:
            logger.error("Compensating delete of purchase id=%s failed: %s",
                         purchase_id, rollback_err.message)
        raise original

    logger.info("Purchase %s saved: %d rows, net payable %s",
                purchase_number, len(item_rows), values["net_payable"])
    return store.get_purchase(purchase_id) or purchase


def find_purchases(store, bill_no: Optional[str], limit: int = 10) -> List[DrugPurchase]:
    term = (bill_no or "").strip()
    if not term:
        raise ValidationError("bill_no parameter is required", field="bill_no")
    return store.search_purchases(term, limit=limit)
