# FILE: hms_pharmacy/services/gst_math.py
"""
Purchase line / bill arithmetic for intra-state GST.

All intermediate values stay in full Decimal precision; `money()` is
applied only when a value is written to a row, so bill totals are sums of
unrounded line values.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Tuple

ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWO = Decimal("2")
PAISA = Decimal("0.01")
RUPEE = Decimal("1")


def d(x: Any) -> Decimal:
    if x is None or x == "":
        return ZERO
    if isinstance(x, Decimal):
        return x
    if isinstance(x, bool):
        return Decimal(int(x))
    try:
        return Decimal(str(x).strip().replace(",", ""))
    except InvalidOperation as e:
        raise ValueError(f"Invalid number '{x}'") from e


def money(x: Any) -> Decimal:
    return d(x).quantize(PAISA, rounding=ROUND_HALF_UP)


def round_to_rupee(amount: Any) -> Tuple[Decimal, Decimal]:
    """Returns (whole-rupee amount, signed round-off)."""
    amt = d(amount)
    rounded = amt.quantize(RUPEE, rounding=ROUND_HALF_UP)
    return rounded, money(rounded - amt)


@dataclass(frozen=True)
class LineAmounts:
    quantity: Decimal
    rate: Decimal
    discount_percent: Decimal
    gst_percent: Decimal
    subtotal: Decimal
    discount: Decimal
    taxable: Decimal
    gst: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total: Decimal
    single_unit_rate: Decimal

    @property
    def cgst_percent(self) -> Decimal:
        return self.gst_percent / TWO

    @property
    def sgst_percent(self) -> Decimal:
        return self.gst_percent / TWO


def split_line(quantity: Any, rate: Any, discount_percent: Any = 0,
               gst_percent: Any = 0, pack_size: Any = 1) -> LineAmounts:
    qty = d(quantity)
    r = d(rate)
    disc_p = d(discount_percent)
    gst_p = d(gst_percent)
    pack = d(pack_size)

    subtotal = qty * r
    discount = subtotal * disc_p / HUNDRED
    taxable = subtotal - discount
    gst = taxable * gst_p / HUNDRED
    # intra-state: central and state halves are equal
    half = gst / TWO

    return LineAmounts(
        quantity=qty,
        rate=r,
        discount_percent=disc_p,
        gst_percent=gst_p,
        subtotal=subtotal,
        discount=discount,
        taxable=taxable,
        gst=gst,
        cgst=half,
        sgst=half,
        igst=ZERO,
        total=taxable + gst,
        single_unit_rate=r / pack if pack > 0 else r,
    )


def free_line(quantity: Any) -> LineAmounts:
    qty = d(quantity)
    return LineAmounts(
        quantity=qty, rate=ZERO, discount_percent=ZERO, gst_percent=ZERO,
        subtotal=ZERO, discount=ZERO, taxable=ZERO, gst=ZERO,
        cgst=ZERO, sgst=ZERO, igst=ZERO, total=ZERO, single_unit_rate=ZERO,
    )


@dataclass
class BillTotals:
    paid_quantity: Decimal = ZERO
    free_quantity: Decimal = ZERO
    subtotal: Decimal = ZERO
    discount: Decimal = ZERO
    taxable: Decimal = ZERO
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    igst: Decimal = ZERO
    tax: Decimal = ZERO
    grand_total: Decimal = ZERO

    bill_discount: Decimal = ZERO
    cash_discount: Decimal = ZERO

    def add_paid(self, line: LineAmounts) -> None:
        self.paid_quantity += line.quantity
        self.subtotal += line.subtotal
        self.discount += line.discount
        self.taxable += line.taxable
        self.cgst += line.cgst
        self.sgst += line.sgst
        self.igst += line.igst
        self.tax += line.gst
        self.grand_total += line.total

    def add_free(self, quantity: Any) -> None:
        self.free_quantity += d(quantity)

    def apply_bill_adjustments(self, bill_discount: Any = 0, cash_discount: Any = 0) -> None:
        self.bill_discount = d(bill_discount)
        self.cash_discount = d(cash_discount)

    @property
    def total_quantity(self) -> Decimal:
        return self.paid_quantity + self.free_quantity

    @property
    def total_discount(self) -> Decimal:
        return self.discount + self.bill_discount + self.cash_discount

    @property
    def net_payable(self) -> Decimal:
        return self.grand_total - self.bill_discount - self.cash_discount
