from decimal import Decimal

import pytest

from hms_pharmacy.services.gst_math import (
    BillTotals,
    d,
    free_line,
    money,
    round_to_rupee,
    split_line,
)


def test_split_line_reference_values():
    line = split_line(10, 100, 10, 12)

    assert line.subtotal == Decimal("1000")
    assert line.discount == Decimal("100")
    assert line.taxable == Decimal("900")
    assert line.gst == Decimal("108")
    assert line.cgst == Decimal("54")
    assert line.sgst == Decimal("54")
    assert line.igst == Decimal("0")
    assert line.total == Decimal("1008")
    assert line.cgst_percent == Decimal("6")
    assert line.sgst_percent == Decimal("6")


@pytest.mark.parametrize("qty,rate,disc,gst", [
    (3, "33.33", "7.5", 18),
    (7, "12.49", 0, 5),
    ("2.5", "199.99", "12.5", 28),
    (1, "0.01", 0, 12),
])
def test_tax_halves_always_sum_to_gst(qty, rate, disc, gst):
    line = split_line(qty, rate, disc, gst)
    assert line.cgst + line.sgst == line.gst
    assert line.taxable + line.gst == line.total


def test_zero_discount_and_zero_gst():
    line = split_line(4, "25.50")
    assert line.discount == 0
    assert line.gst == 0
    assert line.total == Decimal("102.00")


def test_single_unit_rate_uses_pack_size():
    assert split_line(1, 100, pack_size=10).single_unit_rate == Decimal("10")
    assert split_line(1, 100, pack_size=0).single_unit_rate == Decimal("100")


def test_free_line_carries_only_quantity():
    line = free_line(5)
    assert line.quantity == Decimal("5")
    assert line.total == 0
    assert line.rate == 0


def test_money_rounds_half_up():
    assert money("2.345") == Decimal("2.35")
    assert money("2.344") == Decimal("2.34")
    assert money(None) == Decimal("0.00")


def test_round_to_rupee():
    assert round_to_rupee("1007.50") == (Decimal("1008"), Decimal("0.50"))
    assert round_to_rupee("1007.49") == (Decimal("1007"), Decimal("-0.49"))
    assert round_to_rupee("1007") == (Decimal("1007"), Decimal("0.00"))


def test_d_parses_and_rejects():
    assert d("1,234.50") == Decimal("1234.50")
    assert d("") == 0
    with pytest.raises(ValueError):
        d("abc")


def test_bill_totals_accumulate_paid_lines_only():
    totals = BillTotals()
    totals.add_paid(split_line(10, 100, 10, 12))
    totals.add_paid(split_line(2, 50, 0, 5))
    totals.add_free(3)
    totals.apply_bill_adjustments(8, "0.5")

    assert totals.total_quantity == Decimal("15")
    assert totals.subtotal == Decimal("1100")
    assert totals.taxable == Decimal("1000")
    assert totals.tax == Decimal("113")
    assert totals.grand_total == Decimal("1113")
    assert totals.total_discount == Decimal("108.5")
    assert totals.net_payable == Decimal("1104.5")
