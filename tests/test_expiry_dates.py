from datetime import date, datetime

import pytest

from hms_pharmacy.services.expiry_dates import (
    EXPIRED,
    EXPIRING_SOON,
    VALID,
    expiry_status,
    normalize_expiry,
)


@pytest.mark.parametrize("raw,expected", [
    # spreadsheet serials
    (45658, "2025-01-01"),
    ("45658", "2025-01-01"),
    (1, "1899-12-31"),
    (59, "1900-02-27"),
    (61, "1900-03-01"),
    # full dates
    ("2026-03-15", "2026-03-15"),
    ("2026/3/5", "2026-03-05"),
    ("15-03-2026", "2026-03-15"),
    ("5/3/2026", "2026-03-05"),
    # month / year -> last day of month
    ("02-2024", "2024-02-29"),
    ("02-2023", "2023-02-28"),
    ("12/2026", "2026-12-31"),
    ("Mar-26", "2026-03-31"),
    ("feb 2024", "2024-02-29"),
    # native values
    (date(2027, 1, 31), "2027-01-31"),
    (datetime(2027, 1, 31, 10, 30), "2027-01-31"),
])
def test_normalize_expiry(raw, expected):
    assert normalize_expiry(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "soon", "2024-13-45", "31-02-2025", "13-2025", "Foo-26", 0, 100000])
def test_unreadable_expiry_is_none(raw):
    assert normalize_expiry(raw) is None


def test_serials_below_60_fall_before_march_1900():
    for s in range(1, 60):
        assert normalize_expiry(s) < "1900-03-01"


def test_expiry_status_thresholds():
    today = date(2025, 1, 1)
    assert expiry_status("2024-12-31", today) == EXPIRED
    assert expiry_status("2025-01-01", today) == EXPIRED
    assert expiry_status("2025-01-02", today) == EXPIRING_SOON
    assert expiry_status("2025-04-01", today) == EXPIRING_SOON
    assert expiry_status("2025-04-02", today) == VALID
    assert expiry_status(date(2026, 1, 1), today) == VALID


def test_missing_expiry_reports_valid():
    assert expiry_status(None, date(2025, 1, 1)) == VALID


def test_warning_window_is_configurable():
    today = date(2025, 1, 1)
    assert expiry_status("2025-01-20", today, warning_days=10) == VALID
    assert expiry_status("2025-01-05", today, warning_days=10) == EXPIRING_SOON
