# FILE: hms_pharmacy/services/expiry_dates.py
from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

from hms_pharmacy.utils.timezone import today_local

EXPIRED = "expired"
EXPIRING_SOON = "expiring-soon"
VALID = "valid"

# Spreadsheet day zero. Serials below 60 land one day earlier than the
# spreadsheet shows because of its phantom 1900-02-29.
SPREADSHEET_EPOCH = datetime(1899, 12, 30)
MS_PER_DAY = 24 * 60 * 60 * 1000

_SERIAL_RE = re.compile(r"^\d+(\.\d+)?$")
_YMD_RE = re.compile(r"^(\d{4})[/-](\d{1,2})[/-](\d{1,2})$")
_DMY_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
_MY_RE = re.compile(r"^(\d{1,2})[/-](\d{4})$")
_MONY_RE = re.compile(r"^([a-zA-Z]{3})[\s/-](\d{2,4})$")

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def _iso(y: int, m: int, dd: int) -> Optional[str]:
    try:
        return date(y, m, dd).isoformat()
    except ValueError:
        return None


def _month_end(y: int, m: int) -> Optional[str]:
    if not 1 <= m <= 12 or y < 1:
        return None
    return _iso(y, m, calendar.monthrange(y, m)[1])


def normalize_expiry(raw: Any) -> Optional[str]:
    """
    Best-effort conversion of an expiry cell to ``YYYY-MM-DD``.

    Accepts native dates, spreadsheet serial numbers, ``YYYY-MM-DD``,
    ``DD-MM-YYYY``, ``MM-YYYY`` and ``MMM-YY`` (``/`` works as separator
    too). Month-only forms resolve to the last day of the month. Returns
    None for anything it cannot read; never raises.
    """
    if raw is None or raw == "" or raw is False:
        return None

    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    if isinstance(raw, bool):
        return None

    s = str(raw).strip()
    if not s:
        return None

    if _SERIAL_RE.match(s):
        serial = float(s)
        if 0 < serial < 100000:
            dt = SPREADSHEET_EPOCH + timedelta(milliseconds=round(serial * MS_PER_DAY))
            return dt.date().isoformat()

    m = _YMD_RE.match(s)
    if m:
        return _iso(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _DMY_RE.match(s)
    if m:
        return _iso(int(m.group(3)), int(m.group(2)), int(m.group(1)))

    m = _MY_RE.match(s)
    if m:
        return _month_end(int(m.group(2)), int(m.group(1)))

    m = _MONY_RE.match(s)
    if m:
        month = _MONTHS.get(m.group(1).lower())
        year = int(m.group(2))
        if year < 100:
            year += 2000
        if month:
            return _month_end(year, month)

    return None


def parse_iso(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value)


def expiry_status(
    expiry: Union[str, date, None],
    today: Optional[date] = None,
    warning_days: int = 90,
) -> str:
    """
    expired / expiring-soon / valid.

    A batch expiring today is already expired; one expiring on the last day
    of the warning window is still expiring-soon.

    NOTE: an unknown (None) expiry reports "valid". Callers showing stock
    as safe to dispense must check for a missing expiry themselves.
    """
    if isinstance(expiry, str):
        expiry = parse_iso(expiry)
    if expiry is None:
        return VALID

    today = today or today_local()
    if expiry <= today:
        return EXPIRED
    if expiry <= today + timedelta(days=warning_days):
        return EXPIRING_SOON
    return VALID
