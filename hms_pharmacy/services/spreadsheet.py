# FILE: hms_pharmacy/services/spreadsheet.py
from __future__ import annotations

import csv
import logging
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import BytesIO, StringIO
from pathlib import PurePath
from typing import Any, Dict, List, Optional, Sequence, Tuple

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from hms_pharmacy.services.errors import MissingColumnError, ValidationError
from hms_pharmacy.services.expiry_dates import normalize_expiry
from hms_pharmacy.services.import_columns import ImportField, map_columns

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

NA_SET = {"", "-", "na", "n/a", "null", "none", "nil"}


@dataclass
class SheetData:
    name: str
    headers: List[Any]
    rows: List[Tuple[int, Sequence[Any]]]  # (sheet row number, cells)


@dataclass
class ImportRow:
    sheet: str
    row: int
    medicine_name: str
    batch_number: str = ""
    expiry_raw: Any = None
    expiry_date: Optional[str] = None
    quantity: Decimal = Decimal("0")
    purchase_rate: Decimal = Decimal("0")
    mrp: Decimal = Decimal("0")
    pack: Decimal = Decimal("1")
    combination: str = ""
    route: str = ""
    ampoule: str = ""
    brand: str = ""
    product: str = ""
    error: Optional[str] = None


@dataclass
class ImportSheet:
    name: str
    row_count: int
    rows: List[ImportRow] = field(default_factory=list)
    error: Optional[str] = None


def _is_blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def cell_text(v: Any) -> str:
    """Cell value as trimmed text; integral floats lose their '.0'."""
    if v is None:
        return ""
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    if isinstance(v, datetime):
        return v.date().isoformat()
    if isinstance(v, date):
        return v.isoformat()
    return str(v).strip()


def parse_number(v: Any, default: Decimal = Decimal("0")) -> Decimal:
    """
    - accepts 1,234.50 and 5%
    - accepts (123.45) as -123.45
    - blank / NA -> default
    - anything else raises ValueError
    """
    if v is None or isinstance(v, bool):
        return default
    if isinstance(v, Decimal):
        return v
    if isinstance(v, (int, float)):
        return Decimal(str(v))

    s = str(v).strip()
    if s.lower() in NA_SET:
        return default

    s = s.replace(",", "").strip()
    if s.endswith("%"):
        s = s[:-1].strip()
    if s.startswith("(") and s.endswith(")"):
        s = "-" + s[1:-1].strip()

    try:
        out = Decimal(s)
    except InvalidOperation as e:
        raise ValueError(f"Invalid number '{v}'") from e
    if not out.is_finite():
        raise ValueError(f"Invalid number '{v}'")
    return out


def _strip_trailing_blank(rows: List[Tuple[int, Sequence[Any]]]) -> List[Tuple[int, Sequence[Any]]]:
    while rows and all(_is_blank(c) for c in rows[-1][1]):
        rows.pop()
    return rows


def _read_xlsx(raw: bytes) -> List[SheetData]:
    try:
        wb = load_workbook(BytesIO(raw), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise ValidationError(f"Unreadable Excel file: {e}", field="file") from e

    sheets: List[SheetData] = []
    try:
        for ws in wb.worksheets:
            it = ws.iter_rows(values_only=True)
            header = next(it, None)
            rows = [(i, r) for i, r in enumerate(it, start=2)]
            sheets.append(SheetData(
                name=ws.title,
                headers=list(header or ()),
                rows=_strip_trailing_blank(rows),
            ))
    finally:
        wb.close()
    return sheets


def _read_csv(filename: str, raw: bytes) -> List[SheetData]:
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = raw.decode("latin-1", errors="replace")

    sample = text[:2048]
    try:
        delim = csv.Sniffer().sniff(sample, delimiters=[",", "\t", ";", "|"]).delimiter
    except csv.Error:
        delim = ","

    reader = csv.reader(StringIO(text), delimiter=delim)
    header = next(reader, None)
    rows = [(i, r) for i, r in enumerate(reader, start=2)]
    name = PurePath(filename).stem if filename else "Sheet1"
    return [SheetData(name=name or "Sheet1", headers=list(header or ()), rows=_strip_trailing_blank(rows))]


def read_workbook(filename: str, content_type: str, raw: bytes) -> List[SheetData]:
    """Every worksheet of an .xlsx upload, or a CSV/TSV as a single sheet."""
    name = (filename or "").lower()
    if not raw:
        raise ValidationError("Empty file", field="file")

    if name.endswith((".xlsx", ".xlsm")) or content_type in XLSX_CONTENT_TYPES:
        return _read_xlsx(raw)
    if name.endswith(".xls"):
        raise ValidationError("Legacy .xls files are not supported, save the sheet as .xlsx", field="file")
    return _read_csv(filename, raw)


def _row_to_import(sheet: str, row_no: int, cells: Sequence[Any],
                   col_map: Dict[ImportField, int]) -> ImportRow:
    def cell(f: ImportField) -> Any:
        idx = col_map.get(f)
        if idx is None or idx >= len(cells):
            return None
        return cells[idx]

    out = ImportRow(
        sheet=sheet,
        row=row_no,
        medicine_name=cell_text(cell(ImportField.MEDICINE)),
        batch_number=cell_text(cell(ImportField.BATCH)),
        combination=cell_text(cell(ImportField.COMBINATION)),
        route=cell_text(cell(ImportField.ROUTE)),
        ampoule=cell_text(cell(ImportField.AMPOULE)),
        brand=cell_text(cell(ImportField.BRAND)),
        product=cell_text(cell(ImportField.PRODUCT)),
    )

    expiry_raw = cell(ImportField.EXPIRY)
    out.expiry_raw = expiry_raw
    out.expiry_date = normalize_expiry(expiry_raw)

    problems = []
    for f, attr, default in (
        (ImportField.QUANTITY, "quantity", Decimal("0")),
        (ImportField.PURCHASE_RATE, "purchase_rate", Decimal("0")),
        (ImportField.MRP, "mrp", Decimal("0")),
        (ImportField.PACK, "pack", Decimal("1")),
    ):
        try:
            setattr(out, attr, parse_number(cell(f), default))
        except ValueError as e:
            problems.append(f"{f.value}: {e}")
    if problems:
        out.error = "; ".join(problems)
    return out


def extract_rows(sheet: SheetData) -> ImportSheet:
    """
    Maps one sheet onto ImportRows. A sheet without a Medicine column comes
    back with `error` set and no rows; other sheets are unaffected.
    """
    out = ImportSheet(name=sheet.name, row_count=len(sheet.rows))
    try:
        col_map = map_columns(sheet.headers, sheet.name)
    except MissingColumnError as e:
        logger.warning("Sheet %r skipped: %s", sheet.name, e.message)
        out.error = e.message
        return out

    for row_no, cells in sheet.rows:
        out.rows.append(_row_to_import(sheet.name, row_no, cells, col_map))
    return out


def load_import_sheets(filename: str, content_type: str, raw: bytes) -> List[ImportSheet]:
    return [extract_rows(s) for s in read_workbook(filename, content_type, raw)]
