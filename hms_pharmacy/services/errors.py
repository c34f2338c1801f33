# FILE: hms_pharmacy/services/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.exc import DBAPIError, SQLAlchemyError


class PharmacyError(Exception):
    """Base for errors the purchasing routes translate into JSON bodies."""

    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None,
                 details: Optional[str] = None, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.hint = hint

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"error": self.message}
        if self.code is not None:
            out["code"] = self.code
        if self.details is not None:
            out["details"] = self.details
        if self.hint is not None:
            out["hint"] = self.hint
        return out


class ValidationError(PharmacyError):
    status_code = 400

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message, code="validation_error", details=field)
        self.field = field


class MissingColumnError(ValidationError):
    def __init__(self, sheet: str, column: str):
        super().__init__(f'Could not find "{column}" column', field=column)
        self.code = "missing_column"
        self.sheet = sheet
        self.column = column


class StorageError(PharmacyError):
    """A failed select/insert/update/delete, with the driver's message kept verbatim."""

    @classmethod
    def from_exc(cls, exc: SQLAlchemyError) -> "StorageError":
        if isinstance(exc, DBAPIError) and exc.orig is not None:
            orig = exc.orig
            args = getattr(orig, "args", ()) or ()
            # pymysql: (1062, "Duplicate entry ..."); psycopg: pgcode
            code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
            if code is None and args and isinstance(args[0], int):
                code = str(args[0])
            message = str(args[1]) if len(args) > 1 and isinstance(args[0], int) else str(orig)
            return cls(
                message,
                code=code or type(orig).__name__,
                details=exc.statement,
                hint=type(exc).__name__,
            )
        return cls(str(exc), code=type(exc).__name__)


class ExternalServiceError(PharmacyError):
    """Sequence generator / identity provider failures."""
