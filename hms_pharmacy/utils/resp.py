# FILE: hms_pharmacy/utils/resp.py
from __future__ import annotations

from fastapi.responses import JSONResponse

from hms_pharmacy.services.errors import PharmacyError


def err(exc: PharmacyError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
