# FILE: hms_pharmacy/api/exception_handlers.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from hms_pharmacy.services.error_logger import format_exception, log_error
from hms_pharmacy.services.errors import PharmacyError
from hms_pharmacy.utils.resp import err

logger = logging.getLogger(__name__)


def error_response(
    db: Session,
    request: Request,
    exc: Exception,
    *,
    function: str,
    payload: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """
    Route-level failure -> JSON body. Server-side failures (status >= 500)
    are also written to error_logs.
    """
    if not isinstance(exc, PharmacyError):
        logger.exception("Unhandled error in %s", function)
        exc = PharmacyError(str(exc) or "Internal server error", code="internal_error")
    elif exc.status_code >= 500:
        logger.error("%s failed: %s (code=%s)", function, exc.message, exc.code)

    if exc.status_code >= 500:
        log_error(
            db,
            description=exc.message,
            endpoint=f"{request.method} {request.url.path}",
            module=__name__,
            function=function,
            http_status=exc.status_code,
            error_code=exc.code,
            request_payload=payload,
            response_payload=exc.to_dict(),
            stack_trace=format_exception(exc.__cause__ or exc),
        )
    return err(exc)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # exc.detail can be str/dict/list
        msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(status_code=exc.status_code, content={"error": msg})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        return JSONResponse(
            status_code=400,
            content={
                "error": first.get("msg", "Validation error"),
                "code": "validation_error",
                "details": loc or None,
            },
        )

    @app.exception_handler(PharmacyError)
    async def pharmacy_exception_handler(request: Request, exc: PharmacyError) -> JSONResponse:
        return err(exc)
