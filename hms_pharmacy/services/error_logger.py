from typing import Any, Dict, Optional
import logging
import traceback

from sqlalchemy.orm import Session

from hms_pharmacy.models.error_log import ErrorLog

logger = logging.getLogger(__name__)


def log_error(
    db: Session,
    *,
    description: Optional[str] = None,
    endpoint: Optional[str] = None,
    module: Optional[str] = None,
    function: Optional[str] = None,
    http_status: Optional[int] = None,
    error_code: Optional[str] = None,
    request_payload: Optional[Dict[str, Any]] = None,
    response_payload: Optional[Dict[str, Any]] = None,
    stack_trace: Optional[str] = None,
) -> None:
    """
    Persist a failure into error_logs.
    Safe: never raises, a failed insert is only written to the log.
    """
    try:
        db.rollback()
        db.add(ErrorLog(
            description=(description or "")[:1000] or None,
            endpoint=endpoint,
            module=module,
            function=function,
            http_status=http_status,
            error_code=(error_code or None) and str(error_code)[:50],
            request_payload=request_payload,
            response_payload=response_payload,
            stack_trace=stack_trace,
        ))
        db.commit()
    except Exception:
        # last resort – never raise from logger
        db.rollback()
        logger.exception("Failed to log error")


def format_exception(exc: Exception) -> str:
    return "".join(
        traceback.format_exception(type(exc), exc, exc.__traceback__))
