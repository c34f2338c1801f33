# FILE: hms_pharmacy/api/routes_medication_import.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.orm import Session

from hms_pharmacy.api.deps import get_db, get_store
from hms_pharmacy.api.exception_handlers import error_response
from hms_pharmacy.core.config import settings
from hms_pharmacy.schemas.medication_import import (
    BatchUploadOut,
    BatchUploadRequest,
    CommitOut,
    MasterImportOut,
    PreviewOut,
)
from hms_pharmacy.services.medication_import import (
    add_batches,
    commit_preview,
    import_medication_master,
)
from hms_pharmacy.services.medication_reconcile import load_snapshot, reconcile
from hms_pharmacy.services.pharmacy_store import PharmacyStore
from hms_pharmacy.services.spreadsheet import load_import_sheets

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pharmacy", tags=["Pharmacy - Bulk Upload"])


def _upload_meta(file: UploadFile) -> dict:
    return {"filename": file.filename, "content_type": file.content_type}


# ============================================================
# Excel medicine + batch upload
# ============================================================
@router.post("/bulk-upload-excel/preview", response_model=PreviewOut)
def preview_bulk_upload(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    store: PharmacyStore = Depends(get_store),
):
    """Dry run: what a commit of this file would create / skip. Writes nothing."""
    try:
        sheets = load_import_sheets(file.filename or "", file.content_type or "", file.file.read())
        preview = reconcile(
            load_snapshot(store),
            sheets,
            warning_days=settings.EXPIRY_WARNING_DAYS,
            error_sample=settings.IMPORT_ERROR_SAMPLE,
        )
        out = PreviewOut.model_validate(preview)
    except Exception as e:
        return error_response(db, request, e, function="preview_bulk_upload", payload=_upload_meta(file))

    logger.info("Bulk upload preview %r: %d medications, %d batches",
                file.filename, out.medications.total, out.batches.total)
    return out


@router.post("/bulk-upload-excel", response_model=CommitOut)
def commit_bulk_upload(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    store: PharmacyStore = Depends(get_store),
):
    try:
        sheets = load_import_sheets(file.filename or "", file.content_type or "", file.file.read())
        preview = reconcile(
            load_snapshot(store),
            sheets,
            warning_days=settings.EXPIRY_WARNING_DAYS,
            error_sample=settings.IMPORT_RESULT_LIMIT,
        )
        result = commit_preview(
            store,
            preview,
            result_limit=settings.IMPORT_RESULT_LIMIT,
            min_stock=settings.MEDICATION_MIN_STOCK,
        )
        return CommitOut.model_validate(result)
    except Exception as e:
        return error_response(db, request, e, function="commit_bulk_upload", payload=_upload_meta(file))


# ============================================================
# Medication master CSV / batch JSON
# ============================================================
@router.post("/upload-medications", response_model=MasterImportOut)
def upload_medications(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    store: PharmacyStore = Depends(get_store),
):
    try:
        sheets = load_import_sheets(file.filename or "", file.content_type or "", file.file.read())
        result = import_medication_master(store, sheets, error_sample=settings.IMPORT_ERROR_SAMPLE)
        return MasterImportOut.model_validate(result)
    except Exception as e:
        return error_response(db, request, e, function="upload_medications", payload=_upload_meta(file))


@router.post("/upload-batches", response_model=BatchUploadOut)
def upload_batches(
    payload: BatchUploadRequest,
    request: Request,
    db: Session = Depends(get_db),
    store: PharmacyStore = Depends(get_store),
):
    try:
        result = add_batches(store, payload.batches)
        return BatchUploadOut.model_validate(result)
    except Exception as e:
        return error_response(db, request, e, function="upload_batches",
                              payload={"batches": len(payload.batches)})
