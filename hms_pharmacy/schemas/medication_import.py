# FILE: hms_pharmacy/schemas/medication_import.py
from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelOut(BaseModel):
    # upload screens read camelCase keys
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


# ---------------------------
# Preview
# ---------------------------
class PreviewBatchOut(_CamelOut):
    sheet: str
    row: int
    batch_number: str
    expiry_date: Optional[str] = None
    quantity: float
    purchase_rate: float
    mrp: float
    pack: float
    status: str
    expiry_status: str
    existing_batch_id: Optional[int] = None


class PreviewMedicationOut(_CamelOut):
    name: str
    category: str
    status: str
    sheet: str
    row: int
    combination: str = ""
    brand: str = ""
    product: str = ""
    route: str = ""
    ampoule: str = ""
    existing_medication_id: Optional[int] = None
    purchase_rate: float = 0
    mrp: float = 0
    batches: List[PreviewBatchOut] = Field(default_factory=list)


class SheetStatsOut(_CamelOut):
    name: str
    row_count: int
    valid_rows: int
    invalid_rows: int


class MedicationCountsOut(_CamelOut):
    total: int
    new: int
    existing: int
    duplicate: int


class BatchCountsOut(_CamelOut):
    total: int
    new: int
    existing: int
    duplicate: int
    expired: int
    expiring_soon: int


class RowErrorOut(_CamelOut):
    row: int
    sheet: str
    message: str


class PreviewOut(_CamelOut):
    sheets: List[SheetStatsOut] = Field(default_factory=list)
    medications: MedicationCountsOut
    batches: BatchCountsOut
    preview_data: List[PreviewMedicationOut] = Field(default_factory=list)
    errors: List[RowErrorOut] = Field(default_factory=list)
    error_count: int = 0


# ---------------------------
# Commit
# ---------------------------
class RowResultOut(_CamelOut):
    row: int
    sheet: str
    medicine_name: str
    batch_number: str
    status: str
    message: str


class CommitOut(_CamelOut):
    success: bool = True
    total_processed: int
    success_count: int
    error_count: int
    skipped_count: int
    results: List[RowResultOut] = Field(default_factory=list)


# ---------------------------
# Medication master CSV
# ---------------------------
class MasterRowErrorOut(_CamelOut):
    row: int
    message: str
    field: Optional[str] = None


class MasterImportOut(_CamelOut):
    success: bool = True
    total_rows: int
    success_count: int
    error_count: int
    duplicate_count: int
    errors: List[MasterRowErrorOut] = Field(default_factory=list)


# ---------------------------
# Batch upload (JSON)
# ---------------------------
class BatchUploadIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    medication_id: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("medicationId", "medication_id"))
    batch_number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("batchNumber", "batch_number"))
    expiry_date: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("expiryDate", "expiry_date"))
    quantity: float = Field(default=0, ge=0)
    purchase_rate: float = Field(
        default=0, ge=0, validation_alias=AliasChoices("purchaseRate", "purchase_rate"))
    mrp: float = Field(default=0, ge=0)

    @field_validator("expiry_date", mode="before")
    @classmethod
    def _expiry_text(cls, v):
        if v is None:
            return None
        return str(v).strip() or None


class BatchUploadRequest(BaseModel):
    batches: List[BatchUploadIn]


class BatchUploadOut(_CamelOut):
    success: bool = True
    success_count: int
    error_count: int
