from datetime import date
from decimal import Decimal

from hms_pharmacy.models import Medication, MedicineBatch
from hms_pharmacy.schemas.medication_import import BatchUploadIn
from hms_pharmacy.services.errors import StorageError
from hms_pharmacy.services.medication_import import (
    ERROR,
    SKIPPED,
    SUCCESS,
    add_batches,
    commit_preview,
    generate_medication_code,
    import_medication_master,
)
from hms_pharmacy.services.medication_reconcile import load_snapshot, reconcile
from hms_pharmacy.services.pharmacy_store import PharmacyStore
from hms_pharmacy.services.spreadsheet import ImportRow, ImportSheet

TODAY = date(2025, 1, 1)


def _row(row, name, batch="", expiry=None, **kw):
    return ImportRow(sheet="Stock", row=row, medicine_name=name, batch_number=batch,
                     expiry_date=expiry, **kw)


def _preview(store, rows, row_count=None, extra_sheets=()):
    sheet = ImportSheet(name="Stock", row_count=row_count or len(rows), rows=rows)
    return reconcile(load_snapshot(store), [sheet, *extra_sheets], today=TODAY)


def _med(db, name):
    return db.query(Medication).filter(Medication.name == name).one()


def test_generate_medication_code():
    code = generate_medication_code("Dolo-650 mg", 3, now_ms=1_700_000_000_000)
    assert code.startswith("MED-DOLO-")
    assert code.endswith("3")
    assert len(code) == len("MED-DOLO-") + 4 + 1


def test_commit_creates_medications_and_batches(db, store, paracetamol, paracetamol_batch):
    preview = _preview(store, [
        _row(2, "Paracetamol 500mg", "B1", "2026-06-30", quantity=Decimal("5")),
        _row(3, "Paracetamol 500mg", "B2", "2027-01-31", quantity=Decimal("20"),
             purchase_rate=Decimal("1.10"), mrp=Decimal("2.50")),
        _row(4, "Amoxicillin 250mg Capsule", "A1", None, quantity=Decimal("30"),
             purchase_rate=Decimal("4.5"), mrp=Decimal("6"), combination="Amoxycillin", brand="Cipla"),
        _row(5, "Amoxicillin 250mg Capsule", "A1", None, quantity=Decimal("30")),
        _row(6, "", "X1"),
    ])

    result = commit_preview(store, preview, min_stock=10)

    assert result.total_processed == 5
    assert (result.success_count, result.error_count, result.skipped_count) == (2, 0, 3)
    assert [(r.row, r.status) for r in result.results] == [
        (2, SKIPPED), (3, SUCCESS), (4, SUCCESS), (5, SKIPPED),
    ]
    assert result.results[0].message == "Batch already exists"

    db.expire_all()
    para = _med(db, "Paracetamol 500mg")
    assert para.total_stock == Decimal("20")
    assert para.available_stock == Decimal("20")
    assert para.purchase_price == Decimal("1.10")
    assert para.mrp == Decimal("2.50")
    assert para.selling_price == Decimal("2.50")

    amox = _med(db, "Amoxicillin 250mg Capsule")
    assert amox.medication_code.startswith("MED-AMOX-")
    assert amox.category == "Antibiotics"
    assert amox.dosage_form == "Capsule"
    assert amox.unit == "capsules"
    assert amox.manufacturer == "Cipla"
    assert amox.generic_name == "Amoxycillin"
    assert amox.minimum_stock_level == Decimal("10")
    assert amox.total_stock == Decimal("30")

    a1 = db.query(MedicineBatch).filter(MedicineBatch.medicine_id == amox.id).one()
    assert a1.batch_number == "A1"
    assert a1.expiry_date is None
    assert a1.current_quantity == Decimal("30")


def test_medication_without_batch_refreshes_prices(db, store, paracetamol):
    preview = _preview(store, [_row(2, "Paracetamol 500mg", purchase_rate=Decimal("1.30"))])

    result = commit_preview(store, preview)

    assert result.success_count == 1
    assert result.results[0].batch_number == "(none)"
    db.expire_all()
    para = _med(db, "Paracetamol 500mg")
    assert para.purchase_price == Decimal("1.30")
    assert para.mrp == Decimal("2.00")  # zero never overwrites


def test_preview_errors_carried_into_commit(store):
    bad_sheet = ImportSheet(name="Notes", row_count=2, error='Could not find "Medicine" column')
    preview = _preview(store, [
        _row(2, "Dolo 650", "D1"),
        _row(3, "Crocin", "C1", error="mrp: Invalid number 'x'"),
    ], extra_sheets=[bad_sheet])

    result = commit_preview(store, preview)

    assert result.error_count == 2
    assert result.success_count == 1
    assert [(r.sheet, r.row, r.status) for r in result.results[:2]] == [
        ("Stock", 3, ERROR), ("Notes", 0, ERROR),
    ]


class FlakyBatchStore(PharmacyStore):
    def add_batch(self, values):
        if values["batch_number"] == "BAD":
            raise StorageError("Data too long for column 'batch_number'", code="1406")
        return super().add_batch(values)


def test_failing_row_does_not_stop_others(db):
    store = FlakyBatchStore(db)
    preview = _preview(store, [
        _row(2, "Dolo 650", "BAD", quantity=Decimal("5")),
        _row(3, "Dolo 650", "D2", quantity=Decimal("7")),
    ])

    result = commit_preview(store, preview)

    assert [(r.batch_number, r.status) for r in result.results] == [("BAD", ERROR), ("D2", SUCCESS)]
    assert "Data too long" in result.results[0].message
    db.expire_all()
    assert _med(db, "Dolo 650").total_stock == Decimal("7")


def test_result_list_is_bounded(store):
    rows = [_row(i, f"Med {i}", f"B{i}") for i in range(2, 12)]
    result = commit_preview(store, _preview(store, rows), result_limit=4)
    assert result.success_count == 10
    assert len(result.results) == 4


def test_import_medication_master(db, store, paracetamol):
    sheet = ImportSheet(name="meds", row_count=4, rows=[
        _row(2, "Pan 40", combination="Pantoprazole", brand="Alkem", product="Tablet"),
        _row(3, "paracetamol 500mg"),
        _row(4, ""),
        _row(5, "Pan 40"),
    ])

    result = import_medication_master(store, [sheet])

    assert (result.total_rows, result.success_count, result.duplicate_count, result.error_count) == (4, 1, 2, 1)
    assert result.errors[0].row == 4
    assert result.errors[0].field == "Medicine"

    pan = _med(db, "Pan 40")
    assert pan.category == "Gastrointestinal"
    assert pan.generic_name == "Pantoprazole"
    assert pan.manufacturer == "Alkem"
    assert pan.dosage_form == "Tablet"
    assert pan.prescription_required is False


def test_import_medication_master_missing_column(store):
    bad = ImportSheet(name="meds", row_count=1, error='Could not find "Medicine" column')
    result = import_medication_master(store, [bad])
    assert result.error_count == 1
    assert result.errors[0].row == 0


def test_add_batches(db, store, paracetamol):
    batches = [
        BatchUploadIn.model_validate({"medicationId": paracetamol.id, "batchNumber": "P9",
                                      "expiryDate": "12/2026", "quantity": 40,
                                      "purchaseRate": 1.1, "mrp": 2}),
        BatchUploadIn.model_validate({"medicationId": paracetamol.id, "batchNumber": ""}),
        BatchUploadIn.model_validate({"batchNumber": "P10"}),
        BatchUploadIn.model_validate({"medicationId": 9999, "batchNumber": "P11"}),
        BatchUploadIn.model_validate({"medicationId": paracetamol.id, "batchNumber": "P12",
                                      "expiryDate": "someday"}),
    ]

    result = add_batches(store, batches)

    assert (result.success_count, result.error_count) == (1, 4)
    db.expire_all()
    batch = db.query(MedicineBatch).filter(MedicineBatch.batch_number == "P9").one()
    assert batch.expiry_date == date(2026, 12, 31)
    assert _med(db, "Paracetamol 500mg").total_stock == Decimal("40")


def test_add_batches_duplicate_is_an_error(store, paracetamol, paracetamol_batch):
    result = add_batches(store, [BatchUploadIn(medication_id=paracetamol.id, batch_number="B1", quantity=1)])
    assert (result.success_count, result.error_count) == (0, 1)
