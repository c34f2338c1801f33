from io import BytesIO

from openpyxl import Workbook

from hms_pharmacy.models import Medication, MedicineBatch, Staff, User

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _workbook():
    wb = Workbook()
    ws = wb.active
    ws.title = "Tablets"
    ws.append(["S.No", "Medicine", "Batch No", "Expiry Dt", "Qty", "Purchase Rate", "MRP", "Combination"])
    ws.append([1, "Paracetamol 500mg", "B1", "06-2031", 10, 1.2, 2, "Paracetamol"])
    ws.append([2, "Paracetamol 500mg", "B7", 48579, 50, 1.25, 2.1, "Paracetamol"])
    ws.append([3, "Dolo 650", "D1", "2020-01-31", 20, 1.8, 2.5, "Paracetamol"])
    ws.append([4, None, "X1", None, 5, 1, 1, None])
    notes = wb.create_sheet("Notes")
    notes.append(["Remarks"])
    notes.append(["received in two boxes"])
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def _upload(client, url, raw, name="stock.xlsx", content_type=XLSX):
    return client.post(url, files={"file": (name, raw, content_type)})


def test_preview_reports_without_writing(client, db, paracetamol, paracetamol_batch):
    r = _upload(client, "/api/pharmacy/bulk-upload-excel/preview", _workbook())

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["medications"] == {"total": 2, "new": 1, "existing": 1, "duplicate": 1}
    assert body["batches"] == {
        "total": 3, "new": 2, "existing": 1, "duplicate": 0, "expired": 1, "expiringSoon": 0,
    }
    assert body["sheets"] == [{"name": "Tablets", "rowCount": 4, "validRows": 3, "invalidRows": 1}]
    assert body["errorCount"] == 1
    assert body["errors"][0]["sheet"] == "Notes"

    para = body["previewData"][0]
    assert para["existingMedicationId"] == paracetamol.id
    assert [b["batchNumber"] for b in para["batches"]] == ["B1", "B7"]
    assert para["batches"][0]["existingBatchId"] == paracetamol_batch.id
    assert para["batches"][1]["expiryDate"] == "2032-12-31"

    assert db.query(Medication).count() == 1
    assert db.query(MedicineBatch).count() == 1


def test_commit_upload(client, db, paracetamol, paracetamol_batch):
    r = _upload(client, "/api/pharmacy/bulk-upload-excel", _workbook())

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    assert body["totalProcessed"] == 4
    assert (body["successCount"], body["errorCount"], body["skippedCount"]) == (2, 1, 2)
    assert db.query(Medication).count() == 2
    assert db.query(MedicineBatch).count() == 3


def test_preview_rejects_empty_and_missing_file(client):
    r = _upload(client, "/api/pharmacy/bulk-upload-excel/preview", b"")
    assert r.status_code == 400
    assert r.json()["details"] == "file"

    r = client.post("/api/pharmacy/bulk-upload-excel/preview")
    assert r.status_code == 400


def test_upload_medications_csv(client, db, paracetamol):
    raw = b"Medicine,Combination,Brand,Product\nPan 40,Pantoprazole,Alkem,Tablet\n,,,\nParacetamol 500mg,,,\n"
    r = _upload(client, "/api/pharmacy/upload-medications", raw, name="meds.csv", content_type="text/csv")

    assert r.status_code == 200, r.text
    body = r.json()
    assert (body["totalRows"], body["successCount"], body["duplicateCount"], body["errorCount"]) == (3, 1, 1, 1)
    assert body["errors"][0]["row"] == 3


def test_upload_batches(client, db, paracetamol):
    r = client.post("/api/pharmacy/upload-batches", json={"batches": [
        {"medicationId": paracetamol.id, "batchNumber": "P1", "expiryDate": "2026-08-31",
         "quantity": 25, "purchaseRate": 1.2, "mrp": 2},
        {"medicationId": paracetamol.id},
    ]})

    assert r.status_code == 200, r.text
    assert r.json() == {"success": True, "successCount": 1, "errorCount": 1}
    assert db.query(MedicineBatch).filter(MedicineBatch.batch_number == "P1").count() == 1


def test_upload_batches_needs_list(client):
    r = client.post("/api/pharmacy/upload-batches", json={"rows": []})
    assert r.status_code == 400


def test_create_account_endpoint(client, db):
    staff = Staff(employee_id="EMP-7", name="Anitha")
    db.add(staff)
    db.commit()

    r = client.post("/api/accounts", json={
        "entity_id": staff.id,
        "entity_type": "staff",
        "email": "9000000001",
        "name": "Anitha",
        "role": "Receptionist",
    })

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["email"].startswith("9000000001@")
    assert body["password"]
    assert db.get(User, body["user_id"]).role == "receptionist"


def test_create_account_unknown_entity(client):
    r = client.post("/api/accounts", json={
        "entity_id": 99, "entity_type": "staff", "email": "x@y.z", "name": "X", "role": "Nurse",
    })
    assert r.status_code == 400
    assert r.json()["details"] == "entity_id"
