from decimal import Decimal

from hms_pharmacy.api.deps import get_number_generator, get_store
from hms_pharmacy.main import app
from hms_pharmacy.models import DrugPurchase, ErrorLog
from hms_pharmacy.services.errors import StorageError
from hms_pharmacy.services.pharmacy_store import PharmacyStore


def _payload(supplier, med, **line):
    item = {
        "medication_id": med.id,
        "batch_number": "B100",
        "expiry_date": "Mar-26",
        "quantity": 10,
        "unit_price": 100,
        "discount_percent": 10,
        "gst_percent": 12,
        "mrp": 150,
        "free_quantity": 2,
    }
    item.update(line)
    return {
        "purchase": {"supplier_id": supplier.id, "bill_no": "SLP/2025/88", "disc_amount": "", "cash_discount": 0},
        "items": [item],
    }


def test_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["version"] == "v1"


def test_create_purchase(client, supplier, paracetamol):
    r = client.post("/api/pharmacy/purchases", json=_payload(supplier, paracetamol))

    assert r.status_code == 200, r.text
    body = r.json()["purchase"]
    assert body["purchase_number"].startswith("PUR")
    assert body["invoice_number"] == "SLP/2025/88"
    assert body["status"] == "received"
    assert Decimal(body["net_payable"]) == Decimal("1008")
    assert Decimal(body["total_quantity"]) == Decimal("12")
    assert body["supplier"]["name"] == "Sri Lakshmi Pharma Distributors"

    items = sorted(body["items"], key=lambda i: i["batch_number"])
    assert [i["batch_number"] for i in items] == ["B100", "B100-1"]
    assert [i["flag"] for i in items] == ["Purchase", "Free"]
    assert items[0]["expiry_date"] == "2026-03-31"
    assert items[0]["medication_name"] == "Paracetamol 500mg"
    assert Decimal(items[0]["cgst_amount"]) == Decimal("54")


def test_create_purchase_validation_error(client, db, supplier, paracetamol):
    payload = _payload(supplier, paracetamol)
    payload["purchase"]["supplier_id"] = None

    r = client.post("/api/pharmacy/purchases", json=payload)

    assert r.status_code == 400
    assert r.json() == {
        "error": "supplier_id is required",
        "code": "validation_error",
        "details": "purchase.supplier_id",
    }
    assert db.query(DrugPurchase).count() == 0


def test_malformed_body_is_400(client, supplier, paracetamol):
    r = client.post("/api/pharmacy/purchases", json=_payload(supplier, paracetamol, quantity="ten"))
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "validation_error"
    assert body["details"] == "items.0.quantity"


def test_storage_failure_is_500_and_logged(client, db, supplier, paracetamol):
    class BrokenItems(PharmacyStore):
        def insert_purchase_items(self, rows):
            raise StorageError("FOREIGN KEY constraint failed", code="IntegrityError",
                               details="INSERT INTO drug_purchase_items ...", hint="IntegrityError")

    app.dependency_overrides[get_store] = lambda: BrokenItems(db)
    r = client.post("/api/pharmacy/purchases", json=_payload(supplier, paracetamol))

    assert r.status_code == 500
    assert r.json() == {
        "error": "FOREIGN KEY constraint failed",
        "code": "IntegrityError",
        "details": "INSERT INTO drug_purchase_items ...",
        "hint": "IntegrityError",
    }
    assert db.query(DrugPurchase).count() == 0

    log = db.query(ErrorLog).one()
    assert log.http_status == 500
    assert log.function == "create_purchase"
    assert log.endpoint == "POST /api/pharmacy/purchases"


def test_sequence_failure_is_500(client, db, supplier, paracetamol):
    def broken():
        raise ConnectionError("sequence backend unreachable")

    app.dependency_overrides[get_number_generator] = lambda: broken
    r = client.post("/api/pharmacy/purchases", json=_payload(supplier, paracetamol))

    assert r.status_code == 500
    assert r.json()["code"] == "sequence_unavailable"
    assert db.query(DrugPurchase).count() == 0


def test_search_purchases(client, supplier, paracetamol):
    client.post("/api/pharmacy/purchases", json=_payload(supplier, paracetamol))

    r = client.get("/api/pharmacy/purchases", params={"bill_no": "2025/88"})
    assert r.status_code == 200
    (purchase,) = r.json()["purchases"]
    assert purchase["invoice_number"] == "SLP/2025/88"
    assert len(purchase["items"]) == 2

    r = client.get("/api/pharmacy/purchases", params={"bill_no": "nothing-like-this"})
    assert r.json() == {"purchases": []}


def test_search_requires_bill_no(client):
    r = client.get("/api/pharmacy/purchases")
    assert r.status_code == 400
    assert r.json()["details"] == "bill_no"


def test_blank_pack_size_defaults_to_one(client, supplier, paracetamol):
    r = client.post("/api/pharmacy/purchases", json=_payload(supplier, paracetamol, pack_size="", free_quantity=0))

    assert r.status_code == 200, r.text
    (item,) = r.json()["purchase"]["items"]
    assert item["pack_size"] == 1
    assert Decimal(item["single_unit_rate"]) == Decimal("100")
