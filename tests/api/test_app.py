"""
API tests for the FastAPI application (TestClient against an isolated database).
"""
import base64
from datetime import date

import pytest


@pytest.fixture
def client_id(api_client, sample_client_payload) -> str:
    resp = api_client.post("/api/clients", json=sample_client_payload)
    assert resp.status_code == 201
    return resp.json()["id"]


@pytest.mark.api
class TestHealth:

    def test_health_ok(self, api_client):
        resp = api_client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["ok"] is True
        assert body["database"] == "connected"
        assert "uptime" in body and "timestamp" in body


@pytest.mark.api
class TestClientsApi:

    def test_create_returns_camel_case(self, api_client, sample_client_payload):
        resp = api_client.post("/api/clients", json=sample_client_payload)
        assert resp.status_code == 201
        body = resp.json()
        assert body["contactPerson"] == "R. Kumar"
        assert body["billingAddress"]["postalCode"] == "600002"
        assert body["createdAt"] == body["updatedAt"]

    def test_validation_error_is_400(self, api_client, sample_client_payload):
        resp = api_client.post("/api/clients", json={**sample_client_payload, "email": "nope"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "ValidationError"
        assert body["details"]

    def test_not_found(self, api_client):
        resp = api_client.get("/api/clients/ghost")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not found"}

    def test_put_is_partial(self, api_client, client_id):
        resp = api_client.put(f"/api/clients/{client_id}", json={"notes": "vip"})
        assert resp.status_code == 200
        assert resp.json()["notes"] == "vip"
        assert resp.json()["company"] == "Acme Traders Pvt Ltd"

    def test_delete_204(self, api_client, client_id):
        assert api_client.delete(f"/api/clients/{client_id}").status_code == 204
        assert api_client.delete(f"/api/clients/{client_id}").status_code == 404

    def test_delete_referenced_client_is_400(self, api_client, client_id):
        api_client.post("/api/purchases", json={"clientId": client_id})
        resp = api_client.delete(f"/api/clients/{client_id}")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Referenced record not found"

    def test_list_shape(self, api_client, client_id):
        body = api_client.get("/api/clients").json()
        assert [c["id"] for c in body["items"]] == [client_id]
        assert body["nextPageToken"] is None


@pytest.mark.api
class TestPurchasesApi:

    def test_create_and_patch(self, api_client, client_id):
        resp = api_client.post("/api/purchases", json={
            "clientId": client_id,
            "items": [{"name": "A", "quantity": 1, "unitPrice": 5}] * 3,
        })
        assert resp.status_code == 201
        purchase = resp.json()
        assert purchase["poNumber"] == f"PO-{date.today().year}-001"
        assert len(purchase["items"]) == 3

        patched = api_client.patch(f"/api/purchases/{purchase['id']}", json={"status": "approved"}).json()
        assert patched["status"] == "approved"
        assert len(patched["items"]) == 3

        cleared = api_client.put(f"/api/purchases/{purchase['id']}", json={"items": []}).json()
        assert cleared["items"] == []

    def test_bad_status_is_400(self, api_client, client_id):
        resp = api_client.post("/api/purchases", json={"clientId": client_id, "status": "lost"})
        assert resp.status_code == 400

    def test_unknown_client_is_400(self, api_client):
        resp = api_client.post("/api/purchases", json={"clientId": "nobody"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Referenced record not found"}

    def test_list_pagination(self, api_client, client_id):
        for _ in range(3):
            api_client.post("/api/purchases", json={"clientId": client_id})
        first = api_client.get("/api/purchases", params={"limit": 2}).json()
        assert len(first["items"]) == 2
        assert first["total"] == 3
        assert base64.b64decode(first["nextPageToken"]).decode() == "2"
        assert first["nextCursor"] == first["items"][-1]["createdAt"]

        second = api_client.get(
            "/api/purchases", params={"limit": 2, "pageToken": first["nextPageToken"]},
        ).json()
        assert len(second["items"]) == 1
        assert second["nextPageToken"] is None

    def test_by_client_and_by_ids(self, api_client, client_id):
        created = api_client.post("/api/purchases", json={"clientId": client_id}).json()
        by_client = api_client.get(f"/api/purchases/byClient/{client_id}").json()
        assert [p["id"] for p in by_client["items"]] == [created["id"]]

        by_ids = api_client.post("/api/purchases/byIds", json={"ids": [created["id"], "ghost"]}).json()
        assert [p["id"] for p in by_ids] == [created["id"]]
        assert api_client.post("/api/purchases/byIds", json={"ids": []}).json() == []

    def test_delete(self, api_client, client_id):
        created = api_client.post("/api/purchases", json={"clientId": client_id}).json()
        assert api_client.delete(f"/api/purchases/{created['id']}").json() == {"ok": True}
        assert api_client.get(f"/api/purchases/{created['id']}").status_code == 404


@pytest.mark.api
class TestInvoicesApi:

    def test_create_get_and_status(self, api_client, client_id):
        resp = api_client.post("/api/invoices", json={
            "clientId": client_id,
            "paymentTerms": 45,
            "items": [{"name": "Service", "quantity": 2, "unitPrice": 50}],
        })
        assert resp.status_code == 201
        invoice = resp.json()
        assert invoice["invoiceNumber"] == f"INV-{date.today().year}-0001"
        assert invoice["paymentTerms"] == "45"
        assert invoice["items"][0]["total"] == 100
        assert invoice["paidAt"] is None

        paid = api_client.patch(f"/api/invoices/{invoice['id']}/status", json={"status": "paid"}).json()
        assert paid["status"] == "paid"
        assert paid["paidAt"] is not None

    def test_duplicate_number_is_409(self, api_client, client_id):
        body = {"clientId": client_id, "invoiceNumber": "INV-CUSTOM-1"}
        assert api_client.post("/api/invoices", json=body).status_code == 201
        resp = api_client.post("/api/invoices", json=body)
        assert resp.status_code == 409
        assert resp.json() == {"error": "Duplicate entry"}

    def test_invalid_status_value(self, api_client, client_id):
        invoice = api_client.post("/api/invoices", json={"clientId": client_id}).json()
        resp = api_client.patch(f"/api/invoices/{invoice['id']}/status", json={"status": "settled"})
        assert resp.status_code == 400

    def test_stats(self, api_client, client_id):
        api_client.post("/api/invoices", json={"clientId": client_id, "status": "paid", "total": 80})
        api_client.post("/api/invoices", json={"clientId": client_id, "status": "draft", "total": 20})
        stats = api_client.get("/api/invoices/stats").json()
        assert stats["totalInvoices"] == 2
        assert stats["paidRevenue"] == 80
        assert stats["pendingRevenue"] == 20
        assert "from" in stats and "to" in stats

    def test_stats_bad_date_is_400(self, api_client):
        assert api_client.get("/api/invoices/stats", params={"dateFrom": "soon"}).status_code == 400

    def test_document(self, api_client, client_id):
        invoice = api_client.post("/api/invoices", json={"clientId": client_id}).json()
        resp = api_client.get(f"/api/invoices/{invoice['id']}/document")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert invoice["invoiceNumber"] in resp.text
        assert "Acme Traders Pvt Ltd" in resp.text

    def test_delete_and_missing(self, api_client, client_id):
        invoice = api_client.post("/api/invoices", json={"clientId": client_id}).json()
        assert api_client.delete(f"/api/invoices/{invoice['id']}").json() == {"ok": True}
        assert api_client.patch(f"/api/invoices/{invoice['id']}", json={"notes": "x"}).status_code == 404


@pytest.mark.api
class TestFinanceAndSettingsApi:

    def test_finance_crud_and_stats(self, api_client):
        for body in (
            {"type": "invested", "category": "capital", "amount": 1000},
            {"type": "expense", "category": "rent", "amount": 300},
            {"type": "tds", "category": "q1", "amount": 100},
        ):
            assert api_client.post("/api/finance", json=body).status_code == 201

        listing = api_client.get("/api/finance", params={"type": "expense"}).json()
        assert listing["total"] == 1
        record_id = listing["items"][0]["id"]

        assert api_client.patch(f"/api/finance/{record_id}", json={"amount": 400}).json()["amount"] == 400
        stats = api_client.get("/api/finance/stats").json()
        assert stats == {"totalInvested": 1000, "totalExpenses": 400, "totalTDS": 100, "profit": 500}

        assert api_client.delete(f"/api/finance/{record_id}").json() == {"ok": True}

    def test_finance_list_order(self, api_client):
        for n in range(3):
            api_client.post("/api/finance", json={"type": "expense", "category": f"c{n}", "amount": n})
        asc = api_client.get("/api/finance", params={"order": "asc"}).json()
        assert [r["category"] for r in asc["items"]] == ["c0", "c1", "c2"]
        desc = api_client.get("/api/finance").json()
        assert [r["category"] for r in desc["items"]] == ["c2", "c1", "c0"]

    def test_finance_requires_type(self, api_client):
        assert api_client.post("/api/finance", json={"category": "rent"}).status_code == 400

    def test_settings_round_trip(self, api_client):
        current = api_client.get("/api/settings").json()
        assert current["invoicePrefix"] == "INV"

        patched = api_client.patch("/api/settings", json={"companyGST": "33abc", "defaultTaxRate": 500}).json()
        assert patched["companyGST"] == "33ABC"
        assert patched["defaultTaxRate"] == 100

        replaced = api_client.put("/api/settings", json={}).json()
        assert replaced["companyGST"] == current["companyGST"]

        history = api_client.get("/api/settings/history").json()
        assert len(history["items"]) == 3
        assert history["items"][0]["companyGST"] == current["companyGST"]
        assert history["items"][1]["companyGST"] == "33ABC"
