import base64
import hashlib
import hmac
import json

from config import settings
from models.log import Log
from routes import products as products_routes
from routes import webhooks as webhooks_routes


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_login_and_me(client, admin):
    resp = client.post("/api/auth/login", json={"name": "admin", "password": "secret"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "admin"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.json()["name"] == "admin"


def test_login_rejects_bad_password(client, admin, db):
    resp = client.post("/api/auth/login", json={"name": "admin", "password": "wrong"})
    assert resp.status_code == 401
    assert db.query(Log).filter(Log.action == "LOGIN", Log.status == "FAIL").count() == 1


def test_routes_require_token(client):
    assert client.get("/api/products").status_code in (401, 403)


def test_user_admin_only(client, staff_headers, admin_headers):
    assert client.get("/api/users", headers=staff_headers).status_code == 403
    created = client.post("/api/users", headers=admin_headers, json={"name": "new", "password": "pw123", "role": "user"})
    assert created.status_code == 200
    dup = client.post("/api/users", headers=admin_headers, json={"name": "new", "password": "pw123", "role": "user"})
    assert dup.status_code == 400


def test_stock_endpoints(client, admin_headers, make_product):
    make_product("OILS_1", stock=1000)

    resp = client.post("/api/stock/remove", headers=admin_headers,
                       json={"productId": "OILS_1", "quantity": 250, "notes": "test"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["newStock"] == 750
    assert body["product"]["currentStock"] == 750

    resp = client.post("/api/stock/remove", headers=admin_headers,
                       json={"productId": "OILS_1", "quantity": 1000})
    assert resp.status_code == 409
    error = resp.json()
    assert error["success"] is False
    assert error["code"] == "insufficient_stock"
    assert error["details"] == {"productId": "OILS_1", "available": 750.0, "requested": 1000.0}

    resp = client.post("/api/stock/adjust", headers=admin_headers,
                       json={"productId": "OILS_1", "quantity": 50, "type": "add"})
    assert resp.json()["newStock"] == 800


def test_stock_errors_map_to_status(client, admin_headers, make_product):
    make_product("OILS_1", stock=10)

    assert client.post("/api/stock/add", headers=admin_headers,
                       json={"productId": "OILS_404", "quantity": 1}).status_code == 404
    assert client.post("/api/stock/add", headers=admin_headers,
                       json={"productId": "OILS_1", "quantity": 0}).status_code == 400
    assert client.post("/api/stock/adjust", headers=admin_headers,
                       json={"productId": "OILS_1", "quantity": 1, "type": "move"}).status_code == 400


def test_transactions_filter(client, admin_headers, make_product):
    make_product("OILS_1", stock=10)
    make_product("OILS_2", stock=10)
    client.post("/api/stock/add", headers=admin_headers, json={"productId": "OILS_1", "quantity": 1})
    client.post("/api/stock/remove", headers=admin_headers, json={"productId": "OILS_2", "quantity": 1})

    rows = client.get("/api/transactions", headers=admin_headers, params={"productId": "OILS_2"}).json()
    assert [(r["product_id"], r["type"]) for r in rows] == [("OILS_2", "remove")]
    assert client.get("/api/transactions", headers=admin_headers, params={"type": "nope"}).status_code == 422


def test_product_crud(client, admin_headers):
    resp = client.post("/api/products", headers=admin_headers,
                       json={"name": "Vanilla", "category": "OILS", "unit": "mL", "currentStock": 2000})
    assert resp.status_code == 200
    product = resp.json()
    assert product["id"] == "OILS_1"
    assert product["shopifySkus"]["SA_CA"] == "SA_CA_00001"

    resp = client.put("/api/products/OILS_1", headers=admin_headers, json={"minStockLevel": 500})
    assert resp.json()["minStockLevel"] == 500

    assert client.delete("/api/products/OILS_1", headers=admin_headers).json() == {"success": True}
    assert client.get("/api/products/OILS_1", headers=admin_headers).status_code == 404


def test_bom_routes(client, admin_headers):
    resp = client.post("/api/bom", headers=admin_headers,
                       json={"variant": "SA_CA", "componentCode": "RM_BOTTLE", "quantity": 1})
    assert resp.json()["bom"][0]["seq"] == 1
    dup = client.post("/api/bom", headers=admin_headers,
                      json={"variant": "SA_CA", "componentCode": "RM_BOTTLE", "quantity": 1})
    assert dup.status_code == 409
    assert dup.json()["error"] == "Component already exists in this BOM"

    grouped = client.get("/api/bom", headers=admin_headers).json()
    assert list(grouped) == ["SA_CA"]


def test_dashboard(client, admin_headers, make_product, db):
    make_product("OILS_1", stock=300)
    low = make_product("RAW_MATERIALS_1", stock=2, unit="units", category="RAW_MATERIALS")
    low.min_stock_level = 10
    db.commit()

    body = client.get("/api/dashboard", headers=admin_headers).json()

    assert body["totalProducts"] == 2
    assert body["lowStockCount"] == 1
    assert body["totalStockValue"] == {"oils": 300.0}


def test_csv_export(client, admin_headers, make_product):
    make_product("OILS_1", stock=5, skus={"SA_CA": "SA_CA_00001"})

    resp = client.get("/api/export/products", headers=admin_headers, params={"format": "csv"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    lines = resp.text.strip().splitlines()
    assert lines[0].startswith("id,tag,productCode")
    assert "SA_CA=SA_CA_00001" in lines[1]


def signed(body: bytes, secret: str) -> str:
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


def test_webhook_fulfillment(client, make_product, make_bom):
    make_product("OILS_1", stock=2000, skus={"SA_CA": "SA_CA_00001"})
    make_product("RAW_MATERIALS_1", stock=10, unit="units", category="RAW_MATERIALS", code="RM_BOTTLE_400")
    make_bom("SA_CA", ("RM_BOTTLE_400", 1))
    payload = {"name": "#5001", "line_items": [
        {"sku": "missing", "quantity": 1},
        {"sku": "SA_CA_00001", "quantity": 2},
    ]}

    resp = client.post("/api/webhook/shopify", json=payload, headers={"x-shopify-topic": "orders/fulfilled"})

    body = resp.json()
    assert resp.status_code == 200
    assert body["success"] is True
    assert body["processedOrder"] == "#5001"
    assert body["applied"][0]["movements"][0]["balanceAfter"] == 1200
    assert body["skipped"][0]["reason"] == "sku_not_found"


def test_webhook_rejects_malformed_payload(client):
    resp = client.post("/api/webhook/shopify", json={"line_items": "nope"},
                       headers={"x-shopify-topic": "orders/fulfilled"})
    assert resp.status_code == 400
    resp = client.post("/api/webhook/shopify", content=b"{not json",
                       headers={"x-shopify-topic": "orders/fulfilled"})
    assert resp.status_code == 400


def test_webhook_unknown_topic(client):
    resp = client.post("/api/webhook/shopify", json={"line_items": []}, headers={"x-shopify-topic": "carts/update"})
    assert resp.json() == {"received": True, "message": "Webhook received but not processed"}


def test_webhook_signature(client, monkeypatch, make_product):
    monkeypatch.setattr(settings, "SHOPIFY_WEBHOOK_SECRET", "hush")
    make_product("OILS_1", stock=1000, skus={"SA_HF": "SA_HF_00001"})
    body = json.dumps({"name": "#6001", "line_items": [{"sku": "SA_HF_00001", "quantity": 1}]}).encode()

    bad = client.post("/api/webhook/shopify", content=body,
                      headers={"x-shopify-topic": "orders/create", "x-shopify-hmac-sha256": "forged"})
    assert bad.status_code == 401

    good = client.post("/api/webhook/shopify", content=body, headers={
        "x-shopify-topic": "orders/create",
        "x-shopify-hmac-sha256": signed(body, "hush"),
        "content-type": "application/json",
    })
    assert good.status_code == 200
    assert good.json()["message"] == "Incoming order added"


def test_upload_and_delete_attachment(client, admin_headers):
    resp = client.post(
        "/api/attachments/upload",
        headers=admin_headers,
        files={"file": ("safety sheet.pdf", b"%PDF-1.4 test", "application/pdf")},
        data={"associatedOilId": "OILS_1", "associatedOilName": "Lavender"},
    )
    assert resp.status_code == 200
    attachment = resp.json()
    assert attachment["stored_file_name"].endswith("-safety_sheet.pdf")

    listed = client.get("/api/attachments", headers=admin_headers, params={"oilId": "OILS_1"}).json()
    assert len(listed) == 1

    assert client.delete(f"/api/attachments/{attachment['id']}", headers=admin_headers).json() == {"success": True}


def recording_threadpool(monkeypatch, module):
    """Record what a route hands to the worker threads."""
    calls = []
    original = module.run_in_threadpool

    async def _run(func, *args, **kwargs):
        calls.append(getattr(func, "__name__", repr(func)))
        return await original(func, *args, **kwargs)

    monkeypatch.setattr(module, "run_in_threadpool", _run)
    return calls


def test_webhook_database_work_leaves_the_event_loop(client, monkeypatch, make_product):
    make_product("OILS_1", stock=1000, skus={"SA_HF": "SA_HF_00001"})
    calls = recording_threadpool(monkeypatch, webhooks_routes)

    resp = client.post("/api/webhook/shopify", json={"name": "#7001", "line_items": [{"sku": "SA_HF_00001", "quantity": 1}]},
                       headers={"x-shopify-topic": "orders/fulfilled"})

    assert resp.json()["applied"][0]["movements"][0]["balanceAfter"] == 500
    assert calls == ["handle_fulfillment", "write_log"]


def test_product_create_database_work_leaves_the_event_loop(client, admin_headers, monkeypatch):
    calls = recording_threadpool(monkeypatch, products_routes)

    resp = client.post("/api/products", headers=admin_headers,
                       json={"name": "Neroli", "category": "OILS", "unitPerBox": 0, "currentStock": 10})

    assert resp.status_code == 200
    assert resp.json()["unitPerBox"] == 0
    assert calls == ["create_product", "write_log", "refresh"]
