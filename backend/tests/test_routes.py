"""
API surface tests: status codes and JSON error bodies.
"""


def test_health(client, db_session):
    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "healthy"
    assert data["checks"]["deferred_tasks"]["pending"] == 0


def test_create_and_list_accounts(client, db_session):
    response = client.post("/api/accounts", json={"name": "Route Shop", "code": "RT1"})
    assert response.status_code == 201
    account_id = response.get_json()["account"]["id"]

    duplicate = client.post("/api/accounts", json={"name": "Again", "code": "RT1"})
    assert duplicate.status_code == 409

    listed = client.get("/api/accounts").get_json()["accounts"]
    assert [a["id"] for a in listed] == [account_id]


def test_unknown_account_is_404(client, db_session):
    response = client.get("/api/accounts/9999/settings")

    assert response.status_code == 404
    assert response.get_json()["error"] == "Account not found"


def test_sale_flow_over_http(client, account):
    base = f"/api/accounts/{account.id}"
    product = client.post(f"{base}/products", json={
        "product_code": "HTTP-1", "name": "Biscuits", "price": 50, "stock": 10,
    }).get_json()["product"]

    response = client.post(f"{base}/sales", json={
        "items": [{"product_id": product["id"], "quantity": 2, "price": 50}],
        "discount_amount": 20,
    })

    assert response.status_code == 201
    data = response.get_json()
    assert data["sale"]["grand_total"] == 80.0
    assert data["updated_products"] == [{"id": product["id"], "product_code": "HTTP-1", "stock": 8}]

    reconciliation = client.get(f"{base}/ledger/reconciliation").get_json()["reconciliation"]
    assert reconciliation["stored_balance"] == 80.0
    assert reconciliation["is_consistent"] is True


def test_insufficient_stock_error_body(client, account, make_product):
    product = make_product(stock=10)

    response = client.post(f"/api/accounts/{account.id}/sales", json={
        "items": [{"product_id": product.id, "quantity": 11, "price": 50}],
    })

    assert response.status_code == 409
    data = response.get_json()
    assert data["error"] == "Insufficient stock to complete sale"
    assert data["operation"] == "process_sale"
    assert data["details"]["items"][0]["product_id"] == product.id


def test_validation_error_body(client, account):
    response = client.post(f"/api/accounts/{account.id}/sales", json={"items": []})

    assert response.status_code == 400
    assert response.get_json()["error"] == "At least one item is required"


def test_settings_patch_rejects_counters(client, account):
    response = client.patch(f"/api/accounts/{account.id}/settings", json={"last_sale_numeric_id": 50})

    assert response.status_code == 400


def test_settings_patch_with_snapshot(client, account):
    base = f"/api/accounts/{account.id}/settings"
    current = client.get(base).get_json()["settings"]

    response = client.patch(base, json={"current": current, "changes": {"low_stock_threshold": 3}})

    assert response.status_code == 200
    assert response.get_json()["settings"]["low_stock_threshold"] == 3


def test_reset_requires_confirm(client, account):
    response = client.post(f"/api/accounts/{account.id}/reset", json={})

    assert response.status_code == 400


def test_restore_requires_confirm(client, account):
    base = f"/api/accounts/{account.id}/backups"
    backup = client.post(base, json={"description": "nightly"}).get_json()["backup"]

    refused = client.post(f"{base}/{backup['id']}/restore", json={})
    assert refused.status_code == 400

    restored = client.post(f"{base}/{backup['id']}/restore", json={"confirm": True})
    assert restored.status_code == 200
    assert restored.get_json()["restored"]["customers"] == 1


def test_supplier_payment_route(client, account, supplier):
    response = client.post(
        f"/api/accounts/{account.id}/suppliers/{supplier.id}/payments",
        json={"amount": 40, "payment_method": "bank", "reference": "TX-1"},
    )

    assert response.status_code == 200
    ledger = client.get(f"/api/accounts/{account.id}/ledger?type=supplier_payment").get_json()["transactions"]
    assert [t["amount"] for t in ledger] == [-40.0]


def test_unexpected_error_is_500_json(client, account, monkeypatch):
    from shopledger.services import sales_service

    def _broken(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(sales_service, "process_sale", _broken)

    response = client.post(f"/api/accounts/{account.id}/sales", json={
        "items": [{"description": "Manual", "quantity": 1, "price": 5}],
    })

    assert response.status_code == 500
    assert response.get_json() == {"error": "Internal server error"}
