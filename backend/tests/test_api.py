"""HTTP tests for the ledger API."""

from datetime import date, timedelta

from models.log import Log


def _create_product(client, code="AMOX-250", cost="10.00", reorder_level=0):
    response = client.post("/products/", json={
        "name": f"Product {code}", "code": code, "cost_price": cost, "reorder_level": reorder_level,
    })
    assert response.status_code == 201, response.text
    return response.json()


def _receive(client, product_id, qty, cost="10.00", expiry=None, batch_number=None):
    item = {"product_id": product_id, "received_quantity": qty, "cost_price": cost}
    if expiry:
        item["expiry_date"] = expiry.isoformat()
    if batch_number:
        item["batch_number"] = batch_number
    created = client.post("/goods-receipts/", json={"items": [item], "supplier_name": "Pharma Wholesale"})
    assert created.status_code == 201, created.text
    finalized = client.post(f"/goods-receipts/{created.json()['id']}/finalize")
    assert finalized.status_code == 200, finalized.text
    return finalized.json()


class TestProducts:
    def test_create_and_get(self, client):
        product = _create_product(client)

        response = client.get(f"/products/{product['id']}")

        assert response.status_code == 200
        assert response.json()["code"] == "AMOX-250"
        assert response.json()["quantity_on_hand"] == 0

    def test_duplicate_code(self, client):
        _create_product(client)
        response = client.post("/products/", json={"name": "Again", "code": "AMOX-250"})

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidInput"

    def test_missing_product_is_404(self, client):
        response = client.get("/products/999")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["product_id"] == 999

    def test_search(self, client):
        _create_product(client, code="AMOX-250")
        _create_product(client, code="IBU-400")

        response = client.get("/products/", params={"q": "ibu"})

        assert [p["code"] for p in response.json()] == ["IBU-400"]


class TestGoodsReceiptsApi:
    def test_receive_creates_batch_and_alert(self, client):
        product = _create_product(client, cost="100.00")

        result = _receive(client, product["id"], 10, cost="155.00")

        assert result["receipt"]["status"] == "COMPLETED"
        assert len(result["batches"]) == 1
        assert result["batches"][0]["batch_number"].startswith(result["receipt"]["receipt_number"])
        assert result["alerts"][0]["severity"] == "HIGH"
        assert result["alerts"][0]["change_percentage"] == "55.00"

    def test_block_on_high_returns_conflict(self, client):
        product = _create_product(client, cost="100.00")
        created = client.post("/goods-receipts/", json={
            "items": [{"product_id": product["id"], "received_quantity": 1, "cost_price": "155.00"}],
        }).json()

        response = client.post(f"/goods-receipts/{created['id']}/finalize", json={"block_on_high": True})

        assert response.status_code == 409
        assert response.json()["error"] == "CostVarianceRejected"
        assert client.get(f"/goods-receipts/{created['id']}").json()["status"] == "DRAFT"

    def test_validation_errors(self, client):
        product = _create_product(client)

        empty = client.post("/goods-receipts/", json={"items": []})
        zero = client.post("/goods-receipts/", json={
            "items": [{"product_id": product["id"], "received_quantity": 0, "cost_price": "1.00"}],
        })

        assert empty.status_code == 422
        assert zero.status_code == 422

    def test_duplicate_batch_number_is_conflict(self, client):
        product = _create_product(client)
        _receive(client, product["id"], 1, batch_number="LOT-A")
        created = client.post("/goods-receipts/", json={
            "items": [{"product_id": product["id"], "received_quantity": 2, "cost_price": "10.00", "batch_number": "LOT-A"}],
        }).json()

        response = client.post(f"/goods-receipts/{created['id']}/finalize")

        assert response.status_code == 409
        assert response.json()["batch_number"] == "LOT-A"

    def test_finalize_twice_is_bad_request(self, client):
        product = _create_product(client)
        created = client.post("/goods-receipts/", json={
            "items": [{"product_id": product["id"], "received_quantity": 2, "cost_price": "10.00"}],
        }).json()
        client.post(f"/goods-receipts/{created['id']}/finalize")

        response = client.post(f"/goods-receipts/{created['id']}/finalize")

        assert response.status_code == 400

    def test_cancel_and_list_by_status(self, client):
        product = _create_product(client)
        created = client.post("/goods-receipts/", json={
            "items": [{"product_id": product["id"], "received_quantity": 2, "cost_price": "10.00"}],
        }).json()

        cancelled = client.post(f"/goods-receipts/{created['id']}/cancel")
        listing = client.get("/goods-receipts/", params={"status": "CANCELLED"})

        assert cancelled.json()["status"] == "CANCELLED"
        assert listing.json()["total"] == 1
        assert client.get("/goods-receipts/", params={"status": "BOGUS"}).status_code == 422


class TestSaleFlow:
    def test_receive_sell_void(self, client, db_session):
        product = _create_product(client)
        soon = date.today() + timedelta(days=60)
        first = _receive(client, product["id"], 100, cost="10.00", expiry=soon)["batches"][0]
        second = _receive(client, product["id"], 50, cost="12.00")["batches"][0]

        plan = client.post("/allocations/plan", json={"product_id": product["id"], "quantity": 120})
        assert plan.status_code == 200
        assert [(l["batch_id"], l["quantity"]) for l in plan.json()["lines"]] == [(first["id"], 100), (second["id"], 20)]
        assert plan.json()["total_cost"] == "1240.00"

        sale = client.post("/allocations/commit", json={
            "product_id": product["id"], "quantity": 120,
            "reference": {"reference_type": "SALE", "reference_id": 501, "reference_number": "S-501"},
        })
        assert sale.status_code == 200, sale.text
        assert sale.json()["quantity_on_hand"] == 30
        assert [m["quantity"] for m in sale.json()["movements"]] == [-100, -20]
        assert client.get(f"/batches/{first['id']}").json()["status"] == "DEPLETED"

        short = client.post("/allocations/commit", json={"product_id": product["id"], "quantity": 31})
        assert short.status_code == 409
        assert short.json()["error"] == "InsufficientStock"
        assert short.json()["shortfall"] == 1

        void = client.post("/allocations/reverse", json={
            "reference_type": "SALE", "reference_id": 501, "reason": "Customer returned order",
        })
        assert void.status_code == 200, void.text
        assert void.json()["total"] == 2
        assert client.get(f"/products/{product['id']}").json()["quantity_on_hand"] == 150

        again = client.post("/allocations/reverse", json={
            "reference_type": "SALE", "reference_id": 501, "reason": "Customer returned order",
        })
        assert again.status_code == 400

        history = client.get("/stock/", params={"product_id": product["id"]}).json()
        assert history["total"] == 6
        assert sum(m["quantity"] for m in history["items"]) == 150
        assert client.get("/stock/", params={"product_id": product["id"], "direction": "OUT"}).json()["total"] == 2

        actions = {log.action for log in db_session.query(Log).all()}
        assert {"STOCK_ALLOCATION", "STOCK_REVERSAL", "GOODS_RECEIPT_FINALIZE"} <= actions

    def test_plan_rejects_non_positive_quantity(self, client):
        product = _create_product(client)

        response = client.post("/allocations/plan", json={"product_id": product["id"], "quantity": 0})

        assert response.status_code == 422

    def test_product_batches_in_fefo_order(self, client):
        product = _create_product(client)
        late = _receive(client, product["id"], 1, expiry=date.today() + timedelta(days=90))["batches"][0]
        never = _receive(client, product["id"], 1)["batches"][0]
        early = _receive(client, product["id"], 1, expiry=date.today() + timedelta(days=10))["batches"][0]

        response = client.get(f"/products/{product['id']}/batches")

        assert [b["id"] for b in response.json()] == [early["id"], late["id"], never["id"]]


class TestStockApi:
    def test_adjust_and_summary(self, client):
        product = _create_product(client, cost="4.00")
        _receive(client, product["id"], 10, cost="4.00")

        removed = client.post("/stock/adjust", json={
            "product_id": product["id"], "quantity": -3, "reason": "Broken in transit", "adjustment_type": "DAMAGE",
        })
        added = client.post("/stock/adjust", json={
            "product_id": product["id"], "quantity": 2, "reason": "Found during stock count",
        })

        assert removed.status_code == 200, removed.text
        assert removed.json()["quantity_on_hand"] == 7
        assert added.json()["quantity_on_hand"] == 9
        assert added.json()["adjustment_number"].startswith("ADJ-")
        summary = client.get("/stock/adjustments/summary").json()
        assert {s["adjustment_type"]: s["net_quantity"] for s in summary} == {"DAMAGE": -3, "COUNT_CORRECTION": 2}
        assert client.get("/stock/adjustments", params={"adjustment_type": "DAMAGE"}).json()["total"] == 1

        movement_id = removed.json()["movements"][0]["id"]
        movement = client.get(f"/stock/{movement_id}").json()
        assert movement["movement_number"].startswith("SM-")

    def test_adjust_rejects_short_reason_and_overdraw(self, client):
        product = _create_product(client)
        _receive(client, product["id"], 1)

        short_reason = client.post("/stock/adjust", json={"product_id": product["id"], "quantity": -1, "reason": "x"})
        overdraw = client.post("/stock/adjust", json={
            "product_id": product["id"], "quantity": -2, "reason": "Count came up short",
        })
        zero = client.post("/stock/adjust", json={
            "product_id": product["id"], "quantity": 0, "reason": "Count came up short",
        })

        assert short_reason.status_code == 422
        assert overdraw.status_code == 409
        assert overdraw.json()["shortfall"] == 1
        assert zero.status_code == 400

    def test_unknown_movement(self, client):
        assert client.get("/stock/4242").status_code == 404


class TestReportsApi:
    def test_reports(self, client):
        product = _create_product(client, reorder_level=20)
        _receive(client, product["id"], 5, cost="2.00", expiry=date.today() + timedelta(days=3))
        _receive(client, product["id"], 5, cost="2.00")

        low = client.get("/reports/low-stock").json()
        expiring = client.get("/reports/expiring", params={"days": 7}).json()
        value = client.get("/reports/valuation").json()

        assert low["total"] == 1
        assert low["items"][0]["shortage"] == 10
        assert len(expiring["items"]) == 1
        assert expiring["items"][0]["urgency"] == "CRITICAL"
        assert value["quantity"] == 10
        assert value["value_at_cost"] == "20.00"

    def test_negative_days_rejected(self, client):
        assert client.get("/reports/expiring", params={"days": -1}).status_code == 422
