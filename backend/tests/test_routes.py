# Overview: Pytest coverage for the HTTP API (status codes and response shapes).

"""
API Route Tests

Drive the Flask app through the test client against the in-memory database.
Sessions started here run on the real clock and are checked out within the
grace period, so only food is charged.
"""

import pytest


def start(client, table_id=1, name="Ali"):
    return client.post(f"/api/tables/{table_id}/start", json={"customer_name": name, "operator": "Owner"})


class TestSystem:
    def test_health(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["tables"]["details"]["tables"] == 17

    def test_version(self, client):
        body = client.get("/api/version").get_json()
        assert body["api_version"] == "1.0.0"
        assert body["currency"] == "SAR"

    def test_cors_for_local_frontend(self, client, db_session):
        response = client.get("/api/tables", headers={"Origin": "http://localhost:5173"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"


class TestTables:
    def test_list_tables(self, client, db_session):
        response = client.get("/api/tables")
        assert response.status_code == 200
        tables = response.get_json()["tables"]
        assert len(tables) == 17
        assert tables[0]["number"] == "Snooker Table 1"

    def test_unknown_table(self, client, db_session):
        assert client.get("/api/tables/99").status_code == 404
        assert start(client, 99).status_code == 404

    def test_start_and_pause(self, client, db_session):
        response = start(client)
        assert response.status_code == 201
        assert response.get_json()["table"]["status"] == "occupied"

        assert client.post("/api/tables/1/pause").status_code == 200
        conflict = client.post("/api/tables/1/pause")
        assert conflict.status_code == 409
        assert "error" in conflict.get_json()

        response = client.post("/api/tables/1/resume")
        assert response.get_json()["table"]["status"] == "occupied"

    def test_start_twice_conflicts(self, client, db_session):
        start(client)
        assert start(client, name="Sara").status_code == 409

    def test_start_without_name(self, client, db_session):
        response = client.post("/api/tables/1/start", json={})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Customer name cannot be empty"

    def test_food_lines(self, client, db_session):
        start(client)

        response = client.post("/api/tables/1/food", json={"menu_item_id": "7", "quantity": 2})
        assert response.status_code == 201
        item = response.get_json()["item"]
        assert item["quantity"] == 2
        assert item["price"] == 5.0

        assert client.post("/api/tables/1/food", json={"menu_item_id": "7", "quantity": 0}).status_code == 400
        assert client.post("/api/tables/1/food", json={"menu_item_id": "404"}).status_code == 400
        assert client.post("/api/tables/1/food", json={}).status_code == 400

        response = client.delete(f"/api/tables/1/food/{item['id']}")
        assert response.get_json()["table"]["session"]["foodItems"] == []

    def test_bundle(self, client, db_session):
        start(client)
        response = client.post("/api/tables/1/bundles", json={"bundle_id": "bundle-1"})
        assert response.status_code == 201
        assert response.get_json()["item"]["isBundle"] is True

    def test_rate_and_maintenance(self, client, db_session):
        response = client.patch("/api/tables/2", json={"hourly_rate": 20})
        assert response.get_json()["table"]["hourlyRate"] == 20.0

        assert client.patch("/api/tables/2", json={}).status_code == 400
        assert client.patch("/api/tables/2", json={"maintenance": True}).get_json()["table"]["status"] == "maintenance"
        assert start(client, 2).status_code == 409

    def test_estimate(self, client, db_session):
        assert client.get("/api/tables/1/estimate").status_code == 409

        start(client)
        client.post("/api/tables/1/food", json={"menu_item_id": "1"})
        body = client.get("/api/tables/1/estimate").get_json()
        assert body["estimate"] == 17.5
        assert body["bill"]["subtotal"] == 2.5

    def test_estimate_follows_current_table_rate(self, client, db_session):
        start(client)
        client.patch("/api/tables/1", json={"hourly_rate": 20})

        body = client.get("/api/tables/1/estimate").get_json()
        assert body["estimate"] == 20.0
        assert body["bill"]["hourlyRate"] == 15.0

    def test_end_without_billing(self, client, db_session):
        start(client)
        response = client.post("/api/tables/1/end")
        assert response.status_code == 200
        assert response.get_json()["table"]["status"] == "available"
        assert client.get("/api/ledger/transactions").get_json()["count"] == 0


class TestCheckout:
    @pytest.fixture
    def bill(self, client, db_session):
        start(client)
        client.post("/api/tables/1/food", json={"menu_item_id": "7", "quantity": 2})
        response = client.post("/api/billing/1/preview")
        assert response.status_code == 200
        return response.get_json()["bill"]

    def test_preview(self, bill):
        assert bill["tableCharge"] == 0.0
        assert bill["foodCharge"] == 10.0
        assert bill["total"] == 10.0
        assert bill["graceApplied"] is False

    def test_checkout_cash(self, client, bill):
        response = client.post("/api/billing/1/checkout", json={
            "end_time": bill["endTime"],
            "payment_method": "cash",
            "operator": "Owner",
        })
        assert response.status_code == 201
        transaction = response.get_json()["transaction"]
        assert transaction["total"] == 10.0
        assert transaction["paymentMethod"] == "cash"
        assert transaction["discountReason"] == "No discount"
        assert transaction["locked"] is True

        assert client.get("/api/tables/1").get_json()["table"]["status"] == "available"
        fetched = client.get(f"/api/ledger/transactions/{transaction['id']}")
        assert fetched.get_json()["transaction"] == transaction

        # Table is free now, nothing left to check out
        again = client.post("/api/billing/1/checkout", json={"end_time": bill["endTime"], "payment_method": "cash"})
        assert again.status_code == 409

    def test_checkout_split_with_discount(self, client, bill):
        response = client.post("/api/billing/1/checkout", json={
            "end_time": bill["endTime"],
            "payment_method": "split",
            "cash_amount": 5,
            "card_amount": 4,
            "discount": {"type": "percentage", "value": 10, "reason": "loyalty"},
            "operator": "Owner",
        })
        assert response.status_code == 201
        transaction = response.get_json()["transaction"]
        assert transaction["discountAmount"] == 1.0
        assert transaction["total"] == 9.0
        assert transaction["paymentMethod"] == "cash"
        assert transaction["splitPayment"] == {"cash": 5.0, "card": 4.0}

    def test_bad_split_is_rejected(self, client, bill):
        response = client.post("/api/billing/1/checkout", json={
            "end_time": bill["endTime"],
            "payment_method": "split",
            "cash_amount": 5,
            "card_amount": 4,
        })
        assert response.status_code == 400
        assert "must equal total" in response.get_json()["error"]
        assert client.get("/api/tables/1").get_json()["table"]["status"] == "occupied"

    def test_discount_without_reason(self, client, bill):
        response = client.post("/api/billing/1/checkout", json={
            "end_time": bill["endTime"],
            "payment_method": "cash",
            "discount": {"type": "fixed", "value": 2},
        })
        assert response.status_code == 400
        assert response.get_json()["error"] == "Please provide a reason for the discount"

    def test_missing_fields(self, client, bill):
        assert client.post("/api/billing/1/checkout", json={"payment_method": "cash"}).status_code == 400
        assert client.post("/api/billing/1/checkout", json={"end_time": bill["endTime"]}).status_code == 400

    def test_preview_without_session(self, client, db_session):
        assert client.post("/api/billing/3/preview").status_code == 409
        assert client.post("/api/billing/99/preview").status_code == 404


class TestLedgerAndClosures:
    @pytest.fixture
    def sale(self, client, db_session):
        start(client)
        client.post("/api/tables/1/food", json={"menu_item_id": "8"})
        bill = client.post("/api/billing/1/preview").get_json()["bill"]
        response = client.post("/api/billing/1/checkout", json={
            "end_time": bill["endTime"], "payment_method": "card", "operator": "Owner",
        })
        return response.get_json()["transaction"]

    def test_transactions_by_date(self, client, sale):
        body = client.get(f"/api/ledger/transactions?date={sale['date']}").get_json()
        assert body["count"] == 1

        body = client.get(f"/api/ledger/transactions?start={sale['date']}&end={sale['date']}").get_json()
        assert body["transactions"][0]["id"] == sale["id"]

        assert client.get(f"/api/ledger/transactions?start={sale['date']}").status_code == 400
        assert client.get("/api/ledger/transactions?date=yesterday").status_code == 400

    def test_unknown_transaction(self, client, db_session):
        assert client.get("/api/ledger/transactions/trans-404").status_code == 404

    def test_summary_and_tenders(self, client, sale):
        summary = client.get(f"/api/ledger/summary?date={sale['date']}").get_json()["summary"]
        assert summary["totalSessions"] == 1
        assert summary["expectedCard"] == 8.0

        tenders = client.get(f"/api/ledger/tenders?date={sale['date']}").get_json()["tenders"]
        assert tenders["card"] == 8.0
        assert client.get("/api/ledger/summary").status_code == 400

    def test_close_day(self, client, sale):
        response = client.post("/api/closures", json={
            "date": sale["date"], "actual_cash": 0, "actual_card": 8, "closed_by": "Owner",
        })
        assert response.status_code == 201
        assert response.get_json()["closure"]["balanced"] is True

        assert client.get(f"/api/closures/{sale['date']}").status_code == 200
        assert len(client.get("/api/closures").get_json()["closures"]) == 1

        again = client.post("/api/closures", json={
            "date": sale["date"], "actual_cash": 0, "actual_card": 8, "closed_by": "Owner",
        })
        assert again.status_code == 409

    def test_unbalanced_close_needs_notes(self, client, sale):
        response = client.post("/api/closures", json={
            "date": sale["date"], "actual_cash": 0, "actual_card": 7, "closed_by": "Owner",
        })
        assert response.status_code == 400

    def test_open_day_not_found(self, client, db_session):
        assert client.get("/api/closures/2024-06-10").status_code == 404
        assert client.post("/api/closures", json={"date": "2024-06-10"}).status_code == 400

    def test_infinite_amount_is_a_bad_request(self, client, db_session):
        response = client.post(
            "/api/closures",
            data='{"date": "2024-06-10", "actual_cash": Infinity, "actual_card": 0, "closed_by": "Owner"}',
            content_type="application/json",
        )
        assert response.status_code == 400
        assert response.get_json()["error"] == "Actual cash must be a number"

    def test_auto_close_nothing_to_do(self, client, db_session):
        response = client.post("/api/closures/auto-close")
        assert response.status_code == 200
        assert response.get_json() == {"closure": None}
