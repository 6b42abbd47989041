import io
from decimal import Decimal

import httpx
import pandas as pd

from main import app
from shoppingbird.routers.items import get_enhancement_service
from shoppingbird.services.upc_client import ProductEnhancementService, UPCApiClient


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/").json()["status"] == "ok"


class TestAuth:

    def test_login_with_username_or_email(self, client, cashier):
        for login in ("cashier", "cashier@shoppingbird.test"):
            response = client.post("/api/auth/login", json={"login": login, "password": "secret123"})

            assert response.status_code == 200
            body = response.json()
            assert body["token_type"] == "bearer"
            assert body["user"]["username"] == "cashier"

    def test_wrong_password(self, client, cashier):
        response = client.post("/api/auth/login", json={"login": "cashier", "password": "nope"})

        assert response.status_code == 401

    def test_token_identifies_user(self, client, cashier):
        token = client.post(
            "/api/auth/login", json={"login": "cashier", "password": "secret123"}
        ).json()["access_token"]

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.json()["full_name"] == "Casey Cashier"

    def test_endpoints_require_a_token(self, client, seed):
        response = client.get("/api/pos/search", params={"barcode": "1234", "store_id": seed["store"].id})

        assert response.status_code in (401, 403)

    def test_register_rejects_duplicates(self, client, cashier):
        payload = {"username": "cashier", "email": "other@shoppingbird.test", "password": "secret123"}

        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "Username already registered"


class TestPointOfSale:

    def test_search(self, client, seed, auth_headers):
        response = client.get(
            "/api/pos/search", params={"barcode": "1234", "store_id": seed["store"].id}, headers=auth_headers
        )

        body = response.json()
        assert body["found"] is True
        assert body["search_method"] == "price_list"
        assert Decimal(body["item"]["retail_price"]) == Decimal("23.60")

    def test_search_miss_is_not_an_error(self, client, seed, auth_headers):
        response = client.get(
            "/api/pos/search", params={"barcode": "555", "store_id": seed["store"].id}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["found"] is False

    def test_scan_then_checkout(self, client, seed, auth_headers):
        scanned = client.post(
            "/api/pos/cart/scan", json={"barcode": "C-100", "store_id": seed["store"].id}, headers=auth_headers
        ).json()
        cart = {"lines": scanned["lines"], "adjust_amount": "-19.00"}

        response = client.post(
            "/api/pos/checkout", json={"store_id": seed["store"].id, "cart": cart}, headers=auth_headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "completed"
        assert Decimal(body["total"]) == Decimal("95.00")
        assert body["user"]["username"] == "cashier"

    def test_checkout_empty_cart(self, client, seed, auth_headers):
        response = client.post(
            "/api/pos/checkout", json={"store_id": seed["store"].id, "cart": {"lines": []}}, headers=auth_headers
        )

        assert response.status_code == 400

    def test_suspend_resume_complete(self, client, seed, auth_headers):
        scanned = client.post(
            "/api/pos/cart/scan", json={"barcode": "1234", "store_id": seed["store"].id}, headers=auth_headers
        ).json()
        suspended = client.post(
            "/api/pos/suspend",
            json={"store_id": seed["store"].id, "cart": {"lines": scanned["lines"]}, "session_name": "Lane 2"},
            headers=auth_headers,
        )
        assert suspended.status_code == 201
        invoice_id = suspended.json()["id"]

        listed = client.get("/api/pos/suspended", headers=auth_headers).json()
        assert [t["session_name"] for t in listed["suspended_transactions"]] == ["Lane 2"]

        resumed = client.get(f"/api/pos/suspended/{invoice_id}", headers=auth_headers).json()
        assert resumed["cart"]["lines"][0]["barcode"] == "1234"

        completed = client.post(f"/api/pos/suspended/{invoice_id}/complete", headers=auth_headers)
        assert completed.json()["status"] == "completed"
        assert client.get(f"/api/pos/suspended/{invoice_id}", headers=auth_headers).status_code == 404


class TestCatalogAndMoney:

    def test_tax_preview(self, client, seed, auth_headers):
        response = client.post(
            "/api/taxes/calculate",
            json={"base_price": "100", "tax_ids": [seed["state_tax"].id, seed["city_tax"].id]},
            headers=auth_headers,
        )

        body = response.json()
        assert Decimal(body["total_tax_amount"]) == Decimal("14.00")
        assert Decimal(body["final_price"]) == Decimal("114.00")

    def test_convert_and_base_change(self, client, seed, auth_headers):
        response = client.get(
            "/api/currencies/convert",
            params={"amount": "100", "from_currency_id": seed["usd"].id, "to_currency_id": seed["eur"].id},
            headers=auth_headers,
        )
        assert Decimal(response.json()["converted_amount"]) == Decimal("90.00")
        assert client.get("/api/currencies/base", headers=auth_headers).json()["code"] == "USD"

        client.put(f"/api/currencies/{seed['eur'].id}", json={"is_base_currency": True}, headers=auth_headers)

        assert client.get("/api/currencies/base", headers=auth_headers).json()["code"] == "EUR"

    def test_enhance_uses_lookup_service(self, client, seed, auth_headers):
        payload = {
            "code": "OK",
            "total": 1,
            "items": [{"title": "Sparkling Water", "upc": "012345678912", "brand": "Fizz", "category": "Drinks"}],
        }
        lookup = UPCApiClient(
            base_url="https://upc.example.com/lookup",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload)),
        )
        app.dependency_overrides[get_enhancement_service] = lambda: ProductEnhancementService(lookup)

        response = client.post(
            "/api/items/enhance", json={"upc": "012345678912", "save": True}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["tags"] == ["Fizz", "Drinks"]
        items = client.get("/api/items/", params={"search": "Sparkling"}, headers=auth_headers).json()
        assert items["total"] == 1


class TestTransactions:

    def test_export_csv(self, client, seed, auth_headers):
        scanned = client.post(
            "/api/pos/cart/scan", json={"barcode": "1234", "store_id": seed["store"].id}, headers=auth_headers
        ).json()
        client.post(
            "/api/pos/checkout",
            json={"store_id": seed["store"].id, "cart": {"lines": scanned["lines"]}},
            headers=auth_headers,
        )

        response = client.get("/api/transactions/export", headers=auth_headers)

        assert response.headers["content-type"].startswith("text/csv")
        df = pd.read_csv(io.StringIO(response.text))
        assert len(df) == 1

    def test_unknown_transaction(self, client, seed, auth_headers):
        assert client.get("/api/transactions/999", headers=auth_headers).status_code == 404
