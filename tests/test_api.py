"""
Integration tests for the HTTP API, run in-process.
"""
import pytest
from fastapi.testclient import TestClient

from storefront.main import create_app

from .conftest import BrokenRandom, overrides_for


@pytest.fixture
def client_for(make_service):
    def _client(**kwargs) -> TestClient:
        return TestClient(create_app(make_service(**kwargs)))

    return _client


@pytest.fixture
def client(client_for) -> TestClient:
    return client_for()


class TestReadEndpoints:
    """Test suite for the informational endpoints."""

    @pytest.mark.integration
    def test_health(self, client) -> None:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

    @pytest.mark.integration
    def test_products(self, client) -> None:
        resp = client.get("/api/products")
        assert resp.status_code == 200

        products = resp.json()
        assert [p["id"] for p in products] == ["npe", "typeerror", "segfault", "syntax", "oom"]
        npe = products[0]
        assert npe["priceMinor"] == 1299
        assert set(npe) == {"id", "name", "description", "priceMinor"}

    @pytest.mark.integration
    def test_payment_config_reports_resolved_values(self, client_for) -> None:
        client = client_for(overrides=overrides_for("LAGPAY", min_ms=5, failure_rate=0.75))
        resp = client.get("/api/payment-config")
        assert resp.status_code == 200
        assert resp.json() == {
            "ZapPay": {"minMs": 50, "maxMs": 150, "failureRate": 0.05},
            "GlitchPay": {"minMs": 200, "maxMs": 1200, "failureRate": 0.3},
            "LagPay": {"minMs": 5, "maxMs": 3000, "failureRate": 0.75},
        }

    @pytest.mark.integration
    def test_payment_config_with_infinite_override(self, client_for) -> None:
        client = client_for(overrides={"PAYMENT_ZAPPAY_MAX_MS": "inf"})
        resp = client.get("/api/payment-config")
        assert resp.status_code == 200
        assert resp.json()["ZapPay"]["maxMs"] == 150

    @pytest.mark.integration
    def test_payment_config_has_no_side_effects(self, client, store) -> None:
        client.get("/api/payment-config")
        assert len(store) == 0


class TestCheckoutEndpoint:
    """Test suite for POST /api/checkout."""

    @pytest.mark.integration
    def test_confirmed_order(self, client, store) -> None:
        resp = client.post(
            "/api/checkout",
            json={"items": [{"productId": "npe", "quantity": 1}], "paymentProvider": "ZapPay"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["paymentProvider"] == "ZapPay"
        assert body["orderId"].startswith("ord_")

        (order,) = store.snapshot()
        assert order.id == body["orderId"]
        assert order.total_minor == 1299

    @pytest.mark.integration
    @pytest.mark.parametrize("provider", [123, True, {"name": "ZapPay"}, ["LagPay"]])
    def test_non_string_provider_gets_a_random_one(self, client, store, provider) -> None:
        resp = client.post(
            "/api/checkout",
            json={"items": [{"productId": "npe", "quantity": 1}], "paymentProvider": provider},
        )
        assert resp.status_code == 200
        assert resp.json()["paymentProvider"] in ("ZapPay", "GlitchPay", "LagPay")
        assert len(store) == 1

    @pytest.mark.integration
    def test_infinite_latency_override_still_checks_out(self, client_for, store) -> None:
        overrides = {"PAYMENT_ZAPPAY_MIN_MS": "inf", "PAYMENT_ZAPPAY_FAILURE_RATE": "0"}
        client = client_for(overrides=overrides)
        resp = client.post(
            "/api/checkout",
            json={"items": [{"productId": "npe", "quantity": 1}], "paymentProvider": "ZapPay"},
        )
        assert resp.status_code == 200
        assert len(store) == 1

    @pytest.mark.integration
    def test_order_lookup(self, client) -> None:
        created = client.post(
            "/api/checkout",
            json={"items": [{"productId": "oom", "quantity": 2}, {"productId": "syntax", "quantity": 1}]},
        ).json()

        resp = client.get(f"/api/orders/{created['orderId']}")
        assert resp.status_code == 200
        assert resp.json() == {
            "id": created["orderId"],
            "totalMinor": 2 * 2499 + 599,
            "items": [
                {"productId": "oom", "quantity": 2},
                {"productId": "syntax", "quantity": 1},
            ],
        }

    @pytest.mark.integration
    def test_order_lookup_missing(self, client) -> None:
        resp = client.get("/api/orders/ord_missing")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Order not found"}

    @pytest.mark.integration
    @pytest.mark.parametrize("body", [{"items": []}, {}, {"paymentProvider": "ZapPay"}])
    def test_empty_cart(self, client, store, body) -> None:
        resp = client.post("/api/checkout", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Cart is empty"}
        assert len(store) == 0

    @pytest.mark.integration
    @pytest.mark.parametrize(
        "items",
        [
            [{"productId": "unknown-id", "quantity": 1}],
            [{"productId": "npe", "quantity": 0}],
            [{"productId": "npe", "quantity": 1}, {"productId": "npe", "quantity": -3}],
        ],
    )
    def test_invalid_cart_item(self, client, store, items) -> None:
        resp = client.post("/api/checkout", json={"items": items})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid cart item"}
        assert len(store) == 0

    @pytest.mark.integration
    @pytest.mark.parametrize(
        "body",
        [
            {"items": "npe"},
            {"items": [{"productId": "npe", "quantity": "lots"}]},
            {"items": [{"quantity": 1}]},
            [],
        ],
    )
    def test_malformed_body(self, client, store, body) -> None:
        resp = client.post("/api/checkout", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid request"}
        assert len(store) == 0

    @pytest.mark.integration
    def test_payment_failure(self, client_for, store) -> None:
        client = client_for(overrides=overrides_for("GLITCHPAY", min_ms=0, max_ms=0, failure_rate=1))
        for _ in range(10):
            resp = client.post(
                "/api/checkout",
                json={"items": [{"productId": "npe", "quantity": 1}], "paymentProvider": "GlitchPay"},
            )
            assert resp.status_code == 402
            assert resp.json() == {"error": "Payment failed"}
        assert len(store) == 0

    @pytest.mark.integration
    def test_inventory_failure_is_a_payment_failure(self, client_for, store) -> None:
        client = client_for(reserve_probability=0.0)
        resp = client.post("/api/checkout", json={"items": [{"productId": "npe", "quantity": 1}]})
        assert resp.status_code == 402
        assert resp.json() == {"error": "Payment failed"}
        assert len(store) == 0

    @pytest.mark.integration
    def test_internal_error_hides_details(self, client_for, store) -> None:
        client = client_for(rng=BrokenRandom())
        resp = client.post("/api/checkout", json={"items": [{"productId": "npe", "quantity": 1}]})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal error"}
        assert "entropy" not in resp.text
        assert len(store) == 0
