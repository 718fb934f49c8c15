"""Integration tests for market routes."""

from __future__ import annotations

from fastapi.testclient import TestClient


def test_products_lists_online_usd_pairs(client) -> None:
    response = client.get("/api/v1/market/products")
    assert response.status_code == 200
    payload = response.json()
    assert payload == {"source": "fake", "symbols": ["BTC-USD", "ETH-USD"], "count": 2}


def test_candles_are_normalised_and_limited(client) -> None:
    response = client.get(
        "/api/v1/market/candles", params={"symbol": "btcusd", "timeframe": "1h", "limit": 50}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["symbol"] == "BTC-USD"
    assert data["granularity"] == 3600
    assert data["source"] == "fake"
    assert len(data["rows"]) == 50
    timestamps = [row["ts"] for row in data["rows"]]
    assert timestamps == sorted(timestamps)
    assert set(data["rows"][0]) == {"ts", "o", "h", "l", "c", "v"}


def test_candles_reject_unsupported_timeframe(client) -> None:
    response = client.get("/api/v1/market/candles", params={"symbol": "BTC-USD", "timeframe": "4h"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "bad_request"


def test_candles_reject_out_of_range_limit(client) -> None:
    response = client.get(
        "/api/v1/market/candles", params={"symbol": "BTC-USD", "timeframe": "1h", "limit": 301}
    )
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "validation_error"


def test_upstream_failure_maps_to_bad_gateway(client, fake_provider) -> None:
    fake_provider.failing_symbols.add("BTC-USD")
    response = client.get("/api/v1/market/candles", params={"symbol": "BTC-USD", "timeframe": "1d"})
    assert response.status_code == 502
    payload = response.json()
    assert payload["error"]["code"] == "data_source_error"
    assert payload["details"] == {"status_code": 500}


def test_market_routes_require_token(test_app) -> None:
    with TestClient(test_app) as unauthorized_client:
        response = unauthorized_client.get("/api/v1/market/products")
        assert response.status_code == 401
        response = unauthorized_client.get(
            "/api/v1/market/products", headers={"Authorization": "Bearer wrong-token"}
        )
        assert response.status_code == 401
