"""Unit tests for timeframe parsing and symbol helpers."""

from __future__ import annotations

import pytest

from breakout_scanner.services.data_providers.base import normalize_symbol
from breakout_scanner.utils.charts import chart_symbol
from breakout_scanner.utils.errors import BadRequest
from breakout_scanner.utils.timeframes import SCAN_TIMEFRAMES, parse_timeframe, timeframe_label


def test_scan_timeframes_run_from_fastest_to_slowest() -> None:
    assert SCAN_TIMEFRAMES == ("1h", "6h", "1d")
    assert [parse_timeframe(label) for label in SCAN_TIMEFRAMES] == [3_600, 21_600, 86_400]


def test_parse_timeframe_is_case_insensitive() -> None:
    assert parse_timeframe(" 1D ") == 86_400


@pytest.mark.parametrize("label", ["", "4h", "1w"])
def test_parse_timeframe_rejects_unknown_labels(label: str) -> None:
    with pytest.raises(BadRequest):
        parse_timeframe(label)


def test_timeframe_label_round_trip_for_scan_granularities() -> None:
    assert timeframe_label(21_600) == "6h"
    with pytest.raises(BadRequest):
        timeframe_label(60)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("btc-usd", "BTC-USD"), ("ETH/USD", "ETH-USD"), ("solusdt", "SOL-USDT"), ("XYZ", "XYZ")],
)
def test_normalize_symbol(raw: str, expected: str) -> None:
    assert normalize_symbol(raw) == expected


def test_normalize_symbol_rejects_blank_input() -> None:
    with pytest.raises(BadRequest):
        normalize_symbol("   ")


def test_chart_symbol_maps_products_to_widget_identifiers() -> None:
    assert chart_symbol("BTC-USD") == "COINBASE:BTCUSD"
    assert chart_symbol("eth/usd") == "COINBASE:ETHUSD"
