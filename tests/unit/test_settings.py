"""Tests for the application settings helpers."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from breakout_scanner.config import Settings


def test_empty_env_token_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("API_TOKEN", "")
    assert Settings().api_token == "dev-token"


def test_short_token_still_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("API_TOKEN", "short")
    with pytest.raises(ValidationError):
        Settings()


def test_defaults_match_the_reference_pacing(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("INTER_CALL_DELAY_MS", "SIGNAL_SEED", "CANDLE_LIMIT", "TOP_N"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)
    assert settings.inter_call_delay_ms == 300
    assert settings.rate_limit_retry_delay_ms == 1000
    assert settings.rate_limit_backoff_factor == 2.0
    assert settings.rate_limit_max_retries == 5
    assert settings.candle_limit == 300
    assert settings.top_n == 10
    assert settings.signal_seed is None
    assert settings.data_source == "coinbase"
    assert len(settings.default_symbols) == 10


def test_blank_seed_is_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SIGNAL_SEED", "")
    assert Settings().signal_seed is None


def test_comma_separated_lists_are_parsed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ALLOWED_ORIGINS", " https://a.test , ,https://b.test")
    monkeypatch.setenv("DEFAULT_SYMBOLS", "btc-usd, eth-usd")
    settings = Settings()
    assert settings.allowed_origins == ["https://a.test", "https://b.test"]
    assert settings.default_symbols == ["BTC-USD", "ETH-USD"]


def test_unknown_data_source_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATA_SOURCE", "bloomberg")
    with pytest.raises(ValidationError):
        Settings()
