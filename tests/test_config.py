import logging

import pytest

from config import EstimateCache, EstimatorSettings, load_settings
from conftest import FakeClock


def test_defaults_from_empty_environment():
    settings = load_settings({})

    assert settings == EstimatorSettings()
    assert not settings.ai_available


def test_values_are_read_from_environment():
    settings = load_settings({
        "OPENAI_API_KEY": " sk-live ",
        "SHIPPING_AI_MODEL": "gpt-4o-mini",
        "SHIPPING_AI_TEMPERATURE": "0",
        "SHIPPING_AI_MAX_TOKENS": "150",
        "SHIPPING_AI_TIMEOUT": "5.5",
        "SHIPPING_CACHE_TTL": "600",
        "SHIPPING_DEFAULT_SELLER": "Cebu City",
        "SHIPPING_TIMEZONE": "UTC",
    })

    assert settings.api_key == "sk-live"
    assert settings.ai_available
    assert settings.model == "gpt-4o-mini"
    assert settings.temperature == 0.0
    assert settings.max_tokens == 150
    assert settings.timeout_seconds == 5.5
    assert settings.cache_ttl == 600
    assert settings.default_seller == "Cebu City"
    assert settings.timezone == "UTC"


@pytest.mark.parametrize(
    "key, raw, attribute, expected",
    [
        ("SHIPPING_AI_TEMPERATURE", "hot", "temperature", 0.3),
        ("SHIPPING_AI_TEMPERATURE", "3.5", "temperature", 0.3),
        ("SHIPPING_AI_MAX_TOKENS", "0", "max_tokens", 300),
        ("SHIPPING_AI_TIMEOUT", "0", "timeout_seconds", 10.0),
        ("SHIPPING_AI_TIMEOUT", "nan", "timeout_seconds", 10.0),
        ("SHIPPING_CACHE_TTL", "-5", "cache_ttl", 0),
        ("SHIPPING_AI_ENABLED", "maybe", "ai_enabled", True),
        ("SHIPPING_TIMEZONE", "Mars/Olympus", "timezone", "Asia/Manila"),
    ],
)
def test_invalid_values_fall_back_to_defaults(caplog, key, raw, attribute, expected):
    with caplog.at_level(logging.ERROR, logger="config"):
        settings = load_settings({key: raw})

    assert getattr(settings, attribute) == expected
    assert any(record.levelno == logging.ERROR for record in caplog.records)


def test_ai_can_be_disabled():
    settings = load_settings({"OPENAI_API_KEY": "sk-live", "SHIPPING_AI_ENABLED": "off"})

    assert not settings.ai_available


def test_to_dict_redacts_key():
    payload = EstimatorSettings(api_key="sk-secret").to_dict()

    assert payload["api_key_configured"] is True
    assert "sk-secret" not in str(payload)


def test_cache_expires_after_ttl():
    clock = FakeClock()
    cache = EstimateCache(10, clock=clock)

    cache.set(("a",), "value")
    clock.now += 9
    assert cache.get(("a",)) == "value"

    clock.now += 1
    assert cache.get(("a",)) is None
    assert cache.get_cache_info()["entries"] == 0


def test_disabled_cache_stores_nothing():
    cache = EstimateCache(0)

    cache.set(("a",), "value")

    assert not cache.enabled
    assert cache.get(("a",)) is None
    assert cache.get_cache_info()["entries"] == 0


def test_cache_ttl_changes():
    cache = EstimateCache(10, clock=FakeClock())
    cache.set(("a",), "value")

    cache.set_cache_ttl(-1)
    assert cache.get_cache_info()["ttl_seconds"] == 10

    cache.set_cache_ttl(0)
    assert cache.get_cache_info() == {
        "enabled": False,
        "ttl_seconds": 0,
        "max_entries": 1024,
        "entries": 0,
        "fresh_entries": 0,
        "shared": True,
    }


def test_clear_cache():
    cache = EstimateCache(10, clock=FakeClock())
    cache.set(("a",), 1)
    cache.set(("b",), 2)

    cache.clear_cache()

    assert cache.get(("a",)) is None
    assert cache.get_cache_info()["entries"] == 0


def test_cache_purges_expired_entries_on_write():
    clock = FakeClock()
    cache = EstimateCache(60, clock=clock)
    for n in range(100):
        cache.set(("old", n), n)

    clock.now += 60
    cache.set(("new",), "value")

    assert cache.get_cache_info()["entries"] == 1


def test_cache_size_stays_bounded():
    cache = EstimateCache(60, clock=FakeClock(), max_entries=50)

    for n in range(10000):
        cache.set(("key", n), n)

    assert cache.get_cache_info()["entries"] == 50
    assert cache.get(("key", 0)) is None
    assert cache.get(("key", 9999)) == 9999


def test_default_cache_bound():
    cache = EstimateCache(60, clock=FakeClock())

    for n in range(10000):
        cache.set(("key", n), n)

    assert cache.get_cache_info()["entries"] == EstimateCache.DEFAULT_MAX_ENTRIES


def test_rewriting_a_key_keeps_it_newest():
    cache = EstimateCache(60, clock=FakeClock(), max_entries=2)
    cache.set(("a",), 1)
    cache.set(("b",), 2)
    cache.set(("a",), 3)

    cache.set(("c",), 4)

    assert cache.get(("a",)) == 3
    assert cache.get(("b",)) is None
