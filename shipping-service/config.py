import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

import pytz
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class EstimatorSettings:
    """Runtime settings for the shipping estimators"""
    api_key: Optional[str] = None
    ai_enabled: bool = True
    model: str = "gpt-4"
    temperature: float = 0.3
    max_tokens: int = 300
    timeout_seconds: float = 10.0
    cache_ttl: int = 0
    default_seller: str = "Metro Manila"
    timezone: str = "Asia/Manila"

    @property
    def ai_available(self) -> bool:
        return self.ai_enabled and bool(self.api_key)

    def to_dict(self) -> dict:
        """Settings with the credential redacted"""
        return {
            "api_key_configured": bool(self.api_key),
            "ai_enabled": self.ai_enabled,
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout_seconds": self.timeout_seconds,
            "cache_ttl": self.cache_ttl,
            "default_seller": self.default_seller,
            "timezone": self.timezone,
        }


def _read_float(env: Mapping[str, str], key: str, default: float,
                minimum: float, maximum: Optional[float] = None,
                exclusive_minimum: bool = False) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default

    try:
        value = float(raw)
    except ValueError:
        logger.error(f"Invalid number for {key}: '{raw}', using default {default}")
        return default

    too_small = value <= minimum if exclusive_minimum else value < minimum
    too_large = maximum is not None and value > maximum
    if too_small or too_large or value != value:
        logger.error(f"Out of range value for {key}: {value}, using default {default}")
        return default

    return value


def _read_int(env: Mapping[str, str], key: str, default: int, minimum: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default

    try:
        value = int(raw)
    except ValueError:
        logger.error(f"Invalid integer for {key}: '{raw}', using default {default}")
        return default

    if value < minimum:
        logger.error(f"Out of range value for {key}: {value}, using default {default}")
        return default

    return value


def _read_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default

    normalized = raw.strip().lower()
    if normalized in TRUTHY:
        return True
    if normalized in FALSY:
        return False

    logger.error(f"Invalid boolean for {key}: '{raw}', using default {default}")
    return default


def load_settings(env: Optional[Mapping[str, str]] = None) -> EstimatorSettings:
    """
    Build settings from the environment

    A local .env file is merged into os.environ first unless an explicit
    mapping is given. Invalid values are logged and replaced by defaults.

    Args:
        env: Mapping to read instead of os.environ

    Returns:
        EstimatorSettings instance
    """
    if env is None:
        load_dotenv()
        env = os.environ

    defaults = EstimatorSettings()

    timezone = (env.get("SHIPPING_TIMEZONE") or defaults.timezone).strip()
    try:
        pytz.timezone(timezone)
    except pytz.exceptions.UnknownTimeZoneError:
        logger.error(f"Unknown timezone: {timezone}, using {defaults.timezone}")
        timezone = defaults.timezone

    settings = EstimatorSettings(
        api_key=(env.get("OPENAI_API_KEY") or "").strip() or None,
        ai_enabled=_read_bool(env, "SHIPPING_AI_ENABLED", defaults.ai_enabled),
        model=(env.get("SHIPPING_AI_MODEL") or defaults.model).strip(),
        temperature=_read_float(env, "SHIPPING_AI_TEMPERATURE", defaults.temperature, 0.0, 2.0),
        max_tokens=_read_int(env, "SHIPPING_AI_MAX_TOKENS", defaults.max_tokens, 1),
        timeout_seconds=_read_float(
            env, "SHIPPING_AI_TIMEOUT", defaults.timeout_seconds, 0.0, exclusive_minimum=True
        ),
        cache_ttl=_read_int(env, "SHIPPING_CACHE_TTL", defaults.cache_ttl, 0),
        default_seller=(env.get("SHIPPING_DEFAULT_SELLER") or defaults.default_seller).strip(),
        timezone=timezone,
    )

    if not settings.api_key:
        logger.warning("OPENAI_API_KEY not configured, estimates will use rule-based fallback")

    logger.debug(f"Settings loaded: {settings.to_dict()}")
    return settings


class EstimateCache:
    """
    Thread-safe estimate cache with TTL

    NOTE: This is a SHARED cache keyed on the normalized request. Identical
    location pairs recur across checkouts, so repeated AI calls are avoided
    while an entry is fresh. A TTL of 0 disables caching. Expired entries are
    purged on every write and the oldest entry is evicted past max_entries.
    """

    DEFAULT_MAX_ENTRIES = 1024

    def __init__(self, ttl_seconds: int = 0, clock=time.monotonic,
                 max_entries: int = DEFAULT_MAX_ENTRIES):
        self._entries: Dict[tuple, tuple] = {}
        self._ttl = max(0, ttl_seconds)
        self._max_entries = max(1, max_entries)
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get(self, key: tuple):
        """
        Get a cached value if it has not expired

        Args:
            key: Cache key

        Returns:
            Cached value, or None if missing, expired or caching is disabled
        """
        if not self.enabled:
            return None

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            stored_at, value = entry
            if (self._clock() - stored_at) >= self._ttl:
                del self._entries[key]
                logger.debug(f"Cache entry expired: {key}")
                return None

            logger.debug(f"Cache hit: {key}")
            return value

    def set(self, key: tuple, value) -> None:
        if not self.enabled:
            return

        with self._lock:
            now = self._clock()
            self._purge_expired(now)

            # Re-inserting moves the key to the newest position
            self._entries.pop(key, None)
            self._entries[key] = (now, value)

            while len(self._entries) > self._max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                logger.debug(f"Cache full, evicted: {oldest}")

    def _purge_expired(self, now: float) -> None:
        expired = [
            key for key, (stored_at, _) in self._entries.items()
            if (now - stored_at) >= self._ttl
        ]
        for key in expired:
            del self._entries[key]

    def clear_cache(self) -> None:
        """Clear all cached estimates"""
        with self._lock:
            self._entries.clear()
            logger.info("Estimate cache cleared")

    def set_cache_ttl(self, ttl_seconds: int) -> None:
        """
        Set the cache TTL

        Args:
            ttl_seconds: Time to live in seconds
        """
        if ttl_seconds < 0:
            logger.warning(f"Invalid TTL value: {ttl_seconds}, keeping {self._ttl}")
            return

        with self._lock:
            self._ttl = ttl_seconds
            if ttl_seconds == 0:
                self._entries.clear()
            logger.info(f"Cache TTL set to {ttl_seconds} seconds")

    def get_cache_info(self) -> Dict:
        """
        Get information about the current cache state

        Returns:
            Dictionary with cache information
        """
        with self._lock:
            now = self._clock()
            fresh = sum(
                1 for stored_at, _ in self._entries.values()
                if (now - stored_at) < self._ttl
            )
            return {
                "enabled": self._ttl > 0,
                "ttl_seconds": self._ttl,
                "max_entries": self._max_entries,
                "entries": len(self._entries),
                "fresh_entries": fresh,
                "shared": True,
            }
