"""
service.py - Shipping Fee Estimation Orchestrator
"""

import logging
from typing import Any, Optional

from ai_estimator import AIEstimator
from calculator import FallbackEstimator
from config import EstimateCache, EstimatorSettings
from models import (
    EstimateRequest,
    EstimateResult,
    EstimationError,
    EstimationTransportError,
    ServiceUnavailableError,
)
from validators import InputValidator

logger = logging.getLogger(__name__)


class ShippingService:
    """
    Estimates shipping fees, preferring the AI estimator.

    Any failure of the primary estimator is logged and answered by the
    rule-based fallback, so estimate_shipping_fee never raises.
    """

    def __init__(
        self,
        fallback: FallbackEstimator,
        primary: Optional[AIEstimator] = None,
        cache: Optional[EstimateCache] = None,
        default_seller: str = "Metro Manila",
    ):
        self.fallback = fallback
        self.primary = primary if primary is not None and primary.available else None
        self.cache = cache or EstimateCache(0)
        self.default_seller = default_seller

    @classmethod
    def from_settings(cls, settings: EstimatorSettings) -> "ShippingService":
        """Choose the estimator strategy once, at construction time"""
        primary = AIEstimator.from_settings(settings)
        if not primary.available:
            logger.warning("AI estimator unavailable, using rule-based estimation only")

        return cls(
            fallback=FallbackEstimator(settings.default_seller),
            primary=primary,
            cache=EstimateCache(settings.cache_ttl),
            default_seller=settings.default_seller,
        )

    @property
    def uses_ai(self) -> bool:
        return self.primary is not None

    def build_request(
        self,
        seller_location: Any,
        buyer_city: Any,
        buyer_province: Any,
        total_weight: Any = None,
    ) -> EstimateRequest:
        """
        Normalize raw inputs into a request

        Invalid inputs are coerced rather than rejected: non-string
        locations become empty and an invalid weight becomes 1 kg.
        """
        locations = []
        for field, value in (("Seller location", seller_location),
                             ("Buyer city", buyer_city),
                             ("Buyer province", buyer_province)):
            valid, normalized, error = InputValidator.validate_location(value, field)
            if not valid:
                logger.warning(f"{error}; treating as unknown location")
                normalized = ""
            locations.append(normalized)

        valid, weight, error = InputValidator.validate_weight(total_weight)
        if not valid:
            logger.warning(f"{error}; using {InputValidator.DEFAULT_WEIGHT_KG} kg")
            weight = InputValidator.DEFAULT_WEIGHT_KG

        seller, city, province = locations
        return EstimateRequest(
            seller_location=seller or self.default_seller,
            buyer_city=city,
            buyer_province=province,
            total_weight=weight,
        )

    def estimate_shipping_fee(
        self,
        seller_location: Any,
        buyer_city: Any,
        buyer_province: Any,
        total_weight: Any = None,
    ) -> EstimateResult:
        """Estimate from raw inputs; always returns a successful result"""
        request = self.build_request(seller_location, buyer_city, buyer_province, total_weight)
        return self.estimate(request)

    def estimate(self, request: EstimateRequest) -> EstimateResult:
        """
        Run the primary estimator and fall back on any failure

        Args:
            request: Normalized estimation request

        Returns:
            EstimateResult from the AI estimator or the fallback
        """
        if self.primary is None:
            return self.fallback.estimate(request)

        key = request.cache_key()
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            result = self.primary.estimate(request)
        except ServiceUnavailableError as e:
            logger.warning(f"{str(e)}, using fallback estimation")
        except EstimationTransportError as e:
            logger.error(f"Shipping estimation request failed: {str(e)}", exc_info=True)
        except EstimationError as e:
            logger.error(f"Shipping estimation reply rejected: {str(e)}")
        except Exception:
            logger.exception("Unexpected error in AI shipping estimation, using fallback estimation")
        else:
            self.cache.set(key, result)
            return result

        return self.fallback.estimate(request)
