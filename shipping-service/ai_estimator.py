"""
ai_estimator.py - Completion-Service Backed Shipping Estimator
"""

import json
import logging
import math
from typing import Any, Optional

from openai import OpenAI

from config import EstimatorSettings
from models import (
    CourierType,
    Distance,
    EstimateRequest,
    EstimateResult,
    EstimationTransportError,
    MalformedResponseError,
    ServiceUnavailableError,
)
from calculator import FeeCalculator

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are a Philippines shipping cost calculator. "
    "Always respond with valid JSON only, no additional text."
)

USER_PROMPT_TEMPLATE = """You are a Philippines shipping cost estimator. Calculate the estimated shipping fee for domestic delivery within the Philippines.

Seller Location: {seller_location}
Buyer Location: {buyer_city}, {buyer_province}
Package Weight: {total_weight} kg

Based on standard Philippine courier services (like J&T, LBC, JRS), provide a realistic shipping estimate.

Consider:
1. Distance between locations
2. Whether locations are in Metro Manila, Luzon, Visayas, or Mindanao
3. Standard courier rates in the Philippines
4. Package weight

Respond ONLY with a JSON object in this exact format:
{{
  "shippingFee": <number in pesos>,
  "estimatedDays": <number of delivery days>,
  "courierType": "<standard/express>",
  "distance": "<short/medium/long>",
  "explanation": "<brief explanation>"
}}

Example for Manila to Batangas (1kg):
{{
  "shippingFee": 58,
  "estimatedDays": 2,
  "courierType": "standard",
  "distance": "short",
  "explanation": "Short distance within Luzon region"
}}"""

DEFAULT_ESTIMATED_DAYS = 3
DEFAULT_COURIER_TYPE = CourierType.STANDARD
DEFAULT_DISTANCE = Distance.MEDIUM
DEFAULT_EXPLANATION = "Standard shipping within Philippines"

# Larger fees in a reply are rejected as malformed
MAX_SHIPPING_FEE = 100000


def build_client(settings: EstimatorSettings) -> Optional[OpenAI]:
    """
    Construct the completion client, or None when it cannot be used

    Retries are disabled; a failed attempt goes straight to the fallback.
    """
    if not settings.ai_enabled:
        logger.info("AI estimation disabled in configuration")
        return None

    if not settings.api_key:
        return None

    try:
        return OpenAI(
            api_key=settings.api_key,
            timeout=settings.timeout_seconds,
            max_retries=0,
        )
    except Exception as e:
        logger.error(f"Failed to initialise OpenAI client: {str(e)}")
        return None


class AIEstimator:
    """Delegates the estimate to a chat completion model"""

    def __init__(self, client: Optional[Any], settings: EstimatorSettings):
        self.client = client
        self.settings = settings

    @classmethod
    def from_settings(cls, settings: EstimatorSettings) -> "AIEstimator":
        return cls(build_client(settings), settings)

    @property
    def available(self) -> bool:
        return self.client is not None

    def build_prompt(self, request: EstimateRequest) -> str:
        return USER_PROMPT_TEMPLATE.format(
            seller_location=request.seller_location or self.settings.default_seller,
            buyer_city=request.buyer_city,
            buyer_province=request.buyer_province,
            total_weight=f"{request.total_weight:g}",
        )

    def estimate(self, request: EstimateRequest) -> EstimateResult:
        """
        Ask the completion service for an estimate

        Args:
            request: Normalized estimation request

        Returns:
            Validated EstimateResult

        Raises:
            ServiceUnavailableError: No client is configured
            EstimationTransportError: The outbound call failed
            MalformedResponseError: The reply is not a usable estimate
        """
        if self.client is None:
            raise ServiceUnavailableError("OpenAI API key not configured")

        try:
            completion = self.client.chat.completions.create(
                model=self.settings.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": self.build_prompt(request)},
                ],
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_tokens,
                timeout=self.settings.timeout_seconds,
            )
        except Exception as e:
            raise EstimationTransportError(f"{type(e).__name__}: {str(e)}") from e

        return self.parse_reply(self._extract_text(completion))

    @staticmethod
    def _extract_text(completion: Any) -> str:
        try:
            content = completion.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise MalformedResponseError(f"Completion has no message content: {str(e)}") from e

        if not isinstance(content, str) or not content.strip():
            raise MalformedResponseError("Completion message is empty")

        return content.strip()

    @staticmethod
    def parse_reply(text: str) -> EstimateResult:
        """
        Parse and validate the model's JSON reply

        The fee must be a positive number; every other field falls back to
        its default when missing or invalid.

        Args:
            text: Raw reply text

        Returns:
            EstimateResult with the fee clamped and rounded
        """
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Reply is not valid JSON: {str(e)}") from e

        if not isinstance(payload, dict):
            raise MalformedResponseError(f"Reply is not a JSON object: {type(payload).__name__}")

        fee = payload.get("shippingFee")
        if not _is_number(fee) or fee <= 0:
            raise MalformedResponseError(f"Invalid shippingFee in reply: {fee!r}")

        if fee > MAX_SHIPPING_FEE:
            raise MalformedResponseError(f"shippingFee above {MAX_SHIPPING_FEE}: {fee!r}")

        return EstimateResult(
            shipping_fee=FeeCalculator.finalize_fee(fee),
            estimated_days=_parse_days(payload.get("estimatedDays")),
            courier_type=_parse_enum(CourierType, payload.get("courierType"), DEFAULT_COURIER_TYPE),
            distance=_parse_enum(Distance, payload.get("distance"), DEFAULT_DISTANCE),
            explanation=_parse_explanation(payload.get("explanation")),
            tier="ai",
        )


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    # Huge JSON integers overflow math.isfinite
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _parse_days(value: Any) -> int:
    if _is_number(value) and value >= 1:
        return int(math.ceil(value))

    if value is not None:
        logger.debug(f"Ignoring invalid estimatedDays {value!r}")
    return DEFAULT_ESTIMATED_DAYS


def _parse_enum(enum_cls, value: Any, default):
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            logger.debug(f"Ignoring unknown {enum_cls.__name__} {value!r}")
    return default


def _parse_explanation(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return DEFAULT_EXPLANATION
