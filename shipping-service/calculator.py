"""
calculator.py - Fee Calculations and the Rule-Based Fallback Estimator
"""

import logging
import math
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP, localcontext
from typing import Dict, FrozenSet, Optional, Tuple

from models import CourierType, Distance, EstimateRequest, EstimateResult, MacroRegion, Tier
from regions import HUB_PROVINCE, RegionClassifier

logger = logging.getLogger(__name__)


# ============================================
# RATE CARD
# ============================================

SAME_CITY = Tier("same_city", 40, 1, 1, Distance.SHORT, "Same city delivery")
SAME_PROVINCE = Tier("same_province", 45, 1, 2, Distance.SHORT, "Within same province")
HUB_ADJACENT = Tier("hub_adjacent", 55, 2, 2, Distance.SHORT, "Metro Manila to nearby province")
SAME_REGION = Tier("same_region", 70, 2, 3, Distance.MEDIUM, "Within {region} region")
DEFAULT_TIER = Tier("default", 50, 2, 2, Distance.MEDIUM, "Standard shipping")

CROSS_REGION_TIERS: Dict[FrozenSet[MacroRegion], Tier] = {
    frozenset((MacroRegion.LUZON, MacroRegion.VISAYAS)): Tier(
        "luzon_visayas", 120, 3, 4, Distance.LONG, "Inter-island shipping (Luzon-Visayas)"
    ),
    frozenset((MacroRegion.LUZON, MacroRegion.MINDANAO)): Tier(
        "luzon_mindanao", 150, 4, 5, Distance.LONG, "Inter-island shipping (Luzon-Mindanao)"
    ),
    frozenset((MacroRegion.VISAYAS, MacroRegion.MINDANAO)): Tier(
        "visayas_mindanao", 130, 3, 4, Distance.LONG, "Inter-island shipping (Visayas-Mindanao)"
    ),
}

RATE_CARD: Tuple[Tier, ...] = (
    SAME_CITY, SAME_PROVINCE, HUB_ADJACENT, SAME_REGION,
) + tuple(CROSS_REGION_TIERS.values()) + (DEFAULT_TIER,)


def _precision_for(value: Decimal) -> int:
    # Enough digits for the integer part plus cents
    return max(28, value.adjusted() + 6)


class FeeCalculator:
    """Business rules shared by both estimators"""

    MINIMUM_FEE = 40
    SURCHARGE_FREE_WEIGHT_KG = 2
    SURCHARGE_PER_KG = 10

    @staticmethod
    def weight_surcharge(total_weight: float) -> int:
        """
        Surcharge for weight above the free allowance

        Computed in Decimal so that e.g. 2.1 kg costs exactly 1 unit.

        Args:
            total_weight: Package weight in kg

        Returns:
            ceil((weight - 2) * 10), or 0 at or below 2 kg
        """
        free = FeeCalculator.SURCHARGE_FREE_WEIGHT_KG
        if total_weight <= free:
            return 0

        weight = Decimal(str(total_weight))
        with localcontext() as ctx:
            ctx.prec = _precision_for(weight)
            excess = (weight - free) * FeeCalculator.SURCHARGE_PER_KG
            return int(excess.to_integral_value(rounding=ROUND_CEILING))

    @staticmethod
    def finalize_fee(fee: float) -> float:
        """Clamp to the minimum fee and round to 2 decimals"""
        if fee < FeeCalculator.MINIMUM_FEE:
            logger.debug(f"Fee {fee} below minimum, clamped to {FeeCalculator.MINIMUM_FEE}")
            fee = FeeCalculator.MINIMUM_FEE

        value = Decimal(str(fee))
        with localcontext() as ctx:
            ctx.prec = _precision_for(value)
            rounded = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        return float(rounded)

    @staticmethod
    def rule_summary() -> dict:
        return {
            "minimum_fee": FeeCalculator.MINIMUM_FEE,
            "surcharge_free_weight_kg": FeeCalculator.SURCHARGE_FREE_WEIGHT_KG,
            "surcharge_per_kg": FeeCalculator.SURCHARGE_PER_KG,
            "tiers": [tier.to_dict() for tier in RATE_CARD],
        }


class FallbackEstimator:
    """
    Deterministic estimator built on the static geography tables.

    Tiers are evaluated in order and the first match wins. It performs no
    I/O and always returns a valid result.
    """

    def __init__(self, default_seller: str = HUB_PROVINCE):
        self.default_seller = RegionClassifier.normalize(default_seller) or HUB_PROVINCE

    def estimate(self, request: EstimateRequest) -> EstimateResult:
        seller = RegionClassifier.normalize(request.seller_location) or self.default_seller
        city = RegionClassifier.normalize(request.buyer_city)
        province = RegionClassifier.normalize(request.buyer_province)

        weight = request.total_weight
        if (isinstance(weight, bool) or not isinstance(weight, (int, float)) or
                not math.isfinite(weight) or weight <= 0):
            logger.warning(f"Invalid weight {weight!r}, using 1 kg")
            weight = 1.0

        tier, explanation = self.select_tier(seller, city, province)
        surcharge = FeeCalculator.weight_surcharge(weight)
        fee = FeeCalculator.finalize_fee(tier.base_fee + surcharge)

        logger.debug(
            f"Fallback estimate: seller='{seller}', buyer='{city}, {province}', "
            f"tier={tier.name}, base={tier.base_fee}, surcharge={surcharge}, fee={fee}"
        )

        return EstimateResult(
            shipping_fee=fee,
            estimated_days=tier.estimated_days,
            courier_type=CourierType.STANDARD,
            distance=tier.distance,
            explanation=explanation,
            tier=tier.name,
        )

    @staticmethod
    def select_tier(seller: str, city: str, province: str) -> Tuple[Tier, str]:
        """
        Pick the pricing tier for a normalized seller/buyer pair

        Args:
            seller: Lowercased seller location
            city: Lowercased buyer city
            province: Lowercased buyer province

        Returns:
            Tuple of (tier, explanation)
        """
        # Buyer geography comes from the province, or the city when it is blank
        buyer = province or city

        if FallbackEstimator._is_same_city(seller, city):
            return SAME_CITY, SAME_CITY.explanation

        if FallbackEstimator._is_same_province(seller, province):
            return SAME_PROVINCE, SAME_PROVINCE.explanation

        if (RegionClassifier.is_hub_to_adjacent(seller, buyer) or
                RegionClassifier.is_hub_to_adjacent(buyer, seller)):
            return HUB_ADJACENT, HUB_ADJACENT.explanation

        seller_region = RegionClassifier.classify_region(seller)
        buyer_region = RegionClassifier.classify_region(buyer)
        if seller_region is None or buyer_region is None:
            return DEFAULT_TIER, DEFAULT_TIER.explanation

        if seller_region == buyer_region:
            return SAME_REGION, SAME_REGION.explanation.format(region=seller_region.value)

        tier = CROSS_REGION_TIERS[frozenset((seller_region, buyer_region))]
        return tier, tier.explanation

    @staticmethod
    def _is_same_city(seller: str, city: str) -> bool:
        if not seller or not city:
            return False

        seller_head = seller.split(",")[0].strip()
        return city in seller or (bool(seller_head) and seller_head in city)

    @staticmethod
    def _is_same_province(seller: str, province: str) -> bool:
        seller_province: Optional[str] = RegionClassifier.extract_province(seller)
        if not seller_province or not province:
            return False

        return (seller_province == province or
                seller_province in province or
                province in seller_province)
