"""
models.py - Data Models, Enums and Exceptions
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Error codes for API responses"""
    INVALID_LOCATION = "INVALID_LOCATION"
    INVALID_WEIGHT = "INVALID_WEIGHT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class CourierType(Enum):
    STANDARD = "standard"
    EXPRESS = "express"


class Distance(Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class MacroRegion(Enum):
    """Top-level island groups used for inter-island tiers"""
    LUZON = "Luzon"
    VISAYAS = "Visayas"
    MINDANAO = "Mindanao"


# ============================================
# EXCEPTIONS
# ============================================

class EstimationError(Exception):
    """Base class for failures of the AI-backed estimator"""


class ServiceUnavailableError(EstimationError):
    """Completion service is not configured or the client could not be built"""


class EstimationTransportError(EstimationError):
    """The outbound call failed (network, timeout, non-2xx)"""


class MalformedResponseError(EstimationError):
    """The reply could not be parsed into a usable estimate"""


# ============================================
# DATA CLASSES
# ============================================

@dataclass(frozen=True)
class EstimateRequest:
    """Normalized inputs for a single estimation call"""
    seller_location: str
    buyer_city: str
    buyer_province: str
    total_weight: float = 1.0

    def cache_key(self) -> tuple:
        return (
            self.seller_location.lower(),
            self.buyer_city.lower(),
            self.buyer_province.lower(),
            self.total_weight,
        )


@dataclass(frozen=True)
class Tier:
    """A geographic pricing rule of the fallback estimator"""
    name: str
    base_fee: int
    min_days: int
    max_days: int
    distance: Distance
    explanation: str

    @property
    def estimated_days(self) -> int:
        # Upper bound of the delivery window
        return self.max_days

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "baseFee": self.base_fee,
            "minDays": self.min_days,
            "maxDays": self.max_days,
            "distance": self.distance.value,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class EstimateResult:
    """Shipping estimate, identical shape for both estimators"""
    shipping_fee: float
    estimated_days: int
    courier_type: CourierType
    distance: Distance
    explanation: str
    success: bool = True
    tier: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for API response"""
        return {
            "success": self.success,
            "shippingFee": self.shipping_fee,
            "estimatedDays": self.estimated_days,
            "courierType": self.courier_type.value,
            "distance": self.distance.value,
            "explanation": self.explanation,
        }
