"""
validators.py - Input Validation and Sanitization
"""

import logging
import math
from typing import Any, Optional, Tuple

logger = logging.getLogger(__name__)


class InputValidator:
    """Validates and sanitizes estimation inputs"""

    # Maximum lengths to prevent abuse
    MAX_LOCATION_LENGTH = 200
    MAX_WEIGHT_KG = 1000.0

    DEFAULT_WEIGHT_KG = 1.0

    @staticmethod
    def validate_location(location: Any, field: str = "Location") -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate and normalize a free-text location

        Empty values are allowed; unrecognised places fall through to the
        default pricing tier.

        Args:
            location: Raw location input
            field: Field name used in error messages

        Returns:
            Tuple of (is_valid, normalized_value, error_message)
        """
        if location is None:
            return True, "", None

        if not isinstance(location, str):
            return False, None, f"{field} must be a string"

        # Collapse internal whitespace runs
        normalized = " ".join(location.split())

        if len(normalized) > InputValidator.MAX_LOCATION_LENGTH:
            return False, None, f"{field} too long (max {InputValidator.MAX_LOCATION_LENGTH} characters)"

        logger.debug(f"{field} validated: '{location}' -> '{normalized}'")
        return True, normalized, None

    @staticmethod
    def validate_weight(weight: Any) -> Tuple[bool, Optional[float], Optional[str]]:
        """
        Validate package weight in kilograms

        Args:
            weight: Raw weight input; None means the default of 1 kg

        Returns:
            Tuple of (is_valid, normalized_value, error_message)
        """
        if weight is None:
            return True, InputValidator.DEFAULT_WEIGHT_KG, None

        # bool is an int subclass but never a weight
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            return False, None, "Weight must be a number"

        value = float(weight)
        if math.isnan(value) or math.isinf(value):
            return False, None, "Weight must be a finite number"

        if value <= 0:
            return False, None, "Weight must be greater than 0"

        if value > InputValidator.MAX_WEIGHT_KG:
            return False, None, f"Weight too large (max {InputValidator.MAX_WEIGHT_KG:g} kg)"

        return True, value, None
