from fastmcp import FastMCP
from datetime import datetime
import pytz
import logging
import time

# Import our modules
from models import ErrorCode, EstimateRequest, MacroRegion
from config import load_settings
from validators import InputValidator
from calculator import FeeCalculator
from regions import RegionClassifier
from service import ShippingService

# LOGGING CONFIGURATION

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# INITIALIZE SERVICE AND MCP SERVER

settings = load_settings()
service = ShippingService.from_settings(settings)

mcp = FastMCP("Shipping Fee Estimation Service")

# Known route used by the health check self-test
SELF_TEST_REQUEST = EstimateRequest("Manila", "Lipa", "Batangas", 1.0)


def _now_iso() -> str:
    return datetime.now(pytz.timezone(settings.timezone)).isoformat()


# MCP TOOLS

@mcp.tool()
def shipping_estimate(
    seller_location: str,
    buyer_city: str,
    buyer_province: str,
    total_weight: float = 1.0
) -> dict:
    """
    Estimate the shipping fee for a domestic Philippine delivery.

    Returns:
        Dictionary with shippingFee, estimatedDays, courierType, distance
        and explanation, or error information for invalid input
    """
    request_id = f"{int(time.time() * 1000)}"
    logger.info(
        f"[{request_id}] Shipping estimate request: seller={seller_location}, "
        f"buyer={buyer_city}, {buyer_province}, weight={total_weight}"
    )

    # Step 1: Validate inputs
    for field, value in (("Seller location", seller_location),
                         ("Buyer city", buyer_city),
                         ("Buyer province", buyer_province)):
        valid, _, error = InputValidator.validate_location(value, field)
        if not valid:
            logger.warning(f"[{request_id}] Invalid location: {error}")
            return {
                "error": error,
                "error_code": ErrorCode.INVALID_LOCATION.value
            }

    weight_valid, _, weight_error = InputValidator.validate_weight(total_weight)
    if not weight_valid:
        logger.warning(f"[{request_id}] Invalid weight: {weight_error}")
        return {
            "error": weight_error,
            "error_code": ErrorCode.INVALID_WEIGHT.value
        }

    # Step 2: Estimate (never fails)
    try:
        result = service.estimate_shipping_fee(
            seller_location, buyer_city, buyer_province, total_weight
        )
    except Exception:
        logger.exception(f"[{request_id}] Unexpected error in shipping_estimate")
        return {
            "error": "An unexpected error occurred",
            "error_code": ErrorCode.INTERNAL_ERROR.value
        }

    logger.info(
        f"[{request_id}] Shipping estimate completed: fee={result.shipping_fee}, "
        f"days={result.estimated_days}, tier={result.tier}"
    )
    return result.to_dict()


@mcp.tool()
def health_check() -> dict:
    """
    Health check endpoint for monitoring

    Returns:
        Dictionary with service health status
    """
    try:
        ai_status = "ok" if service.uses_ai else "disabled"

        sample = service.fallback.estimate(SELF_TEST_REQUEST)
        fallback_ok = (
            sample.shipping_fee >= FeeCalculator.MINIMUM_FEE and
            sample.estimated_days >= 1
        )
        fallback_status = "ok" if fallback_ok else "error"

        return {
            "status": "healthy" if fallback_ok else "unhealthy",
            "timestamp": datetime.now(pytz.UTC).isoformat(),
            "checks": {
                "ai_estimator": ai_status,
                "fallback_estimator": fallback_status,
                "cache": service.cache.get_cache_info()
            }
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return {
            "status": "unhealthy",
            "timestamp": datetime.now(pytz.UTC).isoformat(),
            "error": str(e)
        }


@mcp.tool()
def list_service_areas() -> dict:
    """
    List macro-regions, metro hub districts and the fallback rate card

    Returns:
        Dictionary with available service areas
    """
    areas = RegionClassifier.describe()
    return {
        "status": "success",
        "timestamp": _now_iso(),
        "macro_regions": [region.value for region in MacroRegion],
        "areas": areas,
        "rates": FeeCalculator.rule_summary(),
        "ai_estimation": service.uses_ai
    }


@mcp.tool()
def clear_estimate_cache() -> dict:
    """
    Manually clear the estimate cache

    Returns:
        Dictionary with cache state after clearing
    """
    logger.info("Manual estimate cache clear requested")
    service.cache.clear_cache()
    return {
        "status": "success",
        "message": "Estimate cache cleared",
        "timestamp": _now_iso(),
        "cache": service.cache.get_cache_info()
    }


# ============================================
# RUN SERVER
# ============================================

if __name__ == "__main__":
    logger.info("Starting Shipping Fee Estimation Service")
    logger.info(f"Estimator settings: {settings.to_dict()}")

    try:
        mcp.run(transport="http")

    except Exception as e:
        logger.critical(f"Failed to start server: {str(e)}")
        raise
