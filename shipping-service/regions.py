"""
regions.py - Philippine Geography Tables and Classification
"""

import logging
from typing import Optional, Tuple

from models import MacroRegion

logger = logging.getLogger(__name__)


HUB_PROVINCE = "metro manila"

# Order matters: the first province found in a location string wins
KNOWN_PROVINCES: Tuple[str, ...] = (
    "batangas", "cavite", "laguna", "rizal", "quezon", "bulacan", "pampanga",
    "nueva ecija", "tarlac", "pangasinan", "la union", "benguet", "ilocos norte",
    "ilocos sur", "cagayan", "isabela", "bataan", "zambales", "aurora",
    "cebu", "bohol", "leyte", "samar", "negros occidental", "negros oriental",
    "iloilo", "aklan", "capiz", "antique",
    "davao", "bukidnon", "misamis", "lanao", "cotabato", "zamboanga",
)

METRO_HUB_DISTRICTS: Tuple[str, ...] = (
    "manila", "quezon city", "makati", "taguig", "pasig", "caloocan",
)

# CALABARZON, served from the hub by road
HUB_ADJACENT_PROVINCES: Tuple[str, ...] = (
    "cavite", "laguna", "batangas", "rizal", "quezon",
)

LUZON_PROVINCES: Tuple[str, ...] = (
    "batangas", "cavite", "laguna", "rizal", "bulacan", "pampanga", "nueva ecija",
    "tarlac", "pangasinan", "la union", "benguet", "ilocos", "cagayan", "isabela",
    "quirino", "nueva vizcaya", "bataan", "zambales", "quezon", "aurora",
    "marinduque", "romblon", "palawan", "occidental mindoro", "oriental mindoro",
    "albay", "camarines", "catanduanes", "masbate", "sorsogon",
) + METRO_HUB_DISTRICTS

VISAYAS_PROVINCES: Tuple[str, ...] = (
    "cebu", "bohol", "leyte", "samar", "negros", "panay", "iloilo", "aklan",
    "capiz", "antique", "guimaras", "biliran", "siquijor",
)

MINDANAO_PROVINCES: Tuple[str, ...] = (
    "davao", "bukidnon", "misamis", "lanao", "cotabato", "maguindanao",
    "sultan kudarat", "south cotabato", "sarangani", "agusan", "surigao",
    "dinagat", "zamboanga", "basilan", "sulu", "tawi-tawi",
)

MACRO_REGIONS: Tuple[Tuple[MacroRegion, Tuple[str, ...]], ...] = (
    (MacroRegion.LUZON, LUZON_PROVINCES),
    (MacroRegion.VISAYAS, VISAYAS_PROVINCES),
    (MacroRegion.MINDANAO, MINDANAO_PROVINCES),
)


def _contains_any(location: str, names: Tuple[str, ...]) -> Optional[str]:
    for name in names:
        if name in location:
            return name
    return None


class RegionClassifier:
    """Classifies free-text locations against the static tables"""

    @staticmethod
    def normalize(location: Optional[str]) -> str:
        return (location or "").strip().lower()

    @classmethod
    def extract_province(cls, location: str) -> Optional[str]:
        """
        Extract the province named in a location string

        Known provinces are tried first; a metro-hub district resolves to
        HUB_PROVINCE.

        Args:
            location: Free-text location

        Returns:
            Province name, HUB_PROVINCE, or None when unknown
        """
        loc = cls.normalize(location)
        if not loc:
            return None

        province = _contains_any(loc, KNOWN_PROVINCES)
        if province:
            return province

        if cls.is_metro_hub(loc):
            return HUB_PROVINCE

        logger.debug(f"No province recognised in '{loc}'")
        return None

    @classmethod
    def is_metro_hub(cls, location: str) -> bool:
        loc = cls.normalize(location)
        return bool(loc) and _contains_any(loc, METRO_HUB_DISTRICTS) is not None

    @classmethod
    def is_hub_adjacent(cls, location: str) -> bool:
        loc = cls.normalize(location)
        return bool(loc) and _contains_any(loc, HUB_ADJACENT_PROVINCES) is not None

    @classmethod
    def is_hub_to_adjacent(cls, origin: str, destination: str) -> bool:
        """True when origin is the metro hub and destination is a nearby province"""
        return cls.is_metro_hub(origin) and cls.is_hub_adjacent(destination)

    @classmethod
    def classify_region(cls, location: str) -> Optional[MacroRegion]:
        """
        Resolve the macro-region of a location

        Args:
            location: Free-text location

        Returns:
            The first macro-region whose membership list matches, or None
        """
        loc = cls.normalize(location)
        if not loc:
            return None

        for region, members in MACRO_REGIONS:
            if _contains_any(loc, members):
                return region

        return None

    @classmethod
    def describe(cls) -> dict:
        """Table contents for service listings"""
        return {
            "hub": HUB_PROVINCE,
            "hub_districts": list(METRO_HUB_DISTRICTS),
            "hub_adjacent_provinces": list(HUB_ADJACENT_PROVINCES),
            "regions": {
                region.value: list(members) for region, members in MACRO_REGIONS
            },
        }
