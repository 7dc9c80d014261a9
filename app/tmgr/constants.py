"""
Central constants for the Territory Manager application.
"""
from __future__ import annotations

# Territories in display order. The no-address fallback in
# sales_import.service indexes into this exact sequence.
TERRITORIES = (
    "colorado-springs-north",
    "colorado-springs-central",
    "colorado-springs-south",
    "highlands-ranch",
    "littleton",
    "castle-rock",
)

TERRITORY_NAMES = {
    "colorado-springs-north": "Colorado Springs North",
    "colorado-springs-central": "Colorado Springs Central",
    "colorado-springs-south": "Colorado Springs South",
    "highlands-ranch": "Highlands Ranch",
    "littleton": "Littleton",
    "castle-rock": "Castle Rock",
}

# Product brands, in tie-break precedence order.
BRANDS = ("DAXXIFY", "RHA", "SkinPen")

# Brand -> key under Customer.salesData
BRAND_KEYS = {
    "DAXXIFY": "daxxify",
    "RHA": "rha",
    "SkinPen": "skinPen",
}

KNOWN_SALES_REPS = frozenset(
    {
        "Bobbie Koon",
        "Brooklynne Woolslayer",
        "Heather McGlory",
        "Kaiti Green",
        "Kaleigh Humphrey",
        "Kim Coates",
        "Kimberly McMurray",
        "Victoria Greene",
        "Wendy Shepherd",
    }
)

# Parse diagnostic codes
MISSING_COLUMNS = "MISSING_COLUMNS"
INVALID_SALES_REP = "INVALID_SALES_REP"
INVALID_CUSTOMER_NUMBER = "INVALID_CUSTOMER_NUMBER"
CUSTOMER_PROCESSING_ERROR = "CUSTOMER_PROCESSING_ERROR"
PARSE_ERROR = "PARSE_ERROR"

FATAL_ERROR_CODES = frozenset({MISSING_COLUMNS, PARSE_ERROR})


def format_territory_name(territory: str) -> str:
    return TERRITORY_NAMES.get(territory, territory)
