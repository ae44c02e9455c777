"""
Constants and enumerations for the Recipe COGS Engine.

This module defines all system-wide constants including:
- Metric unit families (weight, volume) and their base factors
- Product kinds
- Margin health defaults
- Validation limits and error messages
- Application metadata
"""

from typing import Dict, List

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Recipe COGS Engine"
APP_VERSION = "0.1.0"
DATABASE_VERSION = "1.0"
DATABASE_FILENAME = "cogs_engine.db"

# ============================================================================
# Metric Units
# ============================================================================

# Weight units, as factors of the family base (kilogram)
WEIGHT_TO_KG: Dict[str, float] = {
    "kg": 1.0,
    "g": 0.001,
}

# Volume units, as factors of the family base (liter)
VOLUME_TO_L: Dict[str, float] = {
    "l": 1.0,
    "ml": 0.001,
}

# Alternate spellings found in stored catalogue data
UNIT_ALIASES: Dict[str, str] = {
    "lt": "l",
}

WEIGHT_UNITS: List[str] = list(WEIGHT_TO_KG)
VOLUME_UNITS: List[str] = list(VOLUME_TO_L)
METRIC_UNITS: List[str] = WEIGHT_UNITS + VOLUME_UNITS

# ============================================================================
# Products
# ============================================================================

PRODUCT_KIND_RESALE = "resale"
PRODUCT_KIND_RECIPE = "recipe"
PRODUCT_KINDS: List[str] = [PRODUCT_KIND_RESALE, PRODUCT_KIND_RECIPE]

# ============================================================================
# Money
# ============================================================================

CURRENCY_PRECISION = 2

# Margin health thresholds in percent (applied when a category has none)
DEFAULT_GREEN_MARGIN_MIN = 65.0
DEFAULT_YELLOW_MARGIN_MIN = 45.0

# ============================================================================
# Validation Limits
# ============================================================================

MAX_NAME_LENGTH = 200
MAX_CATEGORY_LENGTH = 100
MIN_QUANTITY = 0.0
MAX_QUANTITY = 1e9
MIN_PRICE = 0.0
MAX_PRICE = 1e9

# ============================================================================
# Error Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_NUMBER = "Must be a valid number"
ERROR_INVALID_POSITIVE = "Must be greater than zero"
ERROR_INVALID_NON_NEGATIVE = "Must be zero or greater"
ERROR_INVALID_UNIT = "Must be one of: " + ", ".join(METRIC_UNITS)
ERROR_INVALID_KIND = "Must be one of: " + ", ".join(PRODUCT_KINDS)
