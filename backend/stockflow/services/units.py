"""Unit normalisation between recipe units and inventory units."""

import logging
from decimal import Decimal

from stockflow.core.exceptions import UnitConversionError

logger = logging.getLogger(__name__)

# Unit conversion factors (convert TO base unit)
UNIT_CONVERSIONS = {
    # Weight: base unit = g
    "kg": Decimal("1000"),      # 1 kg = 1000 g
    "g": Decimal("1"),          # base
    "mg": Decimal("0.001"),     # 1 mg = 0.001 g

    # Volume: base unit = ml
    "l": Decimal("1000"),       # 1 L = 1000 ml
    "ml": Decimal("1"),         # base
    "cl": Decimal("10"),
    "oz": Decimal("29.5735"),   # bar/beverage ounce

    # Count: base unit = pcs
    "pcs": Decimal("1"),        # base
    "pc": Decimal("1"),
    "piece": Decimal("1"),
    "pieces": Decimal("1"),
    "unit": Decimal("1"),
    "units": Decimal("1"),
    "serving": Decimal("1"),
    "portion": Decimal("1"),
    "scoop": Decimal("1"),
    "pack": Decimal("1"),
    "dozen": Decimal("12"),
}

# Unit type groups (for compatibility checking)
WEIGHT_UNITS = {"kg", "g", "mg"}
VOLUME_UNITS = {"l", "ml", "cl", "oz"}

# Spellings seen in recipe uploads
UNIT_ALIASES = {
    "grams": "g",
    "gram": "g",
    "gms": "g",
    "kilogram": "kg",
    "kilograms": "kg",
    "liter": "l",
    "liters": "l",
    "litre": "l",
    "milliliter": "ml",
    "milliliters": "ml",
    "mls": "ml",
}


def normalize_unit(unit: str) -> str:
    unit = (unit or "pcs").strip().lower()
    return UNIT_ALIASES.get(unit, unit)


def get_unit_type(unit: str) -> str:
    """Get the type of unit (weight, volume, count)."""
    unit = normalize_unit(unit)
    if unit in WEIGHT_UNITS:
        return "weight"
    if unit in VOLUME_UNITS:
        return "volume"
    return "count"


def convert_quantity(qty: Decimal, from_unit: str, to_unit: str, item_name: str = "") -> Decimal:
    """Convert quantity between units.

    Raises UnitConversionError when the units measure different things
    (e.g. grams vs pieces).
    """
    from_unit = normalize_unit(from_unit)
    to_unit = normalize_unit(to_unit)

    # Same unit, no conversion needed
    if from_unit == to_unit:
        return qty

    if get_unit_type(from_unit) != get_unit_type(to_unit):
        raise UnitConversionError(from_unit, to_unit, item_name)

    if from_unit not in UNIT_CONVERSIONS:
        logger.warning(f"Unknown source unit '{from_unit}' - treating as base unit")
    if to_unit not in UNIT_CONVERSIONS:
        logger.warning(f"Unknown target unit '{to_unit}' - treating as base unit")

    # Convert: from_unit -> base -> to_unit
    from_factor = UNIT_CONVERSIONS.get(from_unit, Decimal("1"))
    to_factor = UNIT_CONVERSIONS.get(to_unit, Decimal("1"))

    result = qty * from_factor / to_factor
    return result.quantize(Decimal("0.0001"))
