"""
Unit conversion between metric lengths and imperial feet/inches.

Heights are edited either as a single decimal value or as a feet + inches
pair. Whichever representation changed last is converted into the other.
The imperial breakdown is quantized to quarter inches.
"""

import logging
import math
from typing import Dict, NamedTuple, Optional, Tuple, Any

from models.enums import HeightUnit

logger = logging.getLogger(__name__)

METERS_PER_FOOT = 0.3048
INCHES_PER_FOOT = 12
INCH_STEP = 0.25


def _round_to_step(value: float, step: float = INCH_STEP) -> float:
    # Half-up rounding so x.125 goes to x.25 like the field UI does
    return math.floor(value / step + 0.5) * step


def meters_to_feet_inches(meters: float) -> Tuple[int, float]:
    """
    Convert metres into whole feet plus inches rounded to the nearest 0.25.

    An inch value that rounds up to 12 is carried into the feet.
    """
    total_feet = meters / METERS_PER_FOOT
    feet = math.floor(total_feet)
    inches = _round_to_step((total_feet - feet) * INCHES_PER_FOOT)
    if inches >= INCHES_PER_FOOT:
        feet += 1
        inches -= INCHES_PER_FOOT
    return int(feet), float(inches)


def feet_inches_to_meters(feet: float, inches: float) -> float:
    """(feet + inches/12) * 0.3048, i.e. feet*0.3048 + inches*0.0254"""
    return feet_inches_to_decimal_feet(feet, inches) * METERS_PER_FOOT


def feet_inches_to_decimal_feet(feet: float, inches: float) -> float:
    return feet + inches / INCHES_PER_FOOT


def decimal_feet_to_feet_inches(total_feet: float) -> Tuple[int, float]:
    return meters_to_feet_inches(total_feet * METERS_PER_FOOT)


def parse_number(value: Any) -> Optional[float]:
    """Parse a form value into a float; blank or non-numeric gives None"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        logger.debug(f"Ignoring non-numeric length value: {text!r}")
        return None


def format_decimal(value: float) -> str:
    return f"{value:.3f}"


def format_inches(inches: float) -> str:
    return f"{inches:g}"


def height_in_meters(value: Any, unit: Optional[str]) -> Optional[float]:
    """Canonical metric reading of a stored height expressed in ``unit``"""
    number = parse_number(value)
    if number is None:
        return None
    if unit == HeightUnit.feet.value:
        return number * METERS_PER_FOOT
    return number


class DualUnitKeys(NamedTuple):
    """Wire keys of one dual-unit quantity inside a section mapping"""
    value: str
    unit: str
    feet: str
    inches: str


ABOVE_GRADE_KEYS = DualUnitKeys("aboveGradeHeight", "aboveGradeHeightUnit", "aboveGradeFeet", "aboveGradeInches")
WALL_HEIGHT_KEYS = DualUnitKeys("wallHeight", "wallHeightUnit", "wallHeightFeet", "wallHeightInches")


def reconcile_dual_unit(previous: Dict[str, Any], current: Dict[str, Any], keys: DualUnitKeys) -> Dict[str, Any]:
    """
    Bring the decimal value and the feet/inches pair of ``current`` back in step.

    ``previous`` is the stored state before the edit; comparing the two tells
    which representation was edited last. The decimal value is always
    expressed in the selected unit (metres by default).
    """
    result = dict(current)
    unit = result.get(keys.unit) or HeightUnit.meters.value

    def changed(key: str) -> bool:
        return result.get(key) != previous.get(key)

    value = parse_number(result.get(keys.value))
    feet = parse_number(result.get(keys.feet))
    inches = parse_number(result.get(keys.inches))
    has_imperial = feet is not None or inches is not None
    imperial_edited = changed(keys.feet) or changed(keys.inches)
    unit_switched = (previous.get(keys.unit) or HeightUnit.meters.value) != unit

    if unit == HeightUnit.feet.value:
        if imperial_edited and has_imperial:
            result[keys.value] = format_decimal(feet_inches_to_decimal_feet(feet or 0.0, inches or 0.0))
        elif unit_switched and value is not None:
            # Switched from metres: the stored value is still metric
            whole_feet, rounded_inches = meters_to_feet_inches(value)
            result[keys.feet] = str(whole_feet)
            result[keys.inches] = format_inches(rounded_inches)
            result[keys.value] = format_decimal(feet_inches_to_decimal_feet(whole_feet, rounded_inches))
        elif changed(keys.value) and value is not None:
            whole_feet, rounded_inches = decimal_feet_to_feet_inches(value)
            result[keys.feet] = str(whole_feet)
            result[keys.inches] = format_inches(rounded_inches)
    else:
        if unit_switched and has_imperial:
            # Switched from feet: rebuild the metric value from the imperial pair
            result[keys.value] = format_decimal(feet_inches_to_meters(feet or 0.0, inches or 0.0))
        elif changed(keys.value) and value is not None:
            whole_feet, rounded_inches = meters_to_feet_inches(value)
            result[keys.feet] = str(whole_feet)
            result[keys.inches] = format_inches(rounded_inches)
        elif imperial_edited and has_imperial:
            result[keys.value] = format_decimal(feet_inches_to_meters(feet or 0.0, inches or 0.0))

    return result
