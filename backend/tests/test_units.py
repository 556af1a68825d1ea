import pytest

from services.units import (
    ABOVE_GRADE_KEYS,
    WALL_HEIGHT_KEYS,
    feet_inches_to_meters,
    height_in_meters,
    meters_to_feet_inches,
    parse_number,
    reconcile_dual_unit,
)


def test_round_trip_reproduces_feet_and_inches():
    for feet in range(0, 21):
        for step in range(0, 48):
            inches = step * 0.25
            back_feet, back_inches = meters_to_feet_inches(feet_inches_to_meters(feet, inches))
            total_in = feet * 12 + inches
            back_total_in = back_feet * 12 + back_inches
            assert abs(total_in - back_total_in) <= 0.25, (feet, inches, back_feet, back_inches)


def test_feet_inches_to_meters():
    assert feet_inches_to_meters(8, 6) == pytest.approx(8 * 0.3048 + 6 * 0.0254)
    assert feet_inches_to_meters(0, 0) == 0


def test_meters_to_feet_inches_rounds_to_quarter_inch():
    feet, inches = meters_to_feet_inches(2.5)
    assert feet == 8
    assert inches == 2.5


def test_inches_rounding_up_to_twelve_carries_into_feet():
    meters = feet_inches_to_meters(5, 11.9)
    assert meters_to_feet_inches(meters) == (6, 0.0)


def test_height_in_meters():
    assert height_in_meters("8.5", "ft") == pytest.approx(2.5908)
    assert height_in_meters("2.4", None) == pytest.approx(2.4)
    assert height_in_meters("", "m") is None


def test_parse_number_ignores_blank_and_text():
    assert parse_number(" 3.5 ") == 3.5
    assert parse_number("") is None
    assert parse_number("tall") is None
    assert parse_number(True) is None


def test_feet_entry_derives_decimal_feet():
    current = {"wallHeightUnit": "ft", "wallHeightFeet": "8", "wallHeightInches": "6"}
    result = reconcile_dual_unit({}, current, WALL_HEIGHT_KEYS)
    assert result["wallHeight"] == "8.500"


def test_metric_entry_derives_feet_and_inches():
    result = reconcile_dual_unit({}, {"aboveGradeHeight": "2.5"}, ABOVE_GRADE_KEYS)
    assert result["aboveGradeFeet"] == "8"
    assert result["aboveGradeInches"] == "2.5"
    assert result["aboveGradeHeight"] == "2.5"


def test_switching_to_feet_converts_stored_metric_value():
    previous = {"aboveGradeHeight": "2.4384", "aboveGradeHeightUnit": "m"}
    current = {"aboveGradeHeight": "2.4384", "aboveGradeHeightUnit": "ft"}
    result = reconcile_dual_unit(previous, current, ABOVE_GRADE_KEYS)
    assert result["aboveGradeFeet"] == "8"
    assert result["aboveGradeInches"] == "0"
    assert result["aboveGradeHeight"] == "8.000"


def test_switching_back_to_meters_rebuilds_metric_value():
    previous = {"wallHeight": "8.500", "wallHeightUnit": "ft", "wallHeightFeet": "8", "wallHeightInches": "6"}
    current = dict(previous, wallHeightUnit="m")
    result = reconcile_dual_unit(previous, current, WALL_HEIGHT_KEYS)
    assert result["wallHeight"] == "2.591"


def test_untouched_values_are_left_alone():
    previous = {"wallHeight": "2.4", "wallHeightFeet": "7", "wallHeightInches": "10.5"}
    assert reconcile_dual_unit(previous, dict(previous), WALL_HEIGHT_KEYS) == previous
