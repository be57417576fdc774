"""
Price calculator tests (pure, no database).

Tests:
1.  Default configuration prices at basePrice
2.  Size adjustment relative to the default, both directions
3.  Options add flat cost only when enabled and available
4.  colorCost mirrors optionsCost
5.  Bounds: below min / above max raise with field, constraint and bound
6.  Bounds are inclusive
7.  Type errors: strings, bools, NaN, infinity, non-object sections, missing defaults
8.  Non-editable dimensions cannot move off their default
9.  Unknown dimensions/options are ignored and reported
10. Null values fall back to defaults
11. Negative totals clamp to zero
12. Half-up rounding and minor units
13. Missing product raises ProductNotFound
14. ORM rows and dicts price identically
"""

import math

import pytest

from woodkits import models
from woodkits.exceptions import PricingValidationError, ProductNotFound
from woodkits.pricing_engine import (
    PricingEngine,
    calculate_price,
    default_configuration,
    round_money,
    to_minor_units,
)


def _stairs():
    return {
        "productId": "stairs",
        "basePrice": 500,
        "currency": "NIS",
        "dimensions": {
            "width": {"min": 60, "max": 120, "default": 80, "step": 10, "multiplier": 2,
                      "visible": True, "editable": True},
        },
        "options": {
            "lacquer": {"available": True, "price": 50},
            "handrail": {"available": True, "price": 100},
        },
    }


def _bench():
    return {
        "productId": "garden-bench",
        "basePrice": 600,
        "currency": "NIS",
        "dimensions": {
            "length": {"min": 100, "max": 180, "default": 150, "multiplier": 2.0, "editable": True},
            "width": {"min": 35, "max": 50, "default": 40, "multiplier": 1.5, "editable": False},
        },
        "options": {
            "lacquer": {"available": True, "price": 45},
            "handrail": {"available": False, "price": 80},
        },
    }


# --- Happy path ---

def test_default_configuration_prices_at_base():
    """No configuration at all gives basePrice with zero adjustments."""
    result = calculate_price(_stairs())
    pricing = result["pricing"]
    assert pricing["basePrice"] == 500
    assert pricing["sizeAdjustment"] == 0
    assert pricing["optionsCost"] == 0
    assert pricing["totalPrice"] == 500
    assert pricing["clamped"] is False
    assert result["dimensions"] == {"width": 80}
    assert result["options"] == {"lacquer": False, "handrail": False}


def test_stairs_full_configuration():
    """width 100 with lacquer and handrail: 500 + 40 + 150 = 690."""
    result = calculate_price(_stairs(), {
        "dimensions": {"width": 100},
        "options": {"lacquer": True, "handrail": True},
    })
    pricing = result["pricing"]
    assert pricing["sizeAdjustment"] == 40
    assert pricing["optionsCost"] == 150
    assert pricing["totalPrice"] == 690


def test_size_adjustment_can_be_negative():
    """Shrinking below the default lowers the price."""
    result = calculate_price(_stairs(), {"dimensions": {"width": 60}})
    assert result["pricing"]["sizeAdjustment"] == -40
    assert result["pricing"]["totalPrice"] == 460


def test_unavailable_option_costs_nothing():
    """An enabled option marked unavailable adds no cost."""
    result = calculate_price(_bench(), {"options": {"lacquer": True, "handrail": True}})
    assert result["pricing"]["optionsCost"] == 45
    assert result["pricing"]["totalPrice"] == 645


def test_color_cost_mirrors_options_cost():
    """colorCost is the same figure as optionsCost."""
    result = calculate_price(_stairs(), {"options": {"lacquer": True}})
    assert result["pricing"]["colorCost"] == result["pricing"]["optionsCost"] == 50


def test_default_configuration_helper():
    """Every dimension at default, every option off."""
    config = default_configuration(_bench())
    assert config == {
        "dimensions": {"length": 150, "width": 40},
        "options": {"lacquer": False, "handrail": False},
    }


# --- Validation ---

def test_below_min_raises():
    """width under min reports constraint 'min' and the bound."""
    with pytest.raises(PricingValidationError) as exc_info:
        calculate_price(_stairs(), {"dimensions": {"width": 50}})
    err = exc_info.value
    assert err.field == "width"
    assert err.constraint == "min"
    assert err.bound == 60
    assert "width" in err.message
    assert err.details() == [{"field": "width", "constraint": "min", "bound": 60, "value": 50}]


@pytest.mark.parametrize("width", [121, 130])
def test_above_max_raises(width):
    """width just over max, and one step over, reports constraint 'max'."""
    with pytest.raises(PricingValidationError) as exc_info:
        calculate_price(_stairs(), {"dimensions": {"width": width}})
    assert exc_info.value.constraint == "max"
    assert exc_info.value.bound == 120
    assert exc_info.value.value == width


@pytest.mark.parametrize("width", [60, 120])
def test_bounds_are_inclusive(width):
    """Exactly min and exactly max are accepted."""
    result = calculate_price(_stairs(), {"dimensions": {"width": width}})
    assert result["dimensions"]["width"] == width


@pytest.mark.parametrize("value", ["100", True, [100], {"cm": 100}])
def test_non_numeric_dimension_raises(value):
    """Strings, bools and containers are type errors, not coerced."""
    with pytest.raises(PricingValidationError) as exc_info:
        calculate_price(_stairs(), {"dimensions": {"width": value}})
    assert exc_info.value.constraint == "type"


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_non_finite_dimension_raises(value):
    """NaN and infinities are rejected and stringified in details."""
    with pytest.raises(PricingValidationError) as exc_info:
        calculate_price(_stairs(), {"dimensions": {"width": value}})
    detail = exc_info.value.details()[0]
    assert detail["constraint"] == "type"
    assert isinstance(detail["value"], str)


def test_non_bool_option_raises():
    """Option toggles must be real booleans."""
    with pytest.raises(PricingValidationError) as exc_info:
        calculate_price(_stairs(), {"options": {"lacquer": "yes"}})
    assert exc_info.value.field == "lacquer"
    assert exc_info.value.constraint == "type"


@pytest.mark.parametrize("config, field", [
    ({"dimensions": [100]}, "dimensions"),
    ({"dimensions": {"width": 100}, "options": "lacquer"}, "options"),
    ({"options": ["lacquer"]}, "options"),
    ("width=100", "configuration"),
])
def test_malformed_sections_raise(config, field):
    """dimensions/options that are not objects are type errors on the section."""
    with pytest.raises(PricingValidationError) as exc_info:
        calculate_price(_stairs(), config)
    assert exc_info.value.field == field
    assert exc_info.value.constraint == "type"
    assert exc_info.value.bound == "an object"


@pytest.mark.parametrize("spec", [
    {"min": 60, "max": 120, "multiplier": 2},
    {"min": 60, "max": 120, "default": None, "multiplier": 2},
    {"min": 60, "max": 120, "default": "80", "multiplier": 2},
])
def test_dimension_without_numeric_default_rejected(spec):
    """A product dimension must declare a numeric default to price against."""
    product = _stairs()
    product["dimensions"]["width"] = spec
    with pytest.raises(PricingValidationError) as exc_info:
        calculate_price(product, {"dimensions": {"width": 100}})
    assert exc_info.value.field == "width"
    assert "default" in exc_info.value.message


def test_non_editable_dimension_rejects_change():
    """A fixed dimension set away from its default is an 'editable' violation."""
    with pytest.raises(PricingValidationError) as exc_info:
        calculate_price(_bench(), {"dimensions": {"width": 45}})
    assert exc_info.value.constraint == "editable"
    assert exc_info.value.bound == 40


def test_non_editable_dimension_accepts_default():
    """Sending the default for a fixed dimension is fine."""
    result = calculate_price(_bench(), {"dimensions": {"width": 40, "length": 160}})
    assert result["pricing"]["sizeAdjustment"] == 20


def test_unknown_names_are_ignored_and_reported():
    """Undeclared dimensions/options do not affect price and are listed under ignored."""
    result = calculate_price(_stairs(), {
        "dimensions": {"width": 80, "depth": 999},
        "options": {"glitter": True},
    })
    assert result["pricing"]["totalPrice"] == 500
    assert result["ignored"] == {"dimensions": ["depth"], "options": ["glitter"]}
    assert "depth" not in result["dimensions"]


def test_null_values_use_defaults():
    """None for a dimension means default; None for an option means off."""
    result = calculate_price(_stairs(), {
        "dimensions": {"width": None},
        "options": {"lacquer": None},
    })
    assert result["dimensions"]["width"] == 80
    assert result["options"]["lacquer"] is False
    assert result["pricing"]["totalPrice"] == 500


# --- Totals and rounding ---

def test_negative_total_is_clamped():
    """A large negative size adjustment cannot produce a negative price."""
    product = {
        "productId": "tiny",
        "basePrice": 10,
        "dimensions": {"length": {"min": 0, "max": 100, "default": 100, "multiplier": 5}},
        "options": {},
    }
    result = calculate_price(product, {"dimensions": {"length": 0}})
    assert result["pricing"]["sizeAdjustment"] == -500
    assert result["pricing"]["totalPrice"] == 0
    assert result["pricing"]["clamped"] is True


def test_fractional_multiplier_rounds_half_up():
    """0.5 of a minor unit rounds up, not to even."""
    product = {
        "productId": "shelf",
        "basePrice": 100,
        "dimensions": {"length": {"min": 0, "max": 10, "default": 0, "multiplier": 0.125}},
        "options": {},
    }
    result = calculate_price(product, {"dimensions": {"length": 1}})
    assert result["pricing"]["sizeAdjustment"] == 0.13
    assert result["pricing"]["totalPrice"] == 100.13


def test_round_money_and_minor_units():
    """Half-up rounding helpers used by orders and payments."""
    assert round_money(2.675) == 2.68
    assert round_money(0.125) == 0.13
    assert round_money(1234.5, "JPY") == 1235
    assert to_minor_units(585.0, "NIS") == 58500
    assert to_minor_units(19.995, "USD") == 2000


# --- Inputs ---

def test_missing_product_raises_not_found():
    """None in place of a product is ProductNotFound."""
    with pytest.raises(ProductNotFound):
        calculate_price(None, {})


def test_orm_row_and_dict_price_the_same(db, seeded_products):
    """The calculator accepts the Product row directly."""
    row = db.query(models.Product).filter(models.Product.product_id == "stairs").first()
    config = {"dimensions": {"width": 100}, "options": {"lacquer": True, "handrail": True}}
    from_row = PricingEngine().calculate(row, config)
    from_dict = PricingEngine().calculate(_stairs(), config)
    assert from_row["pricing"] == from_dict["pricing"]
    assert from_row["currency"] == "NIS"


def test_calculation_is_stateless():
    """Repeated calls with different configs don't leak into each other."""
    engine = PricingEngine()
    first = engine.calculate(_stairs(), {"options": {"handrail": True}})
    second = engine.calculate(_stairs(), {})
    assert first["pricing"]["totalPrice"] == 600
    assert second["pricing"]["totalPrice"] == 500
