"""
Price calculator for configurable wood kits.

Pure math over a product's dimension/option schema and a requested
configuration. No I/O and no database access. Callers pass a Product row or an
equivalent dict, and get a plain dict back.

    totalPrice = basePrice + sizeAdjustment + optionsCost

sizeAdjustment is relative to each dimension's default, so the default
configuration always prices at basePrice.
"""

import logging
import math
from decimal import Decimal, ROUND_HALF_UP

from .exceptions import PricingValidationError, ProductNotFound

logger = logging.getLogger(__name__)

# Minor-unit precision per currency. Anything not listed uses 2.
CURRENCY_PRECISION = {
    "NIS": 2,
    "ILS": 2,
    "USD": 2,
    "EUR": 2,
    "JPY": 0,
    "KRW": 0,
}


def currency_precision(currency) -> int:
    code = getattr(currency, "value", currency) or "NIS"
    return CURRENCY_PRECISION.get(str(code).upper(), 2)


def round_money(amount, currency="NIS") -> float:
    """Round half-up to the currency's minor unit. Python's round() is banker's rounding."""
    places = currency_precision(currency)
    quantum = Decimal(1).scaleb(-places)
    value = Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(value) if places == 0 else float(value)


def to_minor_units(amount, currency="NIS") -> int:
    """Amount in the smallest currency unit (agorot, cents) as Stripe expects it."""
    places = currency_precision(currency)
    value = Decimal(str(amount)).scaleb(places).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(value)


def _checked_dimensions(dimensions) -> dict:
    """Every declared dimension needs a numeric default to price against."""
    dimensions = dimensions or {}
    for name, spec in dimensions.items():
        default = spec.get("default") if isinstance(spec, dict) else None
        if not _is_number(default):
            raise PricingValidationError(
                name, "type", bound="a numeric default", value=default,
                message=f"{name} has no numeric default",
            )
    return dimensions


def schema_from_product(product) -> dict:
    """
    Normalize a Product row (or a dict already in wire shape) into the
    calculator's input schema.
    """
    if product is None:
        raise ProductNotFound()

    if isinstance(product, dict):
        return {
            "productId": product.get("productId"),
            "basePrice": product.get("basePrice", 0),
            "currency": product.get("currency") or "NIS",
            "dimensions": _checked_dimensions(product.get("dimensions")),
            "options": product.get("options") or {},
        }

    currency = product.currency.value if product.currency is not None else "NIS"
    return {
        "productId": product.product_id,
        "basePrice": product.base_price,
        "currency": currency,
        "dimensions": _checked_dimensions(product.dimensions),
        "options": product.options or {},
    }


def _as_mapping(field: str, value) -> dict:
    """None means empty; anything other than a JSON object is a type error."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise PricingValidationError(field, "type", bound="an object", value=value)
    return value


def _is_number(value) -> bool:
    # bool is an int subclass; a checkbox value is not a dimension
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


class PricingEngine:
    """
    Computes a pricing breakdown for one (product, configuration) pair.

    Policy for names the product does not declare: they are ignored and
    reported back under "ignored" so clients can notice typos.
    """

    def calculate(self, product, configuration: dict = None) -> dict:
        """
        Args:
            product: Product row or schema dict (see schema_from_product)
            configuration: {"dimensions": {name: number}, "options": {name: bool}}

        Returns:
            {
                "productId": str,
                "currency": str,
                "pricing": {basePrice, sizeAdjustment, optionsCost, colorCost,
                            totalPrice, clamped},
                "dimensions": {name: effective value},
                "options": {name: bool},
                "ignored": {"dimensions": [...], "options": [...]},
            }

        Raises:
            ProductNotFound: product is None
            PricingValidationError: bad value type, out of range, or a fixed
                dimension changed
        """
        schema = schema_from_product(product)
        configuration = _as_mapping("configuration", configuration)
        requested_dims = _as_mapping("dimensions", configuration.get("dimensions"))
        requested_opts = _as_mapping("options", configuration.get("options"))
        currency = schema["currency"]

        effective_dims = self._resolve_dimensions(schema["dimensions"], requested_dims)
        enabled_opts = self._resolve_options(schema["options"], requested_opts)

        base_price = round_money(schema["basePrice"], currency)
        size_adjustment = round_money(
            self._calculate_size_adjustment(schema["dimensions"], effective_dims), currency,
        )
        options_cost = round_money(
            self._calculate_options_cost(schema["options"], enabled_opts), currency,
        )

        total = round_money(base_price + size_adjustment + options_cost, currency)
        clamped = False
        if total < 0:
            logger.warning(
                "Computed negative total %s for product %s, clamping to 0 (config=%s)",
                total, schema["productId"], configuration,
            )
            total = round_money(0, currency)
            clamped = True

        return {
            "productId": schema["productId"],
            "currency": currency,
            "pricing": {
                "basePrice": base_price,
                "sizeAdjustment": size_adjustment,
                "optionsCost": options_cost,
                "colorCost": options_cost,
                "totalPrice": total,
                "clamped": clamped,
            },
            "dimensions": effective_dims,
            "options": enabled_opts,
            "ignored": {
                "dimensions": sorted(k for k in requested_dims if k not in schema["dimensions"]),
                "options": sorted(k for k in requested_opts if k not in schema["options"]),
            },
        }

    def default_configuration(self, product) -> dict:
        """Every declared dimension at its default, every option off."""
        schema = schema_from_product(product)
        return {
            "dimensions": {name: spec.get("default") for name, spec in schema["dimensions"].items()},
            "options": {name: False for name in schema["options"]},
        }

    def _resolve_dimensions(self, dimension_specs: dict, requested: dict) -> dict:
        """Effective value per declared dimension. Raises on the first bad value."""
        effective = {}
        for name, spec in dimension_specs.items():
            default = spec.get("default")
            value = requested.get(name)

            if value is None:
                value = default
            elif not _is_number(value):
                raise PricingValidationError(name, "type", value=value)

            lo, hi = spec.get("min"), spec.get("max")
            if lo is not None and value < lo:
                raise PricingValidationError(name, "min", bound=lo, value=value)
            if hi is not None and value > hi:
                raise PricingValidationError(name, "max", bound=hi, value=value)

            if not spec.get("editable", True) and value != default:
                raise PricingValidationError(name, "editable", bound=default, value=value)

            effective[name] = value
        return effective

    def _resolve_options(self, option_specs: dict, requested: dict) -> dict:
        enabled = {}
        for name in option_specs:
            value = requested.get(name, False)
            if value is None:
                value = False
            if not isinstance(value, bool):
                raise PricingValidationError(name, "type", bound="a boolean", value=value)
            enabled[name] = value
        return enabled

    def _calculate_size_adjustment(self, dimension_specs: dict, effective: dict) -> float:
        """Sum of (value - default) * multiplier across declared dimensions."""
        total = 0.0
        for name, spec in dimension_specs.items():
            default = spec["default"]
            multiplier = spec.get("multiplier") or 0
            total += (effective[name] - default) * multiplier
        return total

    def _calculate_options_cost(self, option_specs: dict, enabled: dict) -> float:
        """Flat cost for each enabled option that is available."""
        return sum(
            spec.get("price") or 0
            for name, spec in option_specs.items()
            if enabled.get(name) and spec.get("available", True)
        )


_engine = PricingEngine()


def calculate_price(product, configuration: dict = None) -> dict:
    return _engine.calculate(product, configuration)


def default_configuration(product) -> dict:
    return _engine.default_configuration(product)
