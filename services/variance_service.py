"""
Variance Service - expected vs. actual quantity and its money value
"""
from decimal import Decimal

DEFAULT_TOLERANCE = Decimal('0.01')


def _dec(value):
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value or 0))


def compute_variance(actual, expected) -> Decimal:
    """Signed difference: positive is an overage, negative a shortage"""
    return _dec(actual) - _dec(expected)


def has_variance(variance, tolerance=DEFAULT_TOLERANCE) -> bool:
    """True when |variance| is strictly greater than the tolerance"""
    if variance is None:
        return False
    return abs(_dec(variance)) > _dec(tolerance)


def compute_financial_impact(variance, unit_cost) -> Decimal:
    """Signed money value of a variance: positive is a gain, negative a loss"""
    return _dec(variance) * _dec(unit_cost)


def compute_variance_cost(actual, expected, unit_cost) -> Decimal:
    """Magnitude of the discrepancy in money, regardless of direction"""
    return abs(_dec(actual) - _dec(expected)) * _dec(unit_cost)


def variance_percentage(actual, expected) -> Decimal:
    """
    Variance as a percentage of expected, rounded to 0.01.
    With nothing expected, any difference is reported as 100%.
    """
    expected = _dec(expected)
    variance = compute_variance(actual, expected)
    if expected != 0:
        return (variance / expected * 100).quantize(Decimal('0.01'))
    return Decimal('100.00') if variance != 0 else Decimal('0.00')


def resolve_unit_cost(item) -> Decimal:
    """
    Unit cost used for financial impact.
    Fallback order: unit_cost -> purchase_price -> 0. A zero price counts as
    not set, so an item with unit_cost 0 falls through to purchase_price.
    """
    if item is None:
        return Decimal('0')
    for field in ('unit_cost', 'purchase_price'):
        value = getattr(item, field, None)
        if value is not None and _dec(value) != 0:
            return _dec(value)
    return Decimal('0')
