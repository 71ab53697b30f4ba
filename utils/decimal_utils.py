from decimal import Decimal, InvalidOperation
import re

NUMERIC_REGEX = re.compile(r'^-?\d+(\.\d+)?$|^-?\.\d+$')

THOUSANDS_SEPARATORS = [
    ' ', '\u00A0', '\u202F', '\u2007', '\u066C', ','
]


def normalize_numeric_input(value):
    """Strip whitespace and thousands separators; return an ASCII decimal string."""
    if value is None:
        raise ValueError('Value is empty')

    normalized = str(value).strip()
    if not normalized:
        raise ValueError('Value is empty')

    # Comma is a thousands separator here, never a decimal point
    for sep in THOUSANDS_SEPARATORS:
        normalized = normalized.replace(sep, '')

    return normalized


def parse_decimal_input(value, error_label='Value'):
    """
    Parse a user-entered number into a Decimal.

    Raises ValueError for empty, non-numeric or negative input.
    """
    if isinstance(value, bool):
        raise ValueError(f'{error_label} is not a number')

    if isinstance(value, (int, float, Decimal)):
        try:
            decimal_value = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f'{error_label} is not a number')
        if not decimal_value.is_finite():
            raise ValueError(f'{error_label} is not a number')
        if decimal_value < 0:
            raise ValueError(f'{error_label} cannot be negative')
    else:
        normalized = normalize_numeric_input(value)

        if normalized.startswith('-'):
            raise ValueError(f'{error_label} cannot be negative')
        elif normalized.startswith('+'):
            normalized = normalized[1:]

        if not NUMERIC_REGEX.match(normalized):
            raise ValueError(f'{error_label} is not a number')

        decimal_value = Decimal(normalized)

    return decimal_value
