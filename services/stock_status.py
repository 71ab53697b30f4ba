"""
Stock Status - classify a quantity against an effective (min, max) band
"""
from decimal import Decimal

UNDER_STOCK = 'under_stock'
NORMAL_STOCK = 'normal_stock'
OVER_STOCK = 'over_stock'
UNDEFINED = 'undefined'

STOCK_STATUSES = {
    UNDER_STOCK: 'Under stock',
    NORMAL_STOCK: 'Normal',
    OVER_STOCK: 'Over stock',
    UNDEFINED: 'No thresholds',
}


def _num(value):
    if value is None or isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def classify_stock(quantity, minimum, maximum):
    """
    Boundaries are inclusive: quantity == min or quantity == max is normal.
    A single configured bound can flag a violation but never yields normal_stock.
    """
    quantity = _num(quantity)
    minimum = _num(minimum)
    maximum = _num(maximum)

    if minimum is not None and quantity < minimum:
        return UNDER_STOCK
    if maximum is not None and quantity > maximum:
        return OVER_STOCK
    if minimum is not None and maximum is not None:
        return NORMAL_STOCK
    return UNDEFINED


def summarize_statuses(rows):
    """Count rows per status; rows are dicts with a 'status' key"""
    summary = {status: 0 for status in STOCK_STATUSES}
    for row in rows:
        summary[row['status']] = summary.get(row['status'], 0) + 1
    summary['total'] = sum(summary[s] for s in STOCK_STATUSES)
    return summary
