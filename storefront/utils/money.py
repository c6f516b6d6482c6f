# storefront/utils/money.py
from decimal import Decimal, ROUND_HALF_UP


def round_half_up(value) -> int:
    """Round to the nearest whole unit, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount: int, rate) -> int:
    return round_half_up(Decimal(amount) * Decimal(str(rate)) / Decimal(100))
