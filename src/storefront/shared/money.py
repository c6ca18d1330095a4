"""Money helpers.

Records hold major units (pounds) as floats. Arithmetic happens in integer
minor units (pence) so that totals agree with the processor to the penny.
"""

from decimal import ROUND_HALF_UP, Decimal


def to_minor(amount) -> int:
    """Convert a major-unit amount (float, str or Decimal) to integer minor units."""
    if amount is None:
        return 0
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor(minor: int) -> float:
    return float(Decimal(int(minor)) / 100)


def round_money(amount) -> float:
    """Round a major-unit amount to the nearest penny."""
    return from_minor(to_minor(amount))
