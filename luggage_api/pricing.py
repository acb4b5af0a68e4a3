import math
from datetime import datetime
from decimal import Decimal
from fractions import Fraction

SECONDS_PER_HOUR = 3600


def calculate_price_cents(start: datetime, end: datetime, price_per_hour: Decimal) -> int:
    """
    Price of a booking in integer cents.

    ``floor(hours * price_per_hour * 100)`` where hours may be fractional
    (90 minutes is 1.5 hours). The result is truncated, never rounded up.
    Arithmetic is exact, so 20 minutes at 3.00/h is 100 cents and not 99.
    """
    elapsed = end - start
    seconds = Fraction(elapsed.days * 86400 + elapsed.seconds) + Fraction(elapsed.microseconds, 10**6)
    cents = seconds * Fraction(Decimal(price_per_hour)) * 100 / SECONDS_PER_HOUR
    return math.floor(cents)
