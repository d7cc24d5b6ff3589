"""
SocialSecurityCalculator: statutory contribution per worker and period.

5% of gross, clamped to [83, 750]. Workers whose employee number starts
with "9" are exempt; the exemption is applied after clamping and always wins.
"""
from decimal import Decimal, ROUND_HALF_UP

SS_RATE = Decimal("0.05")
SS_FLOOR = Decimal("83")
SS_CEILING = Decimal("750")
EXEMPT_PREFIX = "9"

MONEY = Decimal("0.01")


def is_exempt(employee_number: str) -> bool:
    return employee_number.strip().startswith(EXEMPT_PREFIX)


def calculate_social_security(gross: Decimal, exempt: bool) -> Decimal:
    base = (Decimal(gross) * SS_RATE).quantize(MONEY, rounding=ROUND_HALF_UP)
    clamped = min(max(base, SS_FLOOR), SS_CEILING)
    if exempt:
        return Decimal("0.00")
    return clamped.quantize(MONEY)
