"""
Tests for social_security – 5% clamped to [83, 750], exemption for "9…" ids.
"""
from decimal import Decimal

import pytest

from dcpayroll.services.social_security import calculate_social_security, is_exempt


@pytest.mark.parametrize("gross,expected", [
    ("10000", "500.00"),
    ("20000", "750.00"),    # 1000 → ceiling
    ("1000", "83.00"),      # 50 → floor
    ("1660", "83.00"),
    ("15000", "750.00"),
])
def test_clamped_five_percent(gross, expected):
    assert calculate_social_security(Decimal(gross), exempt=False) == Decimal(expected)


def test_exempt_worker_pays_nothing_even_above_ceiling():
    assert calculate_social_security(Decimal("100000"), exempt=True) == Decimal("0")


def test_exempt_worker_does_not_pay_floor():
    assert calculate_social_security(Decimal("500"), exempt=True) == Decimal("0")


def test_zero_gross_still_pays_floor():
    assert calculate_social_security(Decimal("0"), exempt=False) == Decimal("83.00")
    assert calculate_social_security(Decimal("0"), exempt=True) == Decimal("0")


def test_exemption_by_employee_number():
    assert is_exempt("9001") is True
    assert is_exempt(" 9123") is True
    assert is_exempt("1009") is False
