"""
Tests for time_normalizer – 5-minute floor, lunch deduction, report minutes.
"""
from datetime import datetime, time
from decimal import Decimal

import pytest

from dcpayroll.core.exceptions import TimeRangeError
from dcpayroll.services import time_normalizer as tn


# ── elapsed_minutes ───────────────────────────────────────────────────────────

def test_elapsed_floors_to_five_minutes():
    """08:00–17:07 → 547 min → floored to 545, never rounded up."""
    assert tn.elapsed_minutes(time(8, 0), time(17, 7)) == 545
    assert tn.elapsed_minutes(time(8, 0), time(8, 4)) == 0


def test_elapsed_zero_length_is_zero():
    assert tn.elapsed_minutes(time(8, 0), time(8, 0)) == 0


def test_elapsed_missing_bound_is_undefined():
    assert tn.elapsed_minutes(None, time(17, 0)) is None
    assert tn.elapsed_minutes(time(8, 0), None) is None


def test_elapsed_end_before_start_raises():
    with pytest.raises(TimeRangeError):
        tn.elapsed_minutes(time(17, 0), time(8, 0))


def test_elapsed_overnight_wraps():
    """22:00–06:00 overnight → 8h."""
    assert tn.elapsed_minutes(time(22, 0), time(6, 0), overnight=True) == 480


# ── report_minutes ────────────────────────────────────────────────────────────

def test_regular_report_deducts_lunch():
    assert tn.report_minutes("regular", time(8, 0), time(17, 0)) == 480


def test_regular_morning_only_keeps_full_minutes():
    assert tn.report_minutes("regular", time(8, 0), time(12, 0)) == 240


def test_ot_report_has_no_lunch_deduction():
    assert tn.report_minutes("ot_evening", time(18, 0), time(20, 0)) == 120
    assert tn.report_minutes("ot_noon", time(12, 0), time(13, 0)) == 60


def test_manual_hours_override_time_range():
    assert tn.report_minutes("regular", time(8, 0), time(17, 0), manual_hours=Decimal("7.5")) == 450
    assert tn.report_minutes("regular", None, None, manual_hours=Decimal("0")) == 0


def test_report_without_times_is_undefined():
    assert tn.report_minutes("regular", None, None) is None


# ── Conversions ───────────────────────────────────────────────────────────────

def test_floor_datetime():
    assert tn.floor_datetime(datetime(2026, 3, 2, 8, 7, 45)) == datetime(2026, 3, 2, 8, 5)


def test_hours_are_exact_until_quantized():
    hours = tn.to_hours(475)
    assert hours * 60 == 475
    assert tn.quantize_hours(hours) == Decimal("7.92")


def test_hours_to_minutes():
    assert tn.hours_to_minutes(Decimal("8")) == 480
    assert tn.hours_to_minutes(9.5) == 570


def test_minutes_between_datetimes():
    start = datetime(2026, 3, 2, 17, 2)
    assert tn.minutes_between(start, datetime(2026, 3, 3, 1, 0)) == 475
    with pytest.raises(TimeRangeError):
        tn.minutes_between(start, datetime(2026, 3, 2, 8, 0))
