"""
TimeNormalizer: turns wall-clock ranges into payable minutes.

All arithmetic is done in whole minutes floored to 5-minute steps. Hours are
derived from minutes only at the edges (storage, display), so sums over a
period stay exact.
"""
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP

from dcpayroll.core.exceptions import TimeRangeError

MINUTE_STEP = 5
LUNCH_START = time(12, 0)
LUNCH_END = time(13, 0)
LUNCH_MINUTES = 60

HOURS_QUANT = Decimal("0.01")


def floor_minutes(minutes: int) -> int:
    return minutes - minutes % MINUTE_STEP


def floor_datetime(value: datetime) -> datetime:
    return value.replace(minute=value.minute - value.minute % MINUTE_STEP, second=0, microsecond=0)


def to_hours(minutes: int) -> Decimal:
    """Exact hours for a minute count (5 min = 1/12 h)."""
    return Decimal(minutes) / Decimal(60)


def quantize_hours(hours: Decimal) -> Decimal:
    return hours.quantize(HOURS_QUANT, rounding=ROUND_HALF_UP)


def hours_to_minutes(hours: Decimal | float) -> int:
    return int((Decimal(str(hours)) * 60).to_integral_value(rounding=ROUND_HALF_UP))


def elapsed_minutes(start: time | None, end: time | None, overnight: bool = False) -> int | None:
    """
    Floored minutes between two wall-clock times.

    Returns None when a bound is missing. An end before the start is only
    accepted for overnight ranges.
    """
    if start is None or end is None:
        return None
    anchor = date(2000, 1, 1)
    start_dt = datetime.combine(anchor, start)
    end_dt = datetime.combine(anchor, end)
    if end_dt < start_dt:
        if not overnight:
            raise TimeRangeError(
                f"End time {end.strftime('%H:%M')} is before start time {start.strftime('%H:%M')}"
            )
        end_dt += timedelta(days=1)
    return floor_minutes(int((end_dt - start_dt).total_seconds() // 60))


def minutes_between(start: datetime | None, end: datetime | None) -> int | None:
    if start is None or end is None:
        return None
    if end < start:
        raise TimeRangeError(f"End {end.isoformat()} is before start {start.isoformat()}")
    return floor_minutes(int((end - start).total_seconds() // 60))


def spans_lunch(start: time, end: time, overnight: bool = False) -> bool:
    if overnight and end < start:
        return start <= LUNCH_START
    return start <= LUNCH_START and end >= LUNCH_END


def deduct_lunch(minutes: int, start: time, end: time, overnight: bool = False) -> int:
    if spans_lunch(start, end, overnight):
        return max(0, minutes - LUNCH_MINUTES)
    return minutes


def report_minutes(
    work_type: str,
    start: time | None,
    end: time | None,
    overnight: bool = False,
    manual_hours: Decimal | None = None,
) -> int | None:
    """Payable minutes of one daily report; manual hours win over the time range."""
    if manual_hours is not None:
        return hours_to_minutes(manual_hours)
    minutes = elapsed_minutes(start, end, overnight)
    if minutes is None:
        return None
    if work_type == "regular":
        minutes = deduct_lunch(minutes, start, end, overnight)
    return minutes

