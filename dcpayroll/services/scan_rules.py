"""
Scan tags, sub-period pairing table and time-of-day classification.

Terminals that emit an explicit tag (by name or by its 0-8 index) are trusted;
untagged scans are classified by the fallback windows below.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

SCAN_TYPES = (
    "ot_morning_in",
    "ot_morning_out",
    "regular_in",
    "late",
    "lunch_break",
    "regular_out",
    "ot_noon",
    "ot_evening_in",
    "ot_evening_out",
)

# Work day starts at 03:00; earlier scans belong to the previous day's evening OT
DAY_BOUNDARY = time(3, 0)
EXPECTED_ARRIVAL = time(8, 0)
LATE_DEDUCTION_THRESHOLD_MINUTES = 15


@dataclass(frozen=True)
class SubPeriod:
    name: str
    in_tags: tuple[str, ...]
    out_tags: tuple[str, ...]
    max_hours: int
    work_type: str


SUB_PERIODS = (
    SubPeriod("ot_morning", ("ot_morning_in",), ("ot_morning_out", "regular_in", "late"), 5, "ot_morning"),
    SubPeriod("regular", ("regular_in", "late"), ("regular_out",), 8, "regular"),
    SubPeriod("ot_noon", ("ot_noon",), ("ot_noon",), 1, "ot_noon"),
    SubPeriod("ot_evening", ("ot_evening_in", "regular_out"), ("ot_evening_out",), 12, "ot_evening"),
)

# Sub-period a tag belongs to; only this role can leave it unmatched.
# lunch_break is informational and belongs to none.
PRIMARY_ROLE = {
    "ot_morning_in": "ot_morning",
    "ot_morning_out": "ot_morning",
    "regular_in": "regular",
    "late": "regular",
    "regular_out": "regular",
    "ot_noon": "ot_noon",
    "ot_evening_in": "ot_evening",
    "ot_evening_out": "ot_evening",
}

# (window start inclusive, scan type); first match from the bottom wins
_WINDOWS = (
    (time(0, 0), "ot_evening_out"),
    (time(3, 0), "ot_morning_in"),
    (time(6, 30), "regular_in"),
    (time(8, 1), "late"),
    (time(12, 0), "lunch_break"),
    (time(13, 0), "regular_out"),
    (time(18, 0), "ot_evening_out"),
)


def normalize_scan_type(value) -> str | None:
    """Map an explicit tag (name or 0-8 index) to a scan type, or None."""
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return SCAN_TYPES[value] if 0 <= value < len(SCAN_TYPES) else None
    text = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    if not text:
        return None
    if text.isdigit():
        return normalize_scan_type(int(text))
    return text if text in SCAN_TYPES else None


def classify_scan(scan_time: datetime) -> str:
    clock = scan_time.time().replace(second=0, microsecond=0)
    scan_type = _WINDOWS[0][1]
    for start, tag in _WINDOWS:
        if clock >= start:
            scan_type = tag
    return scan_type


def work_date_for(scan_time: datetime) -> date:
    if scan_time.time() < DAY_BOUNDARY:
        return scan_time.date() - timedelta(days=1)
    return scan_time.date()


def late_minutes_for(scan_time: datetime, scan_type: str) -> int:
    """Minutes after the expected arrival for arrival scans; 0 otherwise."""
    if scan_type not in ("regular_in", "late"):
        return 0
    expected = datetime.combine(scan_time.date(), EXPECTED_ARRIVAL)
    if scan_time <= expected:
        return 0
    return int((scan_time - expected).total_seconds() // 60)
