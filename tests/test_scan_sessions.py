"""
Tests for scan_rules and scan_session_builder – classification, pairing, caps.
"""
import random
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from dcpayroll.services.scan_rules import classify_scan, late_minutes_for, normalize_scan_type, work_date_for
from dcpayroll.services.scan_session_builder import build_session, build_sessions

DAY = date(2026, 3, 2)


def scan(hhmm: str, scan_type: str | None = None, day: date = DAY, employee_number: str = "1001"):
    h, m = map(int, hhmm.split(":"))
    stamp = datetime(day.year, day.month, day.day, h, m)
    return SimpleNamespace(
        employee_number=employee_number,
        scan_datetime=stamp,
        scan_type=scan_type or classify_scan(stamp),
        work_date=work_date_for(stamp),
    )


# ── scan_rules ────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("hhmm,expected", [
    ("02:30", "ot_evening_out"),
    ("05:00", "ot_morning_in"),
    ("07:45", "regular_in"),
    ("08:00", "regular_in"),
    ("08:01", "late"),
    ("12:10", "lunch_break"),
    ("17:00", "regular_out"),
    ("19:00", "ot_evening_out"),
])
def test_classify_by_time_of_day(hhmm, expected):
    assert scan(hhmm).scan_type == expected


def test_early_morning_scan_belongs_to_previous_day():
    assert work_date_for(datetime(2026, 3, 3, 2, 30)) == date(2026, 3, 2)
    assert work_date_for(datetime(2026, 3, 3, 3, 0)) == date(2026, 3, 3)


def test_late_minutes_only_for_arrivals():
    assert late_minutes_for(datetime(2026, 3, 2, 8, 20), "late") == 20
    assert late_minutes_for(datetime(2026, 3, 2, 7, 50), "regular_in") == 0
    assert late_minutes_for(datetime(2026, 3, 2, 17, 0), "regular_out") == 0


def test_normalize_scan_type():
    assert normalize_scan_type("Regular In") == "regular_in"
    assert normalize_scan_type("ot-evening-out") == "ot_evening_out"
    assert normalize_scan_type(2) == "regular_in"
    assert normalize_scan_type("8") == "ot_evening_out"
    assert normalize_scan_type(9) is None
    assert normalize_scan_type("bogus") is None
    assert normalize_scan_type("") is None


# ── build_session ─────────────────────────────────────────────────────────────

def test_regular_day_is_capped_at_eight_hours():
    """07:52–17:02 = 550 min − 60 lunch = 490 → capped at 480."""
    session = build_session("1001", DAY, [scan("07:52"), scan("12:01"), scan("17:02")])
    assert [s.sub_period for s in session.sub_sessions] == ["regular"]
    regular = session.sub_sessions[0]
    assert regular.minutes == 480
    assert regular.capped is True
    assert regular.raw_minutes == 490
    assert session.total_minutes == 480
    assert session.unmatched == []


def test_regular_out_also_opens_evening_ot():
    session = build_session("1001", DAY, [scan("07:55"), scan("17:02"), scan("21:30")])
    by_period = {s.sub_period: s for s in session.sub_sessions}
    assert by_period["regular"].minutes == 480
    assert by_period["ot_evening"].minutes == 265   # 17:02–21:30 = 268 → 265
    assert session.minutes_by_work_type() == {"regular": 480, "ot_evening": 265}
    assert session.unmatched == []


def test_morning_ot_closed_by_regular_in():
    session = build_session("1001", DAY, [scan("05:00"), scan("08:00"), scan("17:00")])
    assert session.minutes_by_work_type() == {"ot_morning": 180, "regular": 480}


def test_evening_ot_past_midnight_stays_on_work_date():
    events = [scan("08:00"), scan("17:00"), scan("01:00", day=date(2026, 3, 3))]
    assert events[2].work_date == DAY
    session = build_session("1001", DAY, events)
    assert session.minutes_by_work_type()["ot_evening"] == 480


def test_missing_out_is_unmatched_not_invented():
    lone = scan("07:55")
    session = build_session("1001", DAY, [lone])
    assert session.sub_sessions == []
    assert session.unmatched == [lone]
    assert session.total_minutes == 0
    assert session.has_matched is False


def test_lunch_scan_alone_is_informational():
    session = build_session("1001", DAY, [scan("12:05")])
    assert session.sub_sessions == []
    assert session.unmatched == []


def test_order_does_not_matter():
    events = [scan("05:00"), scan("08:00"), scan("12:00"), scan("17:00"), scan("20:00")]
    shuffled = events[:]
    random.Random(7).shuffle(shuffled)
    a = build_session("1001", DAY, events)
    b = build_session("1001", DAY, shuffled)
    assert [(s.sub_period, s.start, s.end, s.minutes) for s in a.sub_sessions] == \
           [(s.sub_period, s.start, s.end, s.minutes) for s in b.sub_sessions]


def test_build_sessions_groups_by_worker_and_date():
    events = [
        scan("08:00"), scan("17:00"),
        scan("08:00", employee_number="1002"), scan("17:00", employee_number="1002"),
        scan("08:00", day=date(2026, 3, 3)),
    ]
    sessions = build_sessions(events)
    assert set(sessions) == {("1001", DAY), ("1002", DAY), ("1001", date(2026, 3, 3))}
    assert sessions[("1001", date(2026, 3, 3))].has_matched is False
