"""
ScanSessionBuilder: pairs a worker's scans for one work date into sub-sessions.

Each sub-period is paired independently, so a boundary scan (regular_in
closing morning OT, regular_out opening evening OT) can serve two sessions.
Sessions are derived on demand and never stored.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from dcpayroll.services import time_normalizer
from dcpayroll.services.scan_rules import PRIMARY_ROLE, SCAN_TYPES, SUB_PERIODS, SubPeriod


@dataclass
class SubSession:
    sub_period: str
    work_type: str
    start: datetime
    end: datetime
    minutes: int
    capped: bool = False
    raw_minutes: int = 0

    @property
    def hours(self) -> Decimal:
        return time_normalizer.to_hours(self.minutes)


@dataclass
class ScanSession:
    employee_number: str
    work_date: date
    events: list = field(default_factory=list)
    sub_sessions: list[SubSession] = field(default_factory=list)
    unmatched: list = field(default_factory=list)

    @property
    def total_minutes(self) -> int:
        return sum(s.minutes for s in self.sub_sessions)

    @property
    def total_hours(self) -> Decimal:
        return time_normalizer.to_hours(self.total_minutes)

    @property
    def has_matched(self) -> bool:
        return bool(self.sub_sessions)

    def minutes_by_work_type(self) -> dict[str, int]:
        totals: dict[str, int] = defaultdict(int)
        for s in self.sub_sessions:
            totals[s.work_type] += s.minutes
        return dict(totals)


def _sort_key(event):
    return (event.scan_datetime, SCAN_TYPES.index(event.scan_type) if event.scan_type in SCAN_TYPES else 99)


def _pair(sub_period: SubPeriod, events: list) -> tuple[list[SubSession], list]:
    sessions: list[SubSession] = []
    unmatched: list = []
    open_event = None

    def orphan(event):
        if PRIMARY_ROLE.get(event.scan_type) == sub_period.name:
            unmatched.append(event)

    for event in events:
        if open_event is not None and event.scan_type in sub_period.out_tags:
            sessions.append(_close(sub_period, open_event, event))
            open_event = None
        elif event.scan_type in sub_period.in_tags:
            if open_event is not None:
                orphan(open_event)
            open_event = event
        elif event.scan_type in sub_period.out_tags:
            orphan(event)

    if open_event is not None:
        orphan(open_event)
    return sessions, unmatched


def _close(sub_period: SubPeriod, start_event, end_event) -> SubSession:
    start, end = start_event.scan_datetime, end_event.scan_datetime
    raw = time_normalizer.minutes_between(start, end)
    if sub_period.name == "regular":
        raw = time_normalizer.deduct_lunch(raw, start.time(), end.time(), end.date() > start.date())
    cap = sub_period.max_hours * 60
    return SubSession(
        sub_period=sub_period.name,
        work_type=sub_period.work_type,
        start=start,
        end=end,
        minutes=min(raw, cap),
        capped=raw > cap,
        raw_minutes=raw,
    )


def build_session(employee_number: str, work_date: date, events) -> ScanSession:
    """
    Build the session of one worker for one work date.

    `events` are objects with `scan_type` and `scan_datetime`; order does not
    matter. The result is the same for the same set of events.
    """
    ordered = sorted(events, key=_sort_key)
    session = ScanSession(employee_number=employee_number, work_date=work_date, events=ordered)
    unmatched_ids: set[int] = set()
    for sub_period in SUB_PERIODS:
        sessions, unmatched = _pair(sub_period, ordered)
        session.sub_sessions.extend(sessions)
        for event in unmatched:
            if id(event) not in unmatched_ids:
                unmatched_ids.add(id(event))
                session.unmatched.append(event)

    order = [sp.name for sp in SUB_PERIODS]
    session.sub_sessions.sort(key=lambda s: (s.start, order.index(s.sub_period)))
    session.unmatched.sort(key=_sort_key)
    return session


def build_sessions(events) -> dict[tuple[str, date], ScanSession]:
    """Group events by (employee number, work date) and build each session."""
    grouped: dict[tuple[str, date], list] = defaultdict(list)
    for event in events:
        grouped[(event.employee_number, event.work_date)].append(event)
    return {
        key: build_session(key[0], key[1], grouped[key])
        for key in sorted(grouped)
    }
