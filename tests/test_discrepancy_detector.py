"""
Tests for DiscrepancyDetector – classification, severity, idempotent re-runs,
merge by identity, locked periods.
"""
import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from dcpayroll.models.audit import AuditLog
from dcpayroll.models.discrepancy import Discrepancy
from dcpayroll.models.project import Project
from dcpayroll.schemas.discrepancy import ResolutionAction
from dcpayroll.services.discrepancy_detector import DiscrepancyDetector, classify, severity_for
from dcpayroll.services.resolution_workflow import ResolutionWorkflow
from tests.conftest import PERIOD_START, add_period, add_report, add_scans, at, make_contractor

DAY = date(2026, 3, 2)
END = date(2026, 3, 16)


async def all_discrepancies(db) -> list[Discrepancy]:
    result = await db.execute(select(Discrepancy).order_by(Discrepancy.work_date))
    return list(result.scalars().all())


# ── classify / severity (pure) ────────────────────────────────────────────────

def test_report_below_scans_is_type1():
    """6h reported vs 8h scanned → Type1, 2h difference → medium."""
    c = classify(has_report=True, dr_minutes=360, scan_minutes=480)
    assert c.discrepancy_type == "Type1"
    assert c.severity == "medium"
    assert c.hours_difference == Decimal("2.00")


def test_large_gap_is_high():
    c = classify(has_report=True, dr_minutes=360, scan_minutes=570)
    assert c.discrepancy_type == "Type1"
    assert c.severity == "high"
    assert c.hours_difference == Decimal("3.50")


def test_report_without_scans_is_type2():
    c = classify(has_report=True, dr_minutes=480, scan_minutes=None)
    assert c.discrepancy_type == "Type2"
    assert c.scan_hours is None
    assert c.hours_difference == Decimal("-8.00")


def test_zero_minute_session_counts_as_no_scans():
    assert classify(has_report=True, dr_minutes=480, scan_minutes=0).discrepancy_type == "Type2"
    assert classify(has_report=False, dr_minutes=None, scan_minutes=0) is None


def test_scans_without_report_is_type3():
    c = classify(has_report=False, dr_minutes=None, scan_minutes=480)
    assert c.discrepancy_type == "Type3"
    assert c.dr_hours is None


def test_report_at_or_above_scans_is_no_discrepancy():
    assert classify(has_report=True, dr_minutes=480, scan_minutes=480) is None
    assert classify(has_report=True, dr_minutes=540, scan_minutes=480) is None


@pytest.mark.parametrize("minutes,severity", [
    (60, "low"), (65, "medium"), (120, "medium"), (125, "high"), (-125, "high"), (0, "low"),
])
def test_severity_thresholds(minutes, severity):
    assert severity_for(minutes) == severity


# ── detect (DB) ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_detect_all_three_types(db, project):
    w1 = await make_contractor(db, "1001")
    w2 = await make_contractor(db, "1002")
    w3 = await make_contractor(db, "1003")
    await add_report(db, project, w1, DAY, manual_hours="6")
    await add_scans(db, project, w1, at(DAY, "08:00"), at(DAY, "17:00"))
    await add_report(db, project, w2, DAY)
    await add_scans(db, project, w3, at(DAY, "08:00"), at(DAY, "17:00"))

    result = await DiscrepancyDetector(db).detect(project.id, PERIOD_START, END)

    assert result.created == 3
    by_worker = {d.contractor_id: d for d in await all_discrepancies(db)}
    assert by_worker[w1.id].discrepancy_type == "Type1"
    assert by_worker[w1.id].severity == "medium"
    assert by_worker[w2.id].discrepancy_type == "Type2"
    assert by_worker[w3.id].discrepancy_type == "Type3"
    assert all(d.status == "pending" for d in by_worker.values())


@pytest.mark.asyncio
async def test_matching_day_has_no_discrepancy(db, project, contractor):
    await add_report(db, project, contractor, DAY)
    await add_scans(db, project, contractor, at(DAY, "07:55"), at(DAY, "12:02"), at(DAY, "17:03"))

    result = await DiscrepancyDetector(db).detect(project.id, PERIOD_START, END)

    assert result.created == 0
    assert await all_discrepancies(db) == []


@pytest.mark.asyncio
async def test_unmatched_scan_only_is_type2(db, project, contractor):
    await add_report(db, project, contractor, DAY)
    await add_scans(db, project, contractor, at(DAY, "07:55"))

    await DiscrepancyDetector(db).detect(project.id, PERIOD_START, END)

    [d] = await all_discrepancies(db)
    assert d.discrepancy_type == "Type2"


@pytest.mark.asyncio
async def test_rerun_is_idempotent(db, project, contractor):
    await add_report(db, project, contractor, DAY, manual_hours="6")
    await add_scans(db, project, contractor, at(DAY, "08:00"), at(DAY, "17:00"))
    detector = DiscrepancyDetector(db)

    await detector.detect(project.id, PERIOD_START, END)
    second = await detector.detect(project.id, PERIOD_START, END)

    assert second.created == 0
    assert second.unchanged == 1
    assert len(await all_discrepancies(db)) == 1


@pytest.mark.asyncio
async def test_pending_record_is_refreshed(db, project, contractor):
    report = await add_report(db, project, contractor, DAY, manual_hours="6")
    await add_scans(db, project, contractor, at(DAY, "08:00"), at(DAY, "17:00"))
    detector = DiscrepancyDetector(db)
    await detector.detect(project.id, PERIOD_START, END)

    report.manual_hours = Decimal("7.5")
    await db.commit()
    result = await detector.detect(project.id, PERIOD_START, END)

    assert result.updated == 1
    [d] = await all_discrepancies(db)
    assert d.hours_difference == Decimal("0.50")
    assert d.severity == "low"
    assert d.status == "pending"


@pytest.mark.asyncio
async def test_closed_gap_reports_pending_record_as_stale(db, project, contractor):
    report = await add_report(db, project, contractor, DAY, manual_hours="6")
    await add_scans(db, project, contractor, at(DAY, "08:00"), at(DAY, "17:00"))
    detector = DiscrepancyDetector(db)
    await detector.detect(project.id, PERIOD_START, END)

    report.manual_hours = Decimal("8")
    await db.commit()
    result = await detector.detect(project.id, PERIOD_START, END)

    [d] = await all_discrepancies(db)
    assert result.stale == [d.id]
    assert d.status == "pending"


@pytest.mark.asyncio
async def test_terminal_record_keeps_status_on_redetection(db, project, contractor, manager_user):
    await add_report(db, project, contractor, DAY, manual_hours="6")
    await add_scans(db, project, contractor, at(DAY, "08:00"), at(DAY, "17:00"))
    detector = DiscrepancyDetector(db)
    await detector.detect(project.id, PERIOD_START, END)
    [d] = await all_discrepancies(db)
    await ResolutionWorkflow(db).resolve(
        d.id, ResolutionAction(method="verify", note="Supervisor confirmed 6h"), manager_user.id
    )

    # New evening OT scans widen the gap after the record was verified
    await add_scans(db, project, contractor, at(DAY, "20:00"))
    result = await detector.detect(project.id, PERIOD_START, END)

    assert result.redetected == 1
    [d] = await all_discrepancies(db)
    assert d.status == "verified"
    assert d.resolution_note == "Supervisor confirmed 6h"
    assert d.hours_difference == Decimal("2.00")
    assert d.redetected_type == "Type1"
    assert d.redetected_difference == Decimal("5.00")
    logs = (await db.execute(select(AuditLog).where(AuditLog.action == "redetect"))).scalars().all()
    assert len(logs) == 1

    again = await detector.detect(project.id, PERIOD_START, END)
    assert again.redetected == 0
    assert again.unchanged == 1


@pytest.mark.asyncio
async def test_locked_days_are_skipped(db, project, contractor):
    await add_period(db, project, status="locked")
    await add_report(db, project, contractor, DAY)

    result = await DiscrepancyDetector(db).detect(project.id, PERIOD_START, END)

    assert result.skipped_locked == 1
    assert await all_discrepancies(db) == []


@pytest.mark.asyncio
async def test_detection_flags_overlapping_period(db, project, contractor):
    period = await add_period(db, project)
    await add_report(db, project, contractor, DAY)

    await DiscrepancyDetector(db).detect(project.id, PERIOD_START, END)

    await db.refresh(period)
    assert period.has_unresolved_discrepancies is True


@pytest.mark.asyncio
async def test_detect_for_single_worker(db, project):
    w1 = await make_contractor(db, "1001")
    w2 = await make_contractor(db, "1002")
    await add_report(db, project, w1, DAY)
    await add_report(db, project, w2, DAY)

    result = await DiscrepancyDetector(db).detect(project.id, PERIOD_START, END, contractor_id=w2.id)

    assert result.created == 1
    [d] = await all_discrepancies(db)
    assert d.contractor_id == w2.id


@pytest.mark.asyncio
async def test_same_worker_and_day_in_two_projects_stay_separate(db, project, contractor):
    other = Project(id=uuid.uuid4(), code="SITE-B", name="Second Site")
    db.add(other)
    await db.commit()
    await add_report(db, project, contractor, DAY, end="16:00")
    await add_scans(db, project, contractor, at(DAY, "08:00"), at(DAY, "17:00"))
    await add_report(db, other, contractor, DAY, start="18:00", end="20:00", work_type="ot_evening")

    await DiscrepancyDetector(db).detect(project.id, PERIOD_START, END)
    result = await DiscrepancyDetector(db).detect(other.id, PERIOD_START, END)

    assert result.created == 1
    by_project = {d.project_id: d for d in await all_discrepancies(db)}
    assert by_project[project.id].discrepancy_type == "Type1"
    assert by_project[project.id].hours_difference == Decimal("1.00")
    assert by_project[other.id].discrepancy_type == "Type2"
    assert by_project[other.id].dr_hours == Decimal("2.00")

    again = await DiscrepancyDetector(db).detect(project.id, PERIOD_START, END)
    assert (again.created, again.updated, again.unchanged) == (0, 0, 1)
