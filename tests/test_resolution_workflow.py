"""
Tests for ResolutionWorkflow – allowed methods per type, report rewrites,
report creation from scans, locked periods, approval flag refresh.
"""
from datetime import date, time
from decimal import Decimal

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import select

from dcpayroll.core.exceptions import InvalidTransitionError, PeriodLockedError, ResolutionMethodError, ValidationError
from dcpayroll.models.audit import AuditLog
from dcpayroll.models.daily_report import DailyReport
from dcpayroll.models.discrepancy import Discrepancy
from dcpayroll.schemas.discrepancy import ResolutionAction
from dcpayroll.services.discrepancy_detector import DiscrepancyDetector
from dcpayroll.services.resolution_workflow import CREATED_TASK_NAME, ResolutionWorkflow
from tests.conftest import PERIOD_START, add_period, add_report, add_scans, at

DAY = date(2026, 3, 2)
END = date(2026, 3, 16)


async def detect_one(db, project) -> Discrepancy:
    await DiscrepancyDetector(db).detect(project.id, PERIOD_START, END)
    return (await db.execute(select(Discrepancy))).scalar_one()


async def reports_of(db, contractor) -> list[DailyReport]:
    result = await db.execute(
        select(DailyReport)
        .where(DailyReport.contractor_id == contractor.id, DailyReport.is_deleted == False)
        .order_by(DailyReport.start_time)
    )
    return list(result.scalars().all())


# ── Action schema ─────────────────────────────────────────────────────────────

def test_note_is_required():
    with pytest.raises(SchemaValidationError):
        ResolutionAction(method="verify", note="   ")


def test_unknown_method_rejected():
    with pytest.raises(SchemaValidationError):
        ResolutionAction(method="delete", note="x")


# ── update_dr ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_update_dr_aligns_report_with_scans(db, project, contractor, manager_user):
    report = await add_report(db, project, contractor, DAY, manual_hours="6")
    await add_scans(db, project, contractor, at(DAY, "08:00"), at(DAY, "17:00"))
    d = await detect_one(db, project)

    resolved = await ResolutionWorkflow(db).resolve(
        d.id, ResolutionAction(method="update_dr", note="Scans are right"), manager_user.id
    )

    assert resolved.status == "fixed"
    assert resolved.resolution_method == "update_dr"
    assert resolved.resolved_by == manager_user.id
    assert resolved.resolved_at is not None
    await db.refresh(report)
    assert report.manual_hours == Decimal("8.00")
    assert report.version == 2

    # The fixed record is not re-opened once the gap is closed
    again = await DiscrepancyDetector(db).detect(project.id, PERIOD_START, END)
    assert again.unchanged == 1
    assert again.created == 0


@pytest.mark.asyncio
async def test_update_dr_with_explicit_hours(db, project, contractor, manager_user):
    report = await add_report(db, project, contractor, DAY, manual_hours="6")
    await add_scans(db, project, contractor, at(DAY, "08:00"), at(DAY, "17:00"))
    d = await detect_one(db, project)

    await ResolutionWorkflow(db).resolve(
        d.id, ResolutionAction(method="update_dr", note="Left early", updated_hours=7.5), manager_user.id
    )

    await db.refresh(report)
    assert report.manual_hours == Decimal("7.50")


@pytest.mark.asyncio
async def test_update_dr_splits_by_work_type(db, project, contractor, manager_user):
    regular = await add_report(db, project, contractor, DAY)
    evening = await add_report(db, project, contractor, DAY, start="18:00", end="19:00", work_type="ot_evening")
    await add_scans(db, project, contractor, at(DAY, "08:00"), at(DAY, "17:00"), at(DAY, "20:00"))
    d = await detect_one(db, project)
    assert d.discrepancy_type == "Type1"

    await ResolutionWorkflow(db).resolve(
        d.id, ResolutionAction(method="update_dr", note="Evening OT ran to 20:00"), manager_user.id
    )

    await db.refresh(regular)
    await db.refresh(evening)
    assert regular.manual_hours is None          # already matched, left untouched
    assert evening.manual_hours == Decimal("3.00")


@pytest.mark.asyncio
async def test_update_dr_on_type2_zeroes_report(db, project, contractor, manager_user):
    report = await add_report(db, project, contractor, DAY)
    d = await detect_one(db, project)
    assert d.discrepancy_type == "Type2"

    await ResolutionWorkflow(db).resolve(
        d.id, ResolutionAction(method="update_dr", note="Absent"), manager_user.id
    )

    await db.refresh(report)
    assert report.manual_hours == Decimal("0.00")


@pytest.mark.asyncio
async def test_update_dr_on_type3_is_rejected(db, project, contractor, manager_user):
    await add_scans(db, project, contractor, at(DAY, "08:00"), at(DAY, "17:00"))
    d = await detect_one(db, project)

    with pytest.raises(ResolutionMethodError):
        await ResolutionWorkflow(db).resolve(
            d.id, ResolutionAction(method="update_dr", note="x"), manager_user.id
        )
    await db.refresh(d)
    assert d.status == "pending"


# ── create_dr ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_dr_builds_reports_from_session(db, project, contractor, manager_user):
    await add_scans(db, project, contractor, at(DAY, "08:00"), at(DAY, "17:00"), at(DAY, "20:00"))
    d = await detect_one(db, project)
    assert d.discrepancy_type == "Type3"

    resolved = await ResolutionWorkflow(db).resolve(
        d.id, ResolutionAction(method="create_dr", note="Forgot the report"), manager_user.id
    )

    assert resolved.status == "fixed"
    regular, evening = await reports_of(db, contractor)
    assert (regular.work_type, regular.start_time, regular.end_time) == ("regular", time(8, 0), time(17, 0))
    assert regular.worked_minutes == 480
    assert (evening.work_type, evening.start_time, evening.end_time) == ("ot_evening", time(17, 0), time(20, 0))
    assert evening.worked_minutes == 180
    assert regular.task_name == CREATED_TASK_NAME
    creates = (await db.execute(
        select(AuditLog).where(AuditLog.entity_type == "daily_report", AuditLog.action == "create")
    )).scalars().all()
    assert len(creates) == 2


@pytest.mark.asyncio
async def test_create_dr_pins_capped_hours(db, project, contractor, manager_user):
    await add_scans(db, project, contractor, at(DAY, "07:00"), at(DAY, "17:30"))
    d = await detect_one(db, project)

    await ResolutionWorkflow(db).resolve(
        d.id, ResolutionAction(method="create_dr", note="From scans"), manager_user.id
    )

    [report] = await reports_of(db, contractor)
    assert report.manual_hours == Decimal("8.00")
    assert report.worked_minutes == 480


@pytest.mark.asyncio
async def test_create_dr_on_type1_is_rejected(db, project, contractor, manager_user):
    await add_report(db, project, contractor, DAY, manual_hours="6")
    await add_scans(db, project, contractor, at(DAY, "08:00"), at(DAY, "17:00"))
    d = await detect_one(db, project)

    with pytest.raises(ResolutionMethodError):
        await ResolutionWorkflow(db).resolve(d.id, ResolutionAction(method="create_dr", note="x"), manager_user.id)


# ── verify / ignore / state ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_resolving_twice_is_invalid(db, project, contractor, manager_user):
    await add_report(db, project, contractor, DAY)
    d = await detect_one(db, project)
    workflow = ResolutionWorkflow(db)
    await workflow.resolve(d.id, ResolutionAction(method="verify", note="ok"), manager_user.id)

    with pytest.raises(InvalidTransitionError):
        await workflow.resolve(d.id, ResolutionAction(method="ignore", note="again"), manager_user.id)


@pytest.mark.asyncio
async def test_ignore_clears_approval_block(db, project, contractor, manager_user):
    period = await add_period(db, project)
    await add_report(db, project, contractor, DAY)
    d = await detect_one(db, project)
    await db.refresh(period)
    assert period.has_unresolved_discrepancies is True

    resolved = await ResolutionWorkflow(db).resolve(
        d.id, ResolutionAction(method="ignore", note="Site closed"), manager_user.id
    )

    assert resolved.status == "ignored"
    await db.refresh(period)
    assert period.has_unresolved_discrepancies is False


@pytest.mark.asyncio
async def test_locked_period_rejects_resolution(db, project, contractor, manager_user):
    await add_report(db, project, contractor, DAY)
    d = await detect_one(db, project)
    await add_period(db, project, status="locked")

    with pytest.raises(PeriodLockedError):
        await ResolutionWorkflow(db).resolve(d.id, ResolutionAction(method="verify", note="x"), manager_user.id)
    await db.refresh(d)
    assert d.status == "pending"


@pytest.mark.asyncio
async def test_explicit_hours_below_other_reports_rejected(db, project, contractor, manager_user):
    await add_report(db, project, contractor, DAY, manual_hours="6")
    await add_report(db, project, contractor, DAY, start="18:00", end="20:00", work_type="ot_evening")
    await add_scans(db, project, contractor, at(DAY, "08:00"), at(DAY, "17:00"), at(DAY, "21:00"))
    d = await detect_one(db, project)

    with pytest.raises(ValidationError):
        await ResolutionWorkflow(db).resolve(
            d.id, ResolutionAction(method="update_dr", note="x", updated_hours=1), manager_user.id
        )
