"""
Tests for DailyReportService and the daily reports API – hour rules,
versioning, audit entries and locked periods.
"""
from datetime import date, time
from decimal import Decimal

import pytest
from sqlalchemy import select

from dcpayroll.core.exceptions import (
    ConcurrentUpdateError,
    NotFoundError,
    PeriodLockedError,
    TimeRangeError,
    ValidationError,
)
from dcpayroll.models.audit import AuditLog
from dcpayroll.schemas.daily_report import DailyReportBulkCreate, DailyReportCreate, DailyReportUpdate
from dcpayroll.services.daily_report_service import DailyReportService, total_report_minutes
from tests.conftest import PERIOD_START, add_period, auth_headers, make_contractor

DAY = date(2026, 3, 2)


def payload(project, contractor, **overrides) -> DailyReportCreate:
    fields = dict(
        project_id=project.id,
        contractor_id=contractor.id,
        work_date=DAY,
        start_time=time(8, 0),
        end_time=time(17, 0),
    )
    fields.update(overrides)
    return DailyReportCreate(**fields)


# ── Service ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_regular_report(db, project, contractor, supervisor_user):
    report = await DailyReportService(db).create(payload(project, contractor), supervisor_user.id)

    assert report.version == 1
    assert report.worked_minutes == 480
    assert report.worked_hours == Decimal(8)
    assert report.created_by == supervisor_user.id
    [log] = (await db.execute(select(AuditLog).where(AuditLog.entity_id == report.id))).scalars().all()
    assert log.action == "create"
    assert log.new_values["start_time"] == "08:00:00"


@pytest.mark.asyncio
async def test_overnight_evening_report(db, project, contractor):
    report = await DailyReportService(db).create(payload(
        project, contractor, start_time=time(20, 0), end_time=time(2, 0),
        work_type="ot_evening", is_overnight=True,
    ))
    assert report.worked_minutes == 360


@pytest.mark.asyncio
async def test_reversed_range_rejected(db, project, contractor):
    with pytest.raises(TimeRangeError):
        await DailyReportService(db).create(payload(project, contractor, start_time=time(17, 0), end_time=time(8, 0)))


@pytest.mark.asyncio
async def test_hours_above_work_type_maximum_rejected(db, project, contractor):
    with pytest.raises(ValidationError):
        await DailyReportService(db).create(payload(project, contractor, end_time=time(18, 30)))
    with pytest.raises(ValidationError):
        await DailyReportService(db).create(payload(
            project, contractor, start_time=time(12, 0), end_time=time(13, 30), work_type="ot_noon",
        ))


@pytest.mark.asyncio
async def test_update_bumps_version_and_audits(db, project, contractor, manager_user):
    service = DailyReportService(db)
    report = await service.create(payload(project, contractor))

    updated = await service.update(
        report.id, DailyReportUpdate(end_time=time(16, 0), expected_version=1), manager_user.id
    )

    assert updated.version == 2
    assert updated.worked_minutes == 420
    assert updated.updated_by == manager_user.id
    logs = (await db.execute(
        select(AuditLog).where(AuditLog.entity_id == report.id, AuditLog.action == "update")
    )).scalars().all()
    assert logs[0].old_values["end_time"] == "17:00:00"
    assert logs[0].new_values["end_time"] == "16:00:00"


@pytest.mark.asyncio
async def test_stale_version_rejected(db, project, contractor):
    service = DailyReportService(db)
    report = await service.create(payload(project, contractor))
    await service.update(report.id, DailyReportUpdate(task_name="Formwork"))

    with pytest.raises(ConcurrentUpdateError):
        await service.update(report.id, DailyReportUpdate(task_name="Rebar", expected_version=1))


@pytest.mark.asyncio
async def test_delete_is_soft(db, project, contractor):
    service = DailyReportService(db)
    report = await service.create(payload(project, contractor))

    await service.delete(report.id)

    with pytest.raises(NotFoundError):
        await service.get(report.id)
    assert await service.list_reports(project.id, DAY, DAY) == []


@pytest.mark.asyncio
async def test_bulk_create(db, project, contractor):
    other = await make_contractor(db, "1002")
    reports = await DailyReportService(db).create_many(DailyReportBulkCreate(
        project_id=project.id,
        contractor_ids=[contractor.id, other.id],
        work_date=DAY,
        start_time=time(17, 0),
        end_time=time(20, 0),
        work_type="ot_evening",
        task_name="Concrete pour",
    ))

    assert len(reports) == 2
    assert {r.contractor_id for r in reports} == {contractor.id, other.id}
    assert all(r.worked_minutes == 180 for r in reports)


@pytest.mark.asyncio
async def test_locked_period_blocks_writes(db, project, contractor):
    service = DailyReportService(db)
    report = await service.create(payload(project, contractor))
    await add_period(db, project, PERIOD_START, status="locked")

    with pytest.raises(PeriodLockedError):
        await service.update(report.id, DailyReportUpdate(task_name="late edit"))
    with pytest.raises(PeriodLockedError):
        await service.create(payload(project, contractor, work_date=date(2026, 3, 5)))
    # Outside the locked period
    outside = await service.create(payload(project, contractor, work_date=date(2026, 3, 20)))
    assert outside.version == 1


def test_total_report_minutes():
    class R:
        def __init__(self, minutes):
            self.worked_minutes = minutes

    assert total_report_minutes([R(480), R(None), R(180)]) == 660
    assert total_report_minutes([R(None)]) is None
    assert total_report_minutes([]) is None


# ── API ───────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_report_crud_over_http(client, project, contractor, supervisor_token):
    headers = auth_headers(supervisor_token)
    body = {
        "project_id": str(project.id),
        "contractor_id": str(contractor.id),
        "work_date": DAY.isoformat(),
        "start_time": "08:00:00",
        "end_time": "17:00:00",
    }

    created = await client.post("/api/v1/daily-reports", json=body, headers=headers)
    assert created.status_code == 201
    report = created.json()
    assert report["worked_hours"] == 8.0

    listed = await client.get(
        "/api/v1/daily-reports",
        params={"project_id": str(project.id), "start_date": "2026-03-01", "end_date": "2026-03-16"},
        headers=headers,
    )
    assert [r["id"] for r in listed.json()] == [report["id"]]

    updated = await client.put(
        f"/api/v1/daily-reports/{report['id']}", json={"manual_hours": "7.5", "expected_version": 1}, headers=headers
    )
    assert updated.status_code == 200
    assert updated.json()["worked_hours"] == 7.5

    conflict = await client.put(
        f"/api/v1/daily-reports/{report['id']}", json={"notes": "x", "expected_version": 1}, headers=headers
    )
    assert conflict.status_code == 409
    assert conflict.json()["code"] == "CONCURRENT_UPDATE"

    deleted = await client.delete(f"/api/v1/daily-reports/{report['id']}", headers=headers)
    assert deleted.status_code == 204
    missing = await client.get(f"/api/v1/daily-reports/{report['id']}", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_report_without_hours_source_rejected(client, project, contractor, supervisor_token):
    response = await client.post(
        "/api/v1/daily-reports",
        json={"project_id": str(project.id), "contractor_id": str(contractor.id), "work_date": DAY.isoformat()},
        headers=auth_headers(supervisor_token),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_reports_require_login(client, project):
    response = await client.get(
        "/api/v1/daily-reports",
        params={"project_id": str(project.id), "start_date": "2026-03-01", "end_date": "2026-03-16"},
    )
    assert response.status_code in (401, 403)
