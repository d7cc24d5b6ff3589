"""
Celery tasks for wage calculation and nightly reconciliation.
"""
import logging

from dcpayroll.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

# Nightly jobs re-check one wage period's worth of work dates
LOOKBACK_DAYS = 15


@celery_app.task(name="dcpayroll.tasks.wage_tasks.calculate_wage_period")
def calculate_wage_period(period_id: str, actor_id: str | None = None):
    """Runs a queued wage calculation."""
    import asyncio
    return asyncio.run(_calculate(period_id, actor_id))


@celery_app.task(name="dcpayroll.tasks.wage_tasks.detect_discrepancies_nightly")
def detect_discrepancies_nightly():
    """Re-runs detection for every active project over the trailing period."""
    import asyncio
    return asyncio.run(_detect_all())


@celery_app.task(name="dcpayroll.tasks.wage_tasks.sync_late_records_nightly")
def sync_late_records_nightly():
    import asyncio
    return asyncio.run(_sync_late_all())


def _window():
    from datetime import timedelta
    from dcpayroll.services.scan_import import site_now

    end = site_now().date() - timedelta(days=1)
    return end - timedelta(days=LOOKBACK_DAYS - 1), end


async def _active_project_ids(db) -> list:
    from sqlalchemy import select
    from dcpayroll.models.project import Project

    result = await db.execute(select(Project.id).where(Project.is_active == True))
    return list(result.scalars().all())


async def _calculate(period_id: str, actor_id: str | None) -> dict:
    import uuid
    from dcpayroll.core.database import AsyncSessionLocal
    from dcpayroll.core.exceptions import PayrollError
    from dcpayroll.services.period_lifecycle import PeriodLifecycle

    async with AsyncSessionLocal() as db:
        try:
            period = await PeriodLifecycle(db).calculate(
                uuid.UUID(period_id), uuid.UUID(actor_id) if actor_id else None
            )
        except PayrollError as e:
            logger.warning(f"Wage calculation for period {period_id} rejected: {e.message}")
            return {"period_id": period_id, "status": "rejected", "code": e.code, "detail": e.message}
        return {
            "period_id": period_id,
            "status": period.status,
            "total_net": str(period.total_net),
        }


async def _detect_all() -> dict:
    from dcpayroll.core.database import AsyncSessionLocal
    from dcpayroll.core.exceptions import PayrollError
    from dcpayroll.services.discrepancy_detector import DiscrepancyDetector

    start, end = _window()
    totals = {"projects": 0, "created": 0, "updated": 0, "redetected": 0}
    async with AsyncSessionLocal() as db:
        for project_id in await _active_project_ids(db):
            try:
                result = await DiscrepancyDetector(db).detect(project_id, start, end)
            except PayrollError as e:
                logger.error(f"Discrepancy detection failed for project {project_id}: {e.message}")
                continue
            totals["projects"] += 1
            totals["created"] += result.created
            totals["updated"] += result.updated
            totals["redetected"] += result.redetected
    logger.info(f"Nightly detection {start} – {end}: {totals}")
    return totals


async def _sync_late_all() -> dict:
    from dcpayroll.core.database import AsyncSessionLocal
    from dcpayroll.core.exceptions import PayrollError
    from dcpayroll.services.late_record_service import LateRecordService

    start, end = _window()
    totals = {"projects": 0, "created": 0, "updated": 0}
    async with AsyncSessionLocal() as db:
        for project_id in await _active_project_ids(db):
            try:
                result = await LateRecordService(db).sync(project_id, start, end)
            except PayrollError as e:
                logger.error(f"Late record sync failed for project {project_id}: {e.message}")
                continue
            totals["projects"] += 1
            totals["created"] += result.created
            totals["updated"] += result.updated
    logger.info(f"Nightly late sync {start} – {end}: {totals}")
    return totals
