"""
DiscrepancyDetector: compares daily reports with scan sessions per worker and day.

    Type1  report and scans exist, report hours < scanned hours
    Type2  report exists, no matched scan session
    Type3  scanned hours > 0, no report

Re-runnable. Records are merged by (worker, work date): pending records get
fresh measurements, terminal records keep their status and only note the new
candidate. Days inside locked periods are skipped.
"""
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from dcpayroll.core.exceptions import ConcurrentUpdateError
from dcpayroll.core.locks import discrepancy_locks
from dcpayroll.models.daily_report import DailyReport
from dcpayroll.models.discrepancy import Discrepancy
from dcpayroll.services import time_normalizer
from dcpayroll.services.audit import write_audit
from dcpayroll.services.daily_report_service import total_report_minutes
from dcpayroll.services.period_guard import in_spans, locked_spans, refresh_unresolved_flags
from dcpayroll.services.scan_store import ScanEventStore

logger = logging.getLogger(__name__)

# |difference| in minutes: > 120 high, > 60 medium, else low
SEVERITY_THRESHOLDS = (
    (120, "high"),
    (60, "medium"),
)


@dataclass(frozen=True)
class Candidate:
    discrepancy_type: str
    severity: str
    dr_hours: Decimal | None
    scan_hours: Decimal | None
    hours_difference: Decimal


@dataclass
class DetectionResult:
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    redetected: int = 0
    skipped_locked: int = 0
    # Pending records whose gap has closed since they were detected
    stale: list[uuid.UUID] = field(default_factory=list)


def severity_for(difference_minutes: int) -> str:
    magnitude = abs(difference_minutes)
    for threshold, severity in SEVERITY_THRESHOLDS:
        if magnitude > threshold:
            return severity
    return "low"


def classify(has_report: bool, dr_minutes: int | None, scan_minutes: int | None) -> Candidate | None:
    """
    Classify one (worker, day).

    `scan_minutes` is None when no scan session was matched; a session of
    zero minutes counts as unmatched. `dr_minutes` may be None for a report
    whose range is undefined.
    """
    if scan_minutes == 0:
        scan_minutes = None

    if has_report and scan_minutes is None:
        discrepancy_type = "Type2"
    elif not has_report and scan_minutes is not None:
        discrepancy_type = "Type3"
    elif has_report and (dr_minutes is None or dr_minutes < scan_minutes):
        discrepancy_type = "Type1"
    else:
        return None

    difference = (scan_minutes or 0) - (dr_minutes or 0)
    return Candidate(
        discrepancy_type=discrepancy_type,
        severity=severity_for(difference),
        dr_hours=None if dr_minutes is None else time_normalizer.quantize_hours(time_normalizer.to_hours(dr_minutes)),
        scan_hours=None if scan_minutes is None else time_normalizer.quantize_hours(time_normalizer.to_hours(scan_minutes)),
        hours_difference=time_normalizer.quantize_hours(time_normalizer.to_hours(difference)),
    )


def _measurements(d: Discrepancy) -> tuple:
    return (
        d.discrepancy_type,
        d.severity,
        None if d.dr_hours is None else Decimal(d.dr_hours),
        None if d.scan_hours is None else Decimal(d.scan_hours),
        Decimal(d.hours_difference),
    )


def _candidate_measurements(c: Candidate) -> tuple:
    return (c.discrepancy_type, c.severity, c.dr_hours, c.scan_hours, c.hours_difference)


class DiscrepancyDetector:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, project_id: uuid.UUID, contractor_id: uuid.UUID, work_date: date) -> Discrepancy | None:
        result = await self.db.execute(
            select(Discrepancy)
            .where(
                Discrepancy.project_id == project_id,
                Discrepancy.contractor_id == contractor_id,
                Discrepancy.work_date == work_date,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def detect(
        self,
        project_id: uuid.UUID,
        start: date,
        end: date,
        contractor_id: uuid.UUID | None = None,
        actor_id: uuid.UUID | None = None,
    ) -> DetectionResult:
        reports: dict[tuple[uuid.UUID, date], list[DailyReport]] = defaultdict(list)
        q = select(DailyReport).where(
            DailyReport.project_id == project_id,
            DailyReport.work_date >= start,
            DailyReport.work_date <= end,
            DailyReport.is_deleted == False,
        )
        if contractor_id:
            q = q.where(DailyReport.contractor_id == contractor_id)
        for report in (await self.db.execute(q)).scalars().all():
            reports[(report.contractor_id, report.work_date)].append(report)

        sessions = await ScanEventStore(self.db).sessions(project_id, start, end, contractor_id)

        q = select(Discrepancy.contractor_id, Discrepancy.work_date).where(
            Discrepancy.project_id == project_id,
            Discrepancy.work_date >= start,
            Discrepancy.work_date <= end,
        )
        if contractor_id:
            q = q.where(Discrepancy.contractor_id == contractor_id)
        known = {(row.contractor_id, row.work_date) for row in await self.db.execute(q)}

        locked = await locked_spans(self.db, project_id, start, end)
        result = DetectionResult()

        # Classify everything up front; merges may roll back and expire loaded rows
        plan = []
        for key in sorted(set(reports) | set(sessions) | known, key=lambda k: (k[1], str(k[0]))):
            if in_spans(key[1], locked):
                result.skipped_locked += 1
                continue
            day_reports = reports.get(key, [])
            session = sessions.get(key)
            plan.append((key, classify(
                has_report=bool(day_reports),
                dr_minutes=total_report_minutes(day_reports),
                scan_minutes=session.total_minutes if session and session.has_matched else None,
            )))

        for key, candidate in plan:
            await self._merge_identity(project_id, key, candidate, result, actor_id)

        await refresh_unresolved_flags(self.db, project_id, start, end)
        await self.db.commit()
        logger.info(
            "Discrepancy detection %s..%s: %d created, %d updated, %d re-detected, %d stale",
            start, end, result.created, result.updated, result.redetected, len(result.stale),
        )
        return result

    async def _merge_identity(self, project_id, key, candidate, result: DetectionResult, actor_id) -> None:
        async with discrepancy_locks.hold((project_id, *key)):
            for attempt in range(2):
                try:
                    outcome, record_id = await self._merge(project_id, key, candidate, actor_id)
                    await self.db.commit()
                    break
                except (StaleDataError, IntegrityError):
                    await self.db.rollback()
                    if attempt:
                        raise ConcurrentUpdateError(
                            f"Discrepancy for {key[0]} on {key[1].isoformat()} changed during detection"
                        )
        if outcome == "stale":
            result.stale.append(record_id)
        elif outcome is not None:
            setattr(result, outcome, getattr(result, outcome) + 1)

    async def _merge(self, project_id, key, candidate: Candidate | None, actor_id) -> tuple[str | None, uuid.UUID | None]:
        contractor_id, work_date = key
        existing = await self._load(project_id, contractor_id, work_date)
        now = datetime.now(timezone.utc)

        if existing is None:
            if candidate is None:
                return None, None
            record = Discrepancy(
                project_id=project_id,
                contractor_id=contractor_id,
                work_date=work_date,
                status="pending",
                detected_at=now,
                **_candidate_fields(candidate),
            )
            self.db.add(record)
            await self.db.flush()
            return "created", record.id

        if existing.status == "pending":
            if candidate is None:
                return "stale", existing.id
            if _measurements(existing) == _candidate_measurements(candidate):
                return "unchanged", existing.id
            for name, value in _candidate_fields(candidate).items():
                setattr(existing, name, value)
            existing.detected_at = now
            await self.db.flush()
            return "updated", existing.id

        # Terminal: keep status and resolution, remember what the detector sees now
        new_type = candidate.discrepancy_type if candidate else None
        new_difference = candidate.hours_difference if candidate else None
        if existing.redetected_at is None:
            if candidate is None or _measurements(existing) == _candidate_measurements(candidate):
                return "unchanged", existing.id
        else:
            stored_difference = None if existing.redetected_difference is None else Decimal(existing.redetected_difference)
            if (existing.redetected_type, stored_difference) == (new_type, new_difference):
                return "unchanged", existing.id

        old_values = {
            "redetected_type": existing.redetected_type,
            "redetected_difference": existing.redetected_difference,
        }
        existing.redetected_type = new_type
        existing.redetected_difference = new_difference
        existing.redetected_at = now
        write_audit(
            self.db, entity_type="discrepancy", entity_id=existing.id, action="redetect",
            user_id=actor_id, project_id=project_id,
            old_values=old_values,
            new_values={
                "status": existing.status,
                "redetected_type": new_type,
                "redetected_difference": new_difference,
            },
        )
        await self.db.flush()
        return "redetected", existing.id


def _candidate_fields(candidate: Candidate) -> dict:
    return {
        "discrepancy_type": candidate.discrepancy_type,
        "severity": candidate.severity,
        "dr_hours": candidate.dr_hours,
        "scan_hours": candidate.scan_hours,
        "hours_difference": candidate.hours_difference,
    }
