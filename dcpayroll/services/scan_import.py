"""
ScanImportService: bulk import of terminal exports into scan events.

Rows are validated in chunks on a thread pool; each chunk returns its own
valid rows and errors, merged afterwards in row order. A bad row never
aborts the batch: it lands in `errors`. Unknown employee numbers and
duplicates (within the file or already stored) are skipped with a warning.
Scans dated inside a locked wage period are row errors and never stored.
"""
import asyncio
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dcpayroll.core.config import settings
from dcpayroll.core.exceptions import ConflictError, ImportFileError, NotFoundError
from dcpayroll.models.contractor import DailyContractor
from dcpayroll.models.project import Project
from dcpayroll.models.scan import ScanEvent, ScanImportBatch
from dcpayroll.schemas.scan import ImportRowError, ImportSummary
from dcpayroll.services.period_guard import in_spans, locked_spans
from dcpayroll.services.scan_file_parser import RawRow, ValidRow, parse_file, validate_row
from dcpayroll.services.scan_store import ScanEventStore

logger = logging.getLogger(__name__)


@dataclass
class ChunkResult:
    valid: list[ValidRow] = field(default_factory=list)
    errors: list[ImportRowError] = field(default_factory=list)


def validate_chunk(rows: list[RawRow], now: datetime) -> ChunkResult:
    result = ChunkResult()
    for raw in rows:
        try:
            result.valid.append(validate_row(raw, now))
        except ValueError as e:
            result.errors.append(ImportRowError(row=raw.row, employee_number=raw.employee_number, error=str(e)))
    return result


def site_now() -> datetime:
    """Current site-local wall clock, comparable with terminal timestamps."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


def new_batch_id() -> str:
    return f"batch-{uuid.uuid4().hex}"


class ScanImportService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = ScanEventStore(db)

    async def _validate(self, rows: list[RawRow], now: datetime) -> ChunkResult:
        size = max(1, settings.IMPORT_CHUNK_SIZE)
        chunks = [rows[i:i + size] for i in range(0, len(rows), size)]
        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(max_workers=settings.IMPORT_WORKERS) as pool:
            partials = await asyncio.gather(
                *(loop.run_in_executor(pool, validate_chunk, chunk, now) for chunk in chunks)
            )
        merged = ChunkResult()
        for partial in partials:
            merged.valid.extend(partial.valid)
            merged.errors.extend(partial.errors)
        return merged

    async def import_file(
        self,
        project_id: uuid.UUID,
        filename: str,
        content: bytes,
        imported_by: uuid.UUID | None = None,
        note: str | None = None,
    ) -> ImportSummary:
        if await self.db.get(Project, project_id) is None:
            raise NotFoundError("Project", project_id)
        if len(content) > settings.IMPORT_MAX_BYTES:
            raise ImportFileError(
                f"File is {len(content)} bytes; the limit is {settings.IMPORT_MAX_BYTES}"
            )

        parsed = await asyncio.to_thread(parse_file, filename, content)
        if len(parsed.rows) > settings.IMPORT_MAX_ROWS:
            raise ImportFileError(
                f"File has {len(parsed.rows)} rows; the limit is {settings.IMPORT_MAX_ROWS}"
            )

        checked = await self._validate(parsed.rows, site_now())
        warnings = list(parsed.warnings)
        skipped = 0

        # Known workers
        numbers = {row.employee_number for row in checked.valid}
        workers: dict[str, uuid.UUID] = {}
        number_list = sorted(numbers)
        for i in range(0, len(number_list), 500):
            result = await self.db.execute(
                select(DailyContractor.employee_number, DailyContractor.id)
                .where(DailyContractor.employee_number.in_(number_list[i:i + 500]))
            )
            workers.update({r.employee_number: r.id for r in result})

        unknown: dict[str, int] = {}
        known_rows = []
        for row in checked.valid:
            if row.employee_number in workers:
                known_rows.append(row)
            else:
                unknown[row.employee_number] = unknown.get(row.employee_number, 0) + 1
        for number in sorted(unknown):
            warnings.append(f"Unknown employee number {number}: {unknown[number]} row(s) skipped")
            skipped += unknown[number]

        # Work dates inside locked wage periods are rejected per row
        row_errors = list(checked.errors)
        if known_rows:
            locked = await locked_spans(
                self.db, project_id,
                min(r.work_date for r in known_rows), max(r.work_date for r in known_rows),
            )
            if locked:
                open_rows = []
                for row in known_rows:
                    if in_spans(row.work_date, locked):
                        row_errors.append(ImportRowError(
                            row=row.row,
                            employee_number=row.employee_number,
                            error=f"Work date {row.work_date.isoformat()} is in a locked wage period",
                        ))
                    else:
                        open_rows.append(row)
                known_rows = open_rows

        # Duplicates
        stored = set()
        if known_rows:
            stored = await self.store.existing_keys(
                project_id,
                {r.employee_number for r in known_rows},
                min(r.scan_datetime for r in known_rows),
                max(r.scan_datetime for r in known_rows),
            )
        seen: dict[tuple[str, datetime], int] = {}
        batch_id = new_batch_id()
        events = []
        for row in known_rows:
            key = (row.employee_number, row.scan_datetime)
            if key in seen:
                warnings.append(f"Row {row.row}: duplicate of row {seen[key]} skipped")
                skipped += 1
                continue
            seen[key] = row.row
            if key in stored:
                warnings.append(f"Row {row.row}: scan already imported, skipped")
                skipped += 1
                continue
            events.append(ScanEvent(
                project_id=project_id,
                contractor_id=workers[row.employee_number],
                employee_number=row.employee_number,
                scan_datetime=row.scan_datetime,
                rounded_time=row.rounded_time,
                scan_type=row.scan_type,
                work_date=row.work_date,
                is_late=row.late_minutes > 0,
                late_minutes=row.late_minutes,
                import_batch_id=batch_id,
                imported_by=imported_by,
                raw_data=row.raw or None,
            ))

        errors = sorted(row_errors, key=lambda e: e.row)
        summary = ImportSummary(
            batch_id=batch_id,
            total=len(parsed.rows),
            successful=len(events),
            failed=len(errors),
            skipped=skipped,
            errors=errors,
            warnings=warnings,
        )

        try:
            await self.store.bulk_insert(events)
            self.db.add(ScanImportBatch(
                batch_id=batch_id,
                project_id=project_id,
                file_name=filename,
                file_type=parsed.file_type,
                total=summary.total,
                successful=summary.successful,
                failed=summary.failed,
                skipped=summary.skipped,
                errors=[e.model_dump() for e in errors],
                warnings=warnings,
                note=note,
                imported_by=imported_by,
            ))
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError("Scan data changed while importing; run the import again") from e

        logger.info(
            "Scan import %s (%s): %d total, %d imported, %d failed, %d skipped",
            batch_id, filename, summary.total, summary.successful, summary.failed, summary.skipped,
        )
        return summary

    async def get_batch(self, batch_id: str) -> ScanImportBatch:
        result = await self.db.execute(select(ScanImportBatch).where(ScanImportBatch.batch_id == batch_id))
        batch = result.scalar_one_or_none()
        if batch is None:
            raise NotFoundError("ScanImportBatch", batch_id)
        return batch

    async def list_batches(self, project_id: uuid.UUID, limit: int = 50) -> list[ScanImportBatch]:
        result = await self.db.execute(
            select(ScanImportBatch)
            .where(ScanImportBatch.project_id == project_id)
            .order_by(ScanImportBatch.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def batch_events(self, batch_id: str) -> list[ScanEvent]:
        result = await self.db.execute(
            select(ScanEvent).where(ScanEvent.import_batch_id == batch_id).order_by(ScanEvent.scan_datetime)
        )
        return list(result.scalars().all())
