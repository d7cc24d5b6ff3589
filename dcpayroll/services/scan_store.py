"""ScanEvent store: bulk insert and reads by worker and work-date range."""
import uuid
from collections import defaultdict
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dcpayroll.models.scan import ScanEvent
from dcpayroll.services.scan_session_builder import ScanSession, build_session

WRITE_BATCH_SIZE = 400


class ScanEventStore:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def bulk_insert(self, events: list[ScanEvent]) -> int:
        """Adds events in flushes of WRITE_BATCH_SIZE. The caller commits."""
        for i in range(0, len(events), WRITE_BATCH_SIZE):
            self.db.add_all(events[i:i + WRITE_BATCH_SIZE])
            await self.db.flush()
        return len(events)

    async def in_range(
        self,
        project_id: uuid.UUID,
        start: date,
        end: date,
        contractor_id: uuid.UUID | None = None,
    ) -> list[ScanEvent]:
        q = select(ScanEvent).where(
            ScanEvent.project_id == project_id,
            ScanEvent.work_date >= start,
            ScanEvent.work_date <= end,
            ScanEvent.contractor_id.is_not(None),
        )
        if contractor_id:
            q = q.where(ScanEvent.contractor_id == contractor_id)
        result = await self.db.execute(q.order_by(ScanEvent.scan_datetime))
        return list(result.scalars().all())

    async def sessions(
        self,
        project_id: uuid.UUID,
        start: date,
        end: date,
        contractor_id: uuid.UUID | None = None,
    ) -> dict[tuple[uuid.UUID, date], ScanSession]:
        grouped: dict[tuple[uuid.UUID, date], list[ScanEvent]] = defaultdict(list)
        for event in await self.in_range(project_id, start, end, contractor_id):
            grouped[(event.contractor_id, event.work_date)].append(event)
        return {
            key: build_session(events[0].employee_number, key[1], events)
            for key, events in grouped.items()
        }

    async def session_for(self, project_id: uuid.UUID, contractor_id: uuid.UUID, work_date: date) -> ScanSession | None:
        return (await self.sessions(project_id, work_date, work_date, contractor_id)).get((contractor_id, work_date))

    async def existing_keys(self, project_id: uuid.UUID, employee_numbers, start, end) -> set[tuple[str, object]]:
        """(employee_number, scan_datetime) pairs already stored for the project."""
        keys: set[tuple[str, object]] = set()
        numbers = sorted(employee_numbers)
        for i in range(0, len(numbers), 500):
            result = await self.db.execute(
                select(ScanEvent.employee_number, ScanEvent.scan_datetime).where(
                    ScanEvent.project_id == project_id,
                    ScanEvent.employee_number.in_(numbers[i:i + 500]),
                    ScanEvent.scan_datetime >= start,
                    ScanEvent.scan_datetime <= end,
                )
            )
            keys.update((row.employee_number, row.scan_datetime) for row in result)
        return keys
