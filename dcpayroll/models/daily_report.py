import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dcpayroll.core.database import Base
from dcpayroll.services import time_normalizer

WORK_TYPES = ("regular", "ot_morning", "ot_noon", "ot_evening")


class DailyReport(Base):
    __tablename__ = "daily_reports"
    __table_args__ = (
        Index("ix_daily_reports_contractor_date", "contractor_id", "work_date"),
        Index("ix_daily_reports_project_date", "project_id", "work_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    contractor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("daily_contractors.id"), nullable=False)

    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    work_type: Mapped[str] = mapped_column(String(20), default="regular")  # regular | ot_morning | ot_noon | ot_evening
    is_overnight: Mapped[bool] = mapped_column(Boolean, default=False)
    # Overrides the start/end computation when set (e.g. after a discrepancy fix)
    manual_hours: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)

    task_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    version: Mapped[int] = mapped_column(Integer, default=1)

    created_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    contractor: Mapped["DailyContractor"] = relationship(back_populates="daily_reports")

    @property
    def worked_minutes(self) -> int | None:
        return time_normalizer.report_minutes(
            self.work_type, self.start_time, self.end_time, self.is_overnight, self.manual_hours
        )

    @property
    def worked_hours(self) -> Decimal | None:
        minutes = self.worked_minutes
        return None if minutes is None else time_normalizer.to_hours(minutes)
