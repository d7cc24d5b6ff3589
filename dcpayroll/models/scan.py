import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Index, Integer, JSON, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from dcpayroll.core.database import Base


class ScanEvent(Base):
    """One terminal timestamp. Written once by the importer, never updated."""

    __tablename__ = "scan_events"
    __table_args__ = (
        UniqueConstraint("project_id", "employee_number", "scan_datetime", name="uq_scan_event"),
        Index("ix_scan_events_employee_date", "employee_number", "work_date"),
        Index("ix_scan_events_batch", "import_batch_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    contractor_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("daily_contractors.id"), nullable=True)
    employee_number: Mapped[str] = mapped_column(String(50), nullable=False)

    # Site-local wall clock, as printed by the terminal
    scan_datetime: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    rounded_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)  # floored to 5 minutes
    # ot_morning_in | ot_morning_out | regular_in | late | lunch_break | regular_out
    # | ot_noon | ot_evening_in | ot_evening_out
    scan_type: Mapped[str] = mapped_column(String(30), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_late: Mapped[bool] = mapped_column(Boolean, default=False)
    late_minutes: Mapped[int] = mapped_column(Integer, default=0)

    import_batch_id: Mapped[str] = mapped_column(String(64), nullable=False)
    imported_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    imported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    raw_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)


class ScanImportBatch(Base):
    __tablename__ = "scan_import_batches"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    batch_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)  # batch-<hex>
    project_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_type: Mapped[str] = mapped_column(String(10), nullable=False)  # dat | xlsx

    total: Mapped[int] = mapped_column(Integer, default=0)
    successful: Mapped[int] = mapped_column(Integer, default=0)
    failed: Mapped[int] = mapped_column(Integer, default=0)
    skipped: Mapped[int] = mapped_column(Integer, default=0)
    errors: Mapped[list] = mapped_column(JSON, default=list)
    warnings: Mapped[list] = mapped_column(JSON, default=list)

    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    imported_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
