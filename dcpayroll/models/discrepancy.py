import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dcpayroll.core.database import Base

TERMINAL_STATUSES = ("verified", "fixed", "ignored")


class Discrepancy(Base):
    __tablename__ = "discrepancies"
    __table_args__ = (
        UniqueConstraint("project_id", "contractor_id", "work_date", name="uq_discrepancy_identity"),
        Index("ix_discrepancies_project_date", "project_id", "work_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    contractor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("daily_contractors.id"), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)

    discrepancy_type: Mapped[str] = mapped_column(String(10), nullable=False)  # Type1 | Type2 | Type3
    severity: Mapped[str] = mapped_column(String(10), nullable=False)          # low | medium | high
    dr_hours: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    scan_hours: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    hours_difference: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"))  # scan - report

    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending | verified | fixed | ignored
    resolution_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    resolution_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    detected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    # Last candidate seen by the detector after the record became terminal
    redetected_type: Mapped[str | None] = mapped_column(String(10), nullable=True)
    redetected_difference: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    redetected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
