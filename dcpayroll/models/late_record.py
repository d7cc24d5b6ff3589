import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, Text, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dcpayroll.core.database import Base


class LateRecord(Base):
    __tablename__ = "late_records"
    __table_args__ = (
        UniqueConstraint("contractor_id", "late_date", name="uq_late_record"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    contractor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("daily_contractors.id"), nullable=False)

    late_date: Mapped[date] = mapped_column(Date, nullable=False)
    scan_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expected_time: Mapped[time] = mapped_column(Time, default=time(8, 0))
    late_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    late_deduction: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    included_in_wage_calculation: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
