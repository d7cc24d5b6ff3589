import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dcpayroll.core.database import Base


class DailyContractor(Base):
    __tablename__ = "daily_contractors"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    # External id printed on the badge and used by the scan terminal.
    # Ids starting with "9" are exempt from social security.
    employee_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    skill_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    income_profiles: Mapped[list["IncomeProfile"]] = relationship(back_populates="contractor")
    expense_profiles: Mapped[list["ExpenseProfile"]] = relationship(back_populates="contractor")
    daily_reports: Mapped[list["DailyReport"]] = relationship(back_populates="contractor")


class IncomeProfile(Base):
    """Effective-dated rate card. The most recent active card on or before a date wins."""

    __tablename__ = "income_profiles"
    __table_args__ = (
        Index("ix_income_profiles_contractor_id", "contractor_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("daily_contractors.id", ondelete="CASCADE"), nullable=False
    )

    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    professional_rate: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))  # flat per period
    phone_allowance: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))    # flat per period

    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    contractor: Mapped["DailyContractor"] = relationship(back_populates="income_profiles")


class ExpenseProfile(Base):
    __tablename__ = "expense_profiles"
    __table_args__ = (
        Index("ix_expense_profiles_contractor_id", "contractor_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("daily_contractors.id", ondelete="CASCADE"), nullable=False
    )

    # All amounts are per wage period
    accommodation_cost: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    follower_count: Mapped[int] = mapped_column(Integer, default=0)
    refrigerator_cost: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    sound_system_cost: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    tv_cost: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    washing_machine_cost: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    portable_ac_cost: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))

    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    contractor: Mapped["DailyContractor"] = relationship(back_populates="expense_profiles")
