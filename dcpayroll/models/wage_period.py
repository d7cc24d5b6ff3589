import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dcpayroll.core.database import Base

PERIOD_STATUSES = ("draft", "calculated", "approved", "paid", "locked")


class WagePeriod(Base):
    __tablename__ = "wage_periods"
    __table_args__ = (
        UniqueConstraint("project_id", "period_code", name="uq_wage_period_code"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    period_code: Mapped[str] = mapped_column(String(20), nullable=False)  # YYYYMM-P1 | YYYYMM-P2
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="draft")  # draft | calculated | approved | paid | locked

    # Totals
    total_workers: Mapped[int] = mapped_column(Integer, default=0)
    total_regular_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    total_ot_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    total_gross: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    total_net: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    has_unresolved_discrepancies: Mapped[bool] = mapped_column(Boolean, default=False)

    # Held while a calculation is staging summaries
    calculation_token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    calculating_since: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    calculated_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    locked_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    project: Mapped["Project"] = relationship(back_populates="wage_periods")
    summaries: Mapped[list["DCWageSummary"]] = relationship(
        back_populates="wage_period",
        cascade="all, delete-orphan",
        order_by="DCWageSummary.employee_number",
    )

    @property
    def is_locked(self) -> bool:
        return self.status == "locked"

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class DCWageSummary(Base):
    __tablename__ = "dc_wage_summaries"
    __table_args__ = (
        UniqueConstraint("wage_period_id", "contractor_id", name="uq_wage_summary_worker"),
    )

    # uuid5(period id, contractor id): stable across recalculations
    id: Mapped[uuid.UUID] = mapped_column(primary_key=True)
    wage_period_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("wage_periods.id", ondelete="CASCADE"), nullable=False
    )
    contractor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("daily_contractors.id"), nullable=False)
    employee_number: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Hours
    regular_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("0"))
    ot_morning_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("0"))
    ot_noon_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("0"))
    ot_evening_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("0"))
    total_ot_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("0"))

    # Rates
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    professional_rate: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    phone_allowance: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))

    # Income
    regular_wages: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    ot_wages: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    additional_income: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    gross_income: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    # Expenses
    accommodation_cost: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    follower_count: Mapped[int] = mapped_column(Integer, default=0)
    follower_accommodation: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    refrigerator_cost: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    sound_system_cost: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    tv_cost: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    washing_machine_cost: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    portable_ac_cost: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    additional_expenses: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    total_expenses: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    # Deductions
    is_ss_exempt: Mapped[bool] = mapped_column(Boolean, default=False)
    social_security: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    late_deduction: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    net_wage: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    wage_period: Mapped["WagePeriod"] = relationship(back_populates="summaries")


class AdditionalIncome(Base):
    __tablename__ = "additional_income"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    wage_period_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("wage_periods.id", ondelete="CASCADE"), nullable=False
    )
    contractor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("daily_contractors.id"), nullable=False)
    category: Mapped[str] = mapped_column(String(50), default="other")  # bonus | reimbursement | other
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class AdditionalExpense(Base):
    __tablename__ = "additional_expenses"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    wage_period_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("wage_periods.id", ondelete="CASCADE"), nullable=False
    )
    contractor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("daily_contractors.id"), nullable=False)
    category: Mapped[str] = mapped_column(String(50), default="other")  # advance | equipment | other
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
