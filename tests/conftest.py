"""
Shared pytest fixtures for the DC payroll tests.

Uses SQLite in-memory with StaticPool so all sessions share one connection,
meaning data written in one session is visible to others (important for HTTP client tests).
"""
import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

import dcpayroll.models  # noqa – registers all SQLAlchemy models with Base.metadata
from dcpayroll.core.database import Base, get_db
from dcpayroll.core.security import hash_password, create_access_token
from dcpayroll.main import app
from dcpayroll.models.contractor import DailyContractor, ExpenseProfile, IncomeProfile
from dcpayroll.models.daily_report import DailyReport
from dcpayroll.models.project import Project
from dcpayroll.models.scan import ScanEvent
from dcpayroll.models.user import User
from dcpayroll.models.wage_period import WagePeriod
from dcpayroll.services import time_normalizer
from dcpayroll.services.period_lifecycle import PERIOD_SPAN_DAYS, period_code_for
from dcpayroll.services.scan_rules import classify_scan, late_minutes_for, work_date_for

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PERIOD_START = date(2026, 3, 1)


# ── Shared engine (function-scoped: fresh DB per test) ───────────────────────

@pytest_asyncio.fixture
async def engine():
    """Creates a fresh in-memory SQLite engine per test with a shared connection pool."""
    eng = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,          # single shared connection → all sessions see same data
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine) -> AsyncSession:
    """Async DB session for direct data inspection inside tests."""
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


# ── HTTP client fixture ───────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(engine) -> AsyncClient:
    """
    FastAPI test client with get_db overridden to use the test engine.
    Each request gets its own session but shares the same underlying
    connection via StaticPool.
    """
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


# ── Project + User fixtures ───────────────────────────────────────────────────

@pytest_asyncio.fixture
async def project(db) -> Project:
    p = Project(id=uuid.uuid4(), code=f"SITE-{uuid.uuid4().hex[:6]}", name="Test Site")
    db.add(p)
    await db.commit()
    await db.refresh(p)
    return p


async def _user(db, email: str, role: str) -> User:
    u = User(
        id=uuid.uuid4(),
        email=email,
        full_name=role.title(),
        hashed_password=hash_password("testpass123"),
        role=role,
        is_active=True,
        created_at=datetime.now(timezone.utc),
    )
    db.add(u)
    await db.commit()
    await db.refresh(u)
    return u


@pytest_asyncio.fixture
async def admin_user(db) -> User:
    return await _user(db, "admin@example.com", "admin")


@pytest_asyncio.fixture
async def manager_user(db) -> User:
    return await _user(db, "manager@example.com", "manager")


@pytest_asyncio.fixture
async def supervisor_user(db) -> User:
    return await _user(db, "supervisor@example.com", "supervisor")


@pytest_asyncio.fixture
def admin_token(admin_user) -> str:
    return create_access_token(admin_user.id, "admin")


@pytest_asyncio.fixture
def manager_token(manager_user) -> str:
    return create_access_token(manager_user.id, "manager")


@pytest_asyncio.fixture
def supervisor_token(supervisor_user) -> str:
    return create_access_token(supervisor_user.id, "supervisor")


# ── Workers ───────────────────────────────────────────────────────────────────

async def make_contractor(
    db,
    employee_number: str,
    hourly_rate: str | None = "50",
    professional_rate: str = "0",
    phone_allowance: str = "0",
    accommodation_cost: str = "0",
    follower_count: int = 0,
    effective_date: date = date(2026, 1, 1),
) -> DailyContractor:
    c = DailyContractor(id=uuid.uuid4(), employee_number=employee_number, name=f"Worker {employee_number}")
    db.add(c)
    await db.flush()
    if hourly_rate is not None:
        db.add(IncomeProfile(
            contractor_id=c.id,
            hourly_rate=Decimal(hourly_rate),
            professional_rate=Decimal(professional_rate),
            phone_allowance=Decimal(phone_allowance),
            effective_date=effective_date,
        ))
        db.add(ExpenseProfile(
            contractor_id=c.id,
            accommodation_cost=Decimal(accommodation_cost),
            follower_count=follower_count,
            effective_date=effective_date,
        ))
    await db.commit()
    return c


@pytest_asyncio.fixture
async def contractor(db) -> DailyContractor:
    return await make_contractor(db, "1001")


async def add_report(
    db,
    project,
    contractor,
    work_date: date,
    start: str | None = "08:00",
    end: str | None = "17:00",
    work_type: str = "regular",
    manual_hours: str | None = None,
) -> DailyReport:
    def parse(value):
        if value is None:
            return None
        h, m = map(int, value.split(":"))
        return time(h, m)

    r = DailyReport(
        project_id=project.id,
        contractor_id=contractor.id,
        work_date=work_date,
        start_time=parse(start),
        end_time=parse(end),
        work_type=work_type,
        manual_hours=Decimal(manual_hours) if manual_hours is not None else None,
    )
    db.add(r)
    await db.commit()
    return r


async def add_scans(db, project, contractor, *stamps: datetime, scan_types: list[str] | None = None) -> list[ScanEvent]:
    """Stores scans the way the importer does; types are classified unless given."""
    events = []
    for i, stamp in enumerate(stamps):
        scan_type = scan_types[i] if scan_types else classify_scan(stamp)
        late = late_minutes_for(stamp, scan_type)
        e = ScanEvent(
            project_id=project.id,
            contractor_id=contractor.id,
            employee_number=contractor.employee_number,
            scan_datetime=stamp,
            rounded_time=time_normalizer.floor_datetime(stamp),
            scan_type=scan_type,
            work_date=work_date_for(stamp),
            is_late=late > 0,
            late_minutes=late,
            import_batch_id="batch-test",
        )
        db.add(e)
        events.append(e)
    await db.commit()
    return events


async def add_period(db, project, start: date = PERIOD_START, status: str = "draft") -> WagePeriod:
    p = WagePeriod(
        project_id=project.id,
        period_code=period_code_for(start),
        start_date=start,
        end_date=start + timedelta(days=PERIOD_SPAN_DAYS),
        status=status,
    )
    db.add(p)
    await db.commit()
    return p


def at(day: date, hhmm: str) -> datetime:
    h, m = map(int, hhmm.split(":"))
    return datetime.combine(day, time(h, m))


# ── Helper ────────────────────────────────────────────────────────────────────

def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
