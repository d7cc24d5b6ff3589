import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dcpayroll.core.config import settings
from dcpayroll.core.database import create_tables
from dcpayroll.core.exceptions import PayrollError
from dcpayroll.api.v1.auth import router as auth_router
from dcpayroll.api.v1.daily_reports import router as daily_reports_router
from dcpayroll.api.v1.scan_data import router as scan_data_router
from dcpayroll.api.v1.discrepancies import router as discrepancies_router
from dcpayroll.api.v1.late_records import router as late_records_router
from dcpayroll.api.v1.rate_cards import router as rate_cards_router
from dcpayroll.api.v1.wage_periods import router as wage_periods_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Create tables on startup (SQLite / local development)
    await create_tables()
    yield


app = FastAPI(
    title="DC Payroll API",
    description="Daily report and scan reconciliation for daily-contract wages",
    version="1.0.0",
    lifespan=lifespan,
    # Swagger UI only in development – set DEBUG=false in production
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PayrollError)
async def payroll_error_handler(request: Request, exc: PayrollError):
    if exc.status_code >= 409:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


API_PREFIX = "/api/v1"

app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(daily_reports_router, prefix=API_PREFIX)
app.include_router(scan_data_router, prefix=API_PREFIX)
app.include_router(discrepancies_router, prefix=API_PREFIX)
app.include_router(late_records_router, prefix=API_PREFIX)
app.include_router(rate_cards_router, prefix=API_PREFIX)
app.include_router(wage_periods_router, prefix=API_PREFIX)


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "DC Payroll API", "version": "1.0.0"}
