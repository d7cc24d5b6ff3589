from dcpayroll.schemas.auth import Token, LoginRequest, RefreshRequest, UserOut
from dcpayroll.schemas.daily_report import DailyReportCreate, DailyReportBulkCreate, DailyReportUpdate, DailyReportOut
from dcpayroll.schemas.scan import ImportSummary, ImportRowError, ScanImportBatchOut, ScanEventOut, ScanSessionOut
from dcpayroll.schemas.discrepancy import DetectRequest, DetectionSummary, ResolutionAction, DiscrepancyOut
from dcpayroll.schemas.rate_card import IncomeProfileCreate, IncomeProfileOut, ExpenseProfileCreate, ExpenseProfileOut
from dcpayroll.schemas.late_record import LateSyncRequest, LateSyncSummary, LateRecordOut
from dcpayroll.schemas.wage_period import (
    WagePeriodCreate, WagePeriodOut, WagePeriodDetail, DCWageSummaryOut, AdditionalItemCreate, AdditionalItemOut,
)

__all__ = [
    "Token", "LoginRequest", "RefreshRequest", "UserOut",
    "DailyReportCreate", "DailyReportBulkCreate", "DailyReportUpdate", "DailyReportOut",
    "ImportSummary", "ImportRowError", "ScanImportBatchOut", "ScanEventOut", "ScanSessionOut",
    "DetectRequest", "DetectionSummary", "ResolutionAction", "DiscrepancyOut",
    "IncomeProfileCreate", "IncomeProfileOut", "ExpenseProfileCreate", "ExpenseProfileOut",
    "LateSyncRequest", "LateSyncSummary", "LateRecordOut",
    "WagePeriodCreate", "WagePeriodOut", "WagePeriodDetail", "DCWageSummaryOut",
    "AdditionalItemCreate", "AdditionalItemOut",
]
