from dcpayroll.models.project import Project
from dcpayroll.models.user import User
from dcpayroll.models.contractor import DailyContractor, IncomeProfile, ExpenseProfile
from dcpayroll.models.daily_report import DailyReport
from dcpayroll.models.scan import ScanEvent, ScanImportBatch
from dcpayroll.models.discrepancy import Discrepancy
from dcpayroll.models.wage_period import WagePeriod, DCWageSummary, AdditionalIncome, AdditionalExpense
from dcpayroll.models.late_record import LateRecord
from dcpayroll.models.audit import AuditLog

__all__ = [
    "Project",
    "User",
    "DailyContractor",
    "IncomeProfile",
    "ExpenseProfile",
    "DailyReport",
    "ScanEvent",
    "ScanImportBatch",
    "Discrepancy",
    "WagePeriod",
    "DCWageSummary",
    "AdditionalIncome",
    "AdditionalExpense",
    "LateRecord",
    "AuditLog",
]
