"""
Readers for scan terminal exports.

.dat   one scan per line: employee number, then the timestamp (comma, tab or
       whitespace separated). Extra tokens are kept; a token naming a scan
       type is used as the explicit tag. Lines starting with # or // are
       comments.
.xlsx  first sheet, first row is the header. Required columns are matched
       case- and separator-insensitively (EmployeeNumber, Date/DateTime);
       ScanType is optional.

Readers only split rows into raw fields. Timestamp parsing and the other
row checks happen in validate_row so they can run in worker threads.
"""
import io
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from dateutil import parser as date_parser
from openpyxl import load_workbook
from openpyxl.utils.datetime import from_excel

from dcpayroll.core.exceptions import ImportFileError
from dcpayroll.services import time_normalizer
from dcpayroll.services.scan_rules import classify_scan, late_minutes_for, normalize_scan_type, work_date_for

DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d-%m-%Y %H:%M:%S",
    "%d-%m-%Y %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%Y%m%d%H%M%S",
    "%d%m%Y%H%M%S",
    "%d%m%Y%H%M",
    "%Y%m%d%H%M",
)

HEADER_ALIASES = {
    "employee": ("employee", "employeenumber", "employeeid", "empid", "empno", "employeeno"),
    "datetime": ("datetime", "date", "scantime", "timestamp", "scandatetime", "time"),
    "scan_type": ("scantype", "type", "scanbehavior", "behavior"),
}

_DATE_TOKEN = re.compile(r"^\d{4}-\d{2}-\d{2}$|^\d{2}/\d{2}/\d{4}$|^\d{4}/\d{2}/\d{2}$|^\d{2}-\d{2}-\d{4}$")
_TIME_TOKEN = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?$")

# Scans further in the future than this are rejected
FUTURE_TOLERANCE = timedelta(seconds=60)


@dataclass
class RawRow:
    row: int
    employee_number: str | None
    timestamp: object
    scan_type: object = None
    raw: dict = field(default_factory=dict)
    problem: str | None = None


@dataclass
class ParsedFile:
    file_type: str
    rows: list[RawRow]
    warnings: list[str] = field(default_factory=list)


@dataclass
class ValidRow:
    row: int
    employee_number: str
    scan_datetime: datetime
    rounded_time: datetime
    scan_type: str
    work_date: date
    late_minutes: int
    raw: dict


def normalize_header(value) -> str:
    if not isinstance(value, str):
        return ""
    return re.sub(r"[\s_\-]", "", value.strip().lower())


def _looks_like_header(value: str) -> bool:
    normalized = normalize_header(value)
    return bool(normalized) and (
        normalized in HEADER_ALIASES["employee"] or normalized in HEADER_ALIASES["datetime"]
    )


def detect_file_type(filename: str) -> str:
    lower = (filename or "").lower()
    if lower.endswith(".dat") or lower.endswith(".txt"):
        return "dat"
    if lower.endswith(".xlsx"):
        return "xlsx"
    raise ImportFileError(f"Unsupported file type: {filename!r} (expected .dat or .xlsx)")


# ── Timestamps ───────────────────────────────────────────────────────────────

def parse_timestamp(value) -> datetime:
    """Parse a scan timestamp; raises ValueError when it cannot be read."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            if value > 10_000_000_000:
                return datetime.fromtimestamp(value / 1000)
            if value > 100_000:
                return datetime.fromtimestamp(value)
            return from_excel(value)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"Scan time {value!r} is out of range") from e
    if not isinstance(value, str):
        raise ValueError(f"Cannot read scan time {value!r}")

    text = " ".join(value.split())
    if not text:
        raise ValueError("Scan time is empty")
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return date_parser.parse(text, dayfirst=True).replace(tzinfo=None)
    except (ValueError, OverflowError) as e:
        raise ValueError(f'Cannot read scan time "{text}"') from e


def validate_row(raw: RawRow, now: datetime) -> ValidRow:
    """Check one row and derive its scan fields. Raises ValueError with the row error."""
    if raw.problem:
        raise ValueError(raw.problem)
    if not raw.employee_number:
        raise ValueError("Employee number is empty")

    scan_datetime = parse_timestamp(raw.timestamp)
    if scan_datetime > now + FUTURE_TOLERANCE:
        raise ValueError(f"Scan time {scan_datetime.isoformat(sep=' ')} is in the future")

    scan_type = None
    if raw.scan_type not in (None, ""):
        scan_type = normalize_scan_type(raw.scan_type)
        if scan_type is None:
            raise ValueError(f"Unknown scan type {raw.scan_type!r}")
    if scan_type is None:
        scan_type = classify_scan(scan_datetime)

    return ValidRow(
        row=raw.row,
        employee_number=raw.employee_number,
        scan_datetime=scan_datetime,
        rounded_time=time_normalizer.floor_datetime(scan_datetime),
        scan_type=scan_type,
        work_date=work_date_for(scan_datetime),
        late_minutes=late_minutes_for(scan_datetime, scan_type),
        raw=raw.raw,
    )


# ── .dat ─────────────────────────────────────────────────────────────────────

def _split_dat_line(line: str) -> list[str]:
    delimiter = "," if "," in line else "\t" if "\t" in line else None
    segments = line.split(delimiter) if delimiter else [line]
    return [token.strip() for segment in segments for token in segment.split() if token.strip()]


def parse_dat(content: bytes) -> ParsedFile:
    text = content.decode("utf-8-sig", errors="replace")
    parsed = ParsedFile(file_type="dat", rows=[])

    for index, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#") or line.startswith("//"):
            continue

        tokens = _split_dat_line(line)
        if len(tokens) >= 1 and _looks_like_header(tokens[0]):
            parsed.warnings.append(f"Row {index}: header line skipped")
            continue
        if len(tokens) < 2:
            parsed.rows.append(RawRow(
                row=index,
                employee_number=tokens[0] if tokens else None,
                timestamp=None,
                raw={"line": raw_line},
                problem="Malformed line: employee number and scan time are required",
            ))
            continue

        employee, rest = tokens[0], tokens[1:]
        if len(rest) >= 2 and _DATE_TOKEN.match(rest[0]) and _TIME_TOKEN.match(rest[1]):
            timestamp, extras = f"{rest[0]} {rest[1]}", rest[2:]
        else:
            timestamp, extras = rest[0], rest[1:]

        scan_type = next(
            (t for t in extras if not t.isdigit() and normalize_scan_type(t) is not None),
            None,
        )
        raw = {"line": raw_line}
        if extras:
            raw["extras"] = extras
        parsed.rows.append(RawRow(
            row=index, employee_number=employee, timestamp=timestamp, scan_type=scan_type, raw=raw,
        ))
    return parsed


# ── .xlsx ────────────────────────────────────────────────────────────────────

def _find_column(headers: list[str], kind: str) -> int | None:
    for alias in HEADER_ALIASES[kind]:
        if alias in headers:
            return headers.index(alias)
    return None


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value == int(value):
        return str(int(value))
    return str(value).strip()


def parse_xlsx(content: bytes) -> ParsedFile:
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise ImportFileError(f"Cannot open spreadsheet: {e}") from e

    try:
        if not wb.sheetnames:
            raise ImportFileError("Spreadsheet has no sheets")
        rows = wb[wb.sheetnames[0]].iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            raise ImportFileError("Spreadsheet is empty")

        headers = [normalize_header(h) for h in header]
        employee_col = _find_column(headers, "employee")
        datetime_col = _find_column(headers, "datetime")
        type_col = _find_column(headers, "scan_type")
        if employee_col is None or datetime_col is None:
            raise ImportFileError("Spreadsheet needs EmployeeNumber and Date/DateTime columns")
        # Separate Date and Time columns are combined
        time_col = headers.index("time") if "time" in headers and headers[datetime_col] == "date" else None

        parsed = ParsedFile(file_type="xlsx", rows=[])
        for index, values in enumerate(rows, start=2):
            def cell(col):
                return values[col] if col is not None and col < len(values) else None

            employee = _cell_text(cell(employee_col))
            timestamp = cell(datetime_col)
            if not employee and timestamp in (None, ""):
                continue
            if time_col is not None and cell(time_col) not in (None, ""):
                timestamp = _combine(timestamp, cell(time_col))
            parsed.rows.append(RawRow(
                row=index,
                employee_number=employee or None,
                timestamp=timestamp,
                scan_type=cell(type_col),
                raw={
                    "employee_number": _cell_text(cell(employee_col)),
                    "timestamp": _cell_text(cell(datetime_col)),
                },
            ))
        return parsed
    finally:
        wb.close()


def _combine(day, clock):
    if isinstance(day, datetime):
        day = day.date()
    if isinstance(clock, datetime):
        clock = clock.time()
    if isinstance(day, date) and isinstance(clock, time):
        return datetime.combine(day, clock)
    return f"{_cell_text(day)} {_cell_text(clock)}"


def parse_file(filename: str, content: bytes) -> ParsedFile:
    file_type = detect_file_type(filename)
    if file_type == "xlsx":
        return parse_xlsx(content)
    return parse_dat(content)
