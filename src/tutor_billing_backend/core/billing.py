'''
Pure billing helpers used by the report builder: month windows, the
enrollment window policy, per-enrollment financial figures, and the
labels/sorting of report lines.
'''
import calendar
import re
import unicodedata
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Iterable, Optional, Sequence, TypeVar

from ..common.exceptions import InvalidMonthError
from ..database.db_enums import EnrollmentType, EnrollmentWindowPolicy

MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")
ZERO = Decimal("0")
UNKNOWN_STUDENT = "Unknown Student"
HOURS_DECIMALS = 2

PLAN_PREFIXES = {
    EnrollmentType.SINGLE.value: 'S',
    EnrollmentType.COUPLE.value: 'C',
    EnrollmentType.GROUP.value: 'G',
}

# --- 1. Month Windows ---

@dataclass(frozen=True)
class MonthWindow:
    month: str
    start: date
    end: date

    @property
    def start_str(self) -> str:
        return self.start.isoformat()

    @property
    def end_str(self) -> str:
        return self.end.isoformat()


def parse_month(month: str) -> MonthWindow:
    """
    Resolves a 'YYYY-MM' string into the first and last calendar day of that month.
    Raises InvalidMonthError for anything else.
    """
    if not isinstance(month, str) or not MONTH_PATTERN.match(month):
        raise InvalidMonthError(f"Invalid month '{month}'. Must be YYYY-MM (e.g. '2025-07').")
    year, month_num = (int(part) for part in month.split('-'))
    if not 1 <= month_num <= 12 or year < 1:
        raise InvalidMonthError(f"Invalid month '{month}'. Month must be between 01 and 12.")
    last_day = calendar.monthrange(year, month_num)[1]
    return MonthWindow(month=month, start=date(year, month_num, 1), end=date(year, month_num, last_day))


def enrollment_in_window(
    start_date: date,
    end_date: date,
    window: MonthWindow,
    policy: EnrollmentWindowPolicy = EnrollmentWindowPolicy.BOUNDARY
) -> bool:
    """
    Decides whether an enrollment belongs to a report month.
    BOUNDARY keeps only enrollments that start or end inside the month;
    OVERLAP keeps every enrollment active at some point of the month.
    """
    if policy == EnrollmentWindowPolicy.OVERLAP:
        return start_date <= window.end and end_date >= window.start
    return (
        window.start <= start_date <= window.end
        or window.start <= end_date <= window.end
    )

# --- 2. Financial Figures ---

def to_amount(value: Any) -> Optional[Decimal]:
    """Converts a stored price/rate to Decimal. Returns None for missing or non-numeric values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


def round_money(value: Decimal, places: int = 2) -> Decimal:
    quantum = Decimal(1).scaleb(-places)
    return Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineFigures:
    """Unrounded financial figures of one enrollment for one month."""
    hours_seen: Decimal
    total_normal_classes: int
    price_per_hour: Decimal
    pay_rate: Decimal
    amount: Decimal
    old_balance: Decimal
    total: Decimal
    payment: Decimal
    balance_remaining: Decimal


def compute_line_figures(
    enrollment_type: str,
    available_balance: Decimal,
    total_amount: Decimal,
    pricing: Optional[dict],
    rates: Optional[dict],
    hours_seen: Decimal,
    total_normal_classes: int
) -> LineFigures:
    """
    Computes the financial figures of a report line. No I/O, no state.

    - price per hour: the plan price for the enrollment type spread over every
      normal class the enrollment ever had; 0 when either is missing.
    - pay rate: the professor type's rate for the enrollment type; 0 when missing.
    - if the prepaid balance covers the amount due, the amount is charged and
      the rest is carried as old balance; otherwise nothing is charged and the
      whole balance is carried.
    """
    price = to_amount((pricing or {}).get(enrollment_type))
    if price is not None and total_normal_classes > 0:
        price_per_hour = price / Decimal(total_normal_classes)
    else:
        price_per_hour = ZERO

    rate = to_amount((rates or {}).get(enrollment_type))
    pay_rate = rate if rate is not None else ZERO

    available = to_amount(available_balance) or ZERO
    due = to_amount(total_amount) or ZERO
    if available >= due:
        amount = due
        old_balance = available - due
    else:
        amount = ZERO
        old_balance = available

    hours = to_amount(hours_seen) or ZERO
    total = hours * price_per_hour
    payment = pay_rate * hours
    balance_remaining = (amount + old_balance) - total

    return LineFigures(
        hours_seen=hours,
        total_normal_classes=total_normal_classes,
        price_per_hour=price_per_hour,
        pay_rate=pay_rate,
        amount=amount,
        old_balance=old_balance,
        total=total,
        payment=payment,
        balance_remaining=balance_remaining,
    )

# --- 3. Labels & Sorting ---

def collation_key(text: Optional[str]) -> str:
    """
    Case- and accent-insensitive sort key ('Á' sorts with 'a'),
    matching a base-sensitivity locale comparison.
    """
    decomposed = unicodedata.normalize('NFKD', (text or '').strip())
    stripped = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def plan_label(enrollment_type: str, plan_name: Optional[str]) -> str:
    prefix = PLAN_PREFIXES.get(enrollment_type, 'U')
    return f"{prefix} - {plan_name or 'N/A'}"


def student_label(alias: Optional[str], student_names: Iterable[Optional[str]]) -> str:
    """The enrollment alias when set and not blank, otherwise the alphabetised student names joined by ' & '."""
    if alias and alias.strip():
        return alias.strip()
    names = sorted((name or UNKNOWN_STUDENT for name in student_names), key=collation_key)
    return ' & '.join(names) if names else UNKNOWN_STUDENT


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        suffix = 'th'
    else:
        suffix = {1: 'st', 2: 'nd', 3: 'rd'}.get(day % 10, 'th')
    return f"{day}{suffix}"


def _short_date(value: date) -> str:
    return f"{value:%b} {_ordinal(value.day)}"


def period_label(window: MonthWindow) -> str:
    """e.g. 'Jul 1st - Jul 31st'"""
    return f"{_short_date(window.start)} - {_short_date(window.end)}"


def date_range_label(window: MonthWindow) -> str:
    """e.g. 'Jul 1st 2025 - Jul 31st 2025'"""
    return f"{_short_date(window.start)} {window.start.year} - {_short_date(window.end)} {window.end.year}"


T = TypeVar('T')

def sort_report_lines(lines: Sequence[T]) -> list[T]:
    """Orders lines by plan label, then student label. Ties keep their input order."""
    return sorted(lines, key=lambda line: (collation_key(line.plan), collation_key(line.student_name)))
