import calendar
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from app.core.exceptions import InvalidInputError


def money(x) -> Decimal:
    """Always return 2-decimal Decimal with HALF_UP rounding."""
    if x is None:
        x = 0
    if not isinstance(x, Decimal):
        x = Decimal(str(x))
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def add_months(start: date, months: int) -> date:
    """
    Calendar-month arithmetic:
      same day-of-month, clamped to the last day of a shorter month.

    Example:
      2024-01-31 + 1 => 2024-02-29
      2024-01-31 + 2 => 2024-03-31
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


@dataclass(frozen=True)
class ScheduledInstallment:
    installment_no: int
    due_date: date
    amount: Decimal
    status: str = "pending"


def validate_lease_terms(lease_start_date, monthly_installment, lease_duration):
    """
    Returns (start_date, installment, duration) normalized,
    or raises InvalidInputError.
    """
    if isinstance(lease_duration, bool) or not isinstance(lease_duration, int):
        raise InvalidInputError("lease_duration must be an integer")
    if lease_duration < 1:
        raise InvalidInputError("lease_duration must be >= 1")

    try:
        installment = money(monthly_installment)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidInputError("monthly_installment must be a number")
    if not installment.is_finite() or installment < 0:
        raise InvalidInputError("monthly_installment must be >= 0")

    if isinstance(lease_start_date, datetime):
        lease_start_date = lease_start_date.date()
    if not isinstance(lease_start_date, date):
        raise InvalidInputError("lease_start_date must be a calendar date")

    return lease_start_date, installment, lease_duration


def generate_schedule(lease_start_date, monthly_installment, lease_duration):
    """
    MONTHLY SCHEDULE:
      installment i (0-based) is due on lease_start_date + i calendar months,
      amount = monthly_installment, status = pending.

    Example:
      2024-01-15, 500, 3 => 2024-01-15, 2024-02-15, 2024-03-15 (500 each)
    """
    start, installment, duration = validate_lease_terms(
        lease_start_date, monthly_installment, lease_duration
    )

    return [
        ScheduledInstallment(
            installment_no=i + 1,
            due_date=add_months(start, i),
            amount=installment,
        )
        for i in range(duration)
    ]
