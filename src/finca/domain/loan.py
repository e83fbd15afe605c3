"""French (constant payment) loan amortization."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from dateutil.relativedelta import relativedelta

from finca.domain.errors import ValidationError

CENT = Decimal("0.01")


@dataclass(frozen=True)
class AmortizationRow:
    """One monthly instalment of a loan."""

    period: int
    date: Optional[date]
    payment: Decimal
    interest: Decimal
    principal: Decimal
    balance: Decimal


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def french_payment(principal: Decimal, annual_rate: Decimal, months: int) -> Decimal:
    """Monthly payment of a French loan, rounded to cents.

    Args:
        principal: Outstanding principal
        annual_rate: Nominal annual rate as a fraction (0.0325 for 3.25%)
        months: Number of monthly payments

    Returns:
        Payment; principal / months when the rate is zero, 0 for an empty loan
    """
    principal = Decimal(principal)
    annual_rate = Decimal(annual_rate)
    if principal <= 0 or months <= 0:
        return Decimal("0.00")
    if annual_rate == 0:
        return _cents(principal / months)

    monthly_rate = annual_rate / 12
    payment = principal * monthly_rate / (1 - (1 + monthly_rate) ** -months)
    return _cents(payment)


def amortization_schedule(
    principal: Decimal,
    annual_rate: Decimal,
    months: int,
    start_date: Optional[date] = None,
) -> list[AmortizationRow]:
    """Month by month schedule of a French loan.

    Interest is rounded to cents every period. The last row pays whatever
    principal is left so the final balance is exactly zero.

    Args:
        principal: Loan principal
        annual_rate: Nominal annual rate as a fraction
        months: Number of monthly payments
        start_date: Date of the first payment; rows carry no date when None

    Raises:
        ValidationError: If principal, months or rate are out of range
    """
    principal = Decimal(principal)
    annual_rate = Decimal(annual_rate)
    if principal <= 0:
        raise ValidationError("Principal must be greater than 0")
    if months <= 0:
        raise ValidationError("Months must be greater than 0")
    if annual_rate < 0:
        raise ValidationError("Rate cannot be negative")

    payment = french_payment(principal, annual_rate, months)
    monthly_rate = annual_rate / 12
    balance = _cents(principal)
    rows = []
    for period in range(1, months + 1):
        interest = _cents(balance * monthly_rate)
        if period == months:
            amortized = balance
            row_payment = balance + interest
        else:
            amortized = min(payment - interest, balance)
            row_payment = amortized + interest
        balance = balance - amortized
        rows.append(
            AmortizationRow(
                period=period,
                date=start_date + relativedelta(months=period - 1) if start_date else None,
                payment=row_payment,
                interest=interest,
                principal=amortized,
                balance=balance,
            )
        )
    return rows
