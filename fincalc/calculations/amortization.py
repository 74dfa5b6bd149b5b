"""
Loan Amortization Schedules

Builds month-by-month amortization schedules from the level payment computed
by a calculation kernel, so schedules agree with ``loan_payment`` on either
backend.
"""

import math
from typing import List, Dict, Optional
from datetime import date
from dateutil.relativedelta import relativedelta

from fincalc.calculations.kernel import InvalidInputError, Kernel


def generate_amortization_schedule(
    kernel: Kernel,
    principal: float,
    annual_rate: float,
    years: float,
    start_date: Optional[date] = None,
) -> List[Dict]:
    """
    Generate a full amortization schedule.

    Args:
        kernel: Calculation backend used for the level payment
        principal: Loan principal amount
        annual_rate: Annual interest rate as decimal
        years: Loan term in years
        start_date: Date of first payment

    Returns:
        List of amortization rows

    Raises:
        InvalidInputError: If the term rounds to fewer than one month
    """
    monthly_rate = annual_rate / 12
    if not math.isfinite(years) or round(years * 12) < 1:
        raise InvalidInputError(
            f"years must cover at least one whole month, got {years}"
        )
    total_months = int(round(years * 12))
    # The level payment must amortize over the months actually scheduled
    payment = kernel.loan_payment(principal, monthly_rate, total_months)

    if start_date is None:
        start_date = date.today()

    schedule = []
    balance = float(principal)

    for period in range(1, total_months + 1):
        period_date = start_date + relativedelta(months=period - 1)

        interest = balance * monthly_rate

        if period == total_months:
            # Final payment clears any rounding residue
            principal_pmt = balance
        else:
            principal_pmt = min(payment - interest, balance)

        ending_balance = balance - principal_pmt

        schedule.append(
            {
                "period": period,
                "date": period_date.isoformat(),
                "beginning_balance": round(balance, 2),
                "payment": round(principal_pmt + interest, 2),
                "interest": round(interest, 2),
                "principal": round(principal_pmt, 2),
                "ending_balance": round(max(0, ending_balance), 2),
            }
        )

        balance = max(0.0, ending_balance)

        if balance == 0:
            break

    return schedule


def calculate_total_interest(schedule: List[Dict]) -> float:
    """Calculate total interest paid over loan term."""
    return sum(row["interest"] for row in schedule)


def calculate_total_principal(schedule: List[Dict]) -> float:
    """Calculate total principal repaid over loan term."""
    return sum(row["principal"] for row in schedule)
