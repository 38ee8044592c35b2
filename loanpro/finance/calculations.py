"""
Loan calculations for LoanPro
=============================
Pure functions, no I/O and no hidden state:
  - Installment amounts for flat and reducing-balance products
  - Repayment schedules and totals
  - Early-repayment payoff quotes
  - Suggested allocation of a payment between principal, interest and fees
  - Simple daily interest accrual between repayments

Amounts are plain floats; rounding is left to the caller except in schedules.
"""

import math
from calendar import monthrange
from datetime import date, timedelta
from typing import Dict, List, Optional

from loanpro.errors import LoanCalculationError


INSTALLMENTS_PER_MONTH = {
    "weekly": 4,
    "biweekly": 2,
    "monthly": 1,
}

PERIOD_DAYS = {
    "weekly": 7,
    "biweekly": 14,
}

FLAT = "flat"
REDUCING = "reducing"

INTEREST_FIRST = "interest_first"
PRINCIPAL_FIRST = "principal_first"
ALLOCATION_RULES = (INTEREST_FIRST, PRINCIPAL_FIRST)

DEFAULT_INTEREST_CAP = 500.0
DEFAULT_INTEREST_SHARE = 0.2
EARLY_REPAYMENT_DISCOUNT = 0.05
DAYS_PER_MONTH = 30


# ─── Installments ────────────────────────────────────────────────────────────

def installments_per_month(frequency: str) -> int:
    """Unknown frequencies are treated as monthly."""
    return INSTALLMENTS_PER_MONTH.get(frequency, 1)


def _interest_kind(interest_type: str) -> str:
    kind = str(interest_type).strip().lower()
    if kind not in (FLAT, REDUCING):
        raise LoanCalculationError(f"Unknown interest type: {interest_type}")
    return kind


def calculate_installment(principal: Optional[float], term: Optional[int],
                          frequency: Optional[str], interest_type: Optional[str],
                          annual_rate: float) -> float:
    """
    Installment amount per repayment period.

    Flat:      (P + P × rate × term/12) / n
    Reducing:  P × r(1+r)^n / ((1+r)^n − 1), r = rate / 12

    ``n`` is ``term × installments_per_month(frequency)`` and ``annual_rate``
    is a percentage (12.5 for 12.5 %). Returns 0 while any input is missing.
    """
    if principal is None or term is None or not frequency or not interest_type:
        return 0.0
    if principal < 0 or annual_rate < 0:
        raise LoanCalculationError("Principal and interest rate must not be negative")

    total_installments = int(term) * installments_per_month(frequency)
    if total_installments <= 0:
        raise LoanCalculationError("Loan term must give at least one installment")

    rate = annual_rate / 100
    if _interest_kind(interest_type) == FLAT:
        total_interest = principal * rate * (term / 12)
        return (principal + total_interest) / total_installments

    monthly_rate = rate / 12
    if monthly_rate == 0:
        return principal / total_installments
    growth = math.pow(1 + monthly_rate, total_installments)
    return principal * (monthly_rate * growth) / (growth - 1)


def total_repayable(principal, term, frequency, interest_type, annual_rate) -> float:
    installment = calculate_installment(principal, term, frequency, interest_type, annual_rate)
    return installment * int(term or 0) * installments_per_month(frequency)


def total_interest(principal, term, frequency, interest_type, annual_rate) -> float:
    if principal is None:
        return 0.0
    return total_repayable(principal, term, frequency, interest_type, annual_rate) - principal


def add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, monthrange(year, month)[1])
    return date(year, month, day)


def due_date(start: date, frequency: str, period: int) -> date:
    """Due date of the ``period``-th installment (1-based)."""
    if frequency in PERIOD_DAYS:
        return start + timedelta(days=PERIOD_DAYS[frequency] * period)
    return add_months(start, period)


def generate_schedule(principal: float, term: int, frequency: str,
                      interest_type: str, annual_rate: float,
                      start_date: Optional[date] = None) -> List[Dict]:
    """
    Period-by-period repayment schedule.

    Flat loans spread interest evenly over every installment. Reducing loans
    charge the per-period rate on the running balance; the final row absorbs
    any rounding so the balance ends at zero.
    """
    installment = calculate_installment(principal, term, frequency, interest_type, annual_rate)
    if installment == 0:
        return []

    start_date = start_date or date.today()
    n = int(term) * installments_per_month(frequency)
    rate = annual_rate / 100
    flat = _interest_kind(interest_type) == FLAT
    balance = float(principal)
    schedule = []

    for period in range(1, n + 1):
        if flat:
            interest_component = principal * rate * (term / 12) / n
            principal_component = principal / n
        else:
            interest_component = balance * rate / 12
            principal_component = installment - interest_component
        if period == n:
            principal_component = balance
        balance = max(balance - principal_component, 0.0)

        schedule.append({
            "period": period,
            "due_date": due_date(start_date, frequency, period).isoformat(),
            "installment": round(installment, 2),
            "principal": round(principal_component, 2),
            "interest": round(interest_component, 2),
            "balance": round(balance, 2),
        })

    return schedule


def accrued_interest(balance: float, annual_rate: float, days: int) -> float:
    """Simple daily interest on ``balance`` for ``days`` days (365-day year)."""
    if days <= 0 or annual_rate <= 0:
        return 0.0
    return balance * (annual_rate / 100) * (days / 365)


# ─── Early repayment ─────────────────────────────────────────────────────────

def months_elapsed(start_date: date, as_of: date) -> int:
    """Whole 30-day months between ``start_date`` and ``as_of``."""
    return math.floor((as_of - start_date).days / DAYS_PER_MONTH)


def calculate_early_repayment(loan, as_of: Optional[date] = None,
                              discount_rate: float = EARLY_REPAYMENT_DISCOUNT) -> Dict[str, float]:
    """
    Payoff quote for settling ``loan`` early.

    The remaining principal is the loan's outstanding balance. A discount
    applies only while strictly fewer than half of the term's months have
    elapsed; from the midpoint on the payoff is the full balance.
    """
    as_of = as_of or date.today()
    remaining_principal = float(loan.outstanding)
    elapsed = months_elapsed(loan.start_date, as_of)
    rate = discount_rate if elapsed < loan.term / 2 else 0.0
    discount = remaining_principal * rate
    return {
        "remaining_principal": remaining_principal,
        "discount": discount,
        "total_payoff": remaining_principal - discount,
    }


# ─── Payment allocation ──────────────────────────────────────────────────────

def calculate_suggested_allocation(amount: float, rule: str = INTEREST_FIRST,
                                   interest_cap: float = DEFAULT_INTEREST_CAP,
                                   interest_share: float = DEFAULT_INTEREST_SHARE) -> Dict[str, float]:
    """
    Split a payment into principal, interest and fees.

    interest_first:  interest = min(share × amount, cap), principal = rest
    principal_first: principal = max(amount − cap, (1 − share) × amount), interest = rest
    """
    if amount < 0:
        raise LoanCalculationError("Payment amount must not be negative")

    if rule == INTEREST_FIRST:
        interest = min(amount * interest_share, interest_cap)
        principal = amount - interest
    elif rule == PRINCIPAL_FIRST:
        principal = max(amount - interest_cap, amount * (1 - interest_share))
        interest = amount - principal
    else:
        raise LoanCalculationError(f"Unknown allocation rule: {rule}")

    return {"principal": principal, "interest": interest, "fees": 0.0}


def calculate_payment_breakdown(amount: float, **kwargs) -> Dict[str, float]:
    """Breakdown shown to borrowers before they pay; always interest first."""
    return calculate_suggested_allocation(amount, INTEREST_FIRST, **kwargs)
