"""
Tests for loanpro.finance.calculations
======================================
Installments, schedules, early repayment quotes and payment allocation.
"""

import math
from datetime import date

import pytest

from loanpro.errors import LoanCalculationError
from loanpro.models import Loan
from loanpro.finance.calculations import (
    calculate_installment, total_repayable, total_interest, installments_per_month,
    generate_schedule, add_months, accrued_interest, months_elapsed,
    calculate_early_repayment, calculate_suggested_allocation, calculate_payment_breakdown,
    INTEREST_FIRST, PRINCIPAL_FIRST,
)


def _loan(outstanding=10000, term=12, start=date(2024, 1, 1)):
    return Loan(id="LN0001", borrower_id="B0001", principal=20000, outstanding=outstanding,
                term=term, interest_rate=12.5, start_date=start)


def test_flat_installment():
    installment = calculate_installment(25000, 12, "monthly", "Flat", 12.5)
    assert installment == pytest.approx((25000 + 25000 * 0.125) / 12)
    assert round(installment, 2) == 2343.75


def test_reducing_installment_matches_annuity_formula():
    r = 0.125 / 12
    expected = 25000 * r * (1 + r) ** 12 / ((1 + r) ** 12 - 1)
    assert calculate_installment(25000, 12, "monthly", "Reducing", 12.5) == pytest.approx(expected)


def test_weekly_frequency_multiplies_installments():
    assert installments_per_month("weekly") == 4
    assert installments_per_month("biweekly") == 2
    flat_weekly = calculate_installment(12000, 6, "weekly", "Flat", 18)
    assert flat_weekly == pytest.approx((12000 + 12000 * 0.18 * 0.5) / 24)


def test_unknown_frequency_falls_back_to_monthly():
    assert installments_per_month("fortnightly") == 1
    assert calculate_installment(1200, 12, "yearly", "Flat", 0) == pytest.approx(100)


def test_missing_inputs_return_zero():
    assert calculate_installment(None, 12, "monthly", "Flat", 10) == 0.0
    assert calculate_installment(1000, None, "monthly", "Flat", 10) == 0.0
    assert calculate_installment(1000, 12, "", "Flat", 10) == 0.0
    assert calculate_installment(1000, 12, "monthly", None, 10) == 0.0


def test_zero_rate_reducing_is_straight_division():
    assert calculate_installment(12000, 12, "monthly", "Reducing", 0) == pytest.approx(1000)


def test_invalid_inputs_raise():
    with pytest.raises(LoanCalculationError):
        calculate_installment(1000, 0, "monthly", "Flat", 10)
    with pytest.raises(LoanCalculationError):
        calculate_installment(-1, 12, "monthly", "Flat", 10)
    with pytest.raises(LoanCalculationError):
        calculate_installment(1000, 12, "monthly", "Balloon", 10)


def test_totals():
    total = total_repayable(25000, 12, "monthly", "Flat", 12.5)
    assert total == pytest.approx(28125)
    assert total_interest(25000, 12, "monthly", "Flat", 12.5) == pytest.approx(3125)


def test_functions_are_pure():
    args = (50000, 24, "monthly", "Reducing", 15.0)
    assert calculate_installment(*args) == calculate_installment(*args)
    assert generate_schedule(*args, start_date=date(2024, 1, 31)) == \
        generate_schedule(*args, start_date=date(2024, 1, 31))


def test_add_months_clamps_day():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 11, 15), 3) == date(2024, 2, 15)


def test_reducing_schedule_ends_at_zero():
    rows = generate_schedule(25000, 12, "monthly", "Reducing", 12.5, date(2024, 1, 15))
    assert len(rows) == 12
    assert rows[0]["due_date"] == "2024-02-15"
    assert rows[-1]["balance"] == 0
    assert sum(r["principal"] for r in rows) == pytest.approx(25000, abs=0.05)
    # interest shrinks as the balance falls
    assert rows[0]["interest"] > rows[-1]["interest"]


def test_flat_schedule_spreads_interest_evenly():
    rows = generate_schedule(12000, 3, "weekly", "Flat", 12, date(2024, 1, 1))
    assert len(rows) == 12
    assert rows[0]["due_date"] == "2024-01-08"
    assert {r["interest"] for r in rows} == {30.0}
    assert rows[-1]["balance"] == 0


def test_schedule_empty_while_inputs_missing():
    assert generate_schedule(None, 12, "monthly", "Flat", 10) == []


def test_accrued_interest():
    assert accrued_interest(36500, 10, 30) == pytest.approx(300)
    assert accrued_interest(36500, 10, 0) == 0.0


def test_months_elapsed_uses_30_day_months():
    assert months_elapsed(date(2024, 1, 1), date(2024, 1, 31)) == 1
    assert months_elapsed(date(2024, 1, 1), date(2024, 1, 30)) == 0


def test_early_repayment_discount_before_midpoint():
    loan = _loan()
    # 5 months in: 150 days
    quote = calculate_early_repayment(loan, date(2024, 5, 30))
    assert quote["remaining_principal"] == 10000
    assert quote["discount"] == pytest.approx(500)
    assert quote["total_payoff"] == pytest.approx(9500)


def test_early_repayment_no_discount_at_midpoint():
    loan = _loan()
    # exactly 6 months of 30 days
    quote = calculate_early_repayment(loan, date(2024, 6, 29))
    assert months_elapsed(loan.start_date, date(2024, 6, 29)) == 6
    assert quote["discount"] == 0
    assert quote["total_payoff"] == 10000


def test_interest_first_allocation():
    small = calculate_suggested_allocation(1000)
    assert small == {"principal": 800, "interest": 200, "fees": 0.0}
    # cap binds above 2500
    at_cap = calculate_suggested_allocation(2500, INTEREST_FIRST)
    assert at_cap["interest"] == pytest.approx(500)
    large = calculate_suggested_allocation(10000, INTEREST_FIRST)
    assert large["interest"] == 500
    assert large["principal"] == 9500


def test_principal_first_allocation():
    small = calculate_suggested_allocation(1000, PRINCIPAL_FIRST)
    assert small["principal"] == pytest.approx(800)
    assert small["interest"] == pytest.approx(200)
    large = calculate_suggested_allocation(10000, PRINCIPAL_FIRST)
    assert large["principal"] == pytest.approx(9500)
    assert large["interest"] == pytest.approx(500)


def test_allocation_sums_to_amount():
    for amount in (0, 1, 250.5, 2500, 3200, 99999):
        for rule in (INTEREST_FIRST, PRINCIPAL_FIRST):
            split = calculate_suggested_allocation(amount, rule)
            assert math.isclose(split["principal"] + split["interest"] + split["fees"], amount)


def test_allocation_rejects_bad_input():
    with pytest.raises(LoanCalculationError):
        calculate_suggested_allocation(100, "fees_first")
    with pytest.raises(LoanCalculationError):
        calculate_suggested_allocation(-5)


def test_breakdown_is_interest_first_with_custom_cap():
    split = calculate_payment_breakdown(5000, interest_cap=300, interest_share=0.1)
    assert split["interest"] == 300
    assert split["principal"] == 4700
