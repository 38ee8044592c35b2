"""Tests for the signup and loan application wizards."""

from datetime import datetime, timezone

import pytest

from loanpro.applications.wizard import SignupWizard, LoanApplicationWizard, WIZARDS


SIGNUP = {
    "first_name": "Jane", "last_name": "Phiri", "email": "jane@example.com", "phone": "+260 977 000 111",
    "date_of_birth": "1990-04-01", "gender": "female",
    "address": "Plot 5", "city": "Lusaka", "state": "Lusaka", "zip_code": "10101", "country": "Zambia",
    "password": "s3cretpass", "confirm_password": "s3cretpass",
    "employment_status": "employed", "monthly_income": "8000", "employer": "ZESCO",
}

LOAN = {
    "product_id": "personal", "amount": "25000", "term": "12", "frequency": "monthly",
    "purpose": "School fees", "employment_status": "employed", "monthly_income": "12000",
    "documents": ["nrc.pdf"], "credit_check_consent": True, "otp_code": "123456",
}


def test_next_blocks_on_missing_required_field():
    wizard = SignupWizard({**SIGNUP, "first_name": ""})
    assert wizard.next() is False
    assert wizard.current_step == 1
    assert wizard.errors == {"first_name": "First name is required"}


def test_update_clears_field_error():
    wizard = SignupWizard({**SIGNUP, "email": "not-an-email"})
    wizard.next()
    assert wizard.errors["email"] == "Email is invalid"
    wizard.update("email", "jane@example.com")
    assert "email" not in wizard.errors
    assert wizard.next() is True
    assert wizard.current_step == 2


def test_signup_walks_all_steps_and_completes():
    wizard = SignupWizard(SIGNUP)
    for expected_step in (2, 3, 4):
        assert wizard.next()
        assert wizard.current_step == expected_step
    assert wizard.progress == 100
    assert wizard.next()
    assert wizard.completed
    assert "confirm_password" not in wizard.result()


def test_password_rules():
    wizard = SignupWizard({**SIGNUP, "password": "short", "confirm_password": "short"}, current_step=3)
    wizard.next()
    assert wizard.errors["password"] == "Password must be at least 8 characters"
    wizard = SignupWizard({**SIGNUP, "confirm_password": "different1"}, current_step=3)
    wizard.next()
    assert wizard.errors["confirm_password"] == "Passwords do not match"


def test_previous_stops_at_first_step():
    wizard = SignupWizard(SIGNUP, current_step=2)
    assert wizard.previous() == 1
    assert wizard.previous() == 1


def test_current_step_is_clamped():
    assert SignupWizard(current_step=9).current_step == 4
    assert LoanApplicationWizard(current_step=0).current_step == 1


def test_loan_product_limits_are_enforced():
    wizard = LoanApplicationWizard({**LOAN, "product_id": "emergency", "amount": "25000"}, current_step=2)
    assert wizard.next() is False
    assert wizard.errors["amount"] == "Amount must be between 500 and 10,000"


def test_loan_installment_follows_product():
    wizard = LoanApplicationWizard({**LOAN, "product_id": "emergency", "amount": "6000", "term": "6"})
    assert wizard.installment == pytest.approx((6000 + 6000 * 0.18 * 0.5) / 6)
    assert LoanApplicationWizard().installment == 0.0


def test_guarantor_required_when_requested():
    wizard = LoanApplicationWizard({**LOAN, "require_guarantor": True, "guarantor_name": "Ann"}, current_step=4)
    assert wizard.next() is False
    assert set(wizard.errors) == {"guarantor_id", "guarantor_phone", "guarantor_relation"}


def test_last_step_does_not_complete_on_next():
    wizard = LoanApplicationWizard(LOAN, current_step=6)
    assert wizard.next() is True
    assert wizard.current_step == 6
    assert not wizard.completed


def test_submit_requires_otp():
    wizard = LoanApplicationWizard({**LOAN, "otp_code": ""}, current_step=6)
    assert wizard.submit() is None
    assert wizard.errors == {"otp_code": "OTP code is required"}


def test_submit_returns_payload():
    now = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    payload = LoanApplicationWizard(LOAN, current_step=6).submit(now=now)
    assert payload["amount"] == 25000.0
    assert payload["term"] == 12
    assert payload["guarantor"] is None
    assert payload["collateral"] is None
    assert payload["submitted_at"] == "2024-01-15T10:30:00+00:00"
    assert payload["installment"] > 0


def test_snapshot_round_trip_resumes_step():
    wizard = LoanApplicationWizard(LOAN)
    wizard.next()
    wizard.next()
    restored = WIZARDS["loan_application"].from_dict(wizard.to_dict())
    assert restored.current_step == 3
    assert restored.data["purpose"] == "School fees"


def test_wizards_do_not_share_field_defaults():
    first = LoanApplicationWizard()
    first.data["documents"].append("a.pdf")
    assert LoanApplicationWizard().data["documents"] == []


def test_zero_income_is_not_blank():
    wizard = SignupWizard({**SIGNUP, "monthly_income": 0})
    assert wizard.validate_step(4) == {}
    assert SignupWizard({**SIGNUP, "monthly_income": None}).validate_step(4) == {
        "monthly_income": "Monthly income is required"}


def test_null_current_step_starts_at_first_step():
    wizard = LoanApplicationWizard.from_dict({"data": LOAN, "current_step": None})
    assert wizard.current_step == 1
