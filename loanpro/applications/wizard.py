"""
Step wizards for signup and loan applications.

A wizard walks ``current_step`` from 1 to ``total_steps``. ``next()`` only
advances when the current step validates; failures are kept in ``errors``
keyed by field name.
"""

import copy
import re
from datetime import datetime, timezone

from loanpro.finance.products import get_product

EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
FREQUENCIES = ("weekly", "biweekly", "monthly")


def _blank(value):
    if isinstance(value, str):
        return not value.strip()
    return value is None or value is False or value == [] or value == {}


def _to_float(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class StepWizard:
    name = "wizard"
    total_steps = 1
    fields = {}
    completes_on_next = True

    def __init__(self, data=None, current_step=1):
        self.data = copy.deepcopy(self.fields)
        self.data.update(data or {})
        self.current_step = max(1, min(int(current_step or 1), self.total_steps))
        self.errors = {}
        self.completed = False

    @property
    def progress(self):
        return self.current_step / self.total_steps * 100

    def update(self, field, value):
        self.data[field] = value
        self.errors.pop(field, None)

    def validate_step(self, step):
        validator = getattr(self, f"_validate_step_{step}", None)
        errors = {}
        if validator:
            validator(errors)
        return errors

    def _require(self, errors, field, message):
        if _blank(self.data.get(field)):
            errors[field] = message
            return False
        return True

    def next(self):
        self.errors = self.validate_step(self.current_step)
        if self.errors:
            return False
        if self.current_step < self.total_steps:
            self.current_step += 1
        elif self.completes_on_next:
            self.completed = True
        return True

    def previous(self):
        if self.current_step > 1:
            self.current_step -= 1
        return self.current_step

    def to_dict(self):
        return {
            "wizard": self.name,
            "current_step": self.current_step,
            "data": dict(self.data),
        }

    @classmethod
    def from_dict(cls, snapshot):
        return cls(data=snapshot.get("data"), current_step=snapshot.get("current_step", 1))


class SignupWizard(StepWizard):
    name = "signup"
    total_steps = 4
    fields = {
        "first_name": "", "last_name": "", "email": "", "phone": "",
        "date_of_birth": "", "gender": "",
        "address": "", "city": "", "state": "", "zip_code": "", "country": "",
        "password": "", "confirm_password": "",
        "employment_status": "", "monthly_income": "", "employer": "",
    }

    # Personal information
    def _validate_step_1(self, errors):
        self._require(errors, "first_name", "First name is required")
        self._require(errors, "last_name", "Last name is required")
        if self._require(errors, "email", "Email is required"):
            if not EMAIL_RE.search(self.data["email"]):
                errors["email"] = "Email is invalid"
        self._require(errors, "phone", "Phone number is required")
        self._require(errors, "date_of_birth", "Date of birth is required")
        self._require(errors, "gender", "Gender is required")

    # Address
    def _validate_step_2(self, errors):
        self._require(errors, "address", "Address is required")
        self._require(errors, "city", "City is required")
        self._require(errors, "state", "State is required")
        self._require(errors, "zip_code", "ZIP code is required")
        self._require(errors, "country", "Country is required")

    # Account
    def _validate_step_3(self, errors):
        password = self.data.get("password") or ""
        if not password:
            errors["password"] = "Password is required"
        elif len(password) < 8:
            errors["password"] = "Password must be at least 8 characters"
        confirm = self.data.get("confirm_password") or ""
        if not confirm:
            errors["confirm_password"] = "Please confirm your password"
        elif password != confirm:
            errors["confirm_password"] = "Passwords do not match"

    # Employment
    def _validate_step_4(self, errors):
        self._require(errors, "employment_status", "Employment status is required")
        self._require(errors, "monthly_income", "Monthly income is required")

    def result(self):
        """Collected user data, without the password confirmation."""
        return {k: v for k, v in self.data.items() if k != "confirm_password"}


class LoanApplicationWizard(StepWizard):
    name = "loan_application"
    total_steps = 6
    completes_on_next = False
    fields = {
        "product_id": "",
        "amount": "", "term": "", "frequency": "", "purpose": "",
        "employment_status": "", "monthly_income": "", "other_income": "", "existing_liabilities": "",
        "require_guarantor": False,
        "guarantor_name": "", "guarantor_id": "", "guarantor_phone": "", "guarantor_relation": "",
        "collateral_type": "", "collateral_description": "", "collateral_value": "",
        "documents": [],
        "credit_check_consent": False,
        "otp_code": "",
    }

    @property
    def product(self):
        return get_product(self.data.get("product_id"))

    @property
    def installment(self):
        product = self.product
        amount = _to_float(self.data.get("amount"))
        term = _to_int(self.data.get("term"))
        frequency = self.data.get("frequency")
        if not product or amount is None or not term or not frequency:
            return 0.0
        return product.installment(amount, term, frequency)

    # Product selection
    def _validate_step_1(self, errors):
        if self._require(errors, "product_id", "Please select a loan product") and not self.product:
            errors["product_id"] = "Unknown loan product"

    # Loan details
    def _validate_step_2(self, errors):
        amount = _to_float(self.data.get("amount"))
        term = _to_int(self.data.get("term"))
        if amount is None or amount <= 0:
            errors["amount"] = "Loan amount is required"
        if term is None or term <= 0:
            errors["term"] = "Loan term is required"
        if self.data.get("frequency") not in FREQUENCIES:
            errors["frequency"] = "Repayment frequency is required"
        self._require(errors, "purpose", "Loan purpose is required")
        if self.product:
            limits = self.product.limit_errors(
                amount if "amount" not in errors else None,
                term if "term" not in errors else None,
            )
            errors.update(limits)

    # Financial information
    def _validate_step_3(self, errors):
        self._require(errors, "employment_status", "Employment status is required")
        income = _to_float(self.data.get("monthly_income"))
        if income is None or income < 0:
            errors["monthly_income"] = "Monthly income is required"

    # Guarantor and collateral
    def _validate_step_4(self, errors):
        if self.data.get("require_guarantor"):
            self._require(errors, "guarantor_name", "Guarantor name is required")
            self._require(errors, "guarantor_id", "Guarantor ID is required")
            self._require(errors, "guarantor_phone", "Guarantor phone is required")
            self._require(errors, "guarantor_relation", "Guarantor relationship is required")
        if not _blank(self.data.get("collateral_type")):
            value = _to_float(self.data.get("collateral_value"))
            if value is None or value <= 0:
                errors["collateral_value"] = "Collateral value is required"

    # KYC documents and consent
    def _validate_step_5(self, errors):
        self._require(errors, "documents", "At least one KYC document is required")
        if not self.data.get("credit_check_consent"):
            errors["credit_check_consent"] = "Credit check consent is required"

    def submit(self, now=None):
        """
        Validate every step plus the e-signature OTP and return the
        application payload, or None with ``errors`` populated.
        """
        errors = {}
        for step in range(1, self.total_steps + 1):
            errors.update(self.validate_step(step))
        self._require(errors, "otp_code", "OTP code is required")
        self.errors = errors
        if errors:
            return None

        now = now or datetime.now(timezone.utc)
        data = self.data
        self.completed = True
        return {
            "product_id": data["product_id"],
            "amount": _to_float(data["amount"]),
            "term": _to_int(data["term"]),
            "frequency": data["frequency"],
            "purpose": data["purpose"],
            "employment_status": data["employment_status"],
            "monthly_income": _to_float(data["monthly_income"]),
            "other_income": _to_float(data.get("other_income")) or 0.0,
            "existing_liabilities": _to_float(data.get("existing_liabilities")) or 0.0,
            "require_guarantor": bool(data.get("require_guarantor")),
            "guarantor": {
                "name": data["guarantor_name"],
                "id": data["guarantor_id"],
                "phone": data["guarantor_phone"],
                "relation": data["guarantor_relation"],
            } if data.get("require_guarantor") else None,
            "collateral": {
                "type": data["collateral_type"],
                "description": data.get("collateral_description") or "",
                "value": _to_float(data.get("collateral_value")),
            } if not _blank(data.get("collateral_type")) else None,
            "documents": list(data.get("documents") or []),
            "credit_check_consent": bool(data.get("credit_check_consent")),
            "installment": round(self.installment, 2),
            "submitted_at": now.isoformat(),
        }


WIZARDS = {
    SignupWizard.name: SignupWizard,
    LoanApplicationWizard.name: LoanApplicationWizard,
}
