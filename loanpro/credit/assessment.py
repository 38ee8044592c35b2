"""
Credit assessment rules: automated checks, risk banding and the decisions
made by credit analysts and approvers.
"""

from datetime import datetime, timezone

from loanpro.finance.products import LOAN_PRODUCTS

PASS = "pass"
WARNING = "warning"
FAIL = "fail"

RISK_RATINGS = ("high", "medium", "low")

ANALYST_DECISIONS = {
    "approve": "approved",
    "refer": "referred",
    "reject": "rejected",
}

APPROVER_DECISIONS = {
    "approve": "approved",
    "approve_with_conditions": "approved",
    "refer_back": "referred_back",
    "reject": "rejected",
}


def auto_check_status(kind, value):
    if kind == "debt_to_income_ratio":
        return FAIL if value > 50 else WARNING if value > 40 else PASS
    if kind == "exposure_limit":
        return FAIL if value > 90 else WARNING if value > 80 else PASS
    if kind == "related_party_check":
        return value
    if kind == "previous_delinquencies":
        return FAIL if value > 2 else WARNING if value > 0 else PASS
    return PASS


def evaluate_auto_checks(checks):
    """Status per check plus an overall verdict (worst status wins)."""
    statuses = {kind: auto_check_status(kind, value) for kind, value in checks.items()}
    values = statuses.values()
    overall = FAIL if FAIL in values else WARNING if WARNING in values else PASS
    return {"checks": statuses, "overall": overall}


def risk_level(score):
    if score >= 70:
        return "High Risk"
    if score >= 40:
        return "Medium Risk"
    return "Low Risk"


def _clean_conditions(conditions):
    return [c.strip() for c in conditions or [] if c and c.strip()]


def analyst_decision(decision, risk_rating="medium", reason="", conditions=None):
    if decision not in ANALYST_DECISIONS:
        raise ValueError(f"Unknown analyst decision: {decision}")
    if risk_rating not in RISK_RATINGS:
        raise ValueError(f"Unknown risk rating: {risk_rating}")
    return {
        "decision": decision,
        "status": ANALYST_DECISIONS[decision],
        "risk_rating": risk_rating,
        "reason": reason or "",
        "conditions": _clean_conditions(conditions),
    }


def approver_decision(decision, notes="", conditions=None, approved_by="Current User", at=None):
    if decision not in APPROVER_DECISIONS:
        raise ValueError(f"Unknown approval decision: {decision}")
    return {
        "decision": decision,
        "status": APPROVER_DECISIONS[decision],
        "notes": notes or "",
        "additional_conditions": _clean_conditions(conditions),
        "approved_by": approved_by,
        "approved_at": (at or datetime.now(timezone.utc)).isoformat(),
    }


def is_high_value(amount, threshold=100000):
    return amount > threshold


def loan_options(amount, term, frequency="monthly", products=LOAN_PRODUCTS):
    """Installment and eligibility of ``amount`` over ``term`` for every product."""
    options = []
    for product in products:
        limit_errors = product.limit_errors(amount, term)
        options.append({
            "id": product.id,
            "name": product.name,
            "interest_rate": product.interest_rate,
            "interest_type": product.interest_type,
            "term": term,
            "amount": amount,
            "installment": round(product.installment(amount, term, frequency), 2),
            "eligibility": "Ineligible" if limit_errors else "Eligible",
            "reasons": list(limit_errors.values()),
        })
    return options
