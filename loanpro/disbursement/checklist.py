import time

import inflect

from loanpro.errors import DisbursementError

p = inflect.engine()

CHECKLIST_ITEMS = (
    "loan_document",
    "signed_agreement",
    "kyc_verified",
    "gl_account_mapped",
    "funds_available",
    "bank_details_verified",
)

CHANNELS = ("bank_transfer", "mobile_money", "cash", "cheque")


def empty_checklist():
    return {item: False for item in CHECKLIST_ITEMS}


def checklist_status(checklist):
    values = [bool(checklist.get(item)) for item in CHECKLIST_ITEMS]
    passed = sum(values)
    total = len(values)
    return {"passed": passed, "total": total, "percentage": passed / total * 100}


def all_checks_passed(checklist):
    return all(checklist.get(item) for item in CHECKLIST_ITEMS)


def requires_dual_auth(amount, threshold=50000):
    return amount > threshold


def amount_to_words(amount, currency="Kwacha"):
    n = int(float(amount))
    words = p.number_to_words(n, andword="").replace(",", "")
    return f"{words.title()} {currency} Only"


def initiate_payment(checklist, disbursement_date, amount, channel,
                     authorised_by=None, dual_auth_threshold=50000):
    """
    Validate a disbursement request and return the payment instruction.
    Raises DisbursementError when the request cannot proceed.
    """
    if not disbursement_date or not amount or not channel:
        raise DisbursementError("Disbursement date, amount and channel are required")
    amount = float(amount)
    if amount <= 0:
        raise DisbursementError("Disbursement amount must be positive")
    if channel not in CHANNELS:
        raise DisbursementError(f"Unknown disbursement channel: {channel}")
    if not all_checks_passed(checklist):
        raise DisbursementError("Cannot proceed: Not all pre-disbursement checks have passed.")

    authorisers = sorted({a.strip() for a in authorised_by or [] if a and a.strip()})
    if requires_dual_auth(amount, dual_auth_threshold) and len(authorisers) < 2:
        raise DisbursementError("Dual authorisation required: two distinct authorisers must approve")

    return {
        "transaction_id": f"TXN{int(time.time() * 1000)}",
        "amount": amount,
        "channel": channel,
        "date": str(disbursement_date),
        "authorised_by": authorisers,
    }


def disbursement_slip(application, disbursement, charges=0.0, currency="Kwacha"):
    amount = float(disbursement["amount"])
    charges = float(charges or 0)
    return {
        "transaction_id": disbursement["transaction_id"],
        "application_id": application.get("id"),
        "borrower_name": application.get("borrower_name", ""),
        "product": application.get("product", ""),
        "date": disbursement["date"],
        "channel": disbursement["channel"],
        "amount": amount,
        "charges": charges,
        "net_amount": amount - charges,
        "amount_words": amount_to_words(amount - charges, currency),
    }
