"""
Payment reconciliation for the accounting desk.

Statements from banks, mobile money and payment gateways are imported into
PaymentRecords, matched against loans, split into principal and interest and
posted to the general ledger.
"""

from io import BytesIO

import pandas as pd

from loanpro.errors import ReconciliationError
from loanpro.finance.calculations import calculate_suggested_allocation, INTEREST_FIRST
from loanpro.models import PaymentRecord, parse_date

SOURCES = ("bank", "mpesa", "gateway")
REQUIRED_COLUMNS = ("amount", "reference", "date")

GL_CASH = "1000-cash"
GL_LOAN_PRINCIPAL = "1200-loans-receivable"
GL_INTEREST_INCOME = "4000-interest-income"
GL_FEE_INCOME = "4100-fee-income"


def _cell(value):
    """Cell text with blanks (None, NaN, whitespace) collapsed to an empty string."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()


def read_statement(stream, filename, source="bank", start_index=1):
    """
    Parse a CSV or Excel statement into unmatched PaymentRecords.
    Rows without an id get PAY<n> ids counted up from ``start_index``,
    skipping any id the statement already carries.
    """
    if source not in SOURCES:
        raise ReconciliationError(f"Unknown payment source: {source}")
    name = (filename or "").lower()
    if name.endswith((".xlsx", ".xls")):
        df = pd.read_excel(stream)
    elif name.endswith(".csv"):
        df = pd.read_csv(stream)
    else:
        raise ReconciliationError("Statement must be a .csv or .xlsx file")

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ReconciliationError(f"Statement is missing columns: {', '.join(missing)}")

    records = df.to_dict(orient="records")
    given_ids = [_cell(row.get("id")) for row in records]
    taken = set(filter(None, given_ids))
    counter = start_index

    payments = []
    for n, (row, given_id) in enumerate(zip(records, given_ids), start=1):
        try:
            amount = float(row["amount"])
        except (TypeError, ValueError):
            raise ReconciliationError(f"Invalid amount on row {n}: {row['amount']}")
        if pd.isna(amount):
            raise ReconciliationError(f"Invalid amount on row {n}: blank")
        try:
            paid_on = parse_date(_cell(row["date"])[:10])
        except ValueError:
            paid_on = None
        if paid_on is None:
            raise ReconciliationError(f"Invalid date on row {n}")

        payment_id = given_id
        if not payment_id:
            while f"PAY{counter:04d}" in taken:
                counter += 1
            payment_id = f"PAY{counter:04d}"
            taken.add(payment_id)
        payments.append(PaymentRecord(
            id=payment_id,
            amount=amount,
            reference=_cell(row["reference"]),
            date=paid_on,
            source=source,
        ))
    return payments


def search_payments(payments, search=""):
    term = (search or "").lower()
    if not term:
        return list(payments)
    return [
        p for p in payments
        if term in p.reference.lower()
        or term in p.id.lower()
        or (p.borrower_name and term in p.borrower_name.lower())
    ]


def unmatched_payments(payments):
    return [p for p in payments if p.status == "unmatched"]


def match_payment(payment, loan_id, borrower_name=None, rule=INTEREST_FIRST, **allocation_kwargs):
    if not loan_id:
        raise ReconciliationError("A loan must be selected to match the payment")
    if payment.posted:
        raise ReconciliationError(f"Payment {payment.id} is already posted")
    payment.matched_loan_id = loan_id
    payment.borrower_name = borrower_name or payment.borrower_name
    payment.status = "manual_match"
    payment.suggested_allocation = calculate_suggested_allocation(payment.amount, rule, **allocation_kwargs)
    return payment


def journal_entry(payment):
    """Double-entry lines for posting ``payment`` to the general ledger."""
    if not payment.suggested_allocation:
        raise ReconciliationError(f"Payment {payment.id} has no allocation to post")
    allocation = payment.suggested_allocation
    lines = [{"account": GL_CASH, "debit": payment.amount, "credit": 0.0}]
    for account, key in ((GL_LOAN_PRINCIPAL, "principal"),
                         (GL_INTEREST_INCOME, "interest"),
                         (GL_FEE_INCOME, "fees")):
        if allocation.get(key):
            lines.append({"account": account, "debit": 0.0, "credit": allocation[key]})
    return {
        "payment_id": payment.id,
        "loan_id": payment.matched_loan_id,
        "reference": payment.reference,
        "date": payment.date.isoformat(),
        "lines": lines,
    }


def post_payment(payment):
    if payment.posted:
        raise ReconciliationError(f"Payment {payment.id} is already posted")
    entry = journal_entry(payment)
    payment.posted = True
    return entry


def reconciliation_stats(payments):
    return {
        "total": len(payments),
        "matched": sum(1 for p in payments if p.status == "matched"),
        "unmatched": sum(1 for p in payments if p.status == "unmatched"),
        "total_amount": sum(p.amount for p in payments),
    }


def export_workbook(payments):
    rows = []
    for p in payments:
        allocation = p.suggested_allocation or {}
        rows.append({
            "Payment ID": p.id,
            "Reference": p.reference,
            "Date": p.date.isoformat(),
            "Source": p.source,
            "Amount": p.amount,
            "Status": p.status,
            "Loan ID": p.matched_loan_id or "",
            "Borrower": p.borrower_name or "",
            "Principal": allocation.get("principal", 0),
            "Interest": allocation.get("interest", 0),
            "Fees": allocation.get("fees", 0),
            "Posted": "Yes" if p.posted else "No",
        })
    df = pd.DataFrame(rows)
    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Reconciliation")
    output.seek(0)
    return output.read()
