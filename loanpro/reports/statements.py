from datetime import date
from io import BytesIO

import pandas as pd

from loanpro.models import parse_date


def loan_statement(loan, repayments, generated_on=None):
    """
    Account statement for one loan: its repayments in date order with the
    balance left after each, plus totals.
    """
    generated_on = generated_on or date.today()
    ordered = sorted(repayments, key=lambda r: str(r.get("payment_date") or ""))
    balance = loan.principal
    entries = []
    for rec in ordered:
        amount = float(rec.get("amount") or 0)
        balance = max(round(balance - amount, 2), 0)
        paid_on = parse_date(rec.get("payment_date"))
        entries.append({
            "reference": rec.get("id"),
            "date": paid_on.isoformat() if paid_on else None,
            "method": rec.get("payment_method") or "",
            "amount": amount,
            "principal": float(rec.get("principal") or 0),
            "interest": float(rec.get("interest") or 0),
            "fees": float(rec.get("fees") or 0),
            "balance": balance,
        })

    return {
        "loan_id": loan.id,
        "borrower_id": loan.borrower_id,
        "borrower_name": loan.borrower_name,
        "product_id": loan.product_id,
        "principal": loan.principal,
        "interest_rate": loan.interest_rate,
        "interest_type": loan.interest_type,
        "start_date": loan.start_date.isoformat(),
        "generated_on": generated_on.isoformat(),
        "entries": entries,
        "total_paid": round(sum(e["amount"] for e in entries), 2),
        "total_interest": round(sum(e["interest"] for e in entries), 2),
        "outstanding": loan.outstanding,
        "status": loan.status,
        "cleared": loan.outstanding <= 0,
    }


def statement_workbook(statement):
    summary = pd.DataFrame([
        {"Item": "Loan ID", "Value": statement["loan_id"]},
        {"Item": "Borrower", "Value": statement["borrower_name"] or statement["borrower_id"]},
        {"Item": "Principal", "Value": statement["principal"]},
        {"Item": "Interest Rate", "Value": statement["interest_rate"]},
        {"Item": "Interest Type", "Value": statement["interest_type"]},
        {"Item": "Start Date", "Value": statement["start_date"]},
        {"Item": "Total Paid", "Value": statement["total_paid"]},
        {"Item": "Outstanding", "Value": statement["outstanding"]},
        {"Item": "Status", "Value": statement["status"]},
        {"Item": "Generated On", "Value": statement["generated_on"]},
    ])
    transactions = pd.DataFrame([{
        "Reference": e["reference"],
        "Date": e["date"],
        "Method": e["method"],
        "Amount": e["amount"],
        "Principal": e["principal"],
        "Interest": e["interest"],
        "Fees": e["fees"],
        "Balance": e["balance"],
    } for e in statement["entries"]],
        columns=["Reference", "Date", "Method", "Amount", "Principal", "Interest", "Fees", "Balance"])
    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        summary.to_excel(writer, index=False, sheet_name="Summary")
        transactions.to_excel(writer, index=False, sheet_name="Transactions")
    output.seek(0)
    return output.read()
