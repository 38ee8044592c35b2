from io import BytesIO

import pandas as pd

ACTIVE_STATUSES = ("approved", "disbursed", "active")
PAR_THRESHOLDS = (30, 60, 90)


def dashboard_stats(borrowers, loans, repayments):
    active = [loan for loan in loans if str(loan.status).lower() in ACTIVE_STATUSES]
    return {
        "total_borrowers": len(borrowers),
        "active_loans": len(active),
        "total_disbursed": round(sum(loan.principal for loan in loans), 2),
        "portfolio_outstanding": round(sum(loan.outstanding for loan in active), 2),
        "total_repaid": round(sum(float(r.get("amount") or 0) for r in repayments), 2),
        "overdue_loans": sum(1 for loan in active if loan.days_overdue > 0),
    }


def portfolio_at_risk(loans, thresholds=PAR_THRESHOLDS):
    """
    Outstanding balance of active loans overdue more than N days, for each
    threshold, with its share of the whole active portfolio.
    """
    active = [loan for loan in loans if str(loan.status).lower() in ACTIVE_STATUSES]
    total = sum(loan.outstanding for loan in active)
    buckets = []
    for days in thresholds:
        at_risk = sum(loan.outstanding for loan in active if loan.days_overdue > days)
        buckets.append({
            "label": f"PAR {days}",
            "days": days,
            "amount": round(at_risk, 2),
            "percentage": round(at_risk / total * 100, 2) if total else 0.0,
        })
    return buckets


def portfolio_workbook(loans):
    df = pd.DataFrame([{
        "Loan ID": loan.id,
        "Borrower": loan.borrower_name or loan.borrower_id,
        "Principal": loan.principal,
        "Outstanding": loan.outstanding,
        "Interest Rate": loan.interest_rate,
        "Interest Type": loan.interest_type,
        "Term (months)": loan.term,
        "Start Date": loan.start_date.isoformat(),
        "Next Due": loan.next_due_date.isoformat() if loan.next_due_date else "",
        "Days Overdue": loan.days_overdue,
        "Penalty": loan.penalty,
        "Status": loan.status,
    } for loan in loans])
    par = pd.DataFrame(portfolio_at_risk(loans))
    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Portfolio")
        par.to_excel(writer, index=False, sheet_name="PAR")
    output.seek(0)
    return output.read()
