"""
REST resources mirroring the LoanPro edge API (see loanpro.client).

Bodies are accepted in camelCase, as the client sends them, or snake_case.
Errors carry both ``message`` and ``error`` so the client can surface them.
"""

from datetime import date, datetime, timezone

from flask import request, jsonify, current_app

from loanpro.db import get_supabase, sb_exec, fetch_one, fetch_all, next_id
from loanpro.models import Borrower, Loan, parse_date
from loanpro.finance.calculations import calculate_payment_breakdown
from loanpro.navigation import navigation, user_type
from loanpro.reports.portfolio import dashboard_stats
from loanpro.sample_data import seed

from . import core_bp

BORROWER_FIELDS = {
    "name": "name", "email": "email", "phone": "phone", "address": "address",
    "creditScore": "credit_score", "credit_score": "credit_score",
    "kycStatus": "kyc_status", "kyc_status": "kyc_status", "status": "status",
}
LOAN_FIELDS = {
    "borrowerId": "borrower_id", "borrower_id": "borrower_id",
    "amount": "principal", "principal": "principal",
    "interestRate": "interest_rate", "interest_rate": "interest_rate",
    "interestType": "interest_type", "interest_type": "interest_type",
    "term": "term", "frequency": "frequency",
    "startDate": "start_date", "start_date": "start_date",
    "outstanding": "outstanding", "status": "status",
    "nextDueDate": "next_due_date", "next_due_date": "next_due_date",
    "daysOverdue": "days_overdue", "days_overdue": "days_overdue",
    "penalty": "penalty",
}


def _error(message, code=400):
    return jsonify({"status": "error", "message": message, "error": message}), code


def _columns(data, mapping):
    return {mapping[k]: v for k, v in data.items() if k in mapping}


@core_bp.route('/health', methods=['GET'])
def health():
    return jsonify({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}), 200


@core_bp.route('/auth/me', methods=['GET'])
def me():
    """Identity of the caller, looked up by the X-User-Email header."""
    email = request.headers.get("X-User-Email")
    if not email:
        return _error("Not signed in", 401)
    row = fetch_one("borrowers", email=email)
    if row:
        return jsonify({"status": "success", "user": {"id": row["id"], "email": email,
                                                       "name": row.get("name"), "role": "borrower"}}), 200
    return jsonify({"status": "success", "user": {"email": email, "role": request.headers.get("X-User-Role", "admin")}}), 200


# Borrowers

@core_bp.route('/borrowers', methods=['GET'])
def list_borrowers():
    return jsonify({"status": "success", "borrowers": fetch_all("borrowers", order_by="id")}), 200


@core_bp.route('/borrowers', methods=['POST'])
def create_borrower():
    data = _columns(request.get_json(silent=True) or {}, BORROWER_FIELDS)
    if not data.get("name") or not data.get("email"):
        return _error("Name and email are required")
    try:
        data["id"] = next_id("borrowers", "B")
        borrower = Borrower.from_row(data).to_dict()
        sb_exec(get_supabase().table("borrowers").insert(borrower))
    except (TypeError, ValueError) as e:
        return _error(str(e))
    except Exception as e:
        current_app.logger.error(f"Failed to create borrower: {e}")
        return _error(str(e), 500)
    return jsonify({"status": "success", "borrower": borrower}), 201


@core_bp.route('/borrowers/<borrower_id>', methods=['GET'])
def get_borrower(borrower_id):
    row = fetch_one("borrowers", id=borrower_id)
    if not row:
        return _error("Borrower not found", 404)
    return jsonify({"status": "success", "borrower": row,
                    "loans": fetch_all("loans", borrower_id=borrower_id)}), 200


@core_bp.route('/borrowers/<borrower_id>', methods=['PUT'])
def update_borrower(borrower_id):
    updates = _columns(request.get_json(silent=True) or {}, BORROWER_FIELDS)
    if not updates:
        return _error("Nothing to update")
    if not fetch_one("borrowers", id=borrower_id):
        return _error("Borrower not found", 404)
    resp = sb_exec(get_supabase().table("borrowers").update(updates).eq("id", borrower_id))
    return jsonify({"status": "success", "borrower": (resp.data or [updates])[0]}), 200


@core_bp.route('/borrowers/<borrower_id>', methods=['DELETE'])
def delete_borrower(borrower_id):
    if not fetch_one("borrowers", id=borrower_id):
        return _error("Borrower not found", 404)
    active = [l for l in fetch_all("loans", borrower_id=borrower_id)
              if l.get("status") in ("active", "disbursed", "approved")]
    if active:
        return _error("Borrower has active loans and cannot be deleted")
    sb_exec(get_supabase().table("borrowers").delete().eq("id", borrower_id))
    return jsonify({"status": "success", "message": f"Borrower {borrower_id} deleted"}), 200


# Loans

@core_bp.route('/loans', methods=['GET'])
def list_loans():
    return jsonify({"status": "success", "loans": fetch_all("loans", order_by="start_date", desc=True)}), 200


@core_bp.route('/loans', methods=['POST'])
def create_loan():
    data = _columns(request.get_json(silent=True) or {}, LOAN_FIELDS)
    missing = [f for f in ("borrower_id", "principal", "interest_rate", "term") if data.get(f) in (None, "")]
    if missing:
        return _error(f"Missing fields: {', '.join(missing)}")
    borrower = fetch_one("borrowers", id=data["borrower_id"])
    if not borrower:
        return _error("Borrower not found", 404)
    try:
        data["id"] = next_id("loans", "LN")
        data["borrower_name"] = borrower.get("name") or ""
        data.setdefault("start_date", date.today().isoformat())
        data.setdefault("status", "active")
        loan = Loan.from_row(data)
        if loan.principal <= 0 or loan.term <= 0:
            return _error("Amount and term must be positive")
        row = loan.to_dict()
        sb_exec(get_supabase().table("loans").insert(row))
    except (TypeError, ValueError) as e:
        return _error(str(e))
    except Exception as e:
        current_app.logger.error(f"Failed to create loan: {e}")
        return _error(str(e), 500)
    return jsonify({"status": "success", "loan": row}), 201


@core_bp.route('/loans/<loan_id>', methods=['GET'])
def get_loan(loan_id):
    row = fetch_one("loans", id=loan_id)
    if not row:
        return _error("Loan not found", 404)
    return jsonify({"status": "success", "loan": row,
                    "repayments": fetch_all("repayments", order_by="payment_date", loan_id=loan_id)}), 200


@core_bp.route('/loans/<loan_id>', methods=['PUT'])
def update_loan(loan_id):
    updates = _columns(request.get_json(silent=True) or {}, LOAN_FIELDS)
    if not updates:
        return _error("Nothing to update")
    if not fetch_one("loans", id=loan_id):
        return _error("Loan not found", 404)
    resp = sb_exec(get_supabase().table("loans").update(updates).eq("id", loan_id))
    return jsonify({"status": "success", "loan": (resp.data or [updates])[0]}), 200


# Repayments

@core_bp.route('/repayments', methods=['GET'])
def list_repayments():
    filters = {"loan_id": request.args["loan_id"]} if request.args.get("loan_id") else {}
    return jsonify({"status": "success",
                    "repayments": fetch_all("repayments", order_by="payment_date", desc=True, **filters)}), 200


@core_bp.route('/repayments', methods=['POST'])
def create_repayment():
    """Record a repayment (staff entry); the loan balance is reduced by the amount paid."""
    data = request.get_json(silent=True) or {}
    loan_id = data.get("loanId") or data.get("loan_id")
    try:
        amount = float(data.get("amount") or 0)
    except (TypeError, ValueError):
        return _error("Invalid amount")
    if not loan_id or amount <= 0:
        return _error("loanId and a positive amount are required")

    row = fetch_one("loans", id=loan_id)
    if not row:
        return _error("Loan not found", 404)
    loan = Loan.from_row(row)
    paid = min(amount, loan.outstanding)
    if paid <= 0:
        return _error("Loan has no outstanding balance")
    split = calculate_payment_breakdown(
        paid,
        interest_cap=current_app.config["ALLOCATION_INTEREST_CAP"],
        interest_share=current_app.config["ALLOCATION_INTEREST_SHARE"],
    )
    payment_date = parse_date(data.get("paymentDate") or data.get("payment_date")) or date.today()

    supabase = get_supabase()
    try:
        repayment = {
            "id": next_id("repayments", "RP"),
            "loan_id": loan.id,
            "amount": paid,
            "payment_date": payment_date.isoformat(),
            "payment_method": data.get("paymentMethod") or data.get("payment_method") or "cash",
            "principal": round(split["principal"], 2),
            "interest": round(split["interest"], 2),
            "fees": split["fees"],
        }
        sb_exec(supabase.table("repayments").insert(repayment))
        outstanding = max(round(loan.outstanding - paid, 2), 0)
        update = {"outstanding": outstanding}
        if outstanding == 0:
            update["status"] = "completed"
        sb_exec(supabase.table("loans").update(update).eq("id", loan.id))
    except Exception as e:
        current_app.logger.error(f"Failed to record repayment for {loan.id}: {e}")
        return _error(str(e), 500)
    return jsonify({"status": "success", "repayment": repayment, "outstanding": outstanding}), 201


@core_bp.route('/dashboard/stats', methods=['GET'])
def stats():
    loans = [Loan.from_row(r) for r in fetch_all("loans")]
    return jsonify({"status": "success",
                    **dashboard_stats(fetch_all("borrowers"), loans, fetch_all("repayments"))}), 200


@core_bp.route('/init-sample-data', methods=['POST'])
def init_sample_data():
    try:
        counts = seed()
    except Exception as e:
        current_app.logger.error(f"Sample data load failed: {e}")
        return _error(str(e), 500)
    return jsonify({"status": "success", "message": "Sample data initialized", "counts": counts}), 200


@core_bp.route('/navigation', methods=['GET'])
def get_navigation():
    """Query params: type (lender|borrower), role, tab."""
    app_type = user_type(request.args.get("type"))
    if app_type is None:
        return jsonify({"status": "success", "type": None, "options": ["lender", "borrower"]}), 200
    role = "borrower" if app_type == "borrower" else request.args.get("role", "admin")
    return jsonify({"status": "success", "type": app_type, **navigation(role, request.args.get("tab"))}), 200
