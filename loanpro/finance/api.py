from datetime import date, datetime

from flask import request, jsonify, current_app, make_response

from loanpro.db import get_supabase, sb_exec, fetch_one, fetch_all, next_id
from loanpro.errors import LoanCalculationError
from loanpro.models import Loan, parse_date
from loanpro.finance.calculations import (
    calculate_installment, total_repayable, installments_per_month, generate_schedule,
    calculate_early_repayment, calculate_suggested_allocation, calculate_payment_breakdown,
    accrued_interest, months_elapsed, INTEREST_FIRST,
)
from loanpro.finance.products import LOAN_PRODUCTS, get_product
from loanpro.notification.email_utils import send_email
from loanpro.reports.statements import loan_statement, statement_workbook

from . import finance_bp

REQUEST_TYPES = ("restructure", "early_repayment", "complaint")
PAYMENT_METHODS = ("bank", "mpesa", "card", "cash")
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _allocation_settings():
    return {
        "interest_cap": current_app.config["ALLOCATION_INTEREST_CAP"],
        "interest_share": current_app.config["ALLOCATION_INTEREST_SHARE"],
    }


def _loan_terms(data):
    """Amount, term, frequency and interest terms from a product id or explicit fields."""
    product = None
    if data.get("product_id"):
        product = get_product(data["product_id"])
        if not product:
            raise ValueError(f"Unknown loan product: {data['product_id']}")
    principal = float(data["amount"])
    term = int(data["term"])
    frequency = data.get("frequency") or "monthly"
    if product:
        return principal, term, frequency, product.interest_type, product.interest_rate
    return principal, term, frequency, data["interest_type"], float(data["interest_rate"])


def _get_loan_or_404(loan_id):
    row = fetch_one("loans", id=loan_id)
    if not row:
        return None, (jsonify({"status": "error", "message": "Loan not found"}), 404)
    return Loan.from_row(row), None


@finance_bp.route('/products', methods=['GET'])
def list_products():
    return jsonify({"status": "success", "products": [p.to_dict() for p in LOAN_PRODUCTS]}), 200


@finance_bp.route('/calculate', methods=['POST'])
def calculate():
    """
    Installment calculator.
    Expects JSON: amount, term, frequency and either product_id or interest_type + interest_rate.
    """
    data = request.get_json(silent=True) or {}
    try:
        principal, term, frequency, interest_type, rate = _loan_terms(data)
        installment = calculate_installment(principal, term, frequency, interest_type, rate)
        total = total_repayable(principal, term, frequency, interest_type, rate)
    except KeyError as e:
        return jsonify({"status": "error", "message": f"Missing field: {e.args[0]}"}), 400
    except (TypeError, ValueError, LoanCalculationError) as e:
        return jsonify({"status": "error", "message": str(e)}), 400

    return jsonify({
        "status": "success",
        "installment": round(installment, 2),
        "installments": term * installments_per_month(frequency),
        "total_repayable": round(total, 2),
        "total_interest": round(total - principal, 2),
        "interest_type": interest_type,
        "interest_rate": rate,
    }), 200


@finance_bp.route('/schedule', methods=['POST'])
def schedule():
    data = request.get_json(silent=True) or {}
    try:
        principal, term, frequency, interest_type, rate = _loan_terms(data)
        start = parse_date(data.get("start_date")) or date.today()
        rows = generate_schedule(principal, term, frequency, interest_type, rate, start)
    except KeyError as e:
        return jsonify({"status": "error", "message": f"Missing field: {e.args[0]}"}), 400
    except (TypeError, ValueError, LoanCalculationError) as e:
        return jsonify({"status": "error", "message": str(e)}), 400
    return jsonify({"status": "success", "schedule": rows}), 200


@finance_bp.route('/allocation', methods=['POST'])
def allocation():
    """Suggested principal/interest/fees split for a payment under an allocation rule."""
    data = request.get_json(silent=True) or {}
    try:
        amount = float(data.get("amount"))
        result = calculate_suggested_allocation(amount, data.get("rule") or INTEREST_FIRST,
                                                **_allocation_settings())
    except (TypeError, ValueError, LoanCalculationError) as e:
        return jsonify({"status": "error", "message": str(e)}), 400
    return jsonify({"status": "success", "allocation": result}), 200


@finance_bp.route('/breakdown', methods=['POST'])
def breakdown():
    data = request.get_json(silent=True) or {}
    try:
        amount = float(data.get("amount"))
        result = calculate_payment_breakdown(amount, **_allocation_settings())
    except (TypeError, ValueError, LoanCalculationError) as e:
        return jsonify({"status": "error", "message": str(e)}), 400
    return jsonify({"status": "success", "breakdown": result, "total": amount}), 200


@finance_bp.route('/<loan_id>', methods=['GET'])
def get_loan(loan_id):
    """Loan details with its repayments and the interest accrued between them."""
    loan, error = _get_loan_or_404(loan_id)
    if error:
        return error

    records = fetch_all("repayments", order_by="payment_date", loan_id=loan.id)
    prev_date = loan.start_date
    balance = loan.principal
    for rec in records:
        paid_on = parse_date(rec.get("payment_date"))
        days = (paid_on - prev_date).days if paid_on else 0
        rec["accrued_interest"] = round(accrued_interest(balance, loan.interest_rate, days), 2)
        balance = max(balance - float(rec.get("amount") or 0), 0)
        prev_date = paid_on or prev_date

    return jsonify({
        "status": "success",
        "loan": loan.to_dict(),
        "repayments": records,
        "total_repaid": round(sum(float(r.get("amount") or 0) for r in records), 2),
    }), 200


@finance_bp.route('/<loan_id>/schedule', methods=['GET'])
def loan_schedule(loan_id):
    loan, error = _get_loan_or_404(loan_id)
    if error:
        return error
    try:
        rows = generate_schedule(loan.principal, loan.term, loan.frequency,
                                 loan.interest_type, loan.interest_rate, loan.start_date)
    except LoanCalculationError as e:
        return jsonify({"status": "error", "message": str(e)}), 400
    return jsonify({"status": "success", "loan_id": loan.id, "schedule": rows}), 200


def _statement_for(loan):
    return loan_statement(loan, fetch_all("repayments", loan_id=loan.id))


@finance_bp.route('/<loan_id>/statement', methods=['GET'])
def get_statement(loan_id):
    loan, error = _get_loan_or_404(loan_id)
    if error:
        return error
    return jsonify({"status": "success", "statement": _statement_for(loan)}), 200


@finance_bp.route('/<loan_id>/statement/excel', methods=['GET'])
def statement_excel(loan_id):
    loan, error = _get_loan_or_404(loan_id)
    if error:
        return error
    try:
        content = statement_workbook(_statement_for(loan))
    except Exception as e:
        return jsonify({'status': 'error', 'message': f'Failed to generate statement Excel: {str(e)}'}), 500
    response = make_response(content)
    response.headers["Content-Disposition"] = f"attachment; filename=statement_{loan.id}.xlsx"
    response.headers["Content-Type"] = XLSX_MIMETYPE
    return response


@finance_bp.route('/<loan_id>/statement/email', methods=['POST'])
def email_statement(loan_id):
    """E-mail the statement workbook to the borrower, or to an optional JSON ``email``."""
    loan, error = _get_loan_or_404(loan_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    borrower = fetch_one("borrowers", id=loan.borrower_id) or {}
    email = data.get("email") or borrower.get("email")
    if not email:
        return jsonify({"status": "error", "message": "No e-mail address on file for this borrower"}), 400

    statement = _statement_for(loan)
    name = borrower.get("name") or loan.borrower_name
    currency = current_app.config.get("CURRENCY", "ZMW")
    html_body = (f"<p>Dear {name},</p><p>Please find attached the statement for loan "
                 f"<strong>{loan.id}</strong> as of {statement['generated_on']}.</p>"
                 f"<p>Outstanding balance: {currency} {statement['outstanding']:,.2f}</p>")
    sent = send_email(email, f"Loan Statement - {loan.id}", html_body,
                      attachments=[(f"statement_{loan.id}.xlsx", statement_workbook(statement))])
    if not sent:
        return jsonify({"status": "error", "message": "Statement e-mail could not be sent"}), 502
    current_app.logger.info(f"Statement for {loan.id} e-mailed to {email}")
    return jsonify({"status": "success", "message": f"Statement sent to {email}"}), 200


@finance_bp.route('/<loan_id>/early-repayment', methods=['GET'])
def early_repayment_quote(loan_id):
    """Payoff quote. Optional query param: as_of=YYYY-MM-DD (default today)."""
    loan, error = _get_loan_or_404(loan_id)
    if error:
        return error
    try:
        as_of = parse_date(request.args.get("as_of")) or date.today()
    except ValueError:
        return jsonify({"status": "error", "message": "Invalid as_of date"}), 400

    quote = calculate_early_repayment(loan, as_of, current_app.config["EARLY_REPAYMENT_DISCOUNT"])
    return jsonify({
        "status": "success",
        "loan_id": loan.id,
        "as_of": as_of.isoformat(),
        "months_elapsed": months_elapsed(loan.start_date, as_of),
        **{k: round(v, 2) for k, v in quote.items()},
    }), 200


@finance_bp.route('/<loan_id>/repay', methods=['POST'])
def repay_loan(loan_id):
    """
    Borrower repayment.
    Expects JSON: amount, method, otp_code, optional payment_date.
    The payment is capped at the outstanding balance.
    """
    data = request.get_json(silent=True) or {}
    try:
        amount = float(data.get("amount") or 0)
    except (TypeError, ValueError):
        amount = 0
    method = data.get("method")
    if amount <= 0 or not method:
        return jsonify({"status": "error", "message": "Amount and payment method are required"}), 400
    if method not in PAYMENT_METHODS:
        return jsonify({"status": "error", "message": f"Unknown payment method: {method}"}), 400
    if not data.get("otp_code"):
        return jsonify({"status": "error", "message": "OTP code is required to confirm payment"}), 400

    loan, error = _get_loan_or_404(loan_id)
    if error:
        return error
    if loan.outstanding <= 0:
        return jsonify({"status": "error", "message": "No outstanding balance on this loan"}), 400

    repayment_amount = min(amount, loan.outstanding)
    split = calculate_payment_breakdown(repayment_amount, **_allocation_settings())
    new_outstanding = max(round(loan.outstanding - repayment_amount, 2), 0)
    payment_date = data.get("payment_date") or date.today().isoformat()

    supabase = get_supabase()
    try:
        repayment = {
            "id": next_id("repayments", "RP"),
            "loan_id": loan.id,
            "amount": repayment_amount,
            "payment_date": payment_date,
            "payment_method": method,
            "principal": round(split["principal"], 2),
            "interest": round(split["interest"], 2),
            "fees": split["fees"],
        }
        sb_exec(supabase.table("repayments").insert(repayment))
        loan_update = {"outstanding": new_outstanding}
        if new_outstanding == 0:
            loan_update["status"] = "completed"
        sb_exec(supabase.table("loans").update(loan_update).eq("id", loan.id))
    except Exception as e:
        current_app.logger.error(f"Repayment failed for loan {loan.id}: {e}")
        return jsonify({"status": "error", "message": str(e)}), 500

    return jsonify({
        "status": "success",
        "message": "Payment processed",
        "repayment": repayment,
        "outstanding": new_outstanding,
        "loan_status": loan_update.get("status", loan.status),
    }), 200


@finance_bp.route('/requests', methods=['POST'])
def submit_request():
    """
    Borrower service request.
    restructure: loan_id, reason, new_term, optional new_amount, details
    early_repayment: loan_id, optional amount
    complaint: complaint_type, description, optional priority, loan_id
    """
    data = request.get_json(silent=True) or {}
    req_type = data.get("type")
    if req_type not in REQUEST_TYPES:
        return jsonify({"status": "error", "message": "Request type must be restructure, early_repayment or complaint"}), 400

    record = {
        "type": req_type,
        "status": "pending",
        "loan_id": data.get("loan_id"),
        "submitted_date": datetime.now().date().isoformat(),
    }

    if req_type == "restructure":
        try:
            new_term = int(data.get("new_term"))
        except (TypeError, ValueError):
            new_term = None
        if not data.get("loan_id") or not data.get("reason") or not new_term:
            return jsonify({"status": "error", "message": "loan_id, reason and new_term are required"}), 400
        record["description"] = data["reason"]
        record["details"] = {
            "new_term": new_term,
            "new_amount": float(data["new_amount"]) if data.get("new_amount") else None,
            "details": data.get("details") or "",
        }
    elif req_type == "early_repayment":
        if not data.get("loan_id"):
            return jsonify({"status": "error", "message": "loan_id is required"}), 400
        loan, error = _get_loan_or_404(data["loan_id"])
        if error:
            return error
        quote = calculate_early_repayment(loan, discount_rate=current_app.config["EARLY_REPAYMENT_DISCOUNT"])
        record["description"] = "Early repayment request"
        record["details"] = {"quote": quote, "amount": data.get("amount")}
    else:
        if not data.get("complaint_type") or not data.get("description"):
            return jsonify({"status": "error", "message": "complaint_type and description are required"}), 400
        record["description"] = data["description"]
        record["details"] = {
            "complaint_type": data["complaint_type"],
            "priority": data.get("priority") or "medium",
        }

    try:
        record["id"] = next_id("requests", "REQ")
        sb_exec(get_supabase().table("requests").insert(record))
    except Exception as e:
        current_app.logger.error(f"Failed to store {req_type} request: {e}")
        return jsonify({"status": "error", "message": str(e)}), 500
    return jsonify({"status": "success", "request": record}), 201


@finance_bp.route('/requests', methods=['GET'])
def list_requests():
    filters = {k: request.args[k] for k in ("loan_id", "type", "status") if request.args.get(k)}
    rows = fetch_all("requests", order_by="submitted_date", desc=True, **filters)
    return jsonify({"status": "success", "requests": rows}), 200
