from flask import request, jsonify, current_app, make_response

from loanpro.db import get_supabase, sb_exec, fetch_one, fetch_all, next_number
from loanpro.errors import ReconciliationError, LoanCalculationError
from loanpro.models import PaymentRecord
from loanpro.finance.calculations import INTEREST_FIRST
from loanpro.accounting.reconciliation import (
    read_statement, search_payments, match_payment, post_payment, reconciliation_stats, export_workbook,
)

from . import accounting_bp

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _payments():
    return [PaymentRecord.from_row(r) for r in fetch_all("payments", order_by="date", desc=True)]


def _load(payment_id):
    row = fetch_one("payments", id=payment_id)
    return PaymentRecord.from_row(row) if row else None


def _save(payment):
    sb_exec(get_supabase().table("payments").update(payment.to_dict()).eq("id", payment.id))


@accounting_bp.route('/import', methods=['POST'])
def import_statement():
    """Multipart upload: file (.csv/.xlsx with amount, reference, date columns) and source."""
    upload = request.files.get("file")
    if not upload or not upload.filename:
        return jsonify({"status": "error", "message": "No statement file uploaded"}), 400

    try:
        payments = read_statement(upload.stream, upload.filename, request.form.get("source", "bank"),
                                  start_index=next_number("payments", "PAY"))
    except ReconciliationError as e:
        return jsonify({"status": "error", "message": str(e)}), 400

    existing = {r["id"] for r in fetch_all("payments")}
    seen = set()
    duplicates = []
    for p in payments:
        if p.id in existing or p.id in seen:
            duplicates.append(p.id)
        seen.add(p.id)
    if duplicates:
        return jsonify({"status": "error",
                        "message": f"Duplicate payment ids: {', '.join(duplicates)}"}), 400

    rows = [p.to_dict() for p in payments]
    if rows:
        try:
            sb_exec(get_supabase().table("payments").insert(rows))
        except Exception as e:
            current_app.logger.error(f"Statement import failed: {e}")
            return jsonify({"status": "error", "message": str(e)}), 500
    current_app.logger.info(f"Imported {len(rows)} payments from {upload.filename}")
    return jsonify({"status": "success", "imported": len(rows), "payments": rows}), 201


@accounting_bp.route('/payments', methods=['GET'])
def list_payments():
    payments = _payments()
    found = search_payments(payments, request.args.get("q", ""))
    return jsonify({
        "status": "success",
        "payments": [p.to_dict() for p in found],
        "stats": reconciliation_stats(payments),
    }), 200


@accounting_bp.route('/payments/<payment_id>/match', methods=['POST'])
def match(payment_id):
    """Expects JSON: loan_id, optional rule (interest_first|principal_first)."""
    data = request.get_json(silent=True) or {}
    payment = _load(payment_id)
    if not payment:
        return jsonify({"status": "error", "message": "Payment not found"}), 404

    loan = fetch_one("loans", id=data.get("loan_id")) if data.get("loan_id") else None
    if data.get("loan_id") and not loan:
        return jsonify({"status": "error", "message": "Loan not found"}), 404
    try:
        match_payment(
            payment,
            data.get("loan_id"),
            (loan or {}).get("borrower_name"),
            data.get("rule") or INTEREST_FIRST,
            interest_cap=current_app.config["ALLOCATION_INTEREST_CAP"],
            interest_share=current_app.config["ALLOCATION_INTEREST_SHARE"],
        )
    except (ReconciliationError, LoanCalculationError) as e:
        return jsonify({"status": "error", "message": str(e)}), 400
    _save(payment)
    return jsonify({"status": "success", "payment": payment.to_dict()}), 200


@accounting_bp.route('/payments/<payment_id>/post', methods=['POST'])
def post(payment_id):
    """Post a matched payment to the general ledger and reduce the loan balance."""
    payment = _load(payment_id)
    if not payment:
        return jsonify({"status": "error", "message": "Payment not found"}), 404
    if not payment.matched_loan_id:
        return jsonify({"status": "error", "message": "Payment must be matched to a loan before posting"}), 400
    try:
        entry = post_payment(payment)
    except ReconciliationError as e:
        return jsonify({"status": "error", "message": str(e)}), 400

    supabase = get_supabase()
    try:
        loan = fetch_one("loans", id=payment.matched_loan_id)
        if loan:
            outstanding = max(round(float(loan.get("outstanding") or 0) - payment.amount, 2), 0)
            update = {"outstanding": outstanding}
            if outstanding == 0:
                update["status"] = "completed"
            sb_exec(supabase.table("loans").update(update).eq("id", payment.matched_loan_id))
        payment.status = "matched"
        _save(payment)
        sb_exec(supabase.table("journal_entries").insert(entry))
    except Exception as e:
        current_app.logger.error(f"Posting payment {payment_id} failed: {e}")
        return jsonify({"status": "error", "message": str(e)}), 500
    return jsonify({"status": "success", "journal_entry": entry}), 200


@accounting_bp.route('/payments/excel', methods=['GET'])
def payments_excel():
    try:
        content = export_workbook(_payments())
    except Exception as e:
        return jsonify({'status': 'error', 'message': f'Failed to generate reconciliation Excel: {str(e)}'}), 500
    response = make_response(content)
    response.headers["Content-Disposition"] = "attachment; filename=reconciliation.xlsx"
    response.headers["Content-Type"] = XLSX_MIMETYPE
    return response
