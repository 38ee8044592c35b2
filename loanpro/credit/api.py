from flask import request, jsonify, current_app

from loanpro.db import get_supabase, sb_exec, fetch_one, fetch_all
from loanpro.errors import InvalidTransition
from loanpro.models import Application, Borrower, TimelineEntry
from loanpro.applications.status import (
    UNDER_REVIEW, ESCALATED, APPROVED, REJECTED, transition,
)
from loanpro.notification.email_utils import send_application_status_email
from loanpro.credit.assessment import (
    evaluate_auto_checks, risk_level, analyst_decision, approver_decision, is_high_value, loan_options,
)

from . import credit_bp

# analyst outcome -> application status; "approved" only records a recommendation
ANALYST_TARGETS = {"referred": ESCALATED, "rejected": REJECTED}
APPROVER_TARGETS = {"approved": APPROVED, "rejected": REJECTED, "referred_back": UNDER_REVIEW}


def _load(app_id):
    row = fetch_one("applications", id=app_id)
    return Application.from_row(row) if row else None


def _save(application):
    sb_exec(get_supabase().table("applications").update(application.to_dict()).eq("id", application.id))


@credit_bp.route('/auto-checks', methods=['POST'])
def auto_checks():
    """Expects JSON: any of debt_to_income_ratio, exposure_limit, related_party_check, previous_delinquencies."""
    checks = request.get_json(silent=True) or {}
    try:
        result = evaluate_auto_checks(checks)
    except TypeError as e:
        return jsonify({"status": "error", "message": f"Invalid check value: {e}"}), 400
    return jsonify({"status": "success", **result}), 200


@credit_bp.route('/risk-level', methods=['GET'])
def get_risk_level():
    try:
        score = float(request.args.get("score"))
    except (TypeError, ValueError):
        return jsonify({"status": "error", "message": "score query parameter is required"}), 400
    return jsonify({"status": "success", "score": score, "risk_level": risk_level(score)}), 200


@credit_bp.route('/applications/<app_id>/analysis', methods=['POST'])
def submit_analysis(app_id):
    """
    Credit analyst decision.
    Expects JSON: decision (approve|refer|reject), risk_rating, reason, conditions, analyst.
    """
    data = request.get_json(silent=True) or {}
    try:
        decision = analyst_decision(data.get("decision"), data.get("risk_rating") or "medium",
                                    data.get("reason"), data.get("conditions"))
    except ValueError as e:
        return jsonify({"status": "error", "message": str(e)}), 400

    application = _load(app_id)
    if not application:
        return jsonify({"status": "error", "message": "Application not found"}), 404

    checks = application.details.get("auto_checks") or {}
    if checks:
        decision["auto_checks"] = evaluate_auto_checks(checks)
    application.details["analysis"] = decision

    target = ANALYST_TARGETS.get(decision["status"])
    try:
        if target:
            transition(application, target, decision["reason"] or None, data.get("analyst"))
    except InvalidTransition as e:
        return jsonify({"status": "error", "message": str(e)}), 400

    _save(application)
    current_app.logger.info(f"Credit analysis for {app_id}: {decision['decision']} ({decision['risk_rating']} risk)")
    return jsonify({"status": "success", "analysis": decision, "application_status": application.status}), 200


@credit_bp.route('/applications/<app_id>/approval', methods=['POST'])
def submit_approval(app_id):
    """
    Final approval.
    Expects JSON: decision (approve|approve_with_conditions|refer_back|reject), notes, conditions, approved_by.
    """
    data = request.get_json(silent=True) or {}
    try:
        decision = approver_decision(data.get("decision"), data.get("notes"), data.get("conditions"),
                                     data.get("approved_by") or "Current User")
    except ValueError as e:
        return jsonify({"status": "error", "message": str(e)}), 400

    application = _load(app_id)
    if not application:
        return jsonify({"status": "error", "message": "Application not found"}), 404

    decision["high_value"] = is_high_value(application.amount, current_app.config["HIGH_VALUE_THRESHOLD"])
    application.details["approval"] = decision

    target = APPROVER_TARGETS[decision["status"]]
    if decision["status"] == "referred_back" and application.status == UNDER_REVIEW:
        # referred back while already under review: note it without a status change
        application.timeline.append(TimelineEntry(
            date=decision["approved_at"],
            status=target,
            description=decision["notes"] or "Referred back for further review",
            officer=decision["approved_by"],
        ))
        application.last_updated = decision["approved_at"]
    else:
        try:
            transition(application, target, decision["notes"] or None, decision["approved_by"])
        except InvalidTransition as e:
            return jsonify({"status": "error", "message": str(e)}), 400
    _save(application)

    if application.status in (APPROVED, REJECTED) and application.borrower_id:
        borrower = fetch_one("borrowers", id=application.borrower_id)
        if borrower and borrower.get("email"):
            send_application_status_email(borrower["email"], borrower.get("name"), app_id, application.status)
    return jsonify({"status": "success", "approval": decision, "application_status": application.status}), 200


@credit_bp.route('/borrowers/<borrower_id>/assessment', methods=['GET'])
def borrower_assessment(borrower_id):
    """Credit profile with loan options. Query params: amount, term, frequency."""
    row = fetch_one("borrowers", id=borrower_id)
    if not row:
        return jsonify({"status": "error", "message": "Borrower not found"}), 404
    borrower = Borrower.from_row(row)
    try:
        amount = float(request.args.get("amount", 10000))
        term = int(request.args.get("term", 12))
    except ValueError:
        return jsonify({"status": "error", "message": "amount and term must be numeric"}), 400

    loans = fetch_all("loans", borrower_id=borrower_id)
    return jsonify({
        "status": "success",
        "borrower": borrower.to_dict(),
        "existing_exposure": round(sum(float(l.get("outstanding") or 0) for l in loans), 2),
        "options": loan_options(amount, term, request.args.get("frequency", "monthly")),
    }), 200
