from datetime import datetime, timezone

from flask import request, jsonify, current_app
from werkzeug.security import generate_password_hash

from loanpro.db import get_supabase, sb_exec, fetch_one, fetch_all, next_id
from loanpro.errors import InvalidTransition
from loanpro.models import Application
from loanpro.notification.email_utils import send_application_status_email
from loanpro.applications.status import (
    DRAFT, SUBMITTED, STATUSES, transition, complete_action, add_message,
    filter_applications, application_stats, outstanding_actions,
)
from loanpro.applications.wizard import WIZARDS, SignupWizard, LoanApplicationWizard

from . import applications_bp


def _load(app_id):
    row = fetch_one("applications", id=app_id)
    return Application.from_row(row) if row else None


def _save(application):
    row = application.to_dict()
    sb_exec(get_supabase().table("applications").update(row).eq("id", application.id))
    return row


def _not_found():
    return jsonify({"status": "error", "message": "Application not found"}), 404


def _notify(application):
    if not application.borrower_id:
        return
    borrower = fetch_one("borrowers", id=application.borrower_id)
    if borrower and borrower.get("email"):
        send_application_status_email(borrower["email"], borrower.get("name") or application.borrower_name,
                                      application.id, application.status)


@applications_bp.route('', methods=['GET'])
def list_applications():
    """Query params: q (search on id, borrower, product), status (default all)."""
    apps = [Application.from_row(r) for r in fetch_all("applications", order_by="last_updated", desc=True)]
    filtered = filter_applications(apps, request.args.get("q", ""), request.args.get("status", "all"))
    return jsonify({
        "status": "success",
        "applications": [a.to_dict() for a in filtered],
        "stats": application_stats(apps),
    }), 200


@applications_bp.route('/validate-step', methods=['POST'])
def validate_step():
    """
    Validate one wizard step.
    Expects JSON: wizard ("signup" | "loan_application"), step, data.
    """
    payload = request.get_json(silent=True) or {}
    wizard_cls = WIZARDS.get(payload.get("wizard"))
    if not wizard_cls:
        return jsonify({"status": "error", "message": "Unknown wizard"}), 400
    try:
        step = int(payload.get("step") or 1)
    except (TypeError, ValueError):
        return jsonify({"status": "error", "message": "Invalid step"}), 400

    wizard = wizard_cls(payload.get("data"), current_step=step)
    advanced = wizard.next()
    body = {
        "status": "success" if advanced else "error",
        "valid": advanced,
        "errors": wizard.errors,
        "current_step": wizard.current_step,
        "progress": wizard.progress,
        "completed": wizard.completed,
    }
    if isinstance(wizard, LoanApplicationWizard):
        body["installment"] = round(wizard.installment, 2)
    return jsonify(body), 200 if advanced else 400


def _existing_draft(app_id):
    """Load a draft being resumed; returns (application, error response)."""
    application = _load(app_id)
    if not application:
        return None, _not_found()
    if application.status != DRAFT:
        return None, (jsonify({"status": "error",
                               "message": f"Application {app_id} is {application.status}, not a draft"}), 400)
    return application, None


@applications_bp.route('/drafts', methods=['POST'])
def save_draft():
    """
    Persist an unfinished loan application wizard so it can be resumed.
    Passing the id of an existing draft overwrites that draft only.
    """
    payload = request.get_json(silent=True) or {}
    wizard = LoanApplicationWizard.from_dict(payload)
    data = wizard.data
    now = datetime.now(timezone.utc).isoformat()

    existing = None
    if payload.get("id"):
        existing, error = _existing_draft(payload["id"])
        if error:
            return error

    try:
        draft_id = existing.id if existing else next_id("applications", "APP")
        row = {
            "id": draft_id,
            "status": DRAFT,
            "product": data.get("product_id") or "",
            "amount": data.get("amount") or 0,
            "term": data.get("term") or 0,
            "frequency": data.get("frequency") or "monthly",
            "borrower_id": payload.get("borrower_id") or (existing.borrower_id if existing else None),
            "borrower_name": payload.get("borrower_name") or (existing.borrower_name if existing else ""),
            "last_updated": now,
        }
        if existing:
            row["details"] = {**existing.details, "draft": wizard.to_dict()}
            sb_exec(get_supabase().table("applications").update(row).eq("id", draft_id))
        else:
            row.update({"timeline": [], "required_actions": [], "messages": [],
                        "details": {"draft": wizard.to_dict()}})
            sb_exec(get_supabase().table("applications").insert(row))
    except Exception as e:
        current_app.logger.error(f"Failed to save draft: {e}")
        return jsonify({"status": "error", "message": str(e)}), 500
    return jsonify({"status": "success", "id": draft_id, "draft": wizard.to_dict()}), 200


@applications_bp.route('/drafts/<app_id>', methods=['GET'])
def resume_draft(app_id):
    application, error = _existing_draft(app_id)
    if error:
        return error
    snapshot = application.details.get("draft") or {}
    wizard = LoanApplicationWizard.from_dict(snapshot)
    return jsonify({"status": "success", "id": app_id, "draft": wizard.to_dict(),
                    "progress": wizard.progress}), 200


@applications_bp.route('', methods=['POST'])
def submit_application():
    """
    Submit a completed loan application.
    Expects JSON: data (wizard fields incl. otp_code), borrower_id, borrower_name, optional id of a draft.
    """
    payload = request.get_json(silent=True) or {}
    application = None
    if payload.get("id"):
        application, error = _existing_draft(payload["id"])
        if error:
            return error

    wizard = LoanApplicationWizard(payload.get("data"), current_step=LoanApplicationWizard.total_steps)
    submission = wizard.submit()
    if submission is None:
        return jsonify({"status": "error", "message": "Application is incomplete", "errors": wizard.errors}), 400

    try:
        if application is None:
            application = Application(id=next_id("applications", "APP"), status=DRAFT, product="", amount=0, term=0)
        application.product = submission["product_id"]
        application.amount = submission["amount"]
        application.term = submission["term"]
        application.frequency = submission["frequency"]
        application.borrower_id = payload.get("borrower_id") or application.borrower_id
        application.borrower_name = payload.get("borrower_name") or application.borrower_name
        application.details.pop("draft", None)
        application.details["submission"] = submission
        transition(application, SUBMITTED, officer="System")
        sb_exec(get_supabase().table("applications").upsert(application.to_dict()))
    except Exception as e:
        current_app.logger.error(f"Failed to submit application: {e}")
        return jsonify({"status": "error", "message": str(e)}), 500

    app_id = application.id

    current_app.logger.info(f"Application {app_id} submitted for {application.borrower_name or 'unknown borrower'}")
    _notify(application)
    return jsonify({"status": "success", "application": application.to_dict()}), 201


@applications_bp.route('/<app_id>', methods=['GET'])
def get_application(app_id):
    application = _load(app_id)
    if not application:
        return _not_found()
    return jsonify({
        "status": "success",
        "application": application.to_dict(),
        "outstanding_actions": [a.id for a in outstanding_actions(application)],
    }), 200


@applications_bp.route('/<app_id>/transition', methods=['POST'])
def change_status(app_id):
    """Expects JSON: status, optional description, officer."""
    data = request.get_json(silent=True) or {}
    target = data.get("status")
    if target not in STATUSES:
        return jsonify({"status": "error", "message": f"Unknown status: {target}"}), 400
    application = _load(app_id)
    if not application:
        return _not_found()
    try:
        transition(application, target, data.get("description"), data.get("officer"))
    except InvalidTransition as e:
        return jsonify({"status": "error", "message": str(e)}), 400
    row = _save(application)
    _notify(application)
    return jsonify({"status": "success", "application": row}), 200


@applications_bp.route('/<app_id>/messages', methods=['POST'])
def post_message(app_id):
    data = request.get_json(silent=True) or {}
    text = (data.get("message") or "").strip()
    if not text:
        return jsonify({"status": "error", "message": "Message text is required"}), 400
    application = _load(app_id)
    if not application:
        return _not_found()
    try:
        message = add_message(application, data.get("sender") or "You", text, data.get("type") or "borrower")
    except ValueError as e:
        return jsonify({"status": "error", "message": str(e)}), 400
    _save(application)
    return jsonify({"status": "success", "message": message.__dict__}), 201


@applications_bp.route('/<app_id>/actions/<action_id>/complete', methods=['POST'])
def finish_action(app_id, action_id):
    application = _load(app_id)
    if not application:
        return _not_found()
    try:
        complete_action(application, action_id)
    except KeyError:
        return jsonify({"status": "error", "message": "Required action not found"}), 404
    _save(application)
    return jsonify({
        "status": "success",
        "outstanding_actions": [a.id for a in outstanding_actions(application)],
    }), 200


@applications_bp.route('/signup', methods=['POST'])
def signup():
    """Borrower self-registration; all four signup steps are validated together."""
    wizard = SignupWizard(request.get_json(silent=True) or {})
    errors = {}
    for step in range(1, wizard.total_steps + 1):
        errors.update(wizard.validate_step(step))
    if errors:
        return jsonify({"status": "error", "message": "Please fix the highlighted fields", "errors": errors}), 400

    data = wizard.result()
    if fetch_one("borrowers", email=data["email"]):
        return jsonify({"status": "error", "message": "Email already registered"}), 400

    try:
        borrower = {
            "id": next_id("borrowers", "B"),
            "name": f"{data['first_name']} {data['last_name']}".strip(),
            "email": data["email"],
            "phone": data["phone"],
            "address": ", ".join(filter(None, [data["address"], data["city"], data["state"],
                                               data["zip_code"], data["country"]])),
            "credit_score": 0,
            "kyc_status": "pending",
            "status": "active",
            "password_hash": generate_password_hash(data["password"]),
            "profile": {k: data[k] for k in ("date_of_birth", "gender", "employment_status",
                                             "monthly_income", "employer")},
        }
        sb_exec(get_supabase().table("borrowers").insert(borrower))
    except Exception as e:
        current_app.logger.error(f"Signup failed for {data['email']}: {e}")
        return jsonify({"status": "error", "message": str(e)}), 500

    borrower.pop("password_hash")
    return jsonify({"status": "success", "message": "Account created", "borrower": borrower}), 201
