from datetime import date

from flask import request, jsonify, current_app

from loanpro.db import get_supabase, sb_exec, fetch_one, fetch_all, next_id
from loanpro.errors import DisbursementError, LoanCalculationError
from loanpro.models import Application, parse_date
from loanpro.applications.status import APPROVED
from loanpro.finance.calculations import generate_schedule
from loanpro.finance.products import get_product
from loanpro.disbursement.checklist import (
    CHECKLIST_ITEMS, empty_checklist, checklist_status, all_checks_passed,
    requires_dual_auth, initiate_payment, disbursement_slip,
)

from . import disbursement_bp


def _load(app_id):
    row = fetch_one("applications", id=app_id)
    return Application.from_row(row) if row else None


def _checklist(application):
    checklist = empty_checklist()
    checklist.update(application.details.get("checklist") or {})
    return checklist


def _summary(application):
    checklist = _checklist(application)
    threshold = current_app.config["DUAL_AUTH_THRESHOLD"]
    return {
        "id": application.id,
        "borrower_name": application.borrower_name,
        "product": application.product,
        "amount": application.amount,
        "term": application.term,
        "checklist": checklist,
        "checklist_status": checklist_status(checklist),
        "ready": all_checks_passed(checklist),
        "requires_dual_auth": requires_dual_auth(application.amount, threshold),
    }


@disbursement_bp.route('/ready', methods=['GET'])
def ready_for_disbursement():
    """Approved applications that have not been paid out yet."""
    apps = [Application.from_row(r) for r in fetch_all("applications", status=APPROVED)]
    pending = [a for a in apps if not a.details.get("disbursement")]
    return jsonify({"status": "success", "applications": [_summary(a) for a in pending]}), 200


@disbursement_bp.route('/<app_id>/checklist', methods=['POST'])
def update_checklist(app_id):
    """Expects JSON mapping checklist items to true/false."""
    data = request.get_json(silent=True) or {}
    unknown = [k for k in data if k not in CHECKLIST_ITEMS]
    if unknown:
        return jsonify({"status": "error", "message": f"Unknown checklist items: {', '.join(unknown)}"}), 400
    application = _load(app_id)
    if not application:
        return jsonify({"status": "error", "message": "Application not found"}), 404

    checklist = _checklist(application)
    checklist.update({k: bool(v) for k, v in data.items()})
    application.details["checklist"] = checklist
    sb_exec(get_supabase().table("applications").update(
        {"details": application.details}).eq("id", application.id))
    return jsonify({"status": "success", **_summary(application)}), 200


@disbursement_bp.route('/<app_id>/initiate', methods=['POST'])
def initiate(app_id):
    """
    Pay out an approved application and open its loan account.
    Expects JSON: date, amount, channel, authorised_by (list), optional charges.
    """
    data = request.get_json(silent=True) or {}
    application = _load(app_id)
    if not application:
        return jsonify({"status": "error", "message": "Application not found"}), 404
    if application.status != APPROVED:
        return jsonify({"status": "error", "message": "Only approved applications can be disbursed"}), 400
    if application.details.get("disbursement"):
        return jsonify({"status": "error", "message": "Application has already been disbursed"}), 400

    product = get_product(application.product)
    if not product:
        return jsonify({"status": "error", "message": f"Unknown loan product: {application.product}"}), 400

    try:
        payment = initiate_payment(
            _checklist(application),
            data.get("date"),
            data.get("amount") or application.amount,
            data.get("channel"),
            data.get("authorised_by"),
            current_app.config["DUAL_AUTH_THRESHOLD"],
        )
        start = parse_date(payment["date"])
        charges = float(data.get("charges") or 0)
        if payment["amount"] > application.amount:
            raise DisbursementError(
                f"Disbursement amount exceeds the approved amount of {application.amount:,.2f}")
        limit_errors = product.limit_errors(payment["amount"], None)
        if limit_errors:
            raise DisbursementError(limit_errors["amount"])
        if not 0 <= charges < payment["amount"]:
            raise DisbursementError("Charges must be zero or more and less than the disbursed amount")
        schedule = generate_schedule(payment["amount"], application.term, application.frequency,
                                     product.interest_type, product.interest_rate, start)
    except (DisbursementError, LoanCalculationError) as e:
        return jsonify({"status": "error", "message": str(e)}), 400
    except ValueError:
        return jsonify({"status": "error", "message": "Invalid disbursement date, amount or charges"}), 400

    supabase = get_supabase()
    try:
        loan = {
            "id": next_id("loans", "LN"),
            "borrower_id": application.borrower_id,
            "borrower_name": application.borrower_name,
            "product_id": product.id,
            "principal": payment["amount"],
            "outstanding": payment["amount"],
            "term": application.term,
            "interest_rate": product.interest_rate,
            "interest_type": product.interest_type,
            "frequency": application.frequency,
            "start_date": start.isoformat(),
            "next_due_date": schedule[0]["due_date"] if schedule else None,
            "days_overdue": 0,
            "penalty": 0,
            "status": "disbursed",
        }
        sb_exec(supabase.table("loans").insert(loan))

        record = {
            "id": payment["transaction_id"],
            "application_id": application.id,
            "loan_id": loan["id"],
            "amount": payment["amount"],
            "charges": charges,
            "channel": payment["channel"],
            "date": payment["date"],
            "authorised_by": payment["authorised_by"],
            "created_at": date.today().isoformat(),
        }
        sb_exec(supabase.table("disbursements").insert(record))

        application.details["disbursement"] = {**payment, "loan_id": loan["id"], "charges": record["charges"]}
        sb_exec(supabase.table("applications").update(
            {"details": application.details}).eq("id", application.id))
    except Exception as e:
        current_app.logger.error(f"Disbursement failed for {app_id}: {e}")
        return jsonify({"status": "error", "message": str(e)}), 500

    current_app.logger.info(f"Disbursed {payment['amount']:,.2f} for {app_id} as loan {loan['id']} "
                            f"via {payment['channel']}")
    return jsonify({"status": "success", "disbursement": record, "loan": loan}), 201


@disbursement_bp.route('/<app_id>/slip', methods=['GET'])
def slip(app_id):
    application = _load(app_id)
    if not application:
        return jsonify({"status": "error", "message": "Application not found"}), 404
    disbursement = application.details.get("disbursement")
    if not disbursement:
        return jsonify({"status": "error", "message": "Application has not been disbursed"}), 404
    result = disbursement_slip(application.to_dict(), disbursement, disbursement.get("charges"))
    return jsonify({"status": "success", "slip": result}), 200
