from datetime import datetime, timezone
import uuid

from loanpro.errors import InvalidTransition
from loanpro.models import TimelineEntry, Message

DRAFT = "draft"
SUBMITTED = "submitted"
UNDER_REVIEW = "under_review"
PENDING_DOCS = "pending_docs"
ESCALATED = "escalated"
APPROVED = "approved"
REJECTED = "rejected"

STATUSES = (DRAFT, SUBMITTED, UNDER_REVIEW, PENDING_DOCS, ESCALATED, APPROVED, REJECTED)
FINAL_STATUSES = (APPROVED, REJECTED)

TRANSITIONS = {
    DRAFT: (SUBMITTED,),
    SUBMITTED: (UNDER_REVIEW,),
    UNDER_REVIEW: (PENDING_DOCS, ESCALATED, APPROVED, REJECTED),
    PENDING_DOCS: (UNDER_REVIEW,),
    ESCALATED: (UNDER_REVIEW, APPROVED, REJECTED),
    APPROVED: (),
    REJECTED: (),
}

DEFAULT_DESCRIPTIONS = {
    SUBMITTED: "Application submitted successfully",
    UNDER_REVIEW: "Application under review",
    PENDING_DOCS: "Additional documents requested",
    ESCALATED: "Application escalated to credit committee",
    APPROVED: "Application approved",
    REJECTED: "Application rejected",
}


def _now_iso(at=None):
    return (at or datetime.now(timezone.utc)).isoformat()


def can_transition(current, target):
    return target in TRANSITIONS.get(current, ())


def transition(application, target, description=None, officer=None, at=None):
    """Move ``application`` to ``target`` and record it on the timeline."""
    if not can_transition(application.status, target):
        raise InvalidTransition(application.status, target)
    stamp = _now_iso(at)
    application.status = target
    application.last_updated = stamp
    if target == SUBMITTED:
        application.submitted_date = stamp
    application.timeline.append(TimelineEntry(
        date=stamp,
        status=target,
        description=description or DEFAULT_DESCRIPTIONS.get(target, target),
        officer=officer,
    ))
    return application


def complete_action(application, action_id):
    for action in application.required_actions:
        if action.id == action_id:
            action.completed = True
            return action
    raise KeyError(action_id)


def outstanding_actions(application):
    return [a for a in application.required_actions if not a.completed]


def add_message(application, sender, text, kind="borrower", at=None):
    if kind not in ("officer", "borrower"):
        raise ValueError(f"Unknown message type: {kind}")
    message = Message(
        id=f"msg{uuid.uuid4().hex[:8]}",
        sender=sender,
        message=text,
        date=_now_iso(at),
        type=kind,
    )
    application.messages.append(message)
    return message


def filter_applications(applications, search="", status="all"):
    """Case-insensitive search on id, borrower name and product, plus status filter."""
    term = (search or "").strip().lower()
    result = []
    for app in applications:
        matches_search = (not term or term in app.id.lower()
                          or term in (app.borrower_name or "").lower()
                          or term in (app.product or "").lower())
        matches_status = status in (None, "", "all") or app.status == status
        if matches_search and matches_status:
            result.append(app)
    return result


def application_stats(applications):
    return {
        "total": len(applications),
        "pending": sum(1 for a in applications if a.status == UNDER_REVIEW),
        "approved": sum(1 for a in applications if a.status == APPROVED),
        "rejected": sum(1 for a in applications if a.status == REJECTED),
    }
