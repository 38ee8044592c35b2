from datetime import date, datetime, timedelta

from loanpro.models import Loan
from loanpro.notification.email_utils import reminder_time, due_reminders, send_email

NOW = datetime(2024, 2, 14, 0, 0)


def _loan(lid, next_due, status="active"):
    return Loan(id=lid, borrower_id="B0001", principal=10000, outstanding=8000, term=12, interest_rate=12.5,
                start_date=date(2023, 6, 15), next_due_date=next_due, status=status)


def test_reminder_time_is_a_day_before_due():
    due_at = datetime(2024, 2, 20)
    assert reminder_time(due_at, NOW) == datetime(2024, 2, 19)
    assert reminder_time(datetime(2024, 2, 14, 6), NOW) == NOW


def test_due_reminders_window_edges():
    loans = [
        _loan("EXACT", date(2024, 2, 15)),
        _loan("TODAY", date(2024, 2, 14)),
        _loan("PAST", date(2024, 2, 13)),
    ]
    assert [loan.id for loan in due_reminders(loans, NOW)] == ["EXACT", "TODAY"]
    one_minute_early = NOW - timedelta(minutes=1)
    assert [loan.id for loan in due_reminders(loans, one_minute_early)] == ["TODAY"]


def test_due_reminders_skip_closed_and_undated_loans():
    loans = [
        _loan("DONE", date(2024, 2, 15), status="completed"),
        _loan("NODATE", None),
        _loan("PAID_OUT", date(2024, 2, 15), status="disbursed"),
    ]
    assert [loan.id for loan in due_reminders(loans, NOW)] == ["PAID_OUT"]


def test_send_email_without_credentials_is_skipped(app):
    with app.app_context():
        assert send_email("a@example.com", "Hi", "<p>x</p>", attachments=[("a.txt", b"a")]) is False
