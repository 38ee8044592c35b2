import logging
import smtplib
from datetime import datetime, time, timedelta
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app

logger = logging.getLogger(__name__)

REMINDER_LEAD = timedelta(hours=24)


def send_email(to_email, subject, html_body, attachments=None):
    """Send an HTML e-mail. Returns False when mail is not configured or sending fails."""
    config = current_app.config
    email_user = config.get("EMAIL_USER")
    email_password = config.get("EMAIL_PASSWORD")
    if not email_user or not email_password:
        logger.info(f"Mail not configured, skipping '{subject}' to {to_email}")
        return False

    msg = MIMEMultipart()
    msg['From'] = email_user
    msg['To'] = to_email
    msg['Subject'] = subject
    msg.attach(MIMEText(html_body, 'html'))
    for filename, filebytes in attachments or []:
        part = MIMEApplication(filebytes, Name=filename)
        part['Content-Disposition'] = f'attachment; filename="{filename}"'
        msg.attach(part)
    try:
        with smtplib.SMTP_SSL(config.get("MAIL_SERVER", "smtp.gmail.com"), config.get("MAIL_PORT", 465)) as server:
            server.login(email_user, email_password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Email send error: {e}")
        return False
    return True


def reminder_time(due_at, now):
    """A reminder goes out 24 hours before the due time, or immediately if that has passed."""
    return max(now, due_at - REMINDER_LEAD)


def due_reminders(loans, now=None):
    """Active loans whose next installment falls due within the next 24 hours."""
    now = now or datetime.now()
    due = []
    for loan in loans:
        if not loan.next_due_date or loan.status not in ("active", "disbursed"):
            continue
        due_at = datetime.combine(loan.next_due_date, time.min)
        if due_at >= now and reminder_time(due_at, now) <= now:
            due.append(loan)
    return due


def send_payment_reminder(email, name, loan, installment=None):
    currency = current_app.config.get("CURRENCY", "ZMW")
    amount_line = f"<li>Amount due: {currency} {installment:,.2f}</li>" if installment else ""
    html_body = f"""
        <p>Dear {name},</p>
        <p>This is a reminder that your next payment on loan <strong>{loan.id}</strong>
        is due on {loan.next_due_date.isoformat()}.</p>
        <ul>
          {amount_line}
          <li>Outstanding balance: {currency} {loan.outstanding:,.2f}</li>
        </ul>
        <p>Thank you.</p>
    """
    return send_email(email, f"Payment Due Soon - {loan.id}", html_body)


def send_application_status_email(email, name, application_id, status):
    base_url = current_app.config.get("BASE_URL", "").rstrip('/')
    status_url = f"{base_url}/applications/{application_id}"
    if status == "submitted":
        subject = f"Your Loan Application Has Been Received - Reference: {application_id}"
        body = (f"<p>Dear {name},</p><p>We have received your loan application "
                f"(Reference ID: {application_id}) and it is now awaiting review.</p>")
    elif status == "approved":
        subject = f"Congratulations! Your Loan Application (ID: {application_id}) is Approved"
        body = (f"<p>Dear {name},</p><p>Your loan application (Reference ID: {application_id}) "
                f"has been approved.</p>")
    elif status == "rejected":
        subject = f"Update on Your Loan Application (ID: {application_id})"
        body = (f"<p>Dear {name},</p><p>We regret to inform you that your loan application "
                f"(Reference ID: {application_id}) was not approved at this time.</p>")
    else:
        subject = f"Update Regarding Your Loan Application (ID: {application_id})"
        body = (f"<p>Dear {name},</p><p>There is an update regarding your loan application "
                f"(Reference ID: {application_id}).<br>Current status: {status}</p>")
    body += f'<p>Track your application here: <a href="{status_url}">{status_url}</a></p>'
    return send_email(email, subject, body)
