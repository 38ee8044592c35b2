from datetime import datetime

import click
from flask import current_app
from flask.cli import with_appcontext

from loanpro.db import fetch_one, fetch_all
from loanpro.errors import LoanCalculationError
from loanpro.models import Loan
from loanpro.finance.calculations import calculate_installment, total_repayable, FLAT, REDUCING
from loanpro.notification.email_utils import due_reminders, send_payment_reminder


@click.command("calc-installment")
@click.argument("principal", type=float)
@click.argument("term", type=int)
@click.option("--rate", "annual_rate", type=float, default=12.5, show_default=True, help="Annual rate, percent")
@click.option("--type", "interest_type", type=click.Choice([FLAT, REDUCING], case_sensitive=False), default=REDUCING, show_default=True)
@click.option("--frequency", type=click.Choice(["weekly", "biweekly", "monthly"]), default="monthly",
              show_default=True)
def calc_installment(principal, term, annual_rate, interest_type, frequency):
    """Print the installment and total repayable for a loan."""
    try:
        installment = calculate_installment(principal, term, frequency, interest_type, annual_rate)
        total = total_repayable(principal, term, frequency, interest_type, annual_rate)
    except LoanCalculationError as e:
        raise click.ClickException(str(e))
    click.echo(f"Installment ({frequency}): {installment:,.2f}")
    click.echo(f"Total repayable: {total:,.2f}")
    click.echo(f"Total interest: {total - principal:,.2f}")


@click.command("init-sample-data")
@with_appcontext
def init_sample_data():
    """Load the demo borrowers, loans, applications and payments into Supabase."""
    from loanpro.sample_data import seed
    counts = seed()
    for table, count in counts.items():
        click.echo(f"{table}: {count} rows")
    click.echo("Sample data initialized.")


@click.command("send-reminders")
@click.option("--dry-run", is_flag=True, help="List the reminders without sending e-mail.")
@with_appcontext
def send_reminders(dry_run):
    """E-mail borrowers whose next installment falls due within 24 hours."""
    loans = [Loan.from_row(r) for r in fetch_all("loans")]
    due = due_reminders(loans, datetime.now())
    if not due:
        click.echo("No reminders due.")
        return
    sent = 0
    for loan in due:
        borrower = fetch_one("borrowers", id=loan.borrower_id)
        if not borrower or not borrower.get("email"):
            current_app.logger.warning(f"No e-mail on file for borrower of loan {loan.id}")
            continue
        if dry_run:
            click.echo(f"Would remind {borrower['email']} about {loan.id} due {loan.next_due_date}")
            continue
        if send_payment_reminder(borrower["email"], borrower.get("name") or loan.borrower_name, loan):
            sent += 1
            click.echo(f"Reminder sent to {borrower['email']} for {loan.id}")
        else:
            click.echo(f"Failed to send reminder for {loan.id}")
    if not dry_run:
        click.echo(f"{sent}/{len(due)} reminders sent.")


@click.command("list-routes")
@with_appcontext
def list_routes_command():
    """Print all registered routes."""
    from loanpro import list_routes
    for line in list_routes(current_app):
        click.echo(line)


def register_cli(app):
    app.cli.add_command(calc_installment)
    app.cli.add_command(init_sample_data)
    app.cli.add_command(send_reminders)
    app.cli.add_command(list_routes_command)

# Usage:
# flask --app app calc-installment 25000 12 --rate 12.5 --type Flat
# flask --app app send-reminders --dry-run
