from datetime import date, timedelta


def _set_next_due(supabase, loan_id, when):
    for row in supabase.rows("loans"):
        if row["id"] == loan_id:
            row["next_due_date"] = when.isoformat()


def test_calc_installment_flat(app):
    result = app.test_cli_runner().invoke(args=["calc-installment", "25000", "12", "--rate", "12.5",
                                                "--type", "flat"])
    assert result.exit_code == 0
    assert "Installment (monthly): 2,343.75" in result.output
    assert "Total repayable: 28,125.00" in result.output
    assert "Total interest: 3,125.00" in result.output


def test_calc_installment_rejects_bad_term(app):
    result = app.test_cli_runner().invoke(args=["calc-installment", "25000", "0"])
    assert result.exit_code != 0


def test_send_reminders_with_nothing_due(app, seeded):
    result = app.test_cli_runner().invoke(args=["send-reminders"])
    assert result.exit_code == 0
    assert "No reminders due." in result.output


def test_send_reminders_dry_run(app, seeded):
    tomorrow = date.today() + timedelta(days=1)
    _set_next_due(seeded, "LN0001", tomorrow)
    result = app.test_cli_runner().invoke(args=["send-reminders", "--dry-run"])
    assert result.exit_code == 0
    assert f"Would remind john.smith@example.com about LN0001 due {tomorrow}" in result.output
    assert "reminders sent" not in result.output


def test_send_reminders_reports_failures_without_mail(app, seeded):
    _set_next_due(seeded, "LN0001", date.today() + timedelta(days=1))
    result = app.test_cli_runner().invoke(args=["send-reminders"])
    assert result.exit_code == 0
    assert "Failed to send reminder for LN0001" in result.output
    assert "0/1 reminders sent." in result.output
