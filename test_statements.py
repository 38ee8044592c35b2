from datetime import date
from io import BytesIO

import pandas as pd

from loanpro.models import Loan
from loanpro.reports.statements import loan_statement, statement_workbook

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

REPAYMENTS = [
    {"id": "RP0002", "payment_date": "2024-02-15", "payment_method": "mpesa", "amount": 3000,
     "principal": 2500, "interest": 500, "fees": 0},
    {"id": "RP0001", "payment_date": "2024-01-15", "payment_method": "bank", "amount": 2000,
     "principal": 1600, "interest": 400, "fees": 0},
]


def _loan(outstanding=5000):
    return Loan(id="LN0009", borrower_id="B0001", principal=10000, outstanding=outstanding, term=12,
                interest_rate=12.5, start_date=date(2023, 12, 15), borrower_name="John Smith")


def test_statement_orders_entries_and_runs_balance():
    statement = loan_statement(_loan(), REPAYMENTS, generated_on=date(2024, 3, 1))
    assert [e["reference"] for e in statement["entries"]] == ["RP0001", "RP0002"]
    assert [e["balance"] for e in statement["entries"]] == [8000, 5000]
    assert statement["total_paid"] == 5000
    assert statement["total_interest"] == 900
    assert statement["generated_on"] == "2024-03-01"
    assert statement["cleared"] is False


def test_statement_for_paid_off_loan_is_cleared():
    statement = loan_statement(_loan(outstanding=0), [])
    assert statement["entries"] == []
    assert statement["cleared"] is True


def test_statement_workbook_sheets():
    content = statement_workbook(loan_statement(_loan(), REPAYMENTS))
    sheets = pd.read_excel(BytesIO(content), sheet_name=None)
    assert list(sheets) == ["Summary", "Transactions"]
    assert list(sheets["Transactions"]["Reference"]) == ["RP0001", "RP0002"]


def test_statement_route(client, seeded):
    body = client.get("/loan/LN0001/statement").get_json()
    statement = body["statement"]
    assert statement["borrower_name"] == "John Smith"
    assert [e["reference"] for e in statement["entries"]] == ["RP0001"]
    assert statement["entries"][0]["balance"] == 22500
    assert statement["outstanding"] == 12500
    assert client.get("/loan/LN9999/statement").status_code == 404


def test_statement_excel_download(client, seeded):
    resp = client.get("/loan/LN0001/statement/excel")
    assert resp.status_code == 200
    assert resp.headers["Content-Type"] == XLSX
    assert "statement_LN0001.xlsx" in resp.headers["Content-Disposition"]


def test_statement_email_attaches_workbook(client, seeded, monkeypatch):
    sent = []

    def fake_send(to_email, subject, html_body, attachments=None):
        sent.append((to_email, subject, attachments))
        return True

    monkeypatch.setattr("loanpro.finance.api.send_email", fake_send)
    resp = client.post("/loan/LN0001/statement/email")
    assert resp.status_code == 200
    to_email, subject, attachments = sent[0]
    assert to_email == "john.smith@example.com"
    assert subject == "Loan Statement - LN0001"
    assert attachments[0][0] == "statement_LN0001.xlsx"
    assert attachments[0][1][:2] == b"PK"


def test_statement_email_reports_unsent_mail(client, seeded):
    resp = client.post("/loan/LN0001/statement/email")
    assert resp.status_code == 502
    assert resp.get_json()["message"] == "Statement e-mail could not be sent"
