"""Demo dataset used by ``/api/init-sample-data`` and ``flask init-sample-data``."""

from loanpro.db import get_supabase, sb_exec
from loanpro.disbursement.checklist import CHECKLIST_ITEMS

BORROWERS = [
    {"id": "B0001", "name": "John Smith", "email": "john.smith@example.com", "phone": "+260 977 123 456",
     "address": "Plot 12, Kabulonga, Lusaka", "credit_score": 720, "kyc_status": "verified", "status": "active"},
    {"id": "B0002", "name": "Mary Banda", "email": "mary.banda@example.com", "phone": "+260 966 234 567",
     "address": "House 4, Rhodes Park, Lusaka", "credit_score": 680, "kyc_status": "verified", "status": "active"},
    {"id": "B0003", "name": "Peter Mwale", "email": "peter.mwale@example.com", "phone": "+260 955 345 678",
     "address": "Stand 88, Kitwe", "credit_score": 590, "kyc_status": "pending", "status": "active"},
]

LOANS = [
    {"id": "LN0001", "borrower_id": "B0001", "borrower_name": "John Smith", "product_id": "personal",
     "principal": 25000, "outstanding": 12500, "term": 24, "interest_rate": 12.5, "interest_type": "Reducing",
     "frequency": "monthly", "start_date": "2023-06-15", "next_due_date": "2024-02-15",
     "days_overdue": 0, "penalty": 0, "status": "active"},
    {"id": "LN0002", "borrower_id": "B0002", "borrower_name": "Mary Banda", "product_id": "business",
     "principal": 50000, "outstanding": 32000, "term": 18, "interest_rate": 15.0, "interest_type": "Reducing",
     "frequency": "monthly", "start_date": "2023-09-01", "next_due_date": "2024-01-01",
     "days_overdue": 45, "penalty": 250, "status": "active"},
    {"id": "LN0003", "borrower_id": "B0003", "borrower_name": "Peter Mwale", "product_id": "emergency",
     "principal": 5000, "outstanding": 4100, "term": 6, "interest_rate": 18.0, "interest_type": "Flat",
     "frequency": "weekly", "start_date": "2023-10-10", "next_due_date": "2023-10-24",
     "days_overdue": 95, "penalty": 400, "status": "active"},
]

REPAYMENTS = [
    {"id": "RP0001", "loan_id": "LN0001", "amount": 2500, "payment_date": "2024-01-15",
     "payment_method": "bank", "principal": 2000, "interest": 500, "fees": 0},
    {"id": "RP0002", "loan_id": "LN0002", "amount": 3200, "payment_date": "2023-12-01",
     "payment_method": "mpesa", "principal": 2700, "interest": 500, "fees": 0},
]

APPLICATIONS = [
    {"id": "APP0001", "status": "under_review", "product": "personal", "amount": 25000, "term": 12,
     "borrower_id": "B0001", "borrower_name": "John Smith", "frequency": "monthly",
     "submitted_date": "2024-01-15T10:30:00+00:00", "last_updated": "2024-01-18T14:20:00+00:00",
     "assigned_officer": {"name": "Sarah Johnson", "phone": "+260 955 123 456", "email": "sarah.johnson@loanpro.com"},
     "timeline": [
         {"date": "2024-01-15T10:30:00+00:00", "status": "submitted",
          "description": "Application submitted successfully", "officer": "System"},
         {"date": "2024-01-16T09:15:00+00:00", "status": "under_review",
          "description": "Application assigned to credit officer", "officer": "Sarah Johnson"},
     ],
     "required_actions": [
         {"id": "doc1", "type": "upload", "description": "Upload latest bank statement",
          "deadline": "2024-01-25", "completed": False},
         {"id": "verify", "type": "verify", "description": "Verify employment details",
          "deadline": None, "completed": False},
     ],
     "messages": [],
     "details": {"auto_checks": {"debt_to_income_ratio": 35, "exposure_limit": 85,
                                 "related_party_check": "pass", "previous_delinquencies": 0},
                 "risk_score": 65, "credit_score": 720,
                 "checklist": {item: True for item in CHECKLIST_ITEMS}}},
    {"id": "APP0002", "status": "approved", "product": "business", "amount": 75000, "term": 24,
     "borrower_id": "B0002", "borrower_name": "Mary Banda", "frequency": "monthly",
     "submitted_date": "2024-01-10T08:00:00+00:00", "last_updated": "2024-01-18T11:00:00+00:00",
     "assigned_officer": None, "timeline": [], "required_actions": [], "messages": [],
     "details": {"checklist": {item: item != "bank_details_verified" for item in CHECKLIST_ITEMS}}},
]

PAYMENTS = [
    {"id": "PAY0001", "amount": 2500, "reference": "TXN123456789", "date": "2024-01-20", "source": "bank",
     "status": "matched", "matched_loan_id": "LN0001", "borrower_name": "John Smith",
     "suggested_allocation": {"principal": 2000, "interest": 500, "fees": 0}, "posted": False},
    {"id": "PAY0002", "amount": 1500, "reference": "MPesa789456", "date": "2024-01-20", "source": "mpesa",
     "status": "unmatched", "matched_loan_id": None, "borrower_name": None,
     "suggested_allocation": None, "posted": False},
    {"id": "PAY0003", "amount": 3200, "reference": "GW987654321", "date": "2024-01-21", "source": "gateway",
     "status": "manual_match", "matched_loan_id": "LN0002", "borrower_name": "Mary Banda",
     "suggested_allocation": {"principal": 2700, "interest": 500, "fees": 0}, "posted": False},
]

DATASET = {
    "borrowers": BORROWERS,
    "loans": LOANS,
    "repayments": REPAYMENTS,
    "applications": APPLICATIONS,
    "payments": PAYMENTS,
}


def seed():
    """Upsert the demo dataset; returns the number of rows written per table."""
    supabase = get_supabase()
    counts = {}
    for table, rows in DATASET.items():
        sb_exec(supabase.table(table).upsert(rows))
        counts[table] = len(rows)
    return counts
