from flask import Blueprint

# Loan calculators, repayments and borrower requests.
finance_bp = Blueprint("finance", __name__, url_prefix="/loan")

from . import api  # noqa: E402,F401
