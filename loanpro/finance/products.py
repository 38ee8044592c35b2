from dataclasses import dataclass, asdict
from typing import Dict, Optional

from .calculations import calculate_installment


@dataclass(frozen=True)
class LoanProduct:
    id: str
    name: str
    description: str
    min_amount: float
    max_amount: float
    min_term: int
    max_term: int
    interest_type: str  # Flat | Reducing
    interest_rate: float  # annual, percent

    def installment(self, amount, term, frequency):
        return calculate_installment(amount, term, frequency, self.interest_type, self.interest_rate)

    def limit_errors(self, amount, term) -> Dict[str, str]:
        """Range checks for a requested amount and term."""
        errors = {}
        if amount is not None and not (self.min_amount <= amount <= self.max_amount):
            errors["amount"] = f"Amount must be between {self.min_amount:,.0f} and {self.max_amount:,.0f}"
        if term is not None and not (self.min_term <= term <= self.max_term):
            errors["term"] = f"Term must be between {self.min_term} and {self.max_term} months"
        return errors

    def to_dict(self):
        return asdict(self)


LOAN_PRODUCTS = (
    LoanProduct(
        id="personal",
        name="Personal Loan",
        description="Flexible loan for personal needs",
        min_amount=1000,
        max_amount=50000,
        min_term=3,
        max_term=36,
        interest_type="Reducing",
        interest_rate=12.5,
    ),
    LoanProduct(
        id="business",
        name="Business Loan",
        description="Loan for business expansion and operations",
        min_amount=5000,
        max_amount=200000,
        min_term=6,
        max_term=60,
        interest_type="Reducing",
        interest_rate=15.0,
    ),
    LoanProduct(
        id="emergency",
        name="Emergency Loan",
        description="Quick loan for urgent financial needs",
        min_amount=500,
        max_amount=10000,
        min_term=1,
        max_term=12,
        interest_type="Flat",
        interest_rate=18.0,
    ),
)

_BY_ID = {p.id: p for p in LOAN_PRODUCTS}


def get_product(product_id) -> Optional[LoanProduct]:
    return _BY_ID.get(product_id)
