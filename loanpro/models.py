from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Optional, List, Dict, Any


def parse_date(value) -> Optional[date]:
    """Accept a date, datetime or ISO string ('2024-01-15' or '2024-01-15T10:30:00Z')."""
    if value in (None, "", "None"):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


def _iso(value):
    return value.isoformat() if isinstance(value, (date, datetime)) else value


def _float(value, default=0.0):
    try:
        if value is None or value == "" or str(value).lower() == "none":
            return default
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass
class Borrower:
    id: str
    name: str
    email: str = ""
    phone: str = ""
    address: str = ""
    credit_score: int = 0
    kyc_status: str = "pending"
    status: str = "active"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Borrower":
        return cls(
            id=row["id"],
            name=row.get("name") or "",
            email=row.get("email") or "",
            phone=row.get("phone") or "",
            address=row.get("address") or "",
            credit_score=int(row.get("credit_score") or 0),
            kyc_status=row.get("kyc_status") or "pending",
            status=row.get("status") or "active",
        )

    def to_dict(self):
        return asdict(self)


@dataclass
class Loan:
    id: str
    borrower_id: str
    principal: float
    outstanding: float
    term: int  # months
    interest_rate: float  # annual, percent
    start_date: date
    interest_type: str = "Reducing"
    frequency: str = "monthly"
    next_due_date: Optional[date] = None
    days_overdue: int = 0
    penalty: float = 0.0
    status: str = "active"
    borrower_name: str = ""
    product_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Loan":
        principal = _float(row.get("principal"))
        return cls(
            id=row["id"],
            borrower_id=row.get("borrower_id") or "",
            principal=principal,
            outstanding=_float(row.get("outstanding"), principal),
            term=int(row.get("term") or 0),
            interest_rate=_float(row.get("interest_rate")),
            start_date=parse_date(row.get("start_date")) or date.today(),
            interest_type=row.get("interest_type") or "Reducing",
            frequency=row.get("frequency") or "monthly",
            next_due_date=parse_date(row.get("next_due_date")),
            days_overdue=int(row.get("days_overdue") or 0),
            penalty=_float(row.get("penalty")),
            status=row.get("status") or "active",
            borrower_name=row.get("borrower_name") or "",
            product_id=row.get("product_id"),
        )

    def to_dict(self):
        row = asdict(self)
        row["start_date"] = _iso(self.start_date)
        row["next_due_date"] = _iso(self.next_due_date)
        return row


@dataclass
class PaymentRecord:
    id: str
    amount: float
    reference: str
    date: date
    source: str = "bank"  # bank | mpesa | gateway
    status: str = "unmatched"  # matched | unmatched | manual_match
    matched_loan_id: Optional[str] = None
    borrower_name: Optional[str] = None
    suggested_allocation: Optional[Dict[str, float]] = None
    posted: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PaymentRecord":
        return cls(
            id=row["id"],
            amount=_float(row.get("amount")),
            reference=str(row.get("reference") or ""),
            date=parse_date(row.get("date")) or date.today(),
            source=row.get("source") or "bank",
            status=row.get("status") or "unmatched",
            matched_loan_id=row.get("matched_loan_id"),
            borrower_name=row.get("borrower_name"),
            suggested_allocation=row.get("suggested_allocation"),
            posted=bool(row.get("posted")),
        )

    def to_dict(self):
        row = asdict(self)
        row["date"] = _iso(self.date)
        return row


@dataclass
class TimelineEntry:
    date: str
    status: str
    description: str
    officer: Optional[str] = None


@dataclass
class RequiredAction:
    id: str
    type: str  # upload | verify | sign
    description: str
    deadline: Optional[str] = None
    completed: bool = False


@dataclass
class Message:
    id: str
    sender: str
    message: str
    date: str
    type: str  # officer | borrower


@dataclass
class Application:
    id: str
    status: str
    product: str
    amount: float
    term: int
    borrower_id: Optional[str] = None
    borrower_name: str = ""
    frequency: str = "monthly"
    submitted_date: Optional[str] = None
    last_updated: Optional[str] = None
    assigned_officer: Optional[Dict[str, str]] = None
    timeline: List[TimelineEntry] = field(default_factory=list)
    required_actions: List[RequiredAction] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Application":
        return cls(
            id=row["id"],
            status=row.get("status") or "draft",
            product=row.get("product") or "",
            amount=_float(row.get("amount")),
            term=int(row.get("term") or 0),
            borrower_id=row.get("borrower_id"),
            borrower_name=row.get("borrower_name") or "",
            frequency=row.get("frequency") or "monthly",
            submitted_date=row.get("submitted_date"),
            last_updated=row.get("last_updated"),
            assigned_officer=row.get("assigned_officer"),
            timeline=[TimelineEntry(**t) for t in row.get("timeline") or []],
            required_actions=[RequiredAction(**a) for a in row.get("required_actions") or []],
            messages=[Message(**m) for m in row.get("messages") or []],
            details=row.get("details") or {},
        )

    def to_dict(self):
        return asdict(self)
