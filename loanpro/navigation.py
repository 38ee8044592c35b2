"""Role-based navigation for the lender and borrower apps."""

LENDER = "lender"
BORROWER = "borrower"

LENDER_TABS = (
    ("dashboard", "Dashboard"),
    ("borrowers", "Borrowers"),
    ("loans", "Loans"),
    ("applications", "Applications"),
    ("credit-analysis", "Credit Analysis"),
    ("approvals", "Approvals"),
    ("disbursements", "Disbursements"),
    ("accounting", "Accounting"),
    ("repayments", "Repayments"),
    ("collateral", "Loan Collateral"),
    ("reports", "Reports"),
    ("settings", "Account Settings"),
    ("staff", "Staff & Roles"),
    ("download", "Download App"),
)

BORROWER_TABS = (
    ("dashboard", "Dashboard"),
    ("apply", "Apply for Loan"),
    ("repayments", "Repayments"),
    ("requests", "Requests"),
    ("statements", "Statements"),
    ("profile", "Profile"),
)

ROLE_TABS = {
    "loan_officer": ("dashboard", "borrowers", "loans", "applications", "collateral", "download"),
    "credit_analyst": ("dashboard", "applications", "credit-analysis", "reports", "download"),
    "approver": ("dashboard", "applications", "approvals", "reports", "download"),
    "disbursement_officer": ("dashboard", "loans", "disbursements", "download"),
    "accountant": ("dashboard", "accounting", "repayments", "reports", "download"),
}

DEFAULT_TAB = "dashboard"


def user_type(requested):
    """Which app to show for the ``?type=`` query parameter; None means the landing selector."""
    return requested if requested in (LENDER, BORROWER) else None


def tabs_for_role(role):
    role = (role or "").lower()
    if role == BORROWER:
        return [{"id": tab_id, "label": label} for tab_id, label in BORROWER_TABS]
    if role == "admin":
        allowed = {tab_id for tab_id, _ in LENDER_TABS}
    else:
        allowed = set(ROLE_TABS.get(role, (DEFAULT_TAB,)))
    return [{"id": tab_id, "label": label} for tab_id, label in LENDER_TABS if tab_id in allowed]


def resolve_tab(requested, role="admin"):
    """Deep-link target for ``?tab=``; unknown or hidden tabs fall back to the dashboard."""
    visible = {t["id"] for t in tabs_for_role(role)}
    return requested if requested in visible else DEFAULT_TAB


def navigation(role="admin", requested_tab=None):
    tabs = tabs_for_role(role)
    active = resolve_tab(requested_tab, role)
    label = next(t["label"] for t in tabs if t["id"] == active)
    return {
        "role": role,
        "tabs": tabs,
        "active_tab": active,
        "title": label,
        "subtitle": f"Manage your {label.lower()}",
    }
