from loanpro.navigation import user_type, tabs_for_role, resolve_tab, navigation


def test_user_type_selection():
    assert user_type("lender") == "lender"
    assert user_type("borrower") == "borrower"
    assert user_type(None) is None
    assert user_type("admin") is None


def test_admin_sees_all_lender_tabs():
    ids = [t["id"] for t in tabs_for_role("admin")]
    assert ids[0] == "dashboard"
    assert "staff" in ids and "accounting" in ids


def test_role_restricts_tabs():
    ids = [t["id"] for t in tabs_for_role("accountant")]
    assert ids == ["dashboard", "accounting", "repayments", "reports", "download"]
    assert [t["id"] for t in tabs_for_role("unknown")] == ["dashboard"]


def test_resolve_tab_falls_back_to_dashboard():
    assert resolve_tab("loans") == "loans"
    assert resolve_tab("nope") == "dashboard"
    assert resolve_tab("accounting", "loan_officer") == "dashboard"


def test_navigation_titles():
    nav = navigation("borrower", "apply")
    assert nav["active_tab"] == "apply"
    assert nav["title"] == "Apply for Loan"
    assert navigation("admin", "collateral")["subtitle"] == "Manage your loan collateral"
