"""
REST client for the LoanPro edge API.

Every call sends a bearer token (the signed-in user's token, or the public
anon key when nobody is signed in) and JSON bodies. Non-2xx responses raise
ApiError carrying the server's ``error`` message.
"""

import logging

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code, message, payload=None):
        self.status_code = status_code
        self.message = message
        self.payload = payload
        super().__init__(message)


class LoanProClient:
    def __init__(self, base_url, anon_key, token=None, timeout=10.0, transport=None):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.token = token
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_config(cls, config, **kwargs):
        base_url = config.get("LOANPRO_API_URL")
        if not base_url:
            raise RuntimeError("LOANPRO_API_URL must be set")
        return cls(base_url, config.get("LOANPRO_ANON_KEY"), **kwargs)

    def set_auth_token(self, token):
        self.token = token

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _headers(self):
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token or self.anon_key}",
        }

    def _call(self, method, endpoint, json=None):
        try:
            response = self._http.request(method, endpoint, json=json, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"API call failed: {method} {endpoint}: {e}")
            raise

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            message = (data or {}).get("error") if isinstance(data, dict) else None
            message = message or f"HTTP {response.status_code}"
            logger.error(f"API Error ({response.status_code}): {data}")
            raise ApiError(response.status_code, message, data)
        if data is None:
            raise ApiError(response.status_code, "Invalid JSON response")
        return data

    # Auth
    def get_me(self):
        return self._call("GET", "/auth/me")

    # Borrowers
    def list_borrowers(self):
        return self._call("GET", "/borrowers")

    def get_borrower(self, borrower_id):
        return self._call("GET", f"/borrowers/{borrower_id}")

    def create_borrower(self, name, email, phone, address, credit_score):
        return self._call("POST", "/borrowers", json={
            "name": name,
            "email": email,
            "phone": phone,
            "address": address,
            "creditScore": credit_score,
        })

    def update_borrower(self, borrower_id, updates):
        return self._call("PUT", f"/borrowers/{borrower_id}", json=updates)

    def delete_borrower(self, borrower_id):
        return self._call("DELETE", f"/borrowers/{borrower_id}")

    # Loans
    def list_loans(self):
        return self._call("GET", "/loans")

    def get_loan(self, loan_id):
        return self._call("GET", f"/loans/{loan_id}")

    def create_loan(self, borrower_id, amount, interest_rate, term, start_date):
        return self._call("POST", "/loans", json={
            "borrowerId": borrower_id,
            "amount": amount,
            "interestRate": interest_rate,
            "term": term,
            "startDate": str(start_date),
        })

    def update_loan(self, loan_id, updates):
        return self._call("PUT", f"/loans/{loan_id}", json=updates)

    # Repayments
    def list_repayments(self):
        return self._call("GET", "/repayments")

    def create_repayment(self, loan_id, amount, payment_date, payment_method):
        return self._call("POST", "/repayments", json={
            "loanId": loan_id,
            "amount": amount,
            "paymentDate": str(payment_date),
            "paymentMethod": payment_method,
        })

    # Dashboard
    def dashboard_stats(self):
        return self._call("GET", "/dashboard/stats")

    def init_sample_data(self):
        return self._call("POST", "/init-sample-data")

    def health(self):
        return self._call("GET", "/health")
