import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")
    SUPABASE_URL = os.environ.get("SUPABASE_URL")
    SUPABASE_KEY = os.environ.get("SUPABASE_KEY")

    # Edge function used by the REST client (loanpro.client)
    LOANPRO_API_URL = os.environ.get("LOANPRO_API_URL")
    LOANPRO_ANON_KEY = os.environ.get("LOANPRO_ANON_KEY")

    MAIL_SERVER = os.environ.get("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", 465))
    EMAIL_USER = os.environ.get("EMAIL_USER")
    EMAIL_PASSWORD = os.environ.get("EMAIL_PASSWORD")
    BASE_URL = os.environ.get("BASE_URL", "http://localhost:5000")

    CURRENCY = "ZMW"
    ALLOCATION_INTEREST_CAP = float(os.environ.get("ALLOCATION_INTEREST_CAP", 500))
    ALLOCATION_INTEREST_SHARE = float(os.environ.get("ALLOCATION_INTEREST_SHARE", 0.2))
    EARLY_REPAYMENT_DISCOUNT = float(os.environ.get("EARLY_REPAYMENT_DISCOUNT", 0.05))
    DUAL_AUTH_THRESHOLD = float(os.environ.get("DUAL_AUTH_THRESHOLD", 50000))
    HIGH_VALUE_THRESHOLD = float(os.environ.get("HIGH_VALUE_THRESHOLD", 100000))
