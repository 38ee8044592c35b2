from flask import Blueprint

disbursement_bp = Blueprint("disbursement", __name__, url_prefix="/disbursements")

from . import api  # noqa: E402,F401
