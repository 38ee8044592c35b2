from flask import Blueprint

credit_bp = Blueprint("credit", __name__, url_prefix="/credit")

from . import api  # noqa: E402,F401
