from flask import Blueprint

applications_bp = Blueprint("applications", __name__, url_prefix="/applications")

from . import api  # noqa: E402,F401
