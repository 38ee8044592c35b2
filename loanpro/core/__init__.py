from flask import Blueprint

# REST resources consumed by loanpro.client and the web frontends.
core_bp = Blueprint("core", __name__, url_prefix="/api")

from . import routes  # noqa: E402,F401
