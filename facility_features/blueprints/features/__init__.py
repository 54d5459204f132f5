from flask import Blueprint

features_bp = Blueprint("features", __name__, url_prefix="/api/features")

from . import routes  # noqa: E402,F401
