from functools import wraps
import logging

from flask import current_app, jsonify, request

from ..services.feature_toggles import GLOBAL_SCOPE, get_toggle_service, normalize_facility_id

logger = logging.getLogger(__name__)

FACILITY_HEADER = "X-Facility-Id"


def resolve_request_facility(view_kwargs=None):
    """Find the facility a request is scoped to: view args, query, JSON body, then header."""
    view_kwargs = view_kwargs or {}
    if view_kwargs.get("facility_id") is not None:
        return normalize_facility_id(view_kwargs["facility_id"])
    if request.args.get("facility_id"):
        return normalize_facility_id(request.args.get("facility_id"))
    body = request.get_json(silent=True)
    if isinstance(body, dict) and body.get("facility_id") is not None:
        return normalize_facility_id(body.get("facility_id"))
    return normalize_facility_id(request.headers.get(FACILITY_HEADER))


def feature_enabled(feature_id: str, facility_id=None) -> bool:
    return get_toggle_service().is_enabled(feature_id, facility_id)


def require_feature(feature_id: str):
    """
    Decorator that refuses a view when the feature is off for the caller's facility.
    Unknown feature ids count as disabled.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            facility_id = resolve_request_facility(kwargs)
            if feature_enabled(feature_id, facility_id):
                return f(*args, **kwargs)

            logger.info(
                "Blocked %s: feature %s disabled for %s",
                request.path,
                feature_id,
                facility_id or GLOBAL_SCOPE,
            )
            return jsonify({
                "success": False,
                "error": "feature_disabled",
                "feature_id": feature_id,
                "facility_id": facility_id,
                "message": f"Feature '{feature_id}' is not enabled",
            }), current_app.config.get("FEATURE_GATE_STATUS", 403)
        return decorated_function
    return decorator
