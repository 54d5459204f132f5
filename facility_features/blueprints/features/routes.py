from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Tuple

from flask import jsonify, request

from ...extensions import limiter, write_rate_limit
from ...models.feature import CATEGORY_INFO
from ...services.feature_toggles import (
    GLOBAL_SCOPE,
    InvalidPatchError,
    ToggleResult,
    get_feature_reporter,
    get_toggle_service,
    normalize_facility_id,
)
from . import features_bp

logger = logging.getLogger(__name__)

CATALOG_VERSION = "3.0.0"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidPatchError("Request body must be a JSON object")
    return data


def _options(body: Mapping[str, Any]) -> Tuple[bool, bool]:
    options = body.get("options") or {}
    if not isinstance(options, Mapping):
        raise InvalidPatchError("'options' must be an object", field="options")
    auto_enable = options.get("auto_enable_dependencies", True)
    force = options.get("force", False)
    if not isinstance(auto_enable, bool) or not isinstance(force, bool):
        raise InvalidPatchError("Option values must be booleans", field="options")
    return auto_enable, force


def _result_response(result: ToggleResult, **extra):
    payload = {"result": result.to_dict(), "timestamp": _timestamp()}
    payload.update(extra)
    if not result.success:
        return jsonify({"success": False, "error": "toggle_rejected", "data": payload}), 409
    return jsonify({"success": True, "data": payload})


def _categories() -> Dict[str, Dict[str, str]]:
    return {category.value: info.to_dict() for category, info in CATEGORY_INFO.items()}


# --- Definitions ---


@features_bp.route("", methods=["GET"])
def list_features():
    """All feature definitions and categories."""
    service = get_toggle_service()
    return jsonify(
        {
            "success": True,
            "data": {
                "definitions": {d.id: d.to_dict() for d in service.registry},
                "categories": _categories(),
                "version": CATALOG_VERSION,
            },
        }
    )


@features_bp.route("/definitions", methods=["GET"])
def list_definitions():
    service = get_toggle_service()
    return jsonify({"success": True, "features": [d.to_dict() for d in service.registry]})


# --- Global scope ---


@features_bp.route("/global/config", methods=["GET"])
def get_global_config():
    service = get_toggle_service()
    return jsonify(
        {
            "success": True,
            "data": {
                "config": service.config_for(None),
                "analysis": get_feature_reporter().analysis(None),
                "last_updated": _timestamp(),
            },
        }
    )


@features_bp.route("/global/config", methods=["PUT"])
@limiter.limit(write_rate_limit)
def update_global_config():
    body = _json_body()
    _, force = _options(body)
    service = get_toggle_service()
    result = service.set_global_config(body.get("config"), force=force)
    return _result_response(
        result,
        config=service.config_for(None),
        analysis=get_feature_reporter().analysis(None),
    )


@features_bp.route("/global/toggles", methods=["GET"])
def get_global_toggles():
    service = get_toggle_service()
    return jsonify(
        {
            "success": True,
            "data": {
                "toggles": service.get_toggle_view(None),
                "categories": _categories(),
                "timestamp": _timestamp(),
            },
        }
    )


# --- Facility scope ---


def _facility(facility_id: str) -> str:
    normalized = normalize_facility_id(facility_id)
    if normalized is None:
        raise InvalidPatchError("Use the global routes for the global scope", field="facility_id")
    return normalized


@features_bp.route("/facility/<facility_id>/config", methods=["GET"])
def get_facility_config(facility_id):
    facility_id = _facility(facility_id)
    service = get_toggle_service()
    return jsonify(
        {
            "success": True,
            "data": {
                "facility_id": facility_id,
                "config": service.config_for(facility_id),
                "overrides": service.store.read_overrides(facility_id),
                "analysis": get_feature_reporter().analysis(facility_id),
                "last_updated": _timestamp(),
            },
        }
    )


@features_bp.route("/facility/<facility_id>/config", methods=["PUT"])
@limiter.limit(write_rate_limit)
def update_facility_config(facility_id):
    facility_id = _facility(facility_id)
    body = _json_body()
    _, force = _options(body)
    service = get_toggle_service()
    result = service.set_facility_config(facility_id, body.get("config"), force=force)
    return _result_response(
        result,
        facility_id=facility_id,
        config=service.config_for(facility_id),
        analysis=get_feature_reporter().analysis(facility_id),
    )


@features_bp.route("/facility/<facility_id>/toggles", methods=["GET"])
def get_facility_toggles(facility_id):
    facility_id = _facility(facility_id)
    service = get_toggle_service()
    return jsonify(
        {
            "success": True,
            "data": {
                "facility_id": facility_id,
                "toggles": service.get_toggle_view(facility_id),
                "global_toggles": service.get_toggle_view(None),
                "categories": _categories(),
                "timestamp": _timestamp(),
            },
        }
    )


@features_bp.route("/facility/<facility_id>/reset", methods=["POST"])
@limiter.limit(write_rate_limit)
def reset_facility(facility_id):
    facility_id = _facility(facility_id)
    service = get_toggle_service()
    result = service.reset_facility(facility_id)
    return _result_response(
        result,
        facility_id=facility_id,
        message="Configuration reset to defaults",
        config=service.config_for(facility_id),
    )


# --- Single-feature transitions ---


def _feature_id(body):
    feature_id = body.get("feature_id")
    if not feature_id:
        raise InvalidPatchError("Feature ID is required", field="feature_id")
    if not isinstance(feature_id, str):
        raise InvalidPatchError("Feature ID must be a string", field="feature_id")
    return feature_id


@features_bp.route("/enable", methods=["POST"])
@limiter.limit(write_rate_limit)
def enable_feature():
    body = _json_body()
    feature_id = _feature_id(body)
    facility_id = normalize_facility_id(body.get("facility_id"))
    auto_enable, force = _options(body)

    service = get_toggle_service()
    result = service.enable_feature(
        feature_id, facility_id, auto_enable_dependencies=auto_enable, force=force
    )
    return _result_response(
        result, feature_id=feature_id, facility_id=facility_id, config=service.config_for(facility_id)
    )


@features_bp.route("/disable", methods=["POST"])
@limiter.limit(write_rate_limit)
def disable_feature():
    body = _json_body()
    feature_id = _feature_id(body)
    facility_id = normalize_facility_id(body.get("facility_id"))
    _, force = _options(body)

    service = get_toggle_service()
    result = service.disable_feature(feature_id, facility_id, force=force)
    return _result_response(
        result, feature_id=feature_id, facility_id=facility_id, config=service.config_for(facility_id)
    )


@features_bp.route("/check/<feature_id>", methods=["GET"])
def check_feature(feature_id):
    facility_id = normalize_facility_id(request.args.get("facility_id"))
    data = get_toggle_service().check_feature(feature_id, facility_id)
    data["timestamp"] = _timestamp()
    return jsonify({"success": True, "data": data})


@features_bp.route("/analysis", methods=["GET"])
def feature_analysis():
    facility_id = normalize_facility_id(request.args.get("facility_id"))
    return jsonify(
        {
            "success": True,
            "data": {
                "facility_id": facility_id,
                "analysis": get_feature_reporter().analysis(facility_id),
                "timestamp": _timestamp(),
            },
        }
    )


# --- Bulk operations ---


@features_bp.route("/bulk-update", methods=["POST"])
@limiter.limit(write_rate_limit)
def bulk_update():
    body = _json_body()
    updates = body.get("updates")
    if not isinstance(updates, list):
        raise InvalidPatchError("Updates array is required", field="updates")
    facility_id = normalize_facility_id(body.get("facility_id"))
    auto_enable, force = _options(body)

    service = get_toggle_service()
    outcome = service.bulk_update(
        updates, facility_id, auto_enable_dependencies=auto_enable, force=force
    )
    payload = outcome.to_dict()
    payload.update({"config": service.config_for(facility_id), "timestamp": _timestamp()})
    return jsonify({"success": outcome.success, "data": payload})


@features_bp.route("/category/<category>", methods=["POST"])
@limiter.limit(write_rate_limit)
def toggle_category(category):
    body = _json_body()
    facility_id = normalize_facility_id(body.get("facility_id"))
    _, force = _options(body)

    service = get_toggle_service()
    result = service.set_category(category, body.get("enabled"), facility_id, force=force)
    return _result_response(
        result, category=category, facility_id=facility_id, config=service.config_for(facility_id)
    )


# --- Export / import ---


@features_bp.route("/export/<scope>", methods=["GET"])
def export_scope(scope):
    facility_id = normalize_facility_id(scope)
    return jsonify({"success": True, "export_data": get_feature_reporter().export_scope(facility_id)})


@features_bp.route("/import/<scope>", methods=["POST"])
@limiter.limit(write_rate_limit)
def import_scope(scope):
    facility_id = normalize_facility_id(scope)
    body = _json_body()
    export_data = body.get("export_data", body)
    result = get_feature_reporter().import_scope(facility_id, export_data)
    return _result_response(
        result, facility_id=facility_id, config=get_toggle_service().config_for(facility_id)
    )


@features_bp.route("/snapshot", methods=["GET"])
def export_snapshot():
    return jsonify(
        {"success": True, "data": get_feature_reporter().export_snapshot(), "timestamp": _timestamp()}
    )


@features_bp.route("/snapshot", methods=["POST"])
@limiter.limit(write_rate_limit)
def import_snapshot():
    """Trusted restore of a full snapshot. Dependency rules are not checked."""
    body = _json_body()
    reporter = get_feature_reporter()
    reporter.import_snapshot(body)
    logger.warning("Full feature snapshot imported over HTTP from %s", request.remote_addr)
    return jsonify(
        {
            "success": True,
            "data": {
                "scope": GLOBAL_SCOPE,
                "facilities": reporter.known_facilities(),
                "dependency_issues": reporter.dependency_issues(None),
                "timestamp": _timestamp(),
            },
        }
    )
