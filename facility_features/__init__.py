import logging
import os
from typing import Any

from flask import Flask, jsonify

from .blueprints_registry import register_blueprints
from .config import ENV_DIAGNOSTICS
from .extensions import limiter
from .logging_config import configure_logging
from .services.feature_toggles import (
    EXTENSION_KEY,
    REPORTER_KEY,
    FeatureAnalysisReporter,
    FeatureToggleError,
    UnknownFeatureError,
    build_toggle_service,
)
from .services.feature_toggles.persistence import SnapshotAutosaveListener, read_snapshot_file

logger = logging.getLogger(__name__)


def create_app(config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)
    os.makedirs(app.instance_path, exist_ok=True)

    _load_base_config(app, config)
    configure_logging(app)
    limiter.init_app(app)

    _configure_feature_toggles(app)
    register_blueprints(app)
    _install_feature_error_handlers(app)

    from .management import register_commands

    register_commands(app)

    return app


def _load_base_config(app: Flask, config: dict[str, Any] | None) -> None:
    app.config.from_object("facility_features.config.Config")
    if config:
        app.config.update(config)
    app.config["ENV_DIAGNOSTICS"] = ENV_DIAGNOSTICS
    for warning in ENV_DIAGNOSTICS.get("warnings", ()):
        logger.warning("Environment configuration warning: %s", warning)


def snapshot_path(app: Flask) -> str:
    """Absolute snapshot location; relative paths are resolved against the instance folder."""
    configured = app.config.get("FEATURE_SNAPSHOT_PATH") or "feature_snapshot.json"
    if os.path.isabs(configured):
        return configured
    parts = configured.replace(os.sep, "/").split("/")
    if len(parts) > 1 and parts[0] == "instance":
        parts = parts[1:]
    return os.path.join(app.instance_path, *parts)


def _configure_feature_toggles(app: Flask) -> None:
    service = build_toggle_service(app.config.get("FEATURE_CATALOG_SECTIONS"))
    reporter = FeatureAnalysisReporter(service)
    app.extensions[EXTENSION_KEY] = service
    app.extensions[REPORTER_KEY] = reporter

    path = snapshot_path(app)
    if app.config.get("FEATURE_SNAPSHOT_AUTOLOAD"):
        data = read_snapshot_file(path)
        if data is None:
            logger.info("No feature snapshot at %s; starting from catalog defaults", path)
        else:
            service.import_snapshot(data)
            logger.info("Feature snapshot loaded from %s", path)

    if app.config.get("FEATURE_SNAPSHOT_AUTOSAVE"):
        service.add_listener(SnapshotAutosaveListener(reporter, path))
        logger.info("Feature snapshot autosave enabled (%s)", path)


def _install_feature_error_handlers(app: Flask) -> None:
    """Map service errors onto JSON responses for every route."""

    @app.errorhandler(UnknownFeatureError)
    def _unknown_feature(err: UnknownFeatureError):
        return jsonify({"success": False, **err.to_dict()}), 404

    @app.errorhandler(FeatureToggleError)
    def _feature_error(err: FeatureToggleError):
        app.logger.info("Feature request rejected: %s", err)
        return jsonify({"success": False, **err.to_dict()}), 400
