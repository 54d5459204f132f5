import logging

logger = logging.getLogger(__name__)


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    from .blueprints.features import features_bp

    registered = []
    for blueprint in (features_bp,):
        app.register_blueprint(blueprint)
        registered.append(blueprint.name)

    logger.debug("Registered blueprints: %s", ", ".join(registered))
