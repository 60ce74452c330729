import logging

logger = logging.getLogger(__name__)


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    from formula_workbench.blueprints.scaling import scaling_bp

    app.register_blueprint(scaling_bp)
    logger.debug("Registered blueprints: %s", ", ".join(sorted(app.blueprints)))
