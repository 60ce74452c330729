import logging
from typing import Any

from flask import Flask, jsonify

from .blueprints_registry import register_blueprints
from .config import ENV_DIAGNOSTICS
from .logging_config import configure_logging
from .services.formula_store import DEFAULT_HISTORY_LIMIT, FormulaStore

logger = logging.getLogger(__name__)


def create_app(config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    _load_base_config(app, config)
    app.extensions["formula_store"] = FormulaStore(
        history_limit=app.config.get("SCALING_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT)
    )

    register_blueprints(app)
    _add_core_routes(app)
    configure_logging(app)
    _install_json_error_handlers(app)

    return app


def _load_base_config(app: Flask, config: dict[str, Any] | None) -> None:
    app.config.from_object("formula_workbench.config.Config")
    if config:
        app.config.update(config)
    app.config["ENV_DIAGNOSTICS"] = ENV_DIAGNOSTICS
    for warning in ENV_DIAGNOSTICS.get("warnings", ()):
        logger.warning("Environment configuration warning: %s", warning)


def _install_json_error_handlers(app: Flask) -> None:
    """Keep the API envelope for framework-level errors."""

    @app.errorhandler(404)
    def _not_found(_err):
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(405)
    def _method_not_allowed(_err):
        return jsonify({"success": False, "error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def _too_large(_err):
        return jsonify({"success": False, "error": "Payload too large"}), 413


def _add_core_routes(app: Flask) -> None:
    @app.route("/health")
    def health():
        return jsonify({"success": True, "data": {"status": "ok", "env": app.config.get("ENV")}})
