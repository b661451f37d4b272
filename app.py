from flask import Flask, jsonify
from dotenv import load_dotenv
import logging
import os

load_dotenv()

from config import Config  # noqa: E402  (load_dotenv needs to run first)
import extensions  # noqa: E402
from exceptions import (  # noqa: E402
    InvalidFormatError,
    NotFoundError,
    StorageIOError,
    ValidationError,
)
from log_config import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    """Turn inventory errors into ``{"ok": false, "error": ...}`` responses."""

    @app.errorhandler(ValidationError)
    def _validation(exc):
        return jsonify(ok=False, error=str(exc), errors=exc.errors), 400

    @app.errorhandler(InvalidFormatError)
    def _invalid_format(exc):
        return jsonify(ok=False, error=str(exc)), 400

    @app.errorhandler(NotFoundError)
    def _not_found(exc):
        return jsonify(ok=False, error=str(exc)), 404

    @app.errorhandler(StorageIOError)
    def _storage(exc):
        logger.error("Storage failure: %s", exc)
        return jsonify(ok=False, error=str(exc)), 500


def create_app(config_object=Config) -> Flask:
    """Application factory for the parts inventory."""

    app = Flask(__name__)
    app.config.from_object(config_object)

    setup_logging(app.config.get("LOG_LEVEL", "INFO"))

    # init extensions
    extensions.init_app(app)

    # blueprints
    from modules.spare_parts import bp as parts_bp
    from modules.backup import bp as backup_bp
    from modules.scanner import bp as scanner_bp

    app.register_blueprint(parts_bp)
    app.register_blueprint(backup_bp)
    app.register_blueprint(scanner_bp)

    from ui_routes import ui
    app.register_blueprint(ui)  # home "/"

    register_error_handlers(app)

    # uploads dir
    os.makedirs(app.config.get("UPLOAD_FOLDER", "uploads"), exist_ok=True)

    logger.info("Inventory app ready, data in %s", app.config.get("DATA_DIR"))
    return app

if __name__ == "__main__":
    app = create_app()
    app.run(debug=True)
