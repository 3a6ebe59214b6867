"""
Flask application factory and entry point.
Fail-fast config validation, JSON logging, request sanitization.
"""

import sys
import logging
from typing import Optional

from flask import Flask, jsonify

from nosql_sanitizer.config import Config, load_config, ConfigValidationError
from nosql_sanitizer.observability.logger import setup_logging
from nosql_sanitizer.sanitization.keys import MAX_RECURSION_DEPTH
from nosql_sanitizer.web.middleware import setup_middleware, setup_sanitization

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(env_file: Optional[str] = None, config: Optional[Config] = None) -> Flask:
    """
    Flask application factory with fail-fast config validation.

    Args:
        env_file: Path to .env file (optional)
        config: Pre-built Config (skips environment loading, used by tests)

    Returns:
        Flask: Configured Flask application

    Raises:
        ConfigValidationError: If config validation fails (app refuses to start)
    """

    # === 1. FAIL-FAST CONFIG VALIDATION ===
    if config is None:
        config = load_config(env_file=env_file)

    # === 2. CREATE FLASK APP ===
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.max_content_length
    app.config["SANITIZER_CONFIG"] = config

    # === 3. SETUP LOGGING ===
    setup_logging(app, level=config.log_level, log_file=config.log_file)

    # === 4. SETUP MIDDLEWARE ===
    setup_middleware(app)
    logger.info("✓ Middleware registered")

    # === 5. SETUP SANITIZATION ===
    setup_sanitization(app, mode=config.sanitize_mode, audit=config.sanitize_audit)

    # === 6. HEALTH CHECK ENDPOINT ===
    @app.route("/health", methods=["GET"])
    def health():
        """Health check endpoint"""
        return jsonify({
            "status": "ok",
            "version": VERSION,
            "sanitize_mode": config.sanitize_mode,
            "max_recursion_depth": MAX_RECURSION_DEPTH,
        }), 200

    logger.info(f"✓ Flask app initialized: {app.name}")
    return app


if __name__ == "__main__":
    try:
        app = create_app()
    except ConfigValidationError as e:
        logger.error(f"Configuration validation failed:\n{e}")
        sys.exit(1)

    logger.info("Starting Flask development server at http://127.0.0.1:5000")

    app.run(
        host="127.0.0.1",
        port=5000,
        debug=False,
    )
