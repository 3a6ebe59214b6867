import os

import pytest
from flask import jsonify

from app import create_app
from nosql_sanitizer.config import Config
from nosql_sanitizer.web.middleware import get_sanitized_body, get_sanitized_query

CONFIG_VARS = ("SANITIZE_MODE", "SANITIZE_AUDIT", "LOG_LEVEL", "LOG_FILE", "MAX_CONTENT_LENGTH")


@pytest.fixture
def clean_env(monkeypatch):
    """Isolated os.environ without any sanitizer settings"""
    # load_dotenv writes to os.environ directly, keep it off the real one
    monkeypatch.setattr(os, "environ", dict(os.environ))
    for name in CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def make_app(clean_env):
    """Build an app for the given env settings, with echo routes for assertions"""

    def _make(**env):
        for name, value in env.items():
            clean_env.setenv(name, value)

        app = create_app(config=Config())
        app.config["TESTING"] = True

        @app.route("/api/echo", methods=["GET", "POST"])
        def echo():
            return jsonify({
                "body": get_sanitized_body(),
                "query": get_sanitized_query(),
            })

        @app.route("/api/users/<user_id>", methods=["GET"])
        def get_user(user_id):
            return jsonify({"user_id": user_id})

        return app

    return _make
