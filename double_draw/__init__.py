"""Encrypted double-draw lottery service (Flask application package)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask import Flask

try:
    from dotenv import load_dotenv
except Exception:  # pragma: no cover
    load_dotenv = None  # type: ignore[assignment]


def create_app(overrides: Mapping[str, Any] | None = None) -> Flask:
    """Application factory.

    Args:
        overrides: Optional config values applied after the environment
            config (tests use this for an in-memory database).

    Returns:
        Configured Flask application.
    """
    if load_dotenv is not None:
        load_dotenv()

    from double_draw.config import get_config
    from double_draw.db import init_db
    from double_draw.error_handlers import register_error_handlers
    from double_draw.fhe import init_fhe
    from double_draw.logging_config import configure_logging
    from double_draw.routes.health import health_bp
    from double_draw.routes.lottery import lottery_bp
    from double_draw.routes.relayer import relayer_bp
    from double_draw.services.lottery_service import init_lottery

    app = Flask(__name__)
    app.config.from_object(get_config())
    if overrides:
        app.config.update(dict(overrides))

    configure_logging(app)
    init_db(app)
    init_lottery(app)
    init_fhe(app)
    register_error_handlers(app)

    app.register_blueprint(health_bp)
    app.register_blueprint(lottery_bp)
    app.register_blueprint(relayer_bp)

    return app
