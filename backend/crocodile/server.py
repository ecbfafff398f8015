from __future__ import annotations

import logging
import sys

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.answers import AnswerSource, build_answer_source
from .game.service import SchedulerFactory
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp
from .realtime.handlers import register_socketio_handlers


def _default_async_mode() -> str:
    # - Windows: threading (eventlet has known compatibility issues on newer Python)
    # - Python >= 3.13: threading (safer default)
    # - Otherwise: eventlet
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def create_app(
    config_class=Config,
    answer_source: AnswerSource | None = None,
    scheduler_factory: SchedulerFactory | None = None,
) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Level for every module logger under this package.
    logging.getLogger(__name__.rpartition(".")[0]).setLevel(app.config.get("LOG_LEVEL", "INFO"))

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE") or _default_async_mode(),
    )

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")

    register_socketio_handlers(
        socketio,
        answer_source=answer_source or build_answer_source(config_class),
        scheduler_factory=scheduler_factory,
        config=config_class,
    )

    return app, socketio
