# featherweight_functions/__init__.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from flask import Flask
from config import Config, TestingConfig, StagingConfig, ProductionConfig
from .extensions import init_extensions, register_cli
from .errors import register_error_handlers
from .blueprints.core import bp as core_bp
from .blueprints.programme import bp as programme_bp
from .blueprints.analysis import bp as analysis_bp
from .blueprints.voice import bp as voice_bp
from .blueprints.logs import bp as logs_bp

CONFIGS = {
    "testing": TestingConfig,
    "staging": StagingConfig,
    "production": ProductionConfig,
}


def create_app(config_object: type[Config] | None = None) -> Flask:
    app = Flask(__name__)
    if config_object is None:
        config_object = CONFIGS.get(os.getenv("APP_ENV", "").lower(), Config)
    app.config.from_object(config_object)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Extensions (DB/Migrate)
    init_extensions(app)
    register_error_handlers(app)
    app.config["STARTED_AT"] = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

    # Blueprints
    app.register_blueprint(core_bp)
    app.register_blueprint(programme_bp)
    app.register_blueprint(analysis_bp)
    app.register_blueprint(voice_bp)
    app.register_blueprint(logs_bp)

    # CLI (ex.: flask init-db)
    register_cli(app)
    return app
