from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import Container, build_container
from .core.constants import DEFAULT_RADIUS_METERS
from .database.bootstrap import apply_schema, list_tables
from .logging_setup import setup_logging
from .sessions.controller import register as register_sessions

logger = logging.getLogger(__name__)


def create_app(container: Container | None = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["DEFAULT_RADIUS_METERS"] = float(getattr(settings, "DEFAULT_RADIUS_METERS", DEFAULT_RADIUS_METERS))

    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_FILE", None))

    if container is None:
        backend = getattr(settings, "STORE_BACKEND", "mysql")
        db_config = getattr(settings, "DB_CONFIG", None)
        logger.info("Starting with settings=%s store=%s", settings_module, backend)

        if backend == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

        container = build_container(backend=backend, db_config=db_config)

    app.extensions["geo_attendance"] = container

    register_sessions(app, container)
    register_attendance(app, container)

    return app
