from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .container import Container, build_container
from .core.constants import DEFAULT_STOP_REASON
from .core.enums import StorageBackend
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .events.controller import register as register_events
from .reports.controller import register as register_reports
from .scans.controller import register as register_scans

REPO_ROOT = Path(__file__).resolve().parents[3]

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        storage_backend = str(getattr(settings, "STORAGE_BACKEND", StorageBackend.MYSQL.value))
        logger.info(
            "settings=%s storage=%s db=%s@%s:%s/%s",
            settings_module,
            storage_backend,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if storage_backend == StorageBackend.MYSQL.value:
            if bool(getattr(settings, "AUTO_INIT_DB", False)):
                apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
                logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
            if bool(getattr(settings, "AUTO_SEED_DB", False)):
                apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
                logger.info("demo seed ready")

        container = build_container(
            db_config=db_config,
            storage_backend=storage_backend,
            scan_cooldown_seconds=int(getattr(settings, "SCAN_COOLDOWN_SECONDS", 0)),
            default_stop_reason=str(getattr(settings, "DEFAULT_STOP_REASON", DEFAULT_STOP_REASON)),
        )

    app.extensions["event_attendance"] = container

    register_scans(app, container)
    register_events(app, container)
    register_reports(app, container)

    return app
