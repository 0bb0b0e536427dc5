"""Programmatic access to the Alembic migrations shipped with the project."""

import logging
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
ALEMBIC_INI = PROJECT_ROOT / "alembic.ini"
SCRIPT_LOCATION = PROJECT_ROOT / "alembic"


def alembic_config(database_url: Optional[str] = None) -> Config:
    config = Config(str(ALEMBIC_INI)) if ALEMBIC_INI.exists() else Config()
    config.set_main_option("script_location", str(SCRIPT_LOCATION))
    config.attributes["configure_logger"] = False
    if database_url:
        # ConfigParser interpolation treats % specially
        config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return config


def run_migrations(database_url: Optional[str] = None, revision: str = "head") -> None:
    """Upgrade the database to the given revision (head by default)."""
    logger.info("Applying migrations up to %s", revision)
    command.upgrade(alembic_config(database_url), revision)
