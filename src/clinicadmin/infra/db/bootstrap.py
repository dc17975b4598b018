from __future__ import annotations

import logging
from typing import Optional

from src.clinicadmin.config import settings
from src.clinicadmin.infra.db.models import Base
from src.clinicadmin.infra.db.session import database


logger = logging.getLogger("clinicadmin.db")


def init_database(database_url: Optional[str] = None, *, seed: Optional[bool] = None) -> None:
    """Create missing tables and optionally load the demo clinic.

    Called from the application lifespan. ``create_all`` only adds tables that
    do not exist yet; schema changes to existing tables need a migration.
    """

    if database_url is not None:
        database.configure(database_url)

    Base.metadata.create_all(database.engine)
    logger.info("Database schema ready")

    if settings.seed_demo_data if seed is None else seed:
        from src.clinicadmin.infra.db.seed import seed_demo_data

        seed_demo_data()
