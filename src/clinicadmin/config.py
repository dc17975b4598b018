from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Centralized application settings.

    Environment-variable handling lives here so other modules depend on typed
    attributes instead of calling os.getenv directly.
    """

    # SQLAlchemy URL of the clinic database. Tests swap in "sqlite://".
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///data/clinicadmin.db")

    # Seed a demo clinic on startup (local development only).
    seed_demo_data: bool = os.getenv("SEED_DEMO_DATA", "false").lower() == "true"

    # Token signing. The default secret is only suitable for development.
    jwt_secret: str = os.getenv("JWT_SECRET", "clinicadmin-dev-secret-change-me")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    # Accepts "<n>d", "<n>h" or "<n>m"; anything else means one day.
    jwt_expires_in: str = os.getenv("JWT_EXPIRES_IN", "1d")

    # bcrypt cost factor for stored password hashes.
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", "10"))

    # List endpoint paging.
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "100"))

    # Used when a clinic has not configured its own currency symbol.
    default_currency_symbol: str = os.getenv("DEFAULT_CURRENCY_SYMBOL", "$")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS configuration: comma-separated origins.
    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000")


settings = Settings()
