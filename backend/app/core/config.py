"""Application configuration.

Environment variables override all defaults. The billing store (bills,
bill items, expenses) and the inventory store (drugs, stock) are separate
databases and get separate connection strings.
"""

import os
from pathlib import Path
from typing import List


# Load .env for local development (safe no-op if not installed)
try:
    from dotenv import load_dotenv  # type: ignore

    _BACKEND_DIR = Path(__file__).resolve().parents[2]
    load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)
except ImportError:
    pass


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Settings:
    # Database Configuration (one connection string per store)
    BILLING_DATABASE_URL: str = os.getenv("BILLING_DATABASE_URL", "sqlite:///./clinic_billing.db")
    INVENTORY_DATABASE_URL: str = os.getenv("INVENTORY_DATABASE_URL", "sqlite:///./clinic_inventory.db")

    # Pooling for non-SQLite stores
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "5"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))

    # CORS (comma separated, no wildcards)
    CORS_ORIGINS: List[str] = _split_origins(
        os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    )

    # Reporting
    HISTORY_PAGE_SIZE: int = int(os.getenv("HISTORY_PAGE_SIZE", "10"))
    TOP_SELLING_LIMIT: int = int(os.getenv("TOP_SELLING_LIMIT", "5"))

    # Server
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8000"))

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO")


settings = Settings()
