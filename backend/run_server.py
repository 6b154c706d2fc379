"""Run the clinic billing API under uvicorn with the configured host, port and log level."""
import logging

import uvicorn
from sqlalchemy.engine import make_url

from app.core.config import settings

logger = logging.getLogger("run_server")


def _safe_url(url: str) -> str:
    return make_url(url).render_as_string(hide_password=True)


def main():
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(f"Clinic billing backend ({settings.ENVIRONMENT})")
    logger.info(f"Billing store:   {_safe_url(settings.BILLING_DATABASE_URL)}")
    logger.info(f"Inventory store: {_safe_url(settings.INVENTORY_DATABASE_URL)}")

    # reload needs the app as an import string, not an object
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    main()
