"""Create all tables of both stores. Run on app startup."""
import logging

from app.db.base import BillingBase, InventoryBase
from app.db.session import billing_engine, inventory_engine
from app.models import billing, expense, inventory  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def init_db(billing_bind=None, inventory_bind=None):
    BillingBase.metadata.create_all(bind=billing_bind or billing_engine)
    InventoryBase.metadata.create_all(bind=inventory_bind or inventory_engine)
    logger.info("Billing and inventory schemas are ready")
