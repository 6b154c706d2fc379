"""Declarative bases. One per store so each metadata only holds its own tables."""
from sqlalchemy.orm import declarative_base

BillingBase = declarative_base()
InventoryBase = declarative_base()
