"""Seed the inventory store with a starter drug catalog and stock batches."""
from decimal import Decimal

from sqlalchemy.orm import sessionmaker

from app.db.init_db import init_db
from app.db.session import InventorySessionLocal, session_scope
from app.models.inventory import Drug, Stock

# name, drug_type, unit_type, [(unit_price, amount), ...]
CATALOG = [
    ("Paracetamol 500mg", "tablet", "strip", [(2.50, 200), (2.75, 100)]),
    ("Amoxicillin 250mg", "capsule", "strip", [(8.00, 120)]),
    ("Ibuprofen 400mg", "tablet", "strip", [(4.50, 150)]),
    ("Cetirizine 10mg", "tablet", "strip", [(1.80, 180)]),
    ("Cough Syrup 100ml", "syrup", "bottle", [(95.00, 40)]),
    ("ORS Sachet", "powder", "sachet", [(20.00, 90)]),
    ("Lidocaine 2%", "injection", "vial", [(45.00, 25)]),
]


def seed_inventory(session_factory: sessionmaker = InventorySessionLocal) -> int:
    """Insert catalog drugs that are not present yet. Returns how many were added."""
    added = 0
    with session_scope(session_factory, "inventory") as db:
        existing = {name for (name,) in db.query(Drug.name).all()}
        for name, drug_type, unit_type, batches in CATALOG:
            if name in existing:
                continue
            drug = Drug(name=name, drug_type=drug_type, unit_type=unit_type)
            drug.stocks = [
                Stock(unit_price=Decimal(str(price)), amount=amount, expired=False)
                for price, amount in batches
            ]
            db.add(drug)
            added += 1
    return added


if __name__ == "__main__":
    init_db()
    count = seed_inventory()
    print(f"Seeded {count} drug(s) into the inventory store")
