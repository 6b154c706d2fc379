"""Starter catalog seeding."""
from app.models.inventory import Drug, Stock
from seed_inventory import CATALOG, seed_inventory


def test_seed_adds_missing_drugs_once(inventory_sessions):
    # Fixture store already holds "Paracetamol 500mg" and "Cough Syrup 100ml"
    added = seed_inventory(inventory_sessions)
    assert added == len(CATALOG) - 3  # Lidocaine 2% is present too

    assert seed_inventory(inventory_sessions) == 0

    db = inventory_sessions()
    try:
        ors = db.query(Drug).filter(Drug.name == "ORS Sachet").one()
        assert [s.amount for s in db.query(Stock).filter(Stock.drug_id == ors.drug_id)] == [90]
    finally:
        db.close()
