"""Seed a demo company with customers in two states and a few GST-rated items.

Run from backend/:  python seed_billing.py
"""
import logging
from decimal import Decimal

from app.db.init_db import init_db
from app.db.session import SessionLocal
from app.models import Company, Customer, Item

logger = logging.getLogger(__name__)

# GST state codes
MAHARASHTRA = 27
KARNATAKA = 29

CUSTOMERS = [
    {"name": "Sharma Traders", "gstin": "27AAPFS1234K1Z5", "state": MAHARASHTRA},
    {"name": "Bengaluru Retail Co", "gstin": "29AABCB5678L1Z2", "state": KARNATAKA},
]

ITEMS = [
    {"name": "Steel Almirah", "hsn": "9403", "price": "8500.00", "rate": "18"},
    {"name": "Basmati Rice 25kg", "hsn": "1006", "price": "2100.00", "rate": "5"},
    {"name": "LED Bulb 9W", "hsn": "8539", "price": "120.00", "rate": "12"},
    {"name": "Fresh Milk 1L", "hsn": "0401", "price": "62.00", "rate": "0"},
]


def seed_billing():
    init_db()
    db = SessionLocal()
    try:
        company = db.query(Company).first()
        if company:
            logger.info(f"Company already seeded: {company.name}")
            return

        company = Company(name="Demo Enterprises", gstin="27AAACD1234E1Z9", state_id=MAHARASHTRA)
        db.add(company)
        db.flush()

        for c in CUSTOMERS:
            db.add(Customer(
                company_id=company.id,
                name=c["name"],
                gstin=c["gstin"],
                place_of_supply_state_id=c["state"],
                unadjusted_amount=Decimal("0"),
            ))
        for i in ITEMS:
            db.add(Item(
                company_id=company.id,
                name=i["name"],
                hsn_code=i["hsn"],
                sell_price=Decimal(i["price"]),
                tax_rate=Decimal(i["rate"]),
            ))
        db.commit()
        logger.info(f"Seeded {company.name}: {len(CUSTOMERS)} customers, {len(ITEMS)} items")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed_billing()
