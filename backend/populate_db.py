"""
Seed a development database: a small catalog plus admin accounts.

    python populate_db.py owner@example.com other-admin@example.com
"""
import sys
import logging

from database import SessionLocal, init_db
from models.product import Product
from models.users import User
from utils.inventory import apply_stock_level
from utils.roles import grant_role

logger = logging.getLogger(__name__)

# name, price, quantity, category, discount
SEED_PRODUCTS = [
    ("Classic Logo Hoodie", 45000.0, 12, "hoodie", None),
    ("Oversized Tee", 15000.0, 30, "tee", 10),
    ("Coach Jacket", 60000.0, 5, "jacket", None),
    ("Cargo Pant", 35000.0, 8, "pant", 20),
    ("Skate Deck 8.25", 55000.0, 0, "skate", None),
]


def seed_products(db) -> int:
    if db.query(Product).count():
        logger.info("Catalog already populated, skipping products")
        return 0
    for name, price, quantity, category, discount in SEED_PRODUCTS:
        product = Product(
            name=name, price=price, category=category,
            discount_percentage=discount, is_on_sale=discount is not None,
        )
        apply_stock_level(product, quantity=quantity)
        db.add(product)
    db.commit()
    return len(SEED_PRODUCTS)


def seed_admins(db, emails) -> int:
    granted = 0
    for raw in emails:
        email = raw.strip().lower()
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            user = User(email=email)
            db.add(user)
            db.commit()
            db.refresh(user)
        grant_role(db, user, "admin")
        granted += 1
    return granted


def main(argv) -> None:
    init_db()
    db = SessionLocal()
    try:
        products = seed_products(db)
        admins = seed_admins(db, argv)
    finally:
        db.close()
    print(f"Seeded {products} products, granted admin to {admins} account(s).")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main(sys.argv[1:])
