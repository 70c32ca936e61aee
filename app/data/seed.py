# app/data/seed.py
from decimal import Decimal

from app.data.database import Base, SessionLocal, engine
from app.data.models import CategoryModel, ProductModel
from app.utils.logging import get_logger

logger = get_logger(__name__)

CATEGORIES = {
    "Electronics": "Electronic devices and accessories",
    "Clothing": "Fashion and apparel",
    "Books": "Books and literature",
    "Home & Garden": "Home and garden supplies",
    "Sports": "Sports and fitness equipment",
}

PRODUCTS = [
    ("Electronics", "Wireless Headphones", "99.99", 50, "High-quality wireless headphones with noise cancellation"),
    ("Electronics", "Smart Watch", "249.99", 30, "Feature-rich smartwatch with health tracking"),
    ("Electronics", "Laptop Stand", "49.99", 75, "Ergonomic laptop stand for better posture"),
    ("Clothing", "Cotton T-Shirt", "19.99", 100, "Comfortable 100% cotton t-shirt"),
    ("Clothing", "Jeans", "79.99", 60, "Classic fit denim jeans"),
    ("Sports", "Running Shoes", "129.99", 40, "Comfortable running shoes with cushioning"),
    ("Books", "Field Guide to Birds", "24.50", 25, "Illustrated guide to common birds"),
    ("Home & Garden", "Ceramic Planter", "34.00", 5, "Glazed planter for indoor plants"),
]


def seed(db) -> int:
    """Insert the demo catalog when the database has no products. Returns inserted count."""
    if db.query(ProductModel).first():
        return 0

    categories = {}
    for name, description in CATEGORIES.items():
        category = CategoryModel(name=name, description=description)
        db.add(category)
        categories[name] = category
    db.flush()

    for category_name, name, price, stock, description in PRODUCTS:
        db.add(
            ProductModel(
                name=name,
                category_id=categories[category_name].id,
                price=Decimal(price),
                stock=stock,
                image_url=f"https://via.placeholder.com/400x400?text={name.replace(' ', '+')}",
                description=description,
            )
        )
    db.commit()
    logger.info(f"Seeded {len(CATEGORIES)} categories and {len(PRODUCTS)} products")
    return len(PRODUCTS)


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed(session)
    finally:
        session.close()
