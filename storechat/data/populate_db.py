import csv
import os

from .database import SessionLocal, create_tables
from .models import Product, Variant
from ..utils.logger import get_logger

logger = get_logger()

CATALOG_CSV_PATH = os.path.join(os.path.dirname(__file__), "raw", "catalog.csv")


def populate_products(session_factory=None, bind=None, csv_path: str = CATALOG_CSV_PATH) -> int:
    """Read catalog.csv and populate the products table.

    Does nothing when the table already holds products. Returns the number of
    products inserted.
    """
    # Ensure tables are created
    create_tables(bind)

    db = (session_factory or SessionLocal)()
    try:
        if db.query(Product).count() > 0:
            logger.info("[CATALOG] Products table is not empty. Skipping population.")
            return 0

        added = 0
        with open(csv_path, mode="r", encoding="utf-8") as csvfile:
            reader = csv.DictReader(csvfile)
            for row in reader:
                product = Product(
                    title=row["title"],
                    description=row["description"],
                    vendor=row["vendor"],
                    product_type=row["product_type"],
                    tags=row["tags"],
                    status=row.get("status") or "active",
                )
                product.variants.append(Variant(
                    title="Default",
                    sku=row["sku"],
                    price=float(row["price"].replace("$", "")),
                    inventory_quantity=int(row["inventory"]),
                    position=1,
                ))
                db.add(product)
                added += 1

        db.commit()
        logger.info(f"[CATALOG] Populated the products table with {added} products")
        return added
    except Exception:
        db.rollback()
        logger.exception("[CATALOG] Error populating products table")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    populate_products()
