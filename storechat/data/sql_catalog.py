"""Catalog backed by the local SQL database (demo stores and tests)."""
import threading
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from .catalog import CatalogItem, CatalogService, CatalogVariant, NewCatalogItem
from .models import Product, Variant
from ..utils.errors import CatalogItemMissingError, CatalogUnavailableError
from ..utils.logger import get_logger

logger = get_logger("catalog")


def _to_item(product: Product) -> CatalogItem:
    tags = [t.strip() for t in (product.tags or "").split(",") if t.strip()]
    return CatalogItem(
        id=str(product.id),
        title=product.title,
        description=product.description or "",
        vendor=product.vendor or "",
        product_type=product.product_type or "",
        tags=tags,
        status=product.status,
        variants=[_to_variant(v) for v in product.variants],
    )


def _to_variant(variant: Variant) -> CatalogVariant:
    return CatalogVariant(
        id=str(variant.id),
        title=variant.title or "Default",
        price=float(variant.price or 0.0),
        sku=variant.sku or "",
        inventory=int(variant.inventory_quantity or 0),
    )


def _as_int(item_id) -> int:
    try:
        return int(item_id)
    except (TypeError, ValueError):
        raise CatalogItemMissingError(str(item_id))


class SqlCatalogService(CatalogService):
    name = "sql"

    def __init__(self, session_factory):
        self.session_factory = session_factory
        # SQLite connections are shared across the bulk worker threads
        self._lock = threading.Lock()

    def _run(self, fn, commit: bool = False):
        with self._lock:
            db = self.session_factory()
            try:
                result = fn(db)
                if commit:
                    db.commit()
                return result
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"[CATALOG] Database error: {e}")
                raise CatalogUnavailableError(f"Database error: {e}") from e
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def _get_product(self, db, item_id) -> Product:
        product = db.get(Product, _as_int(item_id))
        if product is None:
            raise CatalogItemMissingError(str(item_id))
        return product

    def find_all(self) -> List[CatalogItem]:
        def query(db):
            return [_to_item(p) for p in db.query(Product).order_by(Product.id).all()]
        return self._run(query)

    def update_variant_price(self, item_id: str, variant_id: str, price: float) -> CatalogVariant:
        def update(db):
            product = self._get_product(db, item_id)
            for variant in product.variants:
                if str(variant.id) == str(variant_id):
                    variant.price = round(float(price), 2)
                    db.flush()
                    return _to_variant(variant)
            raise CatalogItemMissingError(f"{item_id}/{variant_id}")
        return self._run(update, commit=True)

    def set_inventory(self, item_id: str, quantity: int) -> CatalogItem:
        def update(db):
            product = self._get_product(db, item_id)
            for variant in product.variants:
                variant.inventory_quantity = int(quantity)
            db.flush()
            return _to_item(product)
        return self._run(update, commit=True)

    def create_item(self, data: NewCatalogItem) -> CatalogItem:
        def create(db):
            product = Product(
                title=data.title,
                description=data.description,
                vendor=data.vendor,
                product_type=data.product_type,
                tags=",".join(data.tags),
                status=data.status,
            )
            product.variants.append(Variant(
                title="Default",
                sku=data.sku,
                price=round(float(data.price), 2),
                inventory_quantity=int(data.quantity),
                position=1,
            ))
            db.add(product)
            db.flush()
            return _to_item(product)
        return self._run(create, commit=True)

    def delete_item(self, item_id: str) -> None:
        def delete(db):
            db.delete(self._get_product(db, item_id))
        self._run(delete, commit=True)
