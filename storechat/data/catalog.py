"""Catalog service contract.

Every backend (SQL database, Shopify store) exposes the same five operations.
Implementations raise ``CatalogAuthError`` / ``CatalogUnavailableError`` for
remote failures and ``CatalogItemMissingError`` when an id is unknown, so the
command agents can tell "not found" apart from "backend down".
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CatalogVariant(BaseModel):
    id: str
    title: str = "Default"
    price: float = 0.0
    sku: str = ""
    inventory: int = 0
    inventory_item_id: Optional[str] = None


class CatalogItem(BaseModel):
    id: str
    title: str
    description: str = ""
    vendor: str = ""
    product_type: str = ""
    tags: List[str] = Field(default_factory=list)
    status: str = "active"
    variants: List[CatalogVariant] = Field(default_factory=list)

    @property
    def price(self) -> float:
        return self.variants[0].price if self.variants else 0.0

    @property
    def sku(self) -> str:
        return self.variants[0].sku if self.variants else ""

    @property
    def inventory_available(self) -> int:
        return sum(v.inventory for v in self.variants)

    def summary(self) -> Dict[str, Any]:
        """Compact dict used in previews and search results."""
        return {
            "id": self.id,
            "title": self.title,
            "sku": self.sku,
            "price": round(self.price, 2),
            "inventory": self.inventory_available,
            "vendor": self.vendor,
            "product_type": self.product_type,
            "status": self.status,
        }


class NewCatalogItem(BaseModel):
    title: str
    description: str = ""
    vendor: str = ""
    product_type: str = "General"
    tags: List[str] = Field(default_factory=list)
    status: str = "draft"
    price: float = 0.0
    quantity: int = 0
    sku: str = ""


class CatalogService(ABC):
    """Abstract catalog backend."""

    name: str = "catalog"

    @abstractmethod
    def find_all(self) -> List[CatalogItem]:
        """Return a full snapshot of the catalog."""

    @abstractmethod
    def update_variant_price(self, item_id: str, variant_id: str, price: float) -> CatalogVariant:
        ...

    @abstractmethod
    def set_inventory(self, item_id: str, quantity: int) -> CatalogItem:
        """Set the absolute available quantity on every variant of the item."""

    @abstractmethod
    def create_item(self, data: NewCatalogItem) -> CatalogItem:
        ...

    @abstractmethod
    def delete_item(self, item_id: str) -> None:
        ...
