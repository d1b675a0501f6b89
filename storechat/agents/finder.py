"""Resolve a product reference (id, SKU, name) to exactly one catalog item."""
from typing import List

from rapidfuzz import fuzz, process, utils

from ..data.catalog import CatalogItem, CatalogService
from ..schemas.action_models import ProductReference
from ..utils.errors import AmbiguousProductError, MissingEntityError, ProductNotFoundError

SUGGESTION_CUTOFF = 60
MAX_SUGGESTIONS = 3


class ProductFinder:
    def __init__(self, catalog: CatalogService):
        self.catalog = catalog

    def matches(self, reference: ProductReference, items: List[CatalogItem]) -> List[CatalogItem]:
        """Narrow ``items`` by id, then SKU, then name substring."""
        results = items
        if reference.product_id:
            results = [i for i in results if i.id == str(reference.product_id)]
        if reference.sku and results:
            sku = reference.sku.lower()
            results = [
                i for i in results
                if i.sku.lower() == sku or any(v.sku.lower() == sku for v in i.variants)
            ]
        if reference.product_name and results:
            name = reference.product_name.lower()
            results = [i for i in results if name in i.title.lower()]
        return results

    def suggest(self, label: str, items: List[CatalogItem]) -> List[str]:
        titles = [i.title for i in items]
        if not label or not titles:
            return []
        found = process.extract(
            label, titles, scorer=fuzz.WRatio, processor=utils.default_process, limit=MAX_SUGGESTIONS, score_cutoff=SUGGESTION_CUTOFF
        )
        return [title for title, _score, _idx in found]

    def find(self, reference: ProductReference) -> CatalogItem:
        if not reference.has_reference():
            raise MissingEntityError(
                "product", "No product specified. Mention a product name, SKU or ID."
            )
        items = self.catalog.find_all()
        results = self.matches(reference, items)
        label = reference.reference_label()
        if not results:
            raise ProductNotFoundError(label, self.suggest(reference.product_name or label, items))
        if len(results) > 1:
            raise AmbiguousProductError(label, [i.title for i in results])
        return results[0]
