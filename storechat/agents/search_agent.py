"""Search agent: read-only substring search over the catalog."""
from typing import List

from .base_agent import BaseCommandAgent
from ..app.config import Config
from ..data.catalog import CatalogItem
from ..schemas.action_models import ActionIntent
from ..schemas.execution_models import ActionResult


def matches_query(item: CatalogItem, query: str) -> bool:
    q = query.lower()
    return (
        q in item.title.lower()
        or q in item.description.lower()
        or q in item.sku.lower()
        or any(q in v.sku.lower() for v in item.variants)
        or any(q in tag.lower() for tag in item.tags)
    )


class SearchAgent(BaseCommandAgent):
    name = "search_products"

    def __init__(self, catalog, finder=None, limit: int = None):
        super().__init__(catalog, finder)
        self.limit = limit or Config.SEARCH_RESULT_LIMIT

    @staticmethod
    def query_of(intent: ActionIntent) -> str:
        e = intent.entities
        return (e.search_query or e.product_name or "").strip()

    def search(self, query: str) -> List[CatalogItem]:
        return [i for i in self.catalog.find_all() if matches_query(i, query)]

    def preview(self, intent: ActionIntent) -> ActionResult:
        # nothing is modified by a search
        return self._ok(f'Preview: search for "{self.query_of(intent)}"', affected_products=0)

    def execute(self, intent: ActionIntent) -> ActionResult:
        query = self.query_of(intent)
        results = self.search(query)
        return self._ok(
            f'Found {len(results)} products for "{query}"',
            data={
                "products": [i.summary() for i in results[:self.limit]],
                "total": len(results),
                "query": query,
            },
        )
