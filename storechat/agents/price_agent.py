"""Price update agent: absolute or percentage change on every variant."""
from typing import Dict, List, Tuple

from .base_agent import BaseCommandAgent
from ..data.catalog import CatalogItem
from ..schemas.action_models import ActionIntent
from ..schemas.execution_models import ActionResult, ChangeRecord
from ..utils.errors import MissingEntityError
from ..utils.logger import get_logger

logger = get_logger()


def planned_prices(item: CatalogItem, price: float = None, percentage: float = None) -> List[Tuple[str, float, float]]:
    """(variant_id, old, new) for each variant of ``item``."""
    plan = []
    for variant in item.variants:
        if percentage is not None:
            new_price = round(variant.price * (1 + percentage / 100), 2)
        else:
            new_price = round(float(price), 2)
        plan.append((variant.id, variant.price, new_price))
    return plan


class PriceUpdateAgent(BaseCommandAgent):
    name = "update_price"

    def _plan(self, intent: ActionIntent):
        e = intent.entities
        if e.price is None and e.percentage is None:
            raise MissingEntityError("price", "No new price or percentage found in the message")
        item = self.finder.find(e)
        return item, planned_prices(item, e.price, e.percentage)

    @staticmethod
    def _changes(item: CatalogItem, plan) -> List[ChangeRecord]:
        return [
            ChangeRecord(product_id=item.id, field="price", old_value=old, new_value=new)
            for _vid, old, new in plan
        ]

    def preview(self, intent: ActionIntent) -> ActionResult:
        item, plan = self._plan(intent)
        return self._preview_items([item], self._changes(item, plan))

    def execute(self, intent: ActionIntent) -> ActionResult:
        item, plan = self._plan(intent)
        if not plan:
            return self._fail(f'Product "{item.title}" has no variants to price', "No variants")
        for variant_id, _old, new in plan:
            self.catalog.update_variant_price(item.id, variant_id, new)
        logger.info(f"[CATALOG] Updated price of {item.id} on {len(plan)} variant(s)")
        new_price = plan[0][2]
        return self._ok(
            f'Price of "{item.title}" updated to ${new_price:,.2f}',
            data={"product": item.summary(), "new_price": new_price},
            affected_products=1,
            changes=self._changes(item, plan),
            can_undo=True,
            undo_data={
                "product_id": item.id,
                "variant_prices": {vid: old for vid, old, _new in plan},
            },
        )

    def undo(self, undo_data: Dict) -> ActionResult:
        product_id = undo_data["product_id"]
        prices = undo_data.get("variant_prices") or {}
        for variant_id, old in prices.items():
            self.catalog.update_variant_price(product_id, variant_id, old)
        return self._ok(
            f"Restored previous price on {len(prices)} variant(s)",
            affected_products=1,
            changes=[
                ChangeRecord(product_id=product_id, field="price", new_value=old)
                for old in prices.values()
            ],
        )
