"""Stock update agent: absolute quantity on every variant."""
from typing import Dict

from .base_agent import BaseCommandAgent
from ..data.catalog import CatalogItem
from ..schemas.action_models import ActionIntent
from ..schemas.execution_models import ActionResult, ChangeRecord
from ..utils.errors import MissingEntityError


def _inventory_change(item: CatalogItem, quantity: int) -> ChangeRecord:
    # totals across variants; every variant ends at ``quantity``
    return ChangeRecord(
        product_id=item.id,
        field="inventory",
        old_value=item.inventory_available,
        new_value=quantity * max(len(item.variants), 1),
    )


class StockUpdateAgent(BaseCommandAgent):
    name = "update_stock"

    def _resolve(self, intent: ActionIntent):
        e = intent.entities
        if e.quantity is None:
            raise MissingEntityError("quantity", "No stock quantity found in the message")
        if e.quantity < 0:
            raise MissingEntityError("quantity", f"Stock quantity cannot be negative: {e.quantity}")
        return self.finder.find(e), e.quantity

    def preview(self, intent: ActionIntent) -> ActionResult:
        item, quantity = self._resolve(intent)
        return self._preview_items([item], [_inventory_change(item, quantity)])

    def execute(self, intent: ActionIntent) -> ActionResult:
        item, quantity = self._resolve(intent)
        old_levels = {v.inventory for v in item.variants}
        self.catalog.set_inventory(item.id, quantity)
        # set_inventory writes one level to all variants, so only a uniform
        # starting level can be restored exactly
        uniform = len(old_levels) <= 1
        return self._ok(
            f'Stock of "{item.title}" set to {quantity}',
            data={"product": item.summary(), "quantity": quantity},
            affected_products=1,
            changes=[_inventory_change(item, quantity)],
            can_undo=uniform,
            undo_data={"product_id": item.id, "old_quantity": next(iter(old_levels), 0)} if uniform else None,
        )

    def undo(self, undo_data: Dict) -> ActionResult:
        product_id = undo_data["product_id"]
        old = int(undo_data["old_quantity"])
        self.catalog.set_inventory(product_id, old)
        return self._ok(
            f"Restored stock level {old}",
            affected_products=1,
            changes=[ChangeRecord(product_id=product_id, field="inventory", new_value=old)],
        )
