"""Create and delete agents."""
from typing import Dict

from .base_agent import BaseCommandAgent
from ..app.config import Config
from ..data.catalog import NewCatalogItem
from ..schemas.action_models import ActionIntent
from ..schemas.execution_models import ActionResult, ChangeRecord
from ..utils.errors import MissingEntityError
from ..utils.logger import get_logger

logger = get_logger()


class CreateProductAgent(BaseCommandAgent):
    name = "create_product"

    def _draft(self, intent: ActionIntent) -> NewCatalogItem:
        e = intent.entities
        if not e.product_name:
            raise MissingEntityError("product_name", "No product name found in the message")
        # new listings start as drafts
        return NewCatalogItem(
            title=e.product_name,
            description=f"New product: {e.product_name}",
            vendor=Config.DEFAULT_VENDOR,
            product_type="General",
            status="draft",
            price=e.price if e.price is not None else 0.0,
            quantity=e.quantity if e.quantity is not None else 0,
        )

    def preview(self, intent: ActionIntent) -> ActionResult:
        draft = self._draft(intent)
        return self._ok(
            f'Preview: will create draft product "{draft.title}"',
            data=draft.model_dump(),
            affected_products=1,
        )

    def execute(self, intent: ActionIntent) -> ActionResult:
        created = self.catalog.create_item(self._draft(intent))
        logger.info(f"[CATALOG] Created draft product {created.id}")
        return self._ok(
            f'Product "{created.title}" created as draft with ID {created.id}',
            data=created.summary(),
            affected_products=1,
            changes=[ChangeRecord(product_id=created.id, field="created", old_value=False, new_value=True)],
            can_undo=True,
            undo_data={"product_id": created.id},
        )

    def undo(self, undo_data: Dict) -> ActionResult:
        product_id = undo_data["product_id"]
        self.catalog.delete_item(product_id)
        return self._ok(
            f"Removed created product {product_id}",
            affected_products=1,
            changes=[ChangeRecord(product_id=product_id, field="deleted", old_value=False, new_value=True)],
        )


class DeleteProductAgent(BaseCommandAgent):
    name = "delete_product"

    def preview(self, intent: ActionIntent) -> ActionResult:
        return self._preview_items([self.finder.find(intent.entities)])

    def execute(self, intent: ActionIntent) -> ActionResult:
        item = self.finder.find(intent.entities)
        self.catalog.delete_item(item.id)
        logger.info(f"[CATALOG] Deleted product {item.id}")
        return self._ok(
            f'Product "{item.title}" deleted',
            data={"product": item.summary(), "permanent": True},
            affected_products=1,
            changes=[ChangeRecord(product_id=item.id, field="deleted", old_value=False, new_value=True)],
            # deletion is permanent
            can_undo=False,
        )
