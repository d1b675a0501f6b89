"""Bulk update agent.

Targets every item whose product type, vendor or a tag contains the category
(all items when no category is given) and applies one uniform change: a
percentage price delta, an absolute price, or an absolute stock level.
Items are updated concurrently; one failing item never aborts the others.
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from .base_agent import BaseCommandAgent
from .price_agent import planned_prices
from ..app.config import Config
from ..data.catalog import CatalogItem
from ..schemas.action_models import ActionIntent, ErrorKind
from ..schemas.execution_models import ActionResult, ChangeRecord
from ..utils.errors import MissingEntityError, ProductNotFoundError, StoreChatError
from ..utils.logger import get_logger
from ..utils.security import mask_secrets

logger = get_logger()


def matches_category(item: CatalogItem, category: Optional[str]) -> bool:
    if not category:
        return True
    needle = category.lower()
    return (
        needle in item.product_type.lower()
        or needle in item.vendor.lower()
        or any(needle in tag.lower() for tag in item.tags)
    )


class BulkUpdateAgent(BaseCommandAgent):
    name = "bulk_update"

    def __init__(self, catalog, finder=None, max_workers: int = None):
        super().__init__(catalog, finder)
        self.max_workers = max_workers or Config.BULK_MAX_WORKERS

    def targets(self, intent: ActionIntent) -> List[CatalogItem]:
        e = intent.entities
        if e.percentage is None and e.price is None and e.quantity is None:
            raise MissingEntityError("percentage", "No percentage, price or quantity found for the bulk update")
        items = [i for i in self.catalog.find_all() if matches_category(i, e.category)]
        if not items:
            raise ProductNotFoundError(e.category or "any product")
        return items

    def _plan_changes(self, item: CatalogItem, intent: ActionIntent) -> List[ChangeRecord]:
        e = intent.entities
        if e.percentage is not None or e.price is not None:
            return [
                ChangeRecord(product_id=item.id, field="price", old_value=old, new_value=new)
                for _vid, old, new in planned_prices(item, e.price, e.percentage)
            ]
        return [ChangeRecord(
            product_id=item.id, field="inventory", old_value=item.inventory_available, new_value=e.quantity
        )]

    def preview(self, intent: ActionIntent) -> ActionResult:
        items = self.targets(intent)
        sample = items[:Config.PREVIEW_SAMPLE_SIZE]
        changes = [c for item in sample for c in self._plan_changes(item, intent)]
        result = self._preview_items(items, changes)
        result.message = f"Preview: bulk update will affect {len(items)} products"
        return result

    def _apply(self, item: CatalogItem, intent: ActionIntent) -> Dict[str, Any]:
        e = intent.entities
        if e.percentage is not None or e.price is not None:
            plan = planned_prices(item, e.price, e.percentage)
            for variant_id, _old, new in plan:
                self.catalog.update_variant_price(item.id, variant_id, new)
            return {"variant_prices": {vid: old for vid, old, _new in plan}}
        self.catalog.set_inventory(item.id, e.quantity)
        return {"old_quantity": item.variants[0].inventory if item.variants else 0}

    def _run_one(self, item: CatalogItem, intent: ActionIntent) -> Dict[str, Any]:
        try:
            undo = self._apply(item, intent)
            return {"product_id": item.id, "title": item.title, "success": True, "undo": undo}
        except Exception as e:
            logger.warning(f"[CATALOG] Bulk update of {item.id} failed: {mask_secrets(str(e))}")
            return {"product_id": item.id, "title": item.title, "success": False, "error": mask_secrets(str(e))}

    def execute(self, intent: ActionIntent) -> ActionResult:
        items = self.targets(intent)
        workers = max(1, min(self.max_workers, len(items)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(lambda item: self._run_one(item, intent), items))

        succeeded = [o for o in outcomes if o["success"]]
        failures = [
            {"product_id": o["product_id"], "title": o["title"], "error": o["error"]}
            for o in outcomes if not o["success"]
        ]
        changed_ids = {o["product_id"] for o in succeeded}
        changes = [
            c for item in items if item.id in changed_ids
            for c in self._plan_changes(item, intent)
        ]
        message = (
            f"Bulk update finished: {len(succeeded)} succeeded, {len(failures)} failed "
            f"out of {len(outcomes)} products"
        )
        logger.info(f"[CATALOG] {message}")
        data = {
            "results": [{"product_id": o["product_id"], "title": o["title"], "success": o["success"]} for o in outcomes],
            "failures": failures,
            "total": len(outcomes),
        }
        undo_data = {"items": {o["product_id"]: o["undo"] for o in succeeded}}

        if not succeeded:
            return self._fail(
                message,
                f"All {len(outcomes)} updates failed",
                ErrorKind.remote_failure,
                data=data,
                affected_products=0,
            )
        return self._ok(
            message,
            data=data,
            affected_products=len(succeeded),
            changes=changes,
            can_undo=True,
            undo_data=undo_data,
        )

    def undo(self, undo_data: Dict) -> ActionResult:
        restored, failed = 0, []
        for product_id, entry in (undo_data.get("items") or {}).items():
            try:
                if "variant_prices" in entry:
                    for variant_id, old in entry["variant_prices"].items():
                        self.catalog.update_variant_price(product_id, variant_id, old)
                else:
                    self.catalog.set_inventory(product_id, int(entry["old_quantity"]))
                restored += 1
            except StoreChatError as e:
                failed.append({"product_id": product_id, "error": mask_secrets(str(e))})
        message = f"Restored {restored} products"
        if failed:
            message += f", {len(failed)} could not be restored"
        return ActionResult(
            success=restored > 0 or not failed,
            message=message,
            affected_products=restored,
            data={"failures": failed},
        )
