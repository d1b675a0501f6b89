"""Dispatches intents to the command agent for their action type.

Lookup and catalog errors raised inside an agent come back as failed
``ActionResult``s carrying the error kind; other exceptions propagate to the
executor, which records them.
"""
from typing import Dict

from .base_agent import BaseCommandAgent
from .bulk_agent import BulkUpdateAgent
from .finder import ProductFinder
from .price_agent import PriceUpdateAgent
from .product_agent import CreateProductAgent, DeleteProductAgent
from .search_agent import SearchAgent
from .stock_agent import StockUpdateAgent
from ..data.catalog import CatalogService
from ..schemas.action_models import ActionIntent, ActionType, ErrorKind
from ..schemas.execution_models import ActionResult
from ..utils.errors import CatalogError, ProductLookupError, StoreChatError
from ..utils.logger import get_logger
from ..utils.security import mask_secrets

logger = get_logger()

AGENT_MAP = {
    ActionType.update_price: PriceUpdateAgent,
    ActionType.update_stock: StockUpdateAgent,
    ActionType.create_product: CreateProductAgent,
    ActionType.delete_product: DeleteProductAgent,
    ActionType.bulk_update: BulkUpdateAgent,
    ActionType.search_products: SearchAgent,
}


def _failure(stage: str, error: StoreChatError) -> ActionResult:
    detail = mask_secrets(str(error))
    if isinstance(error, ProductLookupError):
        message = detail
    elif isinstance(error, CatalogError):
        message = f"{stage} failed: catalog service error ({detail})"
    else:
        message = f"{stage} failed: {detail}"
    return ActionResult(
        success=False,
        message=message,
        error=detail,
        error_kind=error.kind or ErrorKind.remote_failure,
        data={"suggestions": error.suggestions} if getattr(error, "suggestions", None) else None,
    )


class CatalogActionsService:
    def __init__(self, catalog: CatalogService):
        self.catalog = catalog
        finder = ProductFinder(catalog)
        self.agents: Dict[ActionType, BaseCommandAgent] = {
            action_type: agent_cls(catalog, finder) for action_type, agent_cls in AGENT_MAP.items()
        }

    def agent_for(self, action_type: ActionType) -> BaseCommandAgent:
        return self.agents[ActionType(action_type)]

    def preview_action(self, intent: ActionIntent) -> ActionResult:
        try:
            return self.agent_for(intent.type).preview(intent)
        except StoreChatError as e:
            logger.info(f"[CATALOG] Preview of {intent.type.value} failed: {mask_secrets(str(e))}")
            return _failure("Preview", e)

    def execute_action(self, intent: ActionIntent) -> ActionResult:
        try:
            return self.agent_for(intent.type).execute(intent)
        except StoreChatError as e:
            logger.error(f"[CATALOG] Execution of {intent.type.value} failed: {mask_secrets(str(e))}")
            return _failure("Execution", e)

    def undo_action(self, action_type: ActionType, undo_data: Dict) -> ActionResult:
        try:
            return self.agent_for(action_type).undo(undo_data)
        except StoreChatError as e:
            logger.error(f"[CATALOG] Undo of {ActionType(action_type).value} failed: {mask_secrets(str(e))}")
            return _failure("Undo", e)
