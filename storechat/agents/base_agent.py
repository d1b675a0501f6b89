"""BaseCommandAgent interface for all catalog command agents."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .finder import ProductFinder
from ..app.config import Config
from ..data.catalog import CatalogItem, CatalogService
from ..schemas.action_models import ActionIntent, ErrorKind
from ..schemas.execution_models import ActionResult, ChangeRecord


class BaseCommandAgent(ABC):
    name: str = "base"

    def __init__(self, catalog: CatalogService, finder: Optional[ProductFinder] = None):
        self.catalog = catalog
        self.finder = finder or ProductFinder(catalog)

    @abstractmethod
    def preview(self, intent: ActionIntent) -> ActionResult:
        """Dry run: resolve targets and report what would change. No writes."""
        ...

    @abstractmethod
    def execute(self, intent: ActionIntent) -> ActionResult:
        ...

    def undo(self, undo_data: Dict[str, Any]) -> ActionResult:
        return self._fail(f"Undo is not supported for {self.name}", "Undo not supported")

    def _ok(self, message: str, **extras) -> ActionResult:
        return ActionResult(success=True, message=message, **extras)

    def _fail(self, message: str, error: str, error_kind: ErrorKind = None, **extras) -> ActionResult:
        return ActionResult(success=False, message=message, error=error, error_kind=error_kind, **extras)

    def _preview_items(self, items: List[CatalogItem], changes: List[ChangeRecord] = None) -> ActionResult:
        count = len(items)
        noun = "product" if count == 1 else "products"
        return self._ok(
            f"Preview: will affect {count} {noun}",
            data=[i.summary() for i in items[:Config.PREVIEW_SAMPLE_SIZE]],
            affected_products=count,
            changes=changes or [],
        )
