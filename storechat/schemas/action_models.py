"""Action intent models.

- Enums for every closed vocabulary the pipeline uses.
- Entities are a tagged union keyed by action type, so each intent only carries
  the parameters that make sense for it.
- Intents are frozen once produced.
"""
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ActionType(str, Enum):
    update_price = "update_price"
    update_stock = "update_stock"
    create_product = "create_product"
    delete_product = "delete_product"
    bulk_update = "bulk_update"
    search_products = "search_products"


class ChatMode(str, Enum):
    conversation = "conversation"
    action = "action"


class ActionStatus(str, Enum):
    pending = "pending"
    previewing = "previewing"
    awaiting_confirmation = "awaiting_confirmation"
    executing = "executing"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


TERMINAL_STATUSES = frozenset({ActionStatus.completed, ActionStatus.failed, ActionStatus.cancelled})


class AuditEvent(str, Enum):
    created = "created"
    previewed = "previewed"
    confirmed = "confirmed"
    executed = "executed"
    failed = "failed"
    cancelled = "cancelled"
    rolled_back = "rolled_back"


class RiskLevel(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class ErrorKind(str, Enum):
    not_found = "not_found"
    ambiguous = "ambiguous"
    invalid_entity = "invalid_entity"
    safety_blocked = "safety_blocked"
    remote_failure = "remote_failure"
    parse_failure = "parse_failure"
    timeout = "timeout"


class _Entities(BaseModel):
    model_config = ConfigDict(frozen=True)


class ProductReference(_Entities):
    product_id: Optional[str] = None
    sku: Optional[str] = None
    product_name: Optional[str] = None

    def has_reference(self) -> bool:
        return bool(self.product_id or self.sku or self.product_name)

    def reference_label(self) -> str:
        return self.product_name or self.sku or self.product_id or "product"


class PriceEntities(ProductReference):
    kind: Literal["update_price"] = "update_price"
    price: Optional[float] = None
    percentage: Optional[float] = None


class StockEntities(ProductReference):
    kind: Literal["update_stock"] = "update_stock"
    quantity: Optional[int] = None


class CreateEntities(_Entities):
    kind: Literal["create_product"] = "create_product"
    product_name: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[int] = None


class DeleteEntities(ProductReference):
    kind: Literal["delete_product"] = "delete_product"


class BulkEntities(_Entities):
    kind: Literal["bulk_update"] = "bulk_update"
    category: Optional[str] = None
    percentage: Optional[float] = None
    price: Optional[float] = None
    quantity: Optional[int] = None


class SearchEntities(_Entities):
    kind: Literal["search_products"] = "search_products"
    search_query: Optional[str] = None
    product_name: Optional[str] = None


ActionEntities = Annotated[
    Union[PriceEntities, StockEntities, CreateEntities, DeleteEntities, BulkEntities, SearchEntities],
    Field(discriminator="kind"),
]

ENTITY_MODELS = {
    ActionType.update_price: PriceEntities,
    ActionType.update_stock: StockEntities,
    ActionType.create_product: CreateEntities,
    ActionType.delete_product: DeleteEntities,
    ActionType.bulk_update: BulkEntities,
    ActionType.search_products: SearchEntities,
}


def build_entities(action_type: ActionType, bag: Dict[str, Any]):
    """Project a flat entity bag onto the variant for ``action_type``.

    Keys the variant does not declare are dropped, as are ``None`` values.
    """
    model = ENTITY_MODELS[ActionType(action_type)]
    fields = {
        key: value
        for key, value in (bag or {}).items()
        if key in model.model_fields and key != "kind" and value is not None
    }
    return model(**fields)


class ActionIntent(BaseModel):
    """A message interpreted as a catalog command."""

    model_config = ConfigDict(frozen=True)

    type: ActionType
    confidence: float = Field(ge=0.0, le=1.0)
    entities: ActionEntities
    original_message: str
    requires_confirmation: bool = False

    @model_validator(mode="after")
    def _entities_match_type(self):
        if self.entities.kind != self.type.value:
            raise ValueError(f"entities of kind '{self.entities.kind}' do not fit action '{self.type.value}'")
        return self


class IntentDetectionResult(BaseModel):
    mode: ChatMode
    action: Optional[ActionIntent] = None
    conversation_fallback: bool = False

    @classmethod
    def conversation(cls, fallback: bool = False) -> "IntentDetectionResult":
        return cls(mode=ChatMode.conversation, conversation_fallback=fallback)

    @classmethod
    def for_action(cls, intent: ActionIntent) -> "IntentDetectionResult":
        return cls(mode=ChatMode.action, action=intent, conversation_fallback=False)

    @property
    def confidence(self) -> float:
        return self.action.confidence if self.action else 0.0
