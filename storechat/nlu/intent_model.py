"""Rule-based intent classifier: decides between conversation and a catalog
command, and which command."""
from typing import Any, Dict

from .entity_extractor import EntityExtractor
from .rules import score_actions
from ..app.config import Config
from ..schemas.action_models import (
    ActionIntent,
    ActionType,
    IntentDetectionResult,
    build_entities,
)
from ..utils.logger import get_logger

logger = get_logger()


def requires_confirmation(action_type: ActionType, entities: Dict[str, Any]) -> bool:
    """Deterministic confirmation policy for an action type and its entities."""
    if action_type in (ActionType.delete_product, ActionType.bulk_update, ActionType.create_product):
        return True
    percentage = entities.get("percentage")
    if action_type == ActionType.update_price and percentage is not None:
        return abs(percentage) > Config.CONFIRM_PRICE_CHANGE_PCT
    return False


def has_required_entities(intent: ActionIntent) -> bool:
    """Whether the intent carries enough parameters to be executed."""
    e = intent.entities
    if intent.type == ActionType.update_price:
        return (e.price is not None or e.percentage is not None) and e.has_reference()
    if intent.type == ActionType.update_stock:
        return e.quantity is not None and e.has_reference()
    if intent.type == ActionType.delete_product:
        return e.has_reference()
    if intent.type == ActionType.create_product:
        return bool(e.product_name)
    if intent.type == ActionType.bulk_update:
        return e.percentage is not None or e.price is not None or e.quantity is not None
    return True


def describe_intent(intent: ActionIntent) -> str:
    """Human-readable one-liner for an intent."""
    e = intent.entities
    if intent.type == ActionType.update_price:
        if e.percentage is not None:
            return f"Update price by {e.percentage:g}% for {e.reference_label()}"
        price = f"${e.price:,.2f}" if e.price is not None else "a new value"
        return f"Update price to {price} for {e.reference_label()}"
    if intent.type == ActionType.update_stock:
        return f"Update stock to {e.quantity} for {e.reference_label()}"
    if intent.type == ActionType.delete_product:
        return f"Delete product: {e.reference_label()}"
    if intent.type == ActionType.create_product:
        return f"Create new product: {e.product_name}"
    if intent.type == ActionType.bulk_update:
        return f"Bulk update for {e.category or 'all products'}"
    if intent.type == ActionType.search_products:
        return f"Search products: {e.search_query or e.product_name}"
    return "Unknown action"


class IntentDetector:
    def __init__(self, extractor: EntityExtractor = None):
        self.extractor = extractor or EntityExtractor()

    def classify(self, message: str) -> IntentDetectionResult:
        text = (message or "").strip()
        bag = self.extractor.extract(text)
        scores = score_actions(text)
        if not scores:
            logger.info("[INTENT] No action keywords; conversation mode")
            return IntentDetectionResult.conversation()

        action_type, confidence = scores[0]
        # the extractor's whole-message search_query is not a real entity
        extracted = {k: v for k, v in bag.items() if k != "search_query"}
        if confidence < Config.ACTION_CONFIDENCE_THRESHOLD or (
            action_type == ActionType.search_products and not extracted
        ):
            logger.info(f"[INTENT] {action_type.value} at {confidence:.2f}; falling back to conversation")
            return IntentDetectionResult.conversation(fallback=True)

        intent = ActionIntent(
            type=action_type,
            confidence=confidence,
            entities=build_entities(action_type, bag),
            original_message=text,
            requires_confirmation=requires_confirmation(action_type, bag),
        )
        logger.info(f"[INTENT] {action_type.value} detected with confidence {confidence:.2f}")
        return IntentDetectionResult.for_action(intent)
