"""Trigger phrases and per-phrase confidence for catalog commands."""
from typing import Dict, List, Tuple

from ..schemas.action_models import ActionType

# action type -> (trigger phrases, base weight); order breaks ties
ACTION_TRIGGERS: Dict[ActionType, Tuple[List[str], float]] = {
    ActionType.update_price: (
        ["update price", "change price", "set price", "modify price", "increase price",
         "decrease price", "raise price", "lower price", "reduce price", "price to"],
        0.8,
    ),
    ActionType.update_stock: (
        ["update stock", "change stock", "set stock", "add stock", "reduce stock",
         "inventory", "stock level", "stock to"],
        0.8,
    ),
    ActionType.create_product: (
        ["create product", "add product", "new product", "make product", "add new product",
         "create a product", "create a new product", "add a product", "add a new product"],
        0.9,
    ),
    ActionType.delete_product: (
        ["delete product", "remove product", "drop product", "eliminate product"],
        0.95,
    ),
    ActionType.bulk_update: (
        ["bulk update", "batch update", "mass update", "update all", "all products",
         "increase all", "decrease all"],
        0.85,
    ),
    # low weight: these often read as plain questions
    ActionType.search_products: (
        ["search product", "find product", "look for product", "show products",
         "list products", "search for"],
        0.3,
    ),
}


def phrase_confidence(message: str, phrase: str, weight: float) -> float:
    """Score one trigger phrase found in ``message`` (already lowercased)."""
    confidence = weight
    # longer phrases are more specific
    if len(phrase) > 10:
        confidence += 0.1
    # short phrase lost in a long message
    if len(message) > 100 and len(phrase) < 10:
        confidence -= 0.1
    # short, focused message
    if len(message) < 50 and len(phrase) > 5:
        confidence += 0.1
    return min(confidence, 1.0)


def matched_phrases(message: str) -> Dict[ActionType, List[str]]:
    """All trigger phrases per action type present in the message."""
    text = message.lower()
    found = {}
    for action_type, (phrases, _) in ACTION_TRIGGERS.items():
        hits = [p for p in phrases if p in text]
        if hits:
            found[action_type] = hits
    return found


def score_actions(message: str) -> List[Tuple[ActionType, float]]:
    """Best confidence per matched action type, highest first.

    The sort is stable, so equal scores keep ``ACTION_TRIGGERS`` order.
    """
    text = message.lower().strip()
    scores = []
    for action_type, hits in matched_phrases(text).items():
        weight = ACTION_TRIGGERS[action_type][1]
        best = max(phrase_confidence(text, p, weight) for p in hits)
        scores.append((action_type, round(best, 4)))
    return sorted(scores, key=lambda s: s[1], reverse=True)
