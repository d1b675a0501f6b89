"""Pre-execution safety checks for catalog commands."""
from typing import Callable, Optional

from .config import Config
from ..schemas.action_models import ActionIntent, ActionType, RiskLevel
from ..schemas.execution_models import ExecutionContext, SafetyValidation
from ..utils.logger import get_logger

logger = get_logger("safety")

RISK_RULES = {
    ActionType.delete_product: RiskLevel.critical,
    ActionType.bulk_update: RiskLevel.high,
    ActionType.update_price: RiskLevel.medium,
    ActionType.update_stock: RiskLevel.low,
    ActionType.create_product: RiskLevel.low,
    ActionType.search_products: RiskLevel.low,
}

REQUIRED_PERMISSIONS = {
    ActionType.update_price: "products.write",
    ActionType.update_stock: "inventory.write",
    ActionType.create_product: "products.write",
    ActionType.delete_product: "products.delete",
    ActionType.bulk_update: "products.bulk_write",
    ActionType.search_products: "products.read",
}

# types whose percentage moves prices
_PRICED_TYPES = (ActionType.update_price, ActionType.bulk_update)


class SafetyValidator:
    """Checks an intent against permissions, price-change limits and the
    daily action quota.

    ``action_counter(user_id)`` returns how many actions the user completed
    today; the executor supplies it from its repository.
    """

    def __init__(
        self,
        action_counter: Optional[Callable[[str], int]] = None,
        max_price_increase: float = None,
        max_price_decrease: float = None,
        large_change_pct: float = None,
        daily_limit: int = None,
    ):
        self.action_counter = action_counter or (lambda user_id: 0)
        self.max_price_increase = max_price_increase if max_price_increase is not None else Config.MAX_PRICE_INCREASE_PCT
        self.max_price_decrease = max_price_decrease if max_price_decrease is not None else Config.MAX_PRICE_DECREASE_PCT
        self.large_change_pct = large_change_pct if large_change_pct is not None else Config.LARGE_PRICE_CHANGE_PCT
        self.daily_limit = daily_limit if daily_limit is not None else Config.DAILY_ACTION_LIMIT

    @staticmethod
    def required_permission(action_type: ActionType) -> str:
        return REQUIRED_PERMISSIONS.get(action_type, "products.read")

    def validate(self, intent: ActionIntent, context: ExecutionContext) -> SafetyValidation:
        warnings, blockers, recommendations = [], [], []
        risk_level = RISK_RULES.get(intent.type, RiskLevel.medium)

        permission = self.required_permission(intent.type)
        if permission not in context.user_permissions:
            blockers.append(f"Missing permission: {permission}")

        entities = intent.entities
        percentage = getattr(entities, "percentage", None)
        if intent.type in _PRICED_TYPES and percentage is not None:
            if percentage > self.max_price_increase:
                blockers.append(
                    f"Price increase too high: {percentage:g}% (max: {self.max_price_increase:g}%)"
                )
            if percentage < -self.max_price_decrease:
                blockers.append(
                    f"Price decrease too high: {abs(percentage):g}% (max: {self.max_price_decrease:g}%)"
                )
            if abs(percentage) > self.large_change_pct:
                warnings.append(f"Large price change detected: {percentage:g}%")

        price = getattr(entities, "price", None)
        if price is not None and price < 0:
            blockers.append(f"Price cannot be negative: {price:g}")

        if intent.type == ActionType.bulk_update:
            warnings.append("Bulk operations affect multiple products")
            recommendations.append("Review the preview carefully before confirming")

        if intent.type == ActionType.delete_product:
            warnings.append("Product deletion is permanent")
            recommendations.append("Consider archiving instead of deleting")

        today = self.action_counter(context.user_id)
        if today >= self.daily_limit:
            blockers.append(f"Daily action limit exceeded: {today}/{self.daily_limit}")

        validation = SafetyValidation(
            passed=not blockers,
            warnings=warnings,
            blockers=blockers,
            risk_level=risk_level,
            recommendations=recommendations,
        )
        logger.info(
            f"[SAFETY] {intent.type.value}: risk={risk_level.value} "
            f"warnings={len(warnings)} blockers={len(blockers)}"
        )
        return validation
