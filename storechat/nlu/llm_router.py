"""LLM-based intent escalation.

Uncertain rule results are sent to the language model with a strict JSON
contract. The reply is decoded into ``IntentAnalysisReply``; anything that
does not decode or validate becomes one fallback analysis instead of an
exception.
"""
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .entity_extractor import parse_amount
from .intent_model import requires_confirmation
from ..app.config import Config
from ..app.prompt_builder import AnalysisContext, PromptBuilder
from ..schemas.action_models import (
    ActionIntent,
    ActionType,
    ChatMode,
    ErrorKind,
    IntentDetectionResult,
    build_entities,
)
from ..utils.errors import ChatServiceError
from ..utils.logger import get_logger
from ..utils.security import mask_secrets

logger = get_logger()

PARSE_FAILURE_CONFIDENCE = 0.3
DEFAULT_SUGGESTIONS = [
    'Try commands like "update [product name] price to [price]"',
    'Or "update [product name] stock to [quantity]"',
    'Type "search product [keyword]" to search products',
]


class ReplyEntities(BaseModel):
    product_name: Optional[str] = None
    sku: Optional[str] = None
    product_id: Optional[str] = None
    price: Optional[float] = None
    percentage: Optional[float] = None
    quantity: Optional[int] = None
    category: Optional[str] = None
    search_query: Optional[str] = None

    @field_validator("price", "percentage", mode="before")
    @classmethod
    def _amount(cls, v):
        if v is None or v == "":
            return None
        value = parse_amount(v)
        if value is None:
            raise ValueError(f"not a number: {v!r}")
        return value

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v):
        if v is None or v == "":
            return None
        value = parse_amount(v)
        if value is None:
            raise ValueError(f"not a number: {v!r}")
        return int(value)

    @field_validator("product_name", "sku", "product_id", "category", "search_query", mode="before")
    @classmethod
    def _text(cls, v):
        if v is None:
            return None
        text = str(v).strip()
        return text or None


class IntentAnalysisReply(BaseModel):
    """The JSON object the model must answer with."""

    action_detected: bool
    action_type: Optional[ActionType] = None
    confidence: float = Field(ge=0.0, le=1.0)
    entities: ReplyEntities = Field(default_factory=ReplyEntities)
    requires_confirmation: bool = False
    reasoning: str = ""
    suggestions: List[str] = Field(default_factory=list)
    fallback_conversation: bool = False

    @field_validator("action_type", mode="before")
    @classmethod
    def _none_type(cls, v):
        if v in (None, "", "none"):
            return None
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def _scale(cls, v):
        value = parse_amount(v)
        if value is None:
            raise ValueError(f"not a confidence: {v!r}")
        # some models answer on a 0-100 scale
        if 1.0 < value <= 100.0:
            value = value / 100.0
        return value


class AnalysisResult(BaseModel):
    confidence: float
    intent: Optional[ActionIntent] = None
    reasoning: str = ""
    suggestions: List[str] = Field(default_factory=list)
    fallback_to_conversation: bool = True
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def fallback(cls, confidence: float, reasoning: str, error_kind: ErrorKind, suggestions=None):
        return cls(
            confidence=confidence,
            reasoning=reasoning,
            suggestions=suggestions or ["Try using clearer command format"],
            error_kind=error_kind,
        )


def first_json_object(text: str) -> Dict[str, Any]:
    """Decode the first JSON object embedded in free text."""
    decoder = json.JSONDecoder()
    idx = text.find("{")
    while idx != -1:
        try:
            obj, _ = decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            idx = text.find("{", idx + 1)
            continue
        if isinstance(obj, dict):
            return obj
        idx = text.find("{", idx + 1)
    raise ValueError("No JSON object found in response")


class IntentEscalator:
    def __init__(self, chat_client, prompt_builder: PromptBuilder = None):
        self.chat_client = chat_client
        self.prompt_builder = prompt_builder or PromptBuilder()

    @staticmethod
    def should_escalate(basic: IntentDetectionResult) -> bool:
        if basic.mode == ChatMode.action and basic.action is not None:
            return basic.action.confidence <= Config.ESCALATION_CONFIDENCE_THRESHOLD
        return basic.conversation_fallback

    def parse_reply(self, text: str, message: str) -> AnalysisResult:
        try:
            reply = IntentAnalysisReply.model_validate(first_json_object(text))
        except (ValueError, ValidationError) as e:
            logger.warning(f"[INTENT] Could not parse model analysis: {mask_secrets(str(e))[:200]}")
            return AnalysisResult.fallback(
                PARSE_FAILURE_CONFIDENCE,
                f"Failed to parse AI analysis: {str(e)[:200]}",
                ErrorKind.parse_failure,
            )

        if not reply.action_detected or reply.fallback_conversation or reply.action_type is None:
            return AnalysisResult(
                confidence=reply.confidence,
                reasoning=reply.reasoning or "No clear action detected",
                suggestions=reply.suggestions or ["Try using more specific commands"],
            )

        bag = reply.entities.model_dump(exclude_none=True)
        intent = ActionIntent(
            type=reply.action_type,
            confidence=reply.confidence,
            entities=build_entities(reply.action_type, bag),
            original_message=message,
            requires_confirmation=reply.requires_confirmation or requires_confirmation(reply.action_type, bag),
        )
        return AnalysisResult(
            confidence=reply.confidence,
            intent=intent,
            reasoning=reply.reasoning or "Action detected by AI analysis",
            suggestions=reply.suggestions,
            fallback_to_conversation=False,
        )

    def analyze_intent(self, message: str, context: Optional[AnalysisContext] = None) -> AnalysisResult:
        prompt = self.prompt_builder.build_intent_analysis_prompt(context)
        try:
            text = self.chat_client.complete(prompt, [{"role": "user", "content": message}])
        except ChatServiceError as e:
            logger.error(f"[INTENT] AI analysis failed: {mask_secrets(str(e))}")
            return AnalysisResult.fallback(
                0.0,
                f"Analysis failed: {mask_secrets(str(e))}",
                ErrorKind.remote_failure,
                ["Try using more specific commands"],
            )
        return self.parse_reply(text, message)

    def enhance(
        self,
        basic: IntentDetectionResult,
        message: str,
        context: Optional[AnalysisContext] = None,
    ) -> IntentDetectionResult:
        if not self.should_escalate(basic):
            logger.info("[INTENT] Basic detection confident, skipping AI escalation")
            return basic

        logger.info("[INTENT] Basic detection uncertain, escalating to AI analysis")
        analysis = self.analyze_intent(message, context)

        if analysis.confidence > basic.confidence:
            if analysis.intent is not None and not analysis.fallback_to_conversation:
                logger.info(f"[INTENT] AI analysis wins: {analysis.intent.type.value} at {analysis.confidence:.2f}")
                return IntentDetectionResult.for_action(analysis.intent)
            return IntentDetectionResult.conversation(fallback=True)

        if basic.mode == ChatMode.action:
            return basic
        return IntentDetectionResult.conversation(fallback=True)

    def suggest_commands(self, message: str, context: Optional[AnalysisContext] = None) -> List[str]:
        prompt = self.prompt_builder.build_suggestions_prompt(message, context)
        try:
            text = self.chat_client.complete(prompt, [{"role": "user", "content": message}], temperature=0.5)
        except ChatServiceError as e:
            logger.warning(f"[INTENT] Suggestion request failed: {mask_secrets(str(e))}")
            return DEFAULT_SUGGESTIONS[:2]
        suggestions = [
            line.strip().lstrip("-*0123456789. ").strip()
            for line in text.splitlines()
        ]
        suggestions = [s for s in suggestions if s][:5]
        return suggestions or list(DEFAULT_SUGGESTIONS)
