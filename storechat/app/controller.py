"""Controller / orchestrator for the dual-mode chat pipeline.

Each message is classified by the rule-based detector, escalated to the
language model when the rules are unsure, and then either answered
conversationally or handed to the action executor.
"""
from typing import Any, Dict, List, Optional

from .config import Config
from .executor import ActionExecutor
from .generate import GenerationClient
from .postprocess import Postprocessor
from .preprocess import Preprocessor
from .prompt_builder import AnalysisContext, PromptBuilder, RecentProduct
from .session import SessionManager
from ..agents.catalog_actions import CatalogActionsService
from ..data.catalog import CatalogService
from ..nlu.intent_model import IntentDetector
from ..nlu.llm_router import DEFAULT_SUGGESTIONS, IntentEscalator
from ..schemas.action_models import ChatMode
from ..schemas.execution_models import ExecutionContext, StoreInfo
from ..schemas.io_models import ChatRequest, ChatResponse, ExecutionResponse, HealthResponse
from ..utils.errors import ChatServiceError, StoreChatError
from ..utils.logger import get_logger
from ..utils.security import mask_secrets

logger = get_logger()

HELP_TEXT = (
    "I can answer questions about your store or change the catalog for you. "
    'Try "update <product> price to <amount>", "set stock of <product> to <quantity>", '
    '"increase all <category> products by 10%" or "search for <keyword>".'
)
CONTEXT_PRODUCTS = 5


class Controller:
    def __init__(
        self,
        catalog: CatalogService,
        executor: ActionExecutor,
        detector: Optional[IntentDetector] = None,
        chat_client=None,
        session_manager: Optional[SessionManager] = None,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        self.catalog = catalog
        self.executor = executor
        self.detector = detector or IntentDetector()
        self.chat_client = chat_client
        self.builder = prompt_builder or PromptBuilder()
        self.escalator = IntentEscalator(chat_client, self.builder) if chat_client is not None else None
        self.session_manager = session_manager or SessionManager()
        self.preprocessor = Preprocessor()
        self.postprocessor = Postprocessor()
        self.store_info = StoreInfo(domain=Config.STORE_DOMAIN, name=Config.STORE_NAME)

    # --- context helpers ------------------------------------------------

    def _catalog_snapshot(self, limit: int) -> List[Dict[str, Any]]:
        try:
            return [item.summary() for item in self.catalog.find_all()[:limit]]
        except StoreChatError as e:
            logger.warning(f"[WORKFLOW] Catalog snapshot unavailable: {mask_secrets(str(e))}")
            return []

    def _analysis_context(self, session_id: str) -> AnalysisContext:
        products = [
            RecentProduct(id=p["id"], title=p["title"], sku=p["sku"], price=f"{p['price']:.2f}")
            for p in self._catalog_snapshot(CONTEXT_PRODUCTS)
        ]
        return AnalysisContext(
            recent_products=products,
            user_history=self.session_manager.get_recent_commands(session_id),
            store_info={"name": self.store_info.name, "domain": self.store_info.domain, "currency": Config.STORE_CURRENCY},
        )

    def _execution_context(self, request: ChatRequest) -> ExecutionContext:
        permissions = request.user_permissions if request.user_permissions is not None else Config.DEFAULT_PERMISSIONS
        return ExecutionContext(
            user_id=request.user_id,
            session_id=request.session_id,
            store_info=self.store_info,
            user_permissions=frozenset(permissions),
        )

    # --- chat -----------------------------------------------------------

    def _conversation_reply(self, session_id: str, fallback: bool, message: str):
        suggestions: List[str] = []
        if self.chat_client is None:
            return HELP_TEXT, list(DEFAULT_SUGGESTIONS) if fallback else []
        prompt = self.builder.build_conversation_prompt(self._catalog_snapshot(10))
        history = self.session_manager.get_conversation_context(session_id)
        try:
            reply = self.postprocessor.format_response(self.chat_client.complete(prompt, history))
        except ChatServiceError as e:
            logger.error(f"[WORKFLOW] Conversation reply failed: {mask_secrets(str(e))}")
            reply = HELP_TEXT
        if fallback and self.escalator is not None:
            suggestions = self.escalator.suggest_commands(message, self._analysis_context(session_id))
        return reply or HELP_TEXT, suggestions

    def handle_message(self, request: ChatRequest) -> ChatResponse:
        text = self.preprocessor.normalize_text(request.message)
        logger.info(f"[WORKFLOW] 1. Controller received message for session {request.session_id}")
        if not text:
            return ChatResponse(session_id=request.session_id, mode=ChatMode.conversation, response=HELP_TEXT)

        self.session_manager.add_message(request.session_id, "user", text)

        # routing: rules first
        result = self.detector.classify(text)
        logger.info(f"[WORKFLOW] 2. Rule-based detection: {result.mode.value} ({result.confidence:.2f})")
        if self.escalator is not None and self.escalator.should_escalate(result):
            result = self.escalator.enhance(result, text, self._analysis_context(request.session_id))
            logger.info(f"[WORKFLOW] 2a. After AI escalation: {result.mode.value} ({result.confidence:.2f})")

        if result.mode == ChatMode.action and result.action is not None:
            logger.info(f"[WORKFLOW] 3. Initiating action {result.action.type.value}")
            execution = self.executor.initiate_action(result.action, self._execution_context(request))
            self.session_manager.add_command(request.session_id, text)
            reply = self.postprocessor.format_execution(execution)
            self.session_manager.add_message(request.session_id, "assistant", reply)
            return ChatResponse(
                session_id=request.session_id,
                mode=ChatMode.action,
                response=reply,
                intent=result.action,
                execution=execution,
            )

        logger.info("[WORKFLOW] 3. Conversation mode")
        reply, suggestions = self._conversation_reply(request.session_id, result.conversation_fallback, text)
        self.session_manager.add_message(request.session_id, "assistant", reply)
        return ChatResponse(
            session_id=request.session_id,
            mode=ChatMode.conversation,
            response=reply,
            suggestions=suggestions,
        )

    # --- execution surface ---------------------------------------------

    def handle_confirmation(self, execution_id: str, confirmed: bool) -> ExecutionResponse:
        execution = self.executor.confirm_action(execution_id, confirmed)
        return ExecutionResponse(response=self.postprocessor.format_execution(execution), execution=execution)

    def get_execution(self, execution_id: str):
        return self.executor.get_execution(execution_id)

    def cancel_execution(self, execution_id: str) -> bool:
        return self.executor.cancel_execution(execution_id)

    def rollback_execution(self, execution_id: str) -> ExecutionResponse:
        execution = self.executor.rollback_execution(execution_id)
        last = execution.audit_log[-1]
        return ExecutionResponse(response=last.details, execution=execution)

    def get_stats(self) -> Dict[str, Any]:
        return self.executor.get_execution_stats()

    def health(self) -> HealthResponse:
        details: Dict[str, Any] = {}
        status = "healthy"
        if hasattr(self.catalog, "test_connection"):
            details = self.catalog.test_connection()
            if not details.get("connected"):
                status = "degraded"
        else:
            try:
                details = {"products": len(self.catalog.find_all())}
            except StoreChatError as e:
                details = {"error": mask_secrets(str(e))}
                status = "degraded"
        return HealthResponse(
            status=status,
            catalog_backend=getattr(self.catalog, "name", "catalog"),
            llm_enabled=self.chat_client is not None,
            details=details,
        )


def build_catalog() -> CatalogService:
    """Catalog backend selected by ``CATALOG_BACKEND``."""
    if Config.CATALOG_BACKEND == "shopify":
        from ..data.shopify_client import ShopifyCatalogService
        return ShopifyCatalogService()

    from ..data.database import SessionLocal, create_tables
    from ..data.populate_db import populate_products
    from ..data.sql_catalog import SqlCatalogService
    if Config.SEED_DEMO_CATALOG:
        populate_products()
    else:
        create_tables()
    return SqlCatalogService(SessionLocal)


def build_controller() -> Controller:
    catalog = build_catalog()
    executor = ActionExecutor(CatalogActionsService(catalog))
    chat_client = GenerationClient() if Config.llm_configured() else None
    logger.info(
        f"[WORKFLOW] Controller ready: catalog={catalog.name} llm={'on' if chat_client else 'off'}"
    )
    return Controller(catalog, executor, chat_client=chat_client)
