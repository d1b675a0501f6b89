"""Action execution engine.

Runs one intent through safety validation, preview, optional confirmation and
execution. Every step is recorded in the execution's audit log, and every
failure ends in a terminal status instead of an exception.

Concurrency: each execution carries its own re-entrant lock. The confirmation
timer and ``confirm_action`` both take that lock and re-check the status, so
whichever runs first decides the outcome and the other becomes a no-op.

Open question policy: a second request from a user who already has an
execution awaiting confirmation runs as an independent execution.
"""
import random
import string
import threading
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from .config import Config
from .safety import SafetyValidator
from ..agents.catalog_actions import CatalogActionsService
from ..data.execution_store import ExecutionRepository, InMemoryExecutionRepository
from ..schemas.action_models import ActionIntent, ActionStatus, ActionType, AuditEvent, ErrorKind, RiskLevel
from ..schemas.execution_models import ActionExecution, ActionResult, ExecutionContext, SafetyValidation
from ..utils.errors import ExecutionNotFoundError, RollbackNotAllowedError
from ..utils.logger import get_logger
from ..utils.security import mask_secrets

logger = get_logger("executor")


def generate_execution_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"act_{int(time.time() * 1000)}_{suffix}"


class ActionExecutor:
    def __init__(
        self,
        actions: CatalogActionsService,
        validator: Optional[SafetyValidator] = None,
        repository: Optional[ExecutionRepository] = None,
        confirmation_timeout: Optional[float] = None,
        max_bulk_operations: Optional[int] = None,
        confirm_affected_threshold: Optional[int] = None,
    ):
        self.actions = actions
        self.repository = repository or InMemoryExecutionRepository()
        self.validator = validator or SafetyValidator(action_counter=self.count_today_actions)
        self.confirmation_timeout = (
            confirmation_timeout if confirmation_timeout is not None else Config.CONFIRMATION_TIMEOUT_SECONDS
        )
        self.max_bulk_operations = max_bulk_operations or Config.MAX_BULK_OPERATIONS
        self.confirm_affected_threshold = (
            confirm_affected_threshold if confirm_affected_threshold is not None
            else Config.CONFIRM_AFFECTED_THRESHOLD
        )

    # --- helpers --------------------------------------------------------

    def count_today_actions(self, user_id: str) -> int:
        """Completed executions of ``user_id`` created today."""
        today = datetime.now().date()
        return sum(
            1 for e in self.repository.list_all()
            if e.user_id == user_id and e.status == ActionStatus.completed and e.timestamp.date() == today
        )

    def _require(self, execution_id: str) -> ActionExecution:
        execution = self.repository.get(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(execution_id)
        return execution

    def _fail(
        self,
        execution: ActionExecution,
        message: str,
        error: str,
        error_kind: ErrorKind,
        metadata: Optional[Dict[str, Any]] = None,
        result: Optional[ActionResult] = None,
    ) -> ActionExecution:
        execution.transition(ActionStatus.failed)
        execution.result = result or ActionResult(
            success=False, message=message, error=error, error_kind=error_kind
        )
        execution.add_audit_entry(AuditEvent.failed, message, metadata)
        logger.info(f"[EXECUTOR] {execution.id} failed: {mask_secrets(message)}")
        return execution

    def needs_confirmation(self, intent: ActionIntent, safety: SafetyValidation, preview: ActionResult) -> bool:
        if safety.risk_level in (RiskLevel.high, RiskLevel.critical):
            return True
        if safety.warnings:
            return True
        if preview.affected_products and preview.affected_products > self.confirm_affected_threshold:
            return True
        return intent.requires_confirmation

    def _arm_timer(self, execution: ActionExecution) -> None:
        timer = threading.Timer(self.confirmation_timeout, self.expire_confirmation, args=(execution.id,))
        timer.daemon = True
        execution.attach_timer(timer)
        timer.start()

    # --- pipeline -------------------------------------------------------

    def initiate_action(self, intent: ActionIntent, context: ExecutionContext) -> ActionExecution:
        self.cleanup_old_executions()
        execution = ActionExecution(
            id=generate_execution_id(),
            intent=intent,
            user_id=context.user_id,
            session_id=context.session_id,
            requires_confirmation=intent.requires_confirmation,
        )
        execution.add_audit_entry(
            AuditEvent.created,
            f"Action initiated: {intent.type.value}",
            {"intent": intent.model_dump(mode="json"), "context": context.model_dump(mode="json")},
        )
        self.repository.save(execution)
        logger.info(f"[EXECUTOR] Initiating {intent.type.value} as {execution.id}")

        with execution.lock:
            # Step 1: Safety validation
            safety = self.validator.validate(intent, context)
            execution.safety = safety
            execution.add_audit_entry(
                AuditEvent.created, f"Safety validation: {safety.risk_level.value}", safety.model_dump(mode="json")
            )
            if not safety.passed:
                return self._fail(
                    execution,
                    f"Action blocked: {', '.join(safety.blockers)}",
                    "Safety validation failed",
                    ErrorKind.safety_blocked,
                )

            # Step 2: Preview
            execution.transition(ActionStatus.previewing)
            execution.add_audit_entry(AuditEvent.previewed, "Generating preview")
            try:
                preview = self.actions.preview_action(intent)
            except Exception as e:
                logger.exception(f"[EXECUTOR] Preview crashed for {execution.id}")
                return self._fail(
                    execution,
                    f"Could not build a preview: {mask_secrets(str(e))}",
                    mask_secrets(str(e)),
                    ErrorKind.remote_failure,
                    {"raw_error": mask_secrets(repr(e))},
                )
            execution.preview = preview
            if not preview.success:
                return self._fail(
                    execution,
                    preview.message,
                    preview.error or preview.message,
                    preview.error_kind or ErrorKind.remote_failure,
                    {"raw_error": preview.error},
                    result=preview,
                )
            execution.add_audit_entry(
                AuditEvent.previewed, f"Preview generated: {preview.affected_products or 0} products affected"
            )

            if intent.type == ActionType.bulk_update and (preview.affected_products or 0) > self.max_bulk_operations:
                return self._fail(
                    execution,
                    f"Bulk update would touch {preview.affected_products} products "
                    f"(max: {self.max_bulk_operations}). Narrow it down with a category.",
                    "Bulk operation limit exceeded",
                    ErrorKind.safety_blocked,
                )

            # Step 3: Confirmation or immediate execution
            if self.needs_confirmation(intent, safety, preview):
                execution.transition(ActionStatus.awaiting_confirmation)
                execution.requires_confirmation = True
                execution.add_audit_entry(
                    AuditEvent.previewed, f"Awaiting confirmation (timeout {self.confirmation_timeout:g}s)"
                )
                self._arm_timer(execution)
                logger.info(f"[EXECUTOR] {execution.id} awaiting confirmation")
                return execution

            return self._execute_locked(execution)

    def confirm_action(self, execution_id: str, confirmed: bool) -> ActionExecution:
        execution = self._require(execution_id)
        with execution.lock:
            if execution.status != ActionStatus.awaiting_confirmation:
                logger.info(f"[EXECUTOR] {execution_id} is {execution.status.value}; ignoring confirmation")
                return execution
            execution.cancel_timer()
            if confirmed:
                execution.mark_confirmed()
                execution.add_audit_entry(AuditEvent.confirmed, "User confirmed action")
                return self._execute_locked(execution)
            execution.transition(ActionStatus.cancelled)
            execution.result = ActionResult(success=False, message="Action cancelled by user")
            execution.add_audit_entry(AuditEvent.cancelled, "User cancelled action")
            return execution

    def execute_action(self, execution_id: str) -> ActionExecution:
        execution = self._require(execution_id)
        with execution.lock:
            return self._execute_locked(execution)

    def _execute_locked(self, execution: ActionExecution) -> ActionExecution:
        if execution.status in (ActionStatus.completed, ActionStatus.failed):
            return execution
        if execution.status == ActionStatus.awaiting_confirmation and not execution.confirmed:
            # confirmation is the only way out of awaiting_confirmation
            return execution
        if execution.status not in (ActionStatus.previewing, ActionStatus.awaiting_confirmation):
            return execution

        execution.transition(ActionStatus.executing)
        execution.add_audit_entry(AuditEvent.executed, "Executing action")
        logger.info(f"[EXECUTOR] Executing {execution.intent.type.value} ({execution.id})")
        try:
            result = self.actions.execute_action(execution.intent)
        except Exception as e:
            logger.exception(f"[EXECUTOR] Execution crashed for {execution.id}")
            return self._fail(
                execution,
                f"Execution failed: {mask_secrets(str(e))}",
                mask_secrets(str(e)),
                ErrorKind.remote_failure,
                {"raw_error": mask_secrets(repr(e))},
            )

        execution.result = result
        if result.success:
            execution.transition(ActionStatus.completed)
            execution.add_audit_entry(
                AuditEvent.executed,
                f"Action completed successfully: {result.message}",
                {"affected_products": result.affected_products},
            )
        else:
            execution.transition(ActionStatus.failed)
            execution.add_audit_entry(
                AuditEvent.failed,
                f"Action failed: {result.error or result.message}",
                {"raw_error": mask_secrets(result.error or "")},
            )
        logger.info(f"[EXECUTOR] {execution.id} -> {execution.status.value}")
        return execution

    def expire_confirmation(self, execution_id: str) -> None:
        """Timer callback: cancel an execution still waiting for confirmation."""
        execution = self.repository.get(execution_id)
        if execution is None:
            return
        with execution.lock:
            if execution.status != ActionStatus.awaiting_confirmation:
                return
            execution.transition(ActionStatus.cancelled)
            execution.result = ActionResult(
                success=False,
                message="Confirmation window expired; the action was cancelled",
                error="Confirmation timeout expired",
                error_kind=ErrorKind.timeout,
            )
            execution.add_audit_entry(AuditEvent.cancelled, "Confirmation timeout expired")
            logger.info(f"[EXECUTOR] {execution_id} cancelled after confirmation timeout")

    # --- queries and housekeeping --------------------------------------

    def get_execution(self, execution_id: str) -> Optional[ActionExecution]:
        return self.repository.get(execution_id)

    def get_user_executions(self, user_id: str) -> List[ActionExecution]:
        executions = [e for e in self.repository.list_all() if e.user_id == user_id]
        return sorted(executions, key=lambda e: e.timestamp, reverse=True)

    def cancel_execution(self, execution_id: str) -> bool:
        execution = self.repository.get(execution_id)
        if execution is None:
            return False
        with execution.lock:
            if execution.is_terminal or execution.status == ActionStatus.executing:
                return False
            execution.cancel_timer()
            execution.transition(ActionStatus.cancelled)
            execution.result = ActionResult(success=False, message="Execution cancelled by user")
            execution.add_audit_entry(AuditEvent.cancelled, "Execution cancelled by user")
            return True

    def cleanup_old_executions(self, max_age: Optional[timedelta] = None) -> int:
        max_age = max_age or timedelta(hours=Config.EXECUTION_RETENTION_HOURS)
        cutoff = datetime.now() - max_age
        for execution in self.repository.list_all():
            if execution.timestamp < cutoff:
                execution.cancel_timer()
        removed = self.repository.evict_older_than(cutoff)
        if removed:
            logger.info(f"[EXECUTOR] Evicted {removed} executions older than {max_age}")
        return removed

    def get_execution_stats(self) -> Dict[str, Any]:
        executions = self.repository.list_all()
        by_status: Dict[str, int] = {}
        by_type: Dict[str, int] = {}
        for execution in executions:
            by_status[execution.status.value] = by_status.get(execution.status.value, 0) + 1
            by_type[execution.intent.type.value] = by_type.get(execution.intent.type.value, 0) + 1
        completed = by_status.get(ActionStatus.completed.value, 0)
        failed = by_status.get(ActionStatus.failed.value, 0)
        return {
            "total": len(executions),
            "by_status": by_status,
            "by_type": by_type,
            "success_rate": completed / (completed + failed) if completed + failed else 0.0,
        }

    def rollback_execution(self, execution_id: str) -> ActionExecution:
        """Restore the values a completed, undoable execution changed."""
        execution = self._require(execution_id)
        with execution.lock:
            result = execution.result
            if execution.status != ActionStatus.completed or not result or not result.can_undo or not result.undo_data:
                raise RollbackNotAllowedError(execution_id, "nothing to undo")
            if any(entry.event == AuditEvent.rolled_back for entry in execution.audit_log):
                raise RollbackNotAllowedError(execution_id, "already rolled back")
            undo = self.actions.undo_action(execution.intent.type, result.undo_data)
            if undo.success:
                execution.add_audit_entry(AuditEvent.rolled_back, undo.message, {"affected_products": undo.affected_products})
            else:
                execution.add_audit_entry(
                    AuditEvent.failed, f"Rollback failed: {undo.message}", {"raw_error": mask_secrets(undo.error or "")}
                )
            logger.info(f"[EXECUTOR] Rollback of {execution_id}: {'ok' if undo.success else 'failed'}")
            return execution
