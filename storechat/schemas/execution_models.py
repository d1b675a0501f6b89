"""Execution-side models: context, safety verdicts, adapter results and the
execution record owned by the action executor.
"""
import threading
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .action_models import (
    TERMINAL_STATUSES,
    ActionIntent,
    ActionStatus,
    AuditEvent,
    ErrorKind,
    RiskLevel,
)
from ..utils.errors import InvalidTransitionError

ALLOWED_TRANSITIONS = {
    ActionStatus.pending: {ActionStatus.previewing, ActionStatus.failed, ActionStatus.cancelled},
    ActionStatus.previewing: {
        ActionStatus.awaiting_confirmation,
        ActionStatus.executing,
        ActionStatus.failed,
        ActionStatus.cancelled,
    },
    ActionStatus.awaiting_confirmation: {ActionStatus.executing, ActionStatus.cancelled},
    ActionStatus.executing: {ActionStatus.completed, ActionStatus.failed},
    ActionStatus.completed: set(),
    ActionStatus.failed: set(),
    ActionStatus.cancelled: set(),
}


class StoreInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    domain: str
    name: str


class ExecutionContext(BaseModel):
    """Per-request caller context. Never mutated by the pipeline."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    session_id: Optional[str] = None
    store_info: StoreInfo
    user_permissions: FrozenSet[str] = Field(default_factory=frozenset)


class SafetyValidation(BaseModel):
    passed: bool
    warnings: List[str] = Field(default_factory=list)
    blockers: List[str] = Field(default_factory=list)
    risk_level: RiskLevel
    recommendations: List[str] = Field(default_factory=list)


class ChangeRecord(BaseModel):
    product_id: str
    field: str
    old_value: Any = None
    new_value: Any = None


class ActionResult(BaseModel):
    """Uniform result shape returned by every command agent."""

    success: bool
    message: str
    data: Any = None
    affected_products: Optional[int] = None
    changes: List[ChangeRecord] = Field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    can_undo: Optional[bool] = None
    undo_data: Optional[Dict[str, Any]] = None


class AuditEntry(BaseModel):
    timestamp: datetime = Field(default_factory=datetime.now)
    event: AuditEvent
    details: str
    metadata: Optional[Dict[str, Any]] = None


class ActionExecution(BaseModel):
    """One run of an intent through the state machine.

    ``status`` only moves forward along ``ALLOWED_TRANSITIONS``; the audit log
    is append-only. The lock and the confirmation timer are runtime handles and
    are never serialized.
    """

    id: str
    intent: ActionIntent
    status: ActionStatus = ActionStatus.pending
    preview: Optional[ActionResult] = None
    result: Optional[ActionResult] = None
    safety: Optional[SafetyValidation] = None
    timestamp: datetime = Field(default_factory=datetime.now)
    user_id: str
    session_id: Optional[str] = None
    requires_confirmation: bool = False
    confirmed: bool = False
    audit_log: List[AuditEntry] = Field(default_factory=list)

    _lock: Any = PrivateAttr(default_factory=threading.RLock)
    _timer: Optional[threading.Timer] = PrivateAttr(default=None)

    @property
    def lock(self):
        return self._lock

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition(self, target: ActionStatus) -> None:
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status, target)
        self.status = target

    def add_audit_entry(self, event: AuditEvent, details: str, metadata: Optional[Dict[str, Any]] = None) -> AuditEntry:
        entry = AuditEntry(event=event, details=details, metadata=metadata)
        self.audit_log.append(entry)
        return entry

    def mark_confirmed(self) -> None:
        if self.confirmed or self.status != ActionStatus.awaiting_confirmation:
            raise InvalidTransitionError(self.status, "confirmed")
        self.confirmed = True

    def attach_timer(self, timer: threading.Timer) -> None:
        self.cancel_timer()
        self._timer = timer

    def cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
