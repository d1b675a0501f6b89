"""Pydantic models for API I/O.

These wrap the execution models for the chat surface; the pipeline itself
never depends on them.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .action_models import ActionIntent, ChatMode
from .execution_models import ActionExecution


class ChatRequest(BaseModel):
    session_id: str
    user_id: str
    message: str
    user_permissions: Optional[List[str]] = None


class ChatResponse(BaseModel):
    session_id: str
    mode: ChatMode
    response: str
    intent: Optional[ActionIntent] = None
    execution: Optional[ActionExecution] = None
    suggestions: List[str] = Field(default_factory=list)


class ConfirmRequest(BaseModel):
    confirmed: bool


class ExecutionResponse(BaseModel):
    response: str
    execution: ActionExecution


class CancelResponse(BaseModel):
    execution_id: str
    cancelled: bool


class ExecutionStats(BaseModel):
    total: int
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    success_rate: float = 0.0


class HealthResponse(BaseModel):
    status: str
    catalog_backend: str
    llm_enabled: bool
    details: Dict[str, Any] = Field(default_factory=dict)
