#!/usr/bin/env python3
"""
Main FastAPI application for the store chat assistant.
"""

import uuid
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .controller import Controller, build_controller
from ..schemas.execution_models import ActionExecution
from ..schemas.io_models import (
    CancelResponse,
    ChatRequest,
    ChatResponse,
    ConfirmRequest,
    ExecutionResponse,
    ExecutionStats,
    HealthResponse,
)
from ..utils.errors import ExecutionNotFoundError, RollbackNotAllowedError
from ..utils.logger import get_logger
from .. import __version__

logger = get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Store Chat API",
    description="Dual-mode chat assistant for managing an online store catalog",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your admin domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache()
def get_controller() -> Controller:
    return build_controller()


class SessionCreateRequest(BaseModel):
    """Request model for session creation."""
    session_id: Optional[str] = None


class SessionCreateResponse(BaseModel):
    """Response model for session creation."""
    session_id: str
    created: bool


@app.post("/session", response_model=SessionCreateResponse)
def create_session(request: SessionCreateRequest, controller: Controller = Depends(get_controller)):
    """Create a new chat session, generating an id when none is given."""
    session_id = request.session_id or str(uuid.uuid4())
    created = controller.session_manager.create_session(session_id)
    return SessionCreateResponse(session_id=session_id, created=created)


@app.post("/chat", response_model=ChatResponse)
def chat(request: ChatRequest, controller: Controller = Depends(get_controller)):
    """
    Route a chat message to conversation or action mode.
    """
    logger.info(f"[API] /chat session={request.session_id} user={request.user_id}")
    return controller.handle_message(request)


# declared before /actions/{execution_id} so "stats" is not read as an id
@app.get("/actions/stats", response_model=ExecutionStats)
def action_stats(controller: Controller = Depends(get_controller)):
    return ExecutionStats(**controller.get_stats())


@app.get("/actions/{execution_id}", response_model=ActionExecution)
def get_action(execution_id: str, controller: Controller = Depends(get_controller)):
    execution = controller.get_execution(execution_id)
    if execution is None:
        raise HTTPException(status_code=404, detail=f"Execution not found: {execution_id}")
    return execution


@app.post("/actions/{execution_id}/confirm", response_model=ExecutionResponse)
def confirm_action(execution_id: str, request: ConfirmRequest, controller: Controller = Depends(get_controller)):
    """Confirm or reject an execution awaiting confirmation."""
    try:
        return controller.handle_confirmation(execution_id, request.confirmed)
    except ExecutionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/actions/{execution_id}/cancel", response_model=CancelResponse)
def cancel_action(execution_id: str, controller: Controller = Depends(get_controller)):
    if controller.get_execution(execution_id) is None:
        raise HTTPException(status_code=404, detail=f"Execution not found: {execution_id}")
    return CancelResponse(execution_id=execution_id, cancelled=controller.cancel_execution(execution_id))


@app.post("/actions/{execution_id}/rollback", response_model=ExecutionResponse)
def rollback_action(execution_id: str, controller: Controller = Depends(get_controller)):
    """Undo a completed price, stock or create action."""
    try:
        return controller.rollback_execution(execution_id)
    except ExecutionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RollbackNotAllowedError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/health", response_model=HealthResponse)
def health_check(controller: Controller = Depends(get_controller)):
    """Health check endpoint."""
    return controller.health()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
