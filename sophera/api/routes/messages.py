"""
Chat message API endpoints.

POST routes the user's message through the assistant, then stores the
message and the reply together. A failed reply leaves no trace in the history.
Each exchange counts against the caller's daily LLM budget.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from sophera.api.middleware.user_auth import AuthenticatedUser, get_current_user
from sophera.assistant.models import ChatExchange, Message, MessageCreate, MessageRole
from sophera.assistant.repository import MessageRepository
from sophera.assistant.router import process_query
from sophera.config import LLM_HISTORY_MESSAGES
from sophera.infrastructure.llm_budget import BudgetExceededError, ensure_budget, record_llm_call
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import time_block

router = APIRouter(prefix="/api/messages", tags=["messages"])
logger = get_logger(__name__)


@router.get("", response_model=list[Message])
async def list_messages(user: AuthenticatedUser = Depends(get_current_user)) -> list[Message]:
    """Chat history, oldest first. The first call seeds a welcome message."""
    try:
        return MessageRepository.list_by_user(user.id)
    except Exception as e:
        logger.error("Failed to list messages: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list messages") from None


@router.post("", response_model=ChatExchange, status_code=201)
async def send_message(
    request: MessageCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> ChatExchange:
    try:
        ensure_budget(user.id)
    except BudgetExceededError:
        raise HTTPException(status_code=429, detail="Daily AI usage limit reached") from None

    try:
        history = [
            (m.role, m.content) for m in MessageRepository.recent(user.id, LLM_HISTORY_MESSAGES)
        ]
        user_message = MessageRepository.build(user.id, MessageRole.USER, request.content)

        with time_block("api.messages.reply"):
            reply = process_query(
                request.content,
                preferred_model=request.preferred_model,
                user_id=user.id,
                history=history,
            )
        record_llm_call(user.id, "chat")

        assistant_message = MessageRepository.build(
            user.id,
            MessageRole.ASSISTANT,
            reply.content,
            model_used=reply.model_used,
            sources=reply.sources,
        )
        MessageRepository.save_exchange(user_message, assistant_message)
    except Exception as e:
        logger.error("Failed to process chat message: %s", e)
        raise HTTPException(status_code=500, detail="Failed to process message") from None

    return ChatExchange(user_message=user_message, assistant_message=assistant_message)
