"""
Chat API Endpoint.

Handles the website assistant's messages for one practice.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, model_validator

from practice_site.api.routes.sites import site_slug
from practice_site.core.chat.service import ChatService, get_chat_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sites", tags=["Chat"])


class ChatRequest(BaseModel):
    """Chat turn request: free text or a tapped quick reply."""

    message: Optional[str] = Field(
        default=None,
        max_length=2000,
        description="Visitor's message",
        examples=["¿Qué obras sociales aceptan?"],
    )
    quick_reply: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Value of a tapped quick reply",
        examples=["schedule"],
    )
    session_id: Optional[str] = Field(
        default=None,
        description="Existing session ID for conversation continuity",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    )

    @model_validator(mode="after")
    def exactly_one_input(self) -> "ChatRequest":
        if (self.message is None) == (self.quick_reply is None):
            raise ValueError("Provide exactly one of message or quick_reply")
        return self


class QuickReplyModel(BaseModel):
    label: str
    value: str


class ChatMessageModel(BaseModel):
    id: str
    sender: str
    content: str
    timestamp: str
    type: str
    quick_replies: Optional[list[QuickReplyModel]] = None


class HandoffModel(BaseModel):
    url: Optional[str] = Field(default=None, description="WhatsApp link")
    delay_ms: int = Field(..., description="Wait before redirecting")


class ChatResponse(BaseModel):
    """Chat turn response."""

    session_id: str = Field(..., description="Session ID for continuing conversation")
    messages: list[ChatMessageModel] = Field(..., description="New bot messages")
    intent: Optional[str] = Field(default=None, description="Matched intent key")
    handoff: Optional[HandoffModel] = Field(
        default=None,
        description="Present when the client should redirect to WhatsApp",
    )


@router.post(
    "/{slug}/chat",
    response_model=ChatResponse,
    status_code=status.HTTP_200_OK,
    summary="Send a chat message",
)
async def chat(
    request: ChatRequest,
    practice_slug: str = Depends(site_slug),
    service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    """
    Process one chat turn.

    The session_id should be preserved across requests to keep the
    conversation history.
    """
    if request.quick_reply is not None:
        turn = await service.handle_quick_reply(
            practice_slug, request.quick_reply, request.session_id
        )
    else:
        turn = await service.handle_message(practice_slug, request.message, request.session_id)

    return ChatResponse(**turn.to_dict())


@router.get(
    "/{slug}/chat/{session_id}",
    summary="Get session data",
    description="Retrieve the full conversation of a session.",
)
async def get_session(
    session_id: str,
    practice_slug: str = Depends(site_slug),
    service: ChatService = Depends(get_chat_service),
) -> dict:
    session = await service.get_session(practice_slug, session_id)
    return session.to_dict()


@router.delete(
    "/{slug}/chat/{session_id}",
    response_model=ChatResponse,
    summary="Reset a session",
    description="Discard the conversation and start a new one with the welcome message.",
)
async def reset_session(
    session_id: str,
    practice_slug: str = Depends(site_slug),
    service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    turn = await service.welcome(practice_slug, session_id)
    logger.info(f"Chat session reset: {session_id} -> {turn.session_id}")
    return ChatResponse(**turn.to_dict())
