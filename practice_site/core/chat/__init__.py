"""
Chat Module

Rule-based assistant: ordered substring intent matching, data-driven reply
composition from the practice's content, session storage, and the WhatsApp
hand-off.
"""

from practice_site.core.chat.types import (
    ChatContext,
    ChatIntent,
    ChatMessage,
    MessageSender,
    MessageType,
    QuickReply,
    deserialize_messages,
    serialize_messages,
)
from practice_site.core.chat.intents import (
    INTENTS,
    QUICK_REPLY_LABELS,
    validate_intents,
)
from practice_site.core.chat.matcher import IntentMatcher, get_intent_matcher
from practice_site.core.chat.content_cache import ContentCache, get_content_cache
from practice_site.core.chat.composer import ResponseComposer
from practice_site.core.chat.session import (
    ChatSession,
    SessionManager,
    get_session_manager,
)
from practice_site.core.chat.service import (
    ChatService,
    ChatTurn,
    HandoffDirective,
    build_whatsapp_url,
    get_chat_service,
)

__all__ = [
    # Types
    "ChatContext",
    "ChatIntent",
    "ChatMessage",
    "MessageSender",
    "MessageType",
    "QuickReply",
    "deserialize_messages",
    "serialize_messages",
    # Intents
    "INTENTS",
    "QUICK_REPLY_LABELS",
    "validate_intents",
    "IntentMatcher",
    "get_intent_matcher",
    # Composition
    "ContentCache",
    "get_content_cache",
    "ResponseComposer",
    # Sessions
    "ChatSession",
    "SessionManager",
    "get_session_manager",
    # Service
    "ChatService",
    "ChatTurn",
    "HandoffDirective",
    "build_whatsapp_url",
    "get_chat_service",
]
