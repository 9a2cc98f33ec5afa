"""
Chat Service - conversation orchestrator.

One turn: load the session, record the visitor's message, match an intent,
compose the reply, record it, and tell the caller whether to hand the
conversation off to WhatsApp.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote

from practice_site.config import get_settings
from practice_site.core.chat.composer import ResponseComposer
from practice_site.core.chat.content_cache import ContentCache, get_content_cache
from practice_site.core.chat.intents import HANDOFF_VALUE, QUICK_REPLY_LABELS
from practice_site.core.chat.matcher import IntentMatcher, get_intent_matcher
from practice_site.core.chat.session import ChatSession, SessionManager, get_session_manager
from practice_site.core.chat.types import ChatIntent, ChatMessage
from practice_site.core.content.models import ContentSnapshot
from practice_site.core.errors import NotFoundError, UnknownIntentError, ValidationError

logger = logging.getLogger(__name__)


def build_whatsapp_url(phone: str, message: str) -> str:
    """`https://wa.me/<digits>?text=<urlencoded message>`."""
    digits = re.sub(r"\D", "", phone or "")
    return f"https://wa.me/{digits}?text={quote(message, safe='')}"


@dataclass(frozen=True)
class HandoffDirective:
    """Instruction for the client to open WhatsApp after `delay_ms`."""

    url: Optional[str]
    delay_ms: int

    def to_dict(self) -> dict:
        return {"url": self.url, "delay_ms": self.delay_ms}


@dataclass
class ChatTurn:
    """Result of one chat interaction."""

    session_id: str
    messages: list[ChatMessage] = field(default_factory=list)
    intent: Optional[str] = None
    handoff: Optional[HandoffDirective] = None

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "messages": [m.to_dict() for m in self.messages],
            "intent": self.intent,
            "handoff": self.handoff.to_dict() if self.handoff else None,
        }


class ChatService:
    """
    Rule-based assistant for practice websites.

    Failures while answering (content outage, unknown quick reply) degrade to
    fallback replies; a chat turn never surfaces an error to the visitor.
    """

    def __init__(
        self,
        matcher: Optional[IntentMatcher] = None,
        composer: Optional[ResponseComposer] = None,
        session_manager: Optional[SessionManager] = None,
        cache_factory=get_content_cache,
    ):
        """Initialize service with optional dependencies.

        Args:
            matcher: Intent matcher
            composer: Response composer
            session_manager: Session storage
            cache_factory: slug -> ContentCache
        """
        self._matcher = matcher or get_intent_matcher()
        self._composer = composer or ResponseComposer()
        self._session_manager = session_manager
        self._cache_factory = cache_factory

    async def _get_session_manager(self) -> SessionManager:
        if self._session_manager is None:
            self._session_manager = await get_session_manager()
        return self._session_manager

    def _cache(self, slug: str) -> ContentCache:
        return self._cache_factory(slug)

    # === Turns ===

    async def handle_message(
        self,
        slug: str,
        text: str,
        session_id: Optional[str] = None,
    ) -> ChatTurn:
        """Answer a free-text message.

        Raises:
            ValidationError: empty message
        """
        if not (text or "").strip():
            raise ValidationError("El mensaje no puede estar vacío", field="message")

        intent = self._matcher.match(text)
        logger.info(f"Chat [{slug}] intent={intent.key if intent else None}")
        return await self._run_turn(slug, session_id, text.strip(), intent)

    async def handle_quick_reply(
        self,
        slug: str,
        value: str,
        session_id: Optional[str] = None,
    ) -> ChatTurn:
        """Answer a tapped quick reply.

        The `whatsapp` value hands off immediately without a bot reply. Other
        values resolve their intent by key; the label is recorded as the
        visitor's message.
        """
        session, created = await self._load_session(slug, session_id)

        if value == HANDOFF_VALUE:
            if created:
                await (await self._get_session_manager()).save(session)
            return ChatTurn(
                session_id=session.session_id,
                intent=HANDOFF_VALUE,
                handoff=await self._handoff(slug, delay_ms=0),
            )

        try:
            intent: Optional[ChatIntent] = self._matcher.get(value)
        except UnknownIntentError as e:
            logger.warning(f"Chat [{slug}] {e}")
            intent = None

        label = QUICK_REPLY_LABELS.get(value, value)
        return await self._run_turn(slug, session.session_id, label, intent, session=session)

    async def welcome(self, slug: str, session_id: Optional[str] = None) -> ChatTurn:
        """Start over: drop any existing session and greet the visitor."""
        manager = await self._get_session_manager()
        if session_id:
            await manager.delete(slug, session_id)

        session = await manager.create(slug)
        welcome = self._composer.welcome_message(await self._cache(slug).get())
        session.add_messages(welcome)
        await manager.save(session)

        return ChatTurn(session_id=session.session_id, messages=[welcome])

    async def get_session(self, slug: str, session_id: str) -> ChatSession:
        """
        Raises:
            NotFoundError: session expired or never existed
        """
        manager = await self._get_session_manager()
        session = await manager.get(slug, session_id)
        if session is None:
            raise NotFoundError(f"Chat session {session_id} not found")
        return session

    # === Internals ===

    async def _load_session(
        self, slug: str, session_id: Optional[str]
    ) -> tuple[ChatSession, bool]:
        manager = await self._get_session_manager()
        session, created = await manager.get_or_create(slug, session_id)
        if created:
            session.add_messages(self._composer.welcome_message(await self._cache(slug).get()))
        return session, created

    async def _run_turn(
        self,
        slug: str,
        session_id: Optional[str],
        user_text: str,
        intent: Optional[ChatIntent],
        session: Optional[ChatSession] = None,
    ) -> ChatTurn:
        if session is None:
            session, _ = await self._load_session(slug, session_id)

        session.add_messages(ChatMessage.user(user_text))

        next_intent = None
        if intent is not None and intent.next_intent:
            next_intent = self._matcher.get(intent.next_intent)

        replies = await self._composer.compose(intent, self._cache(slug), next_intent=next_intent)
        session.add_messages(*replies)
        if intent is not None:
            session.context.current_intent = (next_intent or intent).key

        await (await self._get_session_manager()).save(session)

        handoff = None
        if any(m.is_handoff for m in replies):
            handoff = await self._handoff(slug, delay_ms=get_settings().handoff_delay_ms)

        return ChatTurn(
            session_id=session.session_id,
            messages=replies,
            intent=intent.key if intent else None,
            handoff=handoff,
        )

    async def _handoff(self, slug: str, delay_ms: int) -> HandoffDirective:
        snapshot = await self._cache(slug).get()
        url = _whatsapp_url(snapshot)
        if url is None:
            logger.warning(f"Chat [{slug}] hand-off requested but no WhatsApp number configured")
        return HandoffDirective(url=url, delay_ms=delay_ms)


def _whatsapp_url(snapshot: Optional[ContentSnapshot]) -> Optional[str]:
    if snapshot is None:
        return None
    widget = snapshot.website.whatsapp
    contact = snapshot.website.contact
    phone = widget.phone or (contact.phone if contact else None)
    if not phone:
        return None
    return build_whatsapp_url(phone, widget.message or get_settings().whatsapp_default_message)


# Singleton
_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """Get singleton ChatService."""
    global _service
    if _service is None:
        _service = ChatService()
    return _service
