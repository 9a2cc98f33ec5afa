"""Chat session model and Redis-based session storage."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from practice_site.config import settings
from practice_site.core.chat.types import (
    ChatContext,
    ChatMessage,
    deserialize_messages,
)
from practice_site.core.errors import ValidationError
from practice_site.infra.redis import APP_PREFIX, get_redis


def _utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


logger = logging.getLogger(__name__)

# Session key prefix (extends APP_PREFIX)
SESSION_PREFIX = f"{APP_PREFIX}chat:session:"


@dataclass
class ChatSession:
    """One visitor conversation with a practice's assistant."""

    session_id: str = field(default_factory=lambda: str(uuid4()))
    practice_slug: str = ""
    messages: list[ChatMessage] = field(default_factory=list)
    context: ChatContext = field(default_factory=ChatContext)
    max_messages: int = 100
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def add_messages(self, *messages: ChatMessage) -> None:
        """Append messages, keeping only the most recent `max_messages`."""
        self.messages.extend(messages)
        if len(self.messages) > self.max_messages:
            self.messages = self.messages[-self.max_messages:]
        self.updated_at = _utcnow()

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "practice_slug": self.practice_slug,
            "messages": [m.to_dict() for m in self.messages],
            "context": self.context.to_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "ChatSession":
        """Deserialize from JSON string.

        Raises:
            ValidationError: corrupt session data
        """
        try:
            data = json.loads(json_str)
            created_at = datetime.fromisoformat(data["created_at"])
            updated_at = datetime.fromisoformat(data["updated_at"])
        except (ValueError, KeyError, TypeError) as e:
            raise ValidationError("Invalid chat session data", field="session") from e

        return cls(
            session_id=data.get("session_id") or str(uuid4()),
            practice_slug=data.get("practice_slug") or "",
            messages=deserialize_messages(data.get("messages") or []),
            context=ChatContext.from_dict(data.get("context")),
            created_at=created_at,
            updated_at=updated_at,
        )


class SessionManager:
    """
    Redis-based chat session storage.

    Key pattern: practice-site:v1:chat:session:{slug}:{session_id}

    Gracefully handles Redis unavailability with in-memory fallback.
    """

    def __init__(self):
        """Initialize session manager."""
        self._ttl = settings.redis_session_ttl  # 30 minutes default
        self._in_memory_fallback: dict[str, ChatSession] = {}

    def _key(self, slug: str, session_id: str) -> str:
        """Generate storage key."""
        return f"{SESSION_PREFIX}{slug}:{session_id}"

    async def create(self, slug: str, session_id: Optional[str] = None) -> ChatSession:
        """
        Create and store a new, empty session.

        Args:
            slug: Practice slug
            session_id: Session ID (auto-generated if not provided)

        Returns:
            Created ChatSession
        """
        session = ChatSession(session_id=session_id or str(uuid4()), practice_slug=slug)
        await self.save(session)
        logger.debug(f"Session created: {session.session_id}")
        return session

    async def get(self, slug: str, session_id: str) -> Optional[ChatSession]:
        """
        Get session by ID.

        Returns:
            ChatSession, or None if missing, expired or unreadable
        """
        redis = await get_redis()

        if redis:
            data = await redis.get(self._key(slug, session_id))
            if not data:
                return None
            try:
                return ChatSession.from_json(data)
            except ValidationError as e:
                logger.warning(f"Discarding corrupt session {session_id}: {e}")
                return None
        else:
            # Fallback to in-memory
            return self._in_memory_fallback.get(self._key(slug, session_id))

    async def get_or_create(
        self,
        slug: str,
        session_id: Optional[str] = None,
    ) -> tuple[ChatSession, bool]:
        """
        Get existing session or create a new one.

        Returns:
            (session, created)
        """
        if session_id:
            session = await self.get(slug, session_id)
            if session:
                await self._refresh_ttl(slug, session_id)
                return session, False

        return await self.create(slug, session_id), True

    async def save(self, session: ChatSession) -> bool:
        """Persist session, refreshing its TTL."""
        session.updated_at = _utcnow()
        key = self._key(session.practice_slug, session.session_id)

        redis = await get_redis()

        if redis:
            await redis.setex(key, self._ttl, session.to_json())
            logger.debug(f"Session saved: {session.session_id}")
        else:
            self._in_memory_fallback[key] = session
            logger.warning(
                f"Redis unavailable, using in-memory fallback for session {session.session_id}"
            )
        return True

    async def delete(self, slug: str, session_id: str) -> bool:
        """
        Delete a session.

        Returns:
            True if a session was deleted
        """
        key = self._key(slug, session_id)
        redis = await get_redis()

        if redis:
            deleted = await redis.delete(key)
            if deleted:
                logger.debug(f"Session deleted: {session_id}")
            return bool(deleted)
        else:
            return self._in_memory_fallback.pop(key, None) is not None

    async def _refresh_ttl(self, slug: str, session_id: str) -> bool:
        """Refresh session TTL."""
        redis = await get_redis()

        if redis:
            return await redis.expire(self._key(slug, session_id), self._ttl)

        return True  # In-memory doesn't have TTL


# Singleton
_manager: Optional[SessionManager] = None


async def get_session_manager() -> SessionManager:
    """Get singleton SessionManager."""
    global _manager
    if _manager is None:
        _manager = SessionManager()
    return _manager
