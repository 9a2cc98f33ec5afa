"""
Chat data types.

Messages are plain dataclasses with dict/JSON conversion. Sessions are
snapshotted through `serialize_messages` / `deserialize_messages`; storage
medium and timing are the caller's concern.
"""

import json
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from practice_site.core.errors import ValidationError


def _utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def generate_message_id() -> str:
    """`msg_<epoch ms>_<9 random chars>`."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"msg_{int(time.time() * 1000)}_{suffix}"


class MessageSender(str, Enum):
    BOT = "bot"
    USER = "user"


class MessageType(str, Enum):
    TEXT = "text"
    QUICK_REPLIES = "quick_replies"
    TYPING = "typing"
    HANDOFF = "handoff"  # caller redirects to WhatsApp after a short delay


@dataclass(frozen=True)
class QuickReply:
    """Tappable suggestion; `value` is an intent key (or `whatsapp`)."""

    label: str
    value: str

    def to_dict(self) -> dict:
        return {"label": self.label, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "QuickReply":
        return cls(label=data.get("label") or "", value=data.get("value") or "")


@dataclass(frozen=True)
class ChatIntent:
    """Static intent definition, loaded once and never mutated."""

    key: str
    patterns: tuple[str, ...]
    responses: tuple[str, ...] = ()
    quick_replies: tuple[QuickReply, ...] = ()
    next_intent: Optional[str] = None


@dataclass
class ChatMessage:
    """One message in a conversation."""

    sender: MessageSender
    content: str
    type: MessageType = MessageType.TEXT
    quick_replies: tuple[QuickReply, ...] = ()
    id: str = field(default_factory=generate_message_id)
    timestamp: datetime = field(default_factory=_utcnow)

    @classmethod
    def bot(
        cls,
        content: str,
        type: MessageType = MessageType.TEXT,
        quick_replies: tuple[QuickReply, ...] = (),
    ) -> "ChatMessage":
        return cls(
            sender=MessageSender.BOT,
            content=content,
            type=type,
            quick_replies=tuple(quick_replies),
        )

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(sender=MessageSender.USER, content=content)

    @property
    def is_handoff(self) -> bool:
        return self.type == MessageType.HANDOFF

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "sender": self.sender.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
        }
        if self.quick_replies:
            result["quick_replies"] = [qr.to_dict() for qr in self.quick_replies]
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "ChatMessage":
        """Create from a dict produced by `to_dict`.

        Raises:
            ValidationError: unknown sender/type, bad timestamp or quick_replies
        """
        try:
            sender = MessageSender(data.get("sender"))
            msg_type = MessageType(data.get("type") or MessageType.TEXT.value)
            timestamp = (
                datetime.fromisoformat(data["timestamp"])
                if data.get("timestamp")
                else _utcnow()
            )
            raw_replies = data.get("quick_replies") or []
            if not isinstance(raw_replies, list) or not all(isinstance(qr, dict) for qr in raw_replies):
                raise ValidationError("Invalid chat message: bad quick_replies", field="messages")
            quick_replies = tuple(QuickReply.from_dict(qr) for qr in raw_replies)
        except (ValueError, TypeError) as e:
            raise ValidationError(f"Invalid chat message: {e}", field="messages") from e

        return cls(
            id=data.get("id") or generate_message_id(),
            sender=sender,
            content=data.get("content") or "",
            type=msg_type,
            timestamp=timestamp,
            quick_replies=quick_replies,
        )


@dataclass
class ChatContext:
    """Per-conversation context carried between turns."""

    current_intent: Optional[str] = None
    user_info: dict = field(default_factory=dict)
    appointment_info: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "current_intent": self.current_intent,
            "user_info": dict(self.user_info),
            "appointment_info": dict(self.appointment_info),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ChatContext":
        if not data:
            return cls()
        return cls(
            current_intent=data.get("current_intent"),
            user_info=dict(data.get("user_info") or {}),
            appointment_info=dict(data.get("appointment_info") or {}),
        )


# === Session snapshot boundary ===


def serialize_messages(messages: list[ChatMessage]) -> str:
    """Serialize a message sequence to a JSON string."""
    return json.dumps([m.to_dict() for m in messages], ensure_ascii=False)


def deserialize_messages(data: Union[str, bytes, list[Any]]) -> list[ChatMessage]:
    """Inverse of `serialize_messages`. Accepts JSON text or a decoded list.

    Raises:
        ValidationError: not a JSON list of message objects
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise ValidationError("Invalid chat session snapshot", field="messages") from e

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ValidationError("Invalid chat session snapshot", field="messages")

    return [ChatMessage.from_dict(item) for item in data]
