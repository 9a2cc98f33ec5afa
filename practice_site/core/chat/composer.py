"""
Response Composer

Turns a matched intent (or no intent) into bot messages. Data intents are
answered from the practice's content snapshot; everything else comes from the
intent's templates. The composer only tags hand-off messages; redirecting is
the chat service's job.
"""

import logging
import random
from typing import Optional

from practice_site.core.chat.content_cache import ContentCache
from practice_site.core.chat.intents import BOOKING_REPLY, DATA_INTENTS, WHATSAPP_REPLY
from practice_site.core.chat.types import ChatIntent, ChatMessage, MessageType, QuickReply
from practice_site.core.content.models import ContentSnapshot, text_of
from practice_site.core.errors import ValidationError
from practice_site.core.scheduling.slots import format_time, parse_time

logger = logging.getLogger(__name__)

# Services/doctors listed before the "...y más" trailer
MAX_LISTED = 5

DAY_NAMES = {
    0: "Domingo",
    1: "Lunes",
    2: "Martes",
    3: "Miércoles",
    4: "Jueves",
    5: "Viernes",
    6: "Sábado",
}

FALLBACK_MESSAGE = "Disculpa, no estoy seguro de entender. ¿Podrías reformular tu pregunta?"
FALLBACK_REPLIES = (
    BOOKING_REPLY,
    QuickReply("ℹ️ Información", "info"),
    QuickReply("📱 Hablar con alguien", "whatsapp"),
)

WELCOME_TEMPLATE = (
    "¡Hola! Bienvenido a {name}. Soy tu asistente virtual y estoy aquí para "
    "ayudarte. ¿En qué puedo asistirte hoy?"
)
WELCOME_REPLIES = (
    BOOKING_REPLY,
    QuickReply("ℹ️ Información general", "info"),
    QuickReply("⏰ Horarios", "schedule"),
    WHATSAPP_REPLY,
)

CONTACT_REPLY = QuickReply("📱 Contactar", "whatsapp")


class ResponseComposer:
    """
    Builds bot replies for one chat turn.

    Template choice uses an injectable random source so replies can be made
    deterministic.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    async def compose(
        self,
        intent: Optional[ChatIntent],
        cache: ContentCache,
        next_intent: Optional[ChatIntent] = None,
    ) -> list[ChatMessage]:
        """Compose the bot messages for a matched intent.

        Args:
            intent: Matched intent, or None for the clarifying fallback
            cache: Content cache of the practice being chatted with
            next_intent: Follow-up intent answered in the same turn

        Returns:
            Bot messages (possibly empty for an intent with no templates)
        """
        if intent is None:
            return [self.fallback()]

        messages: list[ChatMessage] = []
        snapshot: Optional[ContentSnapshot] = None

        if intent.key in DATA_INTENTS or (next_intent and next_intent.key in DATA_INTENTS):
            snapshot = await cache.get()

        if intent.key in DATA_INTENTS:
            messages.append(self.data_response(intent.key, snapshot))
        elif intent.responses:
            messages.append(
                ChatMessage.bot(
                    self._rng.choice(intent.responses),
                    type=self._message_type(intent),
                    quick_replies=intent.quick_replies,
                )
            )

        if next_intent is not None and next_intent.key in DATA_INTENTS:
            messages.append(self.data_response(next_intent.key, snapshot))

        return messages

    def _message_type(self, intent: ChatIntent) -> MessageType:
        if intent.key == "whatsapp":
            return MessageType.HANDOFF
        if intent.quick_replies:
            return MessageType.QUICK_REPLIES
        return MessageType.TEXT

    def fallback(self) -> ChatMessage:
        return ChatMessage.bot(FALLBACK_MESSAGE, quick_replies=FALLBACK_REPLIES)

    def welcome_message(self, snapshot: Optional[ContentSnapshot]) -> ChatMessage:
        name = snapshot.group.name if snapshot and snapshot.group.name else "nuestro centro médico"
        return ChatMessage.bot(
            WELCOME_TEMPLATE.format(name=name),
            type=MessageType.QUICK_REPLIES,
            quick_replies=WELCOME_REPLIES,
        )

    # === Data responses ===

    def data_response(self, key: str, snapshot: Optional[ContentSnapshot]) -> ChatMessage:
        builders = {
            "schedule": self.schedule_response,
            "location": self.location_response,
            "insurance": self.insurance_response,
            "services": self.services_response,
            "doctors": self.doctors_response,
        }
        return builders[key](snapshot)

    def schedule_response(self, snapshot: Optional[ContentSnapshot]) -> ChatMessage:
        if snapshot is None or not snapshot.schedules:
            return _contact_us(
                "Para conocer nuestros horarios de atención, te recomiendo contactarnos directamente.",
                WHATSAPP_REPLY,
                BOOKING_REPLY,
            )

        by_day: dict[int, list[str]] = {}
        for entry in snapshot.schedules:
            by_day.setdefault(entry.day_of_week, []).append(
                f"{_display_time(entry.start_time)} - {_display_time(entry.end_time)}"
            )

        text = "📅 Nuestros horarios de atención:\n\n"
        for day in sorted(by_day):
            text += f"{DAY_NAMES.get(day, str(day))}: {', '.join(by_day[day])}\n"

        return ChatMessage.bot(
            text,
            type=MessageType.QUICK_REPLIES,
            quick_replies=(BOOKING_REPLY, CONTACT_REPLY),
        )

    def location_response(self, snapshot: Optional[ContentSnapshot]) -> ChatMessage:
        address = ""
        phone = None
        email = None
        if snapshot is not None:
            contact = snapshot.website.contact
            address = text_of(snapshot.group.addresses)
            phone = contact.phone if contact else None
            email = snapshot.group.email or (contact.email if contact else None)

        if not (address or phone or email):
            text = "Para conocer nuestra ubicación y datos de contacto, por favor comunícate con nosotros."
        else:
            text = "📍 Información de contacto:\n\n"
            if address:
                text += f"Dirección: {address}\n"
            if phone:
                text += f"📞 Teléfono: {phone}\n"
            if email:
                text += f"📧 Email: {email}\n"

        return ChatMessage.bot(
            text,
            type=MessageType.QUICK_REPLIES,
            quick_replies=(BOOKING_REPLY, WHATSAPP_REPLY),
        )

    def insurance_response(self, snapshot: Optional[ContentSnapshot]) -> ChatMessage:
        if snapshot is None or not snapshot.insurance:
            return _contact_us(
                "Para consultar sobre obras sociales y coberturas aceptadas, te recomiendo contactarnos directamente.",
                WHATSAPP_REPLY,
            )

        text = "💳 Obras sociales que aceptamos:\n\n"
        for provider in snapshot.insurance:
            text += f"• {provider.name}"
            if provider.plans:
                text += f" ({', '.join(provider.plans)})"
            text += "\n"

        return ChatMessage.bot(
            text,
            type=MessageType.QUICK_REPLIES,
            quick_replies=(BOOKING_REPLY, CONTACT_REPLY),
        )

    def services_response(self, snapshot: Optional[ContentSnapshot]) -> ChatMessage:
        services = snapshot.active_services if snapshot else []
        if not services:
            return _contact_us(
                "Para conocer nuestros servicios, te recomiendo contactarnos directamente.",
                WHATSAPP_REPLY,
            )

        text = "🏥 Nuestros servicios:\n\n"
        for service in services[:MAX_LISTED]:
            text += f"• {service.name}"
            if service.description:
                text += f"\n  {service.description}"
            text += "\n"
        if len(services) > MAX_LISTED:
            text += "\n...y más servicios disponibles."

        return ChatMessage.bot(
            text,
            type=MessageType.QUICK_REPLIES,
            quick_replies=(BOOKING_REPLY, QuickReply("👨‍⚕️ Ver médicos", "doctors")),
        )

    def doctors_response(self, snapshot: Optional[ContentSnapshot]) -> ChatMessage:
        doctors = snapshot.active_doctors if snapshot else []
        if not doctors:
            return _contact_us(
                "Para conocer a nuestros profesionales, te recomiendo contactarnos directamente.",
                WHATSAPP_REPLY,
            )

        text = "👨‍⚕️ Nuestros profesionales:\n\n"
        for doctor in doctors[:MAX_LISTED]:
            text += f"• Dr./Dra. {doctor.name}"
            if doctor.specialty:
                text += f" - {doctor.specialty}"
            text += "\n"
        if len(doctors) > MAX_LISTED:
            text += "\n...y más profesionales en nuestro equipo."

        return ChatMessage.bot(
            text,
            type=MessageType.QUICK_REPLIES,
            quick_replies=(BOOKING_REPLY, QuickReply("🏥 Ver servicios", "services")),
        )


def _contact_us(text: str, *replies: QuickReply) -> ChatMessage:
    return ChatMessage.bot(text, type=MessageType.QUICK_REPLIES, quick_replies=replies)


def _display_time(value: str) -> str:
    """`09:00:00` -> `09:00`; unparseable values are shown as-is."""
    try:
        return format_time(parse_time(value))
    except ValidationError:
        return value
