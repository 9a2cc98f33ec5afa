"""
Intent registry.

Intents are tried in declared order and their patterns in declared order;
the first substring hit wins. Order therefore matters: "Hola, quiero
reservar un turno" is a greeting, not a booking.
"""

from typing import Iterable

from practice_site.core.chat.types import ChatIntent, QuickReply
from practice_site.core.errors import UnknownIntentError, ValidationError

# Quick-reply value that triggers the hand-off instead of a reply
HANDOFF_VALUE = "whatsapp"

# Intents answered from live content data rather than templates
DATA_INTENTS = frozenset({"schedule", "location", "insurance", "services", "doctors"})

BOOKING_REPLY = QuickReply("📅 Reservar turno", "booking")
WHATSAPP_REPLY = QuickReply("📱 Contactar por WhatsApp", HANDOFF_VALUE)

INTENTS: tuple[ChatIntent, ...] = (
    ChatIntent(
        key="greeting",
        patterns=("hola", "buenos dias", "buenas tardes", "buenas noches", "hey", "hello", "hi"),
        responses=(
            "¡Hola! Soy el asistente virtual. ¿En qué puedo ayudarte hoy?",
            "¡Bienvenido! Estoy aquí para ayudarte. ¿Qué necesitas?",
        ),
        quick_replies=(
            BOOKING_REPLY,
            QuickReply("ℹ️ Información general", "info"),
            QuickReply("⏰ Horarios", "schedule"),
            QuickReply("📍 Ubicación", "location"),
        ),
    ),
    ChatIntent(
        key="booking",
        patterns=("turno", "cita", "consulta", "reservar", "agendar", "appointment", "book"),
        responses=(
            "Perfecto, puedo ayudarte a reservar un turno. ¿Qué tipo de consulta necesitas?",
        ),
        next_intent="services",
    ),
    ChatIntent(
        key="schedule",
        patterns=("horario", "hora", "cuando", "abierto", "schedule", "hours"),
    ),
    ChatIntent(
        key="location",
        patterns=("donde", "ubicacion", "direccion", "como llego", "location", "address"),
    ),
    ChatIntent(
        key="insurance",
        patterns=("obra social", "prepaga", "seguro", "cobertura", "insurance"),
    ),
    ChatIntent(
        key="emergency",
        patterns=("urgencia", "emergencia", "urgente", "emergency", "urgent"),
        responses=(
            "⚠️ Para emergencias médicas, te recomiendo contactar directamente por WhatsApp o llamar al centro médico.",
            "⚠️ Si es una emergencia, por favor comunícate inmediatamente por WhatsApp o teléfono.",
        ),
        quick_replies=(WHATSAPP_REPLY,),
    ),
    ChatIntent(
        key="info",
        patterns=("info", "información", "servicios", "que hacen", "especialidades"),
        responses=("¿Qué información necesitas?",),
        quick_replies=(
            QuickReply("🏥 Servicios", "services"),
            QuickReply("👨‍⚕️ Médicos", "doctors"),
            QuickReply("💳 Obras sociales", "insurance"),
            QuickReply("📍 Ubicación", "location"),
        ),
    ),
    ChatIntent(
        key="services",
        patterns=("servicio", "tratamiento", "que ofrecen"),
    ),
    ChatIntent(
        key="doctors",
        patterns=("medico", "doctor", "profesional", "especialista"),
    ),
    ChatIntent(
        key="thanks",
        patterns=("gracias", "muchas gracias", "thank", "thanks"),
        responses=(
            "¡De nada! ¿Hay algo más en lo que pueda ayudarte?",
            "¡Un placer ayudarte! Si necesitas algo más, aquí estoy.",
        ),
        quick_replies=(BOOKING_REPLY, WHATSAPP_REPLY),
    ),
    ChatIntent(
        key="whatsapp",
        patterns=("whatsapp", "wa", "chat", "hablar con alguien", "contactar"),
        responses=("¡Por supuesto! Puedo conectarte con nuestro equipo por WhatsApp.",),
    ),
)

# Text recorded as the visitor's message when a quick reply is tapped
QUICK_REPLY_LABELS: dict[str, str] = {
    "booking": "📅 Reservar turno",
    "info": "ℹ️ Información general",
    "schedule": "⏰ Horarios",
    "location": "📍 Ubicación",
    "services": "🏥 Servicios",
    "doctors": "👨‍⚕️ Médicos",
    "insurance": "💳 Obras sociales",
}


def validate_intents(intents: Iterable[ChatIntent]) -> None:
    """Check a registry before it is used.

    Raises:
        ValidationError: duplicate key, empty or non-lowercase pattern,
            or a templated intent without responses
        UnknownIntentError: next_intent or a quick-reply value names an
            unregistered intent
    """
    intents = list(intents)
    keys = [intent.key for intent in intents]

    seen: set[str] = set()
    for key in keys:
        if key in seen:
            raise ValidationError(f"Duplicate intent key: {key}", field="key")
        seen.add(key)

    for intent in intents:
        if not intent.patterns:
            raise ValidationError(f"Intent {intent.key} has no patterns", field="patterns")
        for pattern in intent.patterns:
            if not pattern or pattern != pattern.lower().strip():
                raise ValidationError(
                    f"Intent {intent.key} has an invalid pattern: {pattern!r}",
                    field="patterns",
                )
        if intent.key not in DATA_INTENTS and not intent.responses:
            raise ValidationError(f"Intent {intent.key} has no responses", field="responses")

        if intent.next_intent and intent.next_intent not in seen:
            raise UnknownIntentError(intent.next_intent)
        for reply in intent.quick_replies:
            if reply.value not in seen:
                raise UnknownIntentError(reply.value)
