"""Website Content Document models and helpers."""

from .models import (
    ContentSnapshot,
    ContentValue,
    Contact,
    Doctor,
    Group,
    Insurance,
    Section,
    Service,
    StructuredText,
    WebsiteSettings,
    WeeklyScheduleEntry,
    WhatsAppWidget,
    text_of,
    to_content_value,
)
from .slug import extract_slug

__all__ = [
    "ContentSnapshot",
    "ContentValue",
    "Contact",
    "Doctor",
    "Group",
    "Insurance",
    "Section",
    "Service",
    "StructuredText",
    "WebsiteSettings",
    "WeeklyScheduleEntry",
    "WhatsAppWidget",
    "text_of",
    "to_content_value",
    "extract_slug",
]
