"""
Website Content Document models.

The backend aggregates a practice's public configuration and roster into one
payload. Parsing here is deliberately tolerant: missing optional objects
become None, missing lists become empty, and the payload may arrive bare or
wrapped in a `{"data": ...}` envelope.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from practice_site.core.errors import TransportError

logger = logging.getLogger(__name__)


# === Text | Structured values ===


@dataclass(frozen=True)
class StructuredText:
    """A content field that arrived as an object instead of a string."""

    text: Optional[str] = None
    label: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    extra: dict = field(default_factory=dict, compare=False)

    def as_text(self) -> str:
        for candidate in (self.text, self.label, self.title, self.description):
            if candidate:
                return candidate
        if self.extra:
            return ", ".join(str(v) for v in self.extra.values() if v)
        return ""


ContentValue = Union[str, StructuredText]


def to_content_value(value: Any) -> Optional[ContentValue]:
    """Wrap a raw string/object/list field as a ContentValue."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        known = {k: value.get(k) for k in ("text", "label", "title", "description")}
        extra = {k: v for k, v in value.items() if k not in known}
        return StructuredText(**known, extra=extra)
    if isinstance(value, list):
        parts = [text_of(to_content_value(item)) for item in value]
        return "; ".join(p for p in parts if p)
    return str(value)


def text_of(value: Optional[ContentValue]) -> str:
    """Project a ContentValue to display text."""
    if value is None:
        return ""
    if isinstance(value, StructuredText):
        return value.as_text()
    return value


# === Roster ===


@dataclass(frozen=True)
class Doctor:
    id: str
    name: str
    specialty: Optional[str] = None
    allowed_insurance: tuple[str, ...] = ()
    photo_url: Optional[str] = None
    email: str = ""
    phone: str = ""
    bio: str = ""
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "Doctor":
        return cls(
            id=data.get("id") or "",
            name=data.get("nombre") or data.get("name") or "",
            specialty=data.get("especialidad") or None,
            allowed_insurance=tuple(data.get("allowed_obras_sociales") or ()),
            photo_url=data.get("photo_url") or None,
            email=data.get("email") or "",
            phone=data.get("phone") or "",
            bio=data.get("bio") or "",
            is_active=_flag(data.get("is_active")),
        )


@dataclass(frozen=True)
class Service:
    id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    order_index: int = 0
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "Service":
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            description=data.get("description") or None,
            icon=data.get("icon") or None,
            order_index=data.get("order_index") or 0,
            is_active=_flag(data.get("is_active")),
        )


@dataclass(frozen=True)
class Insurance:
    """Accepted insurance provider ("obra social") and its plans."""

    id: str
    name: str
    plans: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "Insurance":
        return cls(
            id=data.get("id") or "",
            name=data.get("obra_social") or data.get("name") or "",
            plans=tuple(data.get("planes") or ()),
        )


@dataclass(frozen=True)
class WeeklyScheduleEntry:
    """One recurring weekly availability block (0=Sunday .. 6=Saturday)."""

    doctor_id: str
    day_of_week: int
    start_time: str
    end_time: str
    doctor_name: str = ""
    room_name: Optional[str] = None
    room_address: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "WeeklyScheduleEntry":
        day = data.get("dia_semana", data.get("day_of_week"))
        return cls(
            doctor_id=data.get("doctor_id") or "",
            doctor_name=data.get("doctor_name") or "",
            day_of_week=day if day is not None else 0,
            start_time=data.get("hora_inicio") or data.get("start_time") or "",
            end_time=data.get("hora_fin") or data.get("end_time") or "",
            room_name=data.get("consultorio_name") or None,
            room_address=data.get("consultorio_address") or None,
        )


# === Group and website settings ===


@dataclass(frozen=True)
class Section:
    id: str
    type: str
    order_index: int = 0
    is_active: bool = True
    content: Any = None

    @classmethod
    def from_dict(cls, data: dict) -> "Section":
        return cls(
            id=data.get("id") or "",
            type=data.get("type") or "about",
            order_index=data.get("order_index") or 0,
            is_active=_flag(data.get("is_active")),
            content=data.get("content") or None,
        )


@dataclass(frozen=True)
class Group:
    id: str = ""
    name: str = ""
    slug: str = ""
    logo_url: Optional[str] = None
    specialty: Optional[str] = None
    addresses: Optional[ContentValue] = None
    email: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Group":
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            slug=data.get("slug") or "",
            logo_url=data.get("logo_url") or None,
            specialty=data.get("specialty") or None,
            addresses=to_content_value(data.get("addresses")),
            email=data.get("email") or None,
        )


@dataclass(frozen=True)
class Contact:
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["Contact"]:
        if not data:
            return None
        return cls(
            phone=data.get("phone") or None,
            email=data.get("email") or None,
            address=data.get("address") or None,
        )


@dataclass(frozen=True)
class WhatsAppWidget:
    """WhatsApp widget; the backend emits both a nested and a flat shape."""

    enabled: bool = False
    phone: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_widgets(cls, widgets: Optional[dict]) -> "WhatsAppWidget":
        if not widgets:
            return cls()
        nested = widgets.get("whatsapp") or {}
        enabled = nested.get("enabled", widgets.get("whatsapp_enabled", False))
        return cls(
            enabled=bool(enabled),
            phone=nested.get("phone") or widgets.get("whatsapp_number") or None,
            message=nested.get("message") or widgets.get("whatsapp_message") or None,
        )


@dataclass(frozen=True)
class WebsiteSettings:
    theme: Optional[dict] = None
    contact: Optional[Contact] = None
    socials: Optional[dict] = None
    seo: Optional[dict] = None
    widgets: Optional[dict] = None

    @property
    def whatsapp(self) -> WhatsAppWidget:
        return WhatsAppWidget.from_widgets(self.widgets)

    @classmethod
    def from_dict(cls, data: dict) -> "WebsiteSettings":
        return cls(
            theme=data.get("theme") or None,
            contact=Contact.from_dict(data.get("contact")),
            socials=data.get("socials") or None,
            seo=data.get("seo") or None,
            widgets=data.get("widgets") or None,
        )


# === Snapshot ===


@dataclass(frozen=True)
class ContentSnapshot:
    """Immutable read model of one practice's website content."""

    group: Group = field(default_factory=Group)
    website: WebsiteSettings = field(default_factory=WebsiteSettings)
    sections: tuple[Section, ...] = ()
    services: tuple[Service, ...] = ()
    doctors: tuple[Doctor, ...] = ()
    insurance: tuple[Insurance, ...] = ()
    schedules: tuple[WeeklyScheduleEntry, ...] = ()
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def active_services(self) -> list[Service]:
        return [s for s in self.services if s.is_active]

    @property
    def active_doctors(self) -> list[Doctor]:
        return [d for d in self.doctors if d.is_active]

    def find_doctor(self, doctor_id: str) -> Optional[Doctor]:
        for doctor in self.doctors:
            if doctor.id == doctor_id:
                return doctor
        return None

    def schedules_for(self, doctor_id: str) -> list[WeeklyScheduleEntry]:
        return [s for s in self.schedules if s.doctor_id == doctor_id]

    @classmethod
    def from_dict(cls, data: dict) -> "ContentSnapshot":
        """Build a snapshot from the unwrapped document."""
        return cls(
            group=Group.from_dict(data.get("group") or {}),
            website=WebsiteSettings.from_dict(data.get("website") or {}),
            sections=_parse_list(data.get("sections"), Section.from_dict),
            services=_parse_list(data.get("services"), Service.from_dict),
            doctors=_parse_list(data.get("doctors"), Doctor.from_dict),
            insurance=_parse_list(data.get("insurance"), Insurance.from_dict),
            schedules=_parse_list(data.get("schedules"), WeeklyScheduleEntry.from_dict),
            raw=data,
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "ContentSnapshot":
        """Parse a backend response body (bare, `{data}`, or `{error}`).

        Raises:
            TransportError: error envelope, or no recognisable document
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                raise TransportError("Invalid JSON response from content API") from e

        if not isinstance(payload, dict):
            raise TransportError("No data received from content API")

        if payload.get("error"):
            raise TransportError(str(payload["error"]))

        if payload.get("data"):
            data = payload["data"]
        elif payload.get("group") or payload.get("website"):
            data = payload
        else:
            logger.error(f"Content payload without data: keys={list(payload)}")
            raise TransportError("No data received from content API")

        return cls.from_dict(data)

    def to_dict(self) -> dict:
        """Serialize with the backend's wire keys (for API passthrough)."""
        return {
            "group": {
                "id": self.group.id,
                "name": self.group.name,
                "slug": self.group.slug,
                "logo_url": self.group.logo_url,
                "specialty": self.group.specialty,
                "addresses": text_of(self.group.addresses) or None,
                "email": self.group.email,
            },
            "website": {
                "theme": self.website.theme,
                "contact": (
                    {
                        "phone": self.website.contact.phone,
                        "email": self.website.contact.email,
                        "address": self.website.contact.address,
                    }
                    if self.website.contact
                    else None
                ),
                "socials": self.website.socials,
                "seo": self.website.seo,
                "widgets": self.website.widgets,
            },
            "sections": [
                {
                    "id": s.id,
                    "type": s.type,
                    "order_index": s.order_index,
                    "is_active": s.is_active,
                    "content": s.content,
                }
                for s in self.sections
            ],
            "services": [
                {
                    "id": s.id,
                    "name": s.name,
                    "description": s.description,
                    "icon": s.icon,
                    "order_index": s.order_index,
                    "is_active": s.is_active,
                }
                for s in self.services
            ],
            "doctors": [
                {
                    "id": d.id,
                    "nombre": d.name,
                    "especialidad": d.specialty,
                    "allowed_obras_sociales": list(d.allowed_insurance) or None,
                    "photo_url": d.photo_url,
                    "is_active": d.is_active,
                }
                for d in self.doctors
            ],
            "insurance": [
                {"id": i.id, "obra_social": i.name, "planes": list(i.plans) or None}
                for i in self.insurance
            ],
            "schedules": [
                {
                    "doctor_id": s.doctor_id,
                    "doctor_name": s.doctor_name,
                    "dia_semana": s.day_of_week,
                    "hora_inicio": s.start_time,
                    "hora_fin": s.end_time,
                    "consultorio_name": s.room_name,
                    "consultorio_address": s.room_address,
                }
                for s in self.schedules
            ],
        }


def _flag(value: Any) -> bool:
    """Missing booleans default to True (backend omits them for active rows)."""
    return True if value is None else bool(value)


def _parse_list(items: Any, parse) -> tuple:
    if not isinstance(items, list):
        return ()
    return tuple(parse(item) for item in items if isinstance(item, dict))
