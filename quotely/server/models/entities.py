"""
Entitetsmodellen för offertbyggaren.

Alla modeller är frysta (immutable). Ändringar görs alltid via
model_copy(update=...) eller genom att bygga en ny instans, så att
läsvyer från QuoteStore kan delas ut utan att anroparen kan mutera
det kanoniska tillståndet.

I Python används snake_case. I sparade snapshots (och i API:t) används
camelCase-nycklarna från det ursprungliga lagringsformatet, t.ex.
"hourlyRate", "sectionId", "sortOrder". Båda formerna accepteras vid inläsning.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class _Entity(BaseModel):
    model_config = ConfigDict(
        alias_generator=_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json_dict(self) -> dict:
        """Samma form som i snapshot: camelCase, utan tomma valfria fält."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class QuoteStatus(str, Enum):
    DRAFT = "Draft"
    SHARED = "Shared"
    WAITING = "Waiting for approval"
    APPROVED = "Approved"
    CANCELED = "Canceled"


class RateComponent(_Entity):
    id: str
    label: str = ""
    # Kan vara vad som helst som kommit in från formuläret – räknas som 0 om
    # det inte går att tolka som tal (se core.rates).
    value: Any = 0


class BusinessDomain(_Entity):
    id: str
    name: str = ""
    hourly_rate: float = 0.0
    rate_components: Tuple[RateComponent, ...] = ()
    created_by: str = ""
    updated_at: str = ""


class Project(_Entity):
    id: str
    name: str = ""
    description: str = ""
    created_by: str = ""
    updated_at: str = ""


class Contact(_Entity):
    id: str
    name: str = ""
    email: str = ""
    note: str = ""
    created_by: str = ""
    updated_at: str = ""


class Quote(_Entity):
    """Offert. Mallar (templates) har exakt samma form men ligger i egen samling."""

    id: str
    title: str = ""
    status: QuoteStatus = QuoteStatus.DRAFT
    business_domain_id: str = ""
    project_id: str = ""
    contact_id: str = ""
    price_per_hour: float = 0.0

    # Cache som skrivs vid sparning – inte auktoritativ mellan sparningar
    total_hours: float = 0.0
    total_points: float = 0.0
    total_price: float = 0.0

    description: str = ""
    request_date: str = ""
    created_by: str = ""
    updated_at: str = ""
    share_token: str = ""

    # Externa koder (PPM / AFAS)
    ppm_code: Optional[str] = None
    afas_code: Optional[str] = None


class QuoteSection(_Entity):
    id: str
    quote_id: str
    title: str = ""
    sort_order: int = 0
    is_hidden: bool = False


class QuoteLineItem(_Entity):
    id: str
    quote_id: str
    # Saknas → raden hör till offertens första sektion (lägst sort_order)
    section_id: Optional[str] = None
    title: str = ""
    description: str = ""
    hours: float = Field(default=0.0, ge=0)
    story_points: float = 0.0
    sort_order: int = 0


class QuoteBundle(_Entity):
    """En offert (eller mall) tillsammans med sina sektioner och rader."""

    quote: Quote
    sections: Tuple[QuoteSection, ...] = ()
    line_items: Tuple[QuoteLineItem, ...] = ()


class Snapshot(_Entity):
    """Alla sju samlingar – det som sparas och läses som en enhet."""

    quotes: Tuple[Quote, ...] = ()
    projects: Tuple[Project, ...] = ()
    contacts: Tuple[Contact, ...] = ()
    domains: Tuple[BusinessDomain, ...] = ()
    line_items: Tuple[QuoteLineItem, ...] = ()
    sections: Tuple[QuoteSection, ...] = ()
    templates: Tuple[Quote, ...] = ()


class SearchResult(_Entity):
    id: str
    entity_type: str = Field(alias="type")
    label: str
    route: str
    tags: Tuple[str, ...] = ()


# Samlingsnamn → nyckelsuffix i snapshot-lagret
SNAPSHOT_KEYS = {
    "quotes": "quotes",
    "projects": "projects",
    "contacts": "contacts",
    "domains": "domains",
    "line_items": "lineItems",
    "sections": "sections",
    "templates": "templates",
}
