"""
Summering av timmar, poäng och pris för en offert.

- Interna summor: alla rader, oavsett om sektionen är dold.
- Kundsummor: bara rader vars sektion inte är dold.
  Rad utan section_id hör till offertens första sektion (lägst sort_order).
- Pris = timmar * offertens pricePerHour.

Allt här är rena projektioner och räknas om vid varje anrop. Fälten
total_hours/total_price på Quote är en cache som skrivs vid sparning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from quotely.core.ordering import sort_by_order
from quotely.server.models import BusinessDomain, Quote, QuoteLineItem, QuoteSection


@dataclass(frozen=True)
class QuoteTotals:
    client_hours: float
    internal_hours: float
    client_points: float
    internal_points: float
    client_price: float
    internal_price: float

    @property
    def hidden_hours(self) -> float:
        return self.internal_hours - self.client_hours


@dataclass
class SectionWithItems:
    section: QuoteSection
    items: List[QuoteLineItem] = field(default_factory=list)

    @property
    def hours(self) -> float:
        return sum(i.hours for i in self.items)


def first_section_id(sections: Sequence[QuoteSection]) -> Optional[str]:
    ordered = sort_by_order(sections)
    return ordered[0].id if ordered else None


def effective_section_id(item: QuoteLineItem, sections: Sequence[QuoteSection]) -> Optional[str]:
    if item.section_id:
        return item.section_id
    return first_section_id(sections)


def _visible_items(sections: Sequence[QuoteSection], items: Sequence[QuoteLineItem]) -> List[QuoteLineItem]:
    visible_ids = {s.id for s in sections if not s.is_hidden}
    fallback = first_section_id(sections)
    out: List[QuoteLineItem] = []
    for item in items:
        sid = item.section_id or fallback
        if sid and sid in visible_ids:
            out.append(item)
    return out


def internal_total_hours(items: Sequence[QuoteLineItem]) -> float:
    return sum(float(i.hours) for i in items)


def client_total_hours(sections: Sequence[QuoteSection], items: Sequence[QuoteLineItem]) -> float:
    return sum(float(i.hours) for i in _visible_items(sections, items))


def total_price(hours: float, price_per_hour: float) -> float:
    return float(hours) * float(price_per_hour or 0)


def compute_totals(
    quote: Quote,
    sections: Sequence[QuoteSection],
    items: Sequence[QuoteLineItem],
) -> QuoteTotals:
    visible = _visible_items(sections, items)
    client_hours = sum(float(i.hours) for i in visible)
    internal_hours = internal_total_hours(items)
    return QuoteTotals(
        client_hours=client_hours,
        internal_hours=internal_hours,
        client_points=sum(float(i.story_points) for i in visible),
        internal_points=sum(float(i.story_points) for i in items),
        client_price=total_price(client_hours, quote.price_per_hour),
        internal_price=total_price(internal_hours, quote.price_per_hour),
    )


def group_sections(
    sections: Sequence[QuoteSection],
    items: Sequence[QuoteLineItem],
    *,
    include_hidden: bool = True,
) -> List[SectionWithItems]:
    """
    Sektioner i sort_order med sina rader (också i sort_order).
    Rader vars sektion inte finns (eller är dold när include_hidden=False)
    kommer inte med.
    """
    fallback = first_section_id(sections)
    groups: Dict[str, SectionWithItems] = {}
    for sec in sort_by_order(sections):
        if sec.is_hidden and not include_hidden:
            continue
        groups[sec.id] = SectionWithItems(section=sec)

    for item in sort_by_order(items):
        sid = item.section_id or fallback
        if sid and sid in groups:
            groups[sid].items.append(item)

    return list(groups.values())


def apply_domain_change(quote: Quote, domain_id: str, domain: Optional[BusinessDomain]) -> Quote:
    """
    Byter affärsområde på offerten. Timpriset följer med från området
    (redan upplöst via RateResolver). Rensas området, eller finns det inte,
    behålls tidigare timpris.
    """
    rate = quote.price_per_hour
    if domain_id and domain is not None:
        rate = domain.hourly_rate
    return quote.model_copy(update={"business_domain_id": domain_id or "", "price_per_hour": rate})
