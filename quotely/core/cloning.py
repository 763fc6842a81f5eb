"""
Djupkopiering av en offerts sektions-/radträd.

Används både när en offert skapas från en mall och när en offert dupliceras.
Varje sektion och rad får nytt id, radernas section_id mappas om till de
nya sektionerna och quote_id sätts till målofferten.
"""

from __future__ import annotations

from typing import Dict, List, NamedTuple, Sequence

from quotely.core.ids import IdGenerator
from quotely.core.ordering import sort_by_order
from quotely.server.models import Quote, QuoteLineItem, QuoteSection, QuoteStatus


class ClonedSubtree(NamedTuple):
    sections: List[QuoteSection]
    line_items: List[QuoteLineItem]
    section_id_map: Dict[str, str]


def clone_subtree(
    sections: Sequence[QuoteSection],
    line_items: Sequence[QuoteLineItem],
    source_quote_id: str,
    target_quote_id: str,
    id_generator: IdGenerator,
) -> ClonedSubtree:
    source_sections = sort_by_order([s for s in sections if s.quote_id == source_quote_id])
    source_items = sort_by_order([li for li in line_items if li.quote_id == source_quote_id])

    section_id_map: Dict[str, str] = {}
    new_sections: List[QuoteSection] = []
    for section in source_sections:
        new_section_id = id_generator("s")
        section_id_map[section.id] = new_section_id
        new_sections.append(section.model_copy(update={"id": new_section_id, "quote_id": target_quote_id}))

    new_items: List[QuoteLineItem] = []
    for item in source_items:
        # Rad utan sektion förblir utan sektion (faller tillbaka på första sektionen)
        new_section_id = section_id_map.get(item.section_id) if item.section_id else None
        new_items.append(
            item.model_copy(
                update={
                    "id": id_generator("li"),
                    "quote_id": target_quote_id,
                    "section_id": new_section_id,
                }
            )
        )

    return ClonedSubtree(new_sections, new_items, section_id_map)


def instantiate_template(template: Quote, new_id: str, share_token: str, today: str) -> Quote:
    """Ny offert från mall: alltid Draft, utan projekt/kontakt, dagens datum."""
    return template.model_copy(
        update={
            "id": new_id,
            "status": QuoteStatus.DRAFT,
            "project_id": "",
            "contact_id": "",
            "request_date": today,
            "updated_at": today,
            "share_token": share_token,
        }
    )


def duplicate_quote_header(quote: Quote, new_id: str, share_token: str, today: str) -> Quote:
    return quote.model_copy(
        update={
            "id": new_id,
            "title": f"{quote.title} (Copy)",
            "status": QuoteStatus.DRAFT,
            "request_date": today,
            "updated_at": today,
            "share_token": share_token,
        }
    )
