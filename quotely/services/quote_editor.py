"""
Arbetskopia av en offert eller mall (det som detaljsidan jobbar mot).

Editorn håller egna listor med sektioner och rader. Inget skrivs till
QuoteStore förrän save() anropas – då ersätts hela sektions-/radträdet.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from quotely.core.errors import QuoteValidationError
from quotely.core.ordering import move_across, move_within, renumber, sort_by_order
from quotely.core.totals import (
    QuoteTotals,
    SectionWithItems,
    apply_domain_change,
    compute_totals,
    effective_section_id,
    group_sections,
)
from quotely.server.models import BusinessDomain, Quote, QuoteBundle, QuoteLineItem, QuoteSection, QuoteStatus
from quotely.services.quote_store import GENERAL_SECTION_TITLE, QuoteStore

EDITABLE_STATUSES = (QuoteStatus.DRAFT, QuoteStatus.SHARED)

# Fält som får ändras via update_* (id och föräldrakopplingar hanteras separat)
QUOTE_FIELDS = {
    "title", "status", "project_id", "contact_id", "price_per_hour", "description",
    "request_date", "ppm_code", "afas_code",
}
LINE_ITEM_FIELDS = {"title", "description", "hours", "story_points"}


def _revalidated(model, **changes: Any):
    """Ny instans med ändringarna – valideras om (model_copy gör inte det)."""
    try:
        return type(model).model_validate({**model.model_dump(), **changes})
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or "value"
        raise QuoteValidationError(f"Invalid {field}: {first.get('msg')}") from e


class QuoteEditor:
    def __init__(self, store: QuoteStore, bundle: QuoteBundle, *, is_template: bool = False) -> None:
        self._store = store
        self._allocate = store.id_allocator()
        self.is_template = is_template
        self.quote: Quote = bundle.quote
        self.sections: List[QuoteSection] = sort_by_order(bundle.sections)
        self.line_items: List[QuoteLineItem] = sort_by_order(bundle.line_items)

    # ==============================
    # ÖPPNA / SKAPA
    # ==============================

    @classmethod
    def open(cls, store: QuoteStore, quote_id: str) -> Optional["QuoteEditor"]:
        bundle = store.get_bundle(quote_id)
        if bundle is None:
            return None
        return cls(store, bundle, is_template=store.get_template_by_id(quote_id) is not None)

    @classmethod
    def new_quote(cls, store: QuoteStore) -> "QuoteEditor":
        return cls(store, store.create_blank_quote())

    @classmethod
    def new_template(cls, store: QuoteStore) -> "QuoteEditor":
        return cls(store, store.create_blank_template(), is_template=True)

    # ==============================
    # HÄRLEDDA VÄRDEN
    # ==============================

    @property
    def totals(self) -> QuoteTotals:
        return compute_totals(self.quote, self.sections, self.line_items)

    @property
    def is_editable(self) -> bool:
        return self.quote.status in EDITABLE_STATUSES

    @property
    def selected_domain(self) -> Optional[BusinessDomain]:
        return self._store.get_domain_by_id(self.quote.business_domain_id)

    def grouped(self, include_hidden: bool = True) -> List[SectionWithItems]:
        return group_sections(self.sections, self.line_items, include_hidden=include_hidden)

    def _section(self, section_id: str) -> QuoteSection:
        section = next((s for s in self.sections if s.id == section_id), None)
        if section is None:
            raise QuoteValidationError(f"Unknown section '{section_id}'.")
        return section

    def _replace_section(self, updated: QuoteSection) -> None:
        self.sections = [updated if s.id == updated.id else s for s in self.sections]

    def _replace_items(self, updated: List[QuoteLineItem]) -> None:
        ids = {i.id for i in updated}
        self.line_items = [i for i in self.line_items if i.id not in ids] + list(updated)

    # ==============================
    # OFFERTHUVUD
    # ==============================

    def update_quote(self, **changes: Any) -> Quote:
        unknown = set(changes) - QUOTE_FIELDS
        if unknown:
            raise QuoteValidationError(f"Cannot change {', '.join(sorted(unknown))} here.")
        self.quote = _revalidated(self.quote, **changes)
        return self.quote

    def change_domain(self, domain_id: str) -> Quote:
        domain = self._store.get_domain_by_id(domain_id) if domain_id else None
        self.quote = apply_domain_change(self.quote, domain_id, domain)
        return self.quote

    # ==============================
    # SEKTIONER
    # ==============================

    def add_section(self, title: str = "New Section") -> QuoteSection:
        section = QuoteSection(
            id=self._allocate("s"),
            quote_id=self.quote.id,
            title=title,
            sort_order=len(self.sections),
            is_hidden=False,
        )
        self.sections = sort_by_order(self.sections) + [section]
        return section

    def rename_section(self, section_id: str, title: str) -> QuoteSection:
        updated = self._section(section_id).model_copy(update={"title": title})
        self._replace_section(updated)
        return updated

    def toggle_section_visibility(self, section_id: str) -> QuoteSection:
        section = self._section(section_id)
        updated = section.model_copy(update={"is_hidden": not section.is_hidden})
        self._replace_section(updated)
        return updated

    def delete_section(self, section_id: str) -> bool:
        """
        Tar bort en sektion. Har den rader flyttas de till en annan sektion
        som heter "General" (oavsett versaler). Finns ingen sådan avböjs
        borttagningen (False) och inget ändras. Sista sektionen kan aldrig
        tas bort.

        Rader utan section_id räknas till första sektionen (som i summeringen).
        """
        section = self._section(section_id)
        if len(self.sections) <= 1:
            return False

        items_in_section = sort_by_order(
            [i for i in self.line_items if effective_section_id(i, self.sections) == section.id]
        )

        if items_in_section:
            general = next(
                (
                    s for s in sort_by_order(self.sections)
                    if s.id != section.id and s.title.strip().lower() == GENERAL_SECTION_TITLE.lower()
                ),
                None,
            )
            if general is None:
                return False

            # Rader läggs sist i General-sektionen
            general_items = sort_by_order(
                [i for i in self.line_items if effective_section_id(i, self.sections) == general.id]
            )
            general_items = self._with_section(general_items, general.id)
            moved = [i.model_copy(update={"section_id": general.id}) for i in items_in_section]
            self._replace_items(renumber(general_items + moved))

        self.sections = renumber(sort_by_order([s for s in self.sections if s.id != section.id]))
        return True

    def move_section(self, from_index: int, to_index: int) -> List[QuoteSection]:
        self.sections = move_within(sort_by_order(self.sections), from_index, to_index)
        return self.sections

    # ==============================
    # RADER
    # ==============================

    def add_line_item(
        self,
        title: str,
        hours: float = 0,
        section_id: Optional[str] = None,
        *,
        description: str = "",
        story_points: float = 0,
    ) -> QuoteLineItem:
        if not (title or "").strip():
            raise QuoteValidationError("Task title is required.")

        sections = sort_by_order(self.sections)
        if not sections:
            raise QuoteValidationError("Cannot add task: No section available.")
        target = self._section(section_id).id if section_id else sections[0].id

        items_in_section = [i for i in self.line_items if i.section_id == target]
        try:
            item = QuoteLineItem(
                id=self._allocate("li"),
                quote_id=self.quote.id,
                section_id=target,
                title=title.strip(),
                description=description,
                hours=hours or 0,
                story_points=story_points or 0,
                sort_order=len(items_in_section),
            )
        except ValidationError as e:
            raise QuoteValidationError(f"Invalid line item: {e.errors()[0].get('msg')}") from e

        self.line_items.append(item)
        return item

    def update_line_item(self, item_id: str, **changes: Any) -> QuoteLineItem:
        unknown = set(changes) - LINE_ITEM_FIELDS
        if unknown:
            raise QuoteValidationError(f"Cannot change {', '.join(sorted(unknown))} here.")
        item = next((i for i in self.line_items if i.id == item_id), None)
        if item is None:
            raise QuoteValidationError(f"Unknown line item '{item_id}'.")

        updated = _revalidated(item, **changes)
        self.line_items = [updated if i.id == item_id else i for i in self.line_items]
        return updated

    def delete_line_item(self, item_id: str) -> bool:
        item = next((i for i in self.line_items if i.id == item_id), None)
        if item is None:
            return False
        remaining = sort_by_order([i for i in self.line_items if i.id != item_id and i.section_id == item.section_id])
        self.line_items = [i for i in self.line_items if i.id != item_id]
        self._replace_items(renumber(remaining))
        return True

    def move_line_item(
        self,
        section_id: str,
        from_index: int,
        to_index: int,
        to_section_id: Optional[str] = None,
    ) -> None:
        """
        Flyttar en rad inom sin sektion eller till en annan sektion.
        Index avser raderna så som de visas (grouped()), inklusive rader som
        saknar section_id och därför visas i första sektionen. De raderna får
        explicit section_id när deras grupp ändras.
        """
        groups: Dict[str, List[QuoteLineItem]] = {g.section.id: g.items for g in self.grouped()}
        if section_id not in groups:
            raise QuoteValidationError(f"Unknown section '{section_id}'.")

        source = self._with_section(groups[section_id], section_id)

        if not to_section_id or to_section_id == section_id:
            self._replace_items(move_within(source, from_index, to_index))
            return

        if to_section_id not in groups:
            raise QuoteValidationError(f"Unknown section '{to_section_id}'.")
        dest = self._with_section(groups[to_section_id], to_section_id)
        new_source, new_dest = move_across(source, dest, from_index, to_index, to_section_id)
        self._replace_items(new_source + new_dest)

    @staticmethod
    def _with_section(items: List[QuoteLineItem], section_id: str) -> List[QuoteLineItem]:
        return [i if i.section_id else i.model_copy(update={"section_id": section_id}) for i in items]

    # ==============================
    # SPARA
    # ==============================

    def save(self) -> Quote:
        if self.is_template:
            saved = self._store.save_template_details(self.quote, self.sections, self.line_items)
        else:
            saved = self._store.save_quote_details(self.quote, self.sections, self.line_items)

        # Läs tillbaka det normaliserade trädet
        self.quote = saved
        self.sections = self._store.get_sections_for_quote(saved.id)
        self.line_items = self._store.get_line_items_for_quote(saved.id)
        return saved
