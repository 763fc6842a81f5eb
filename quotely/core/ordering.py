"""
Sortering av sektioner och rader (drag & drop utan UI).

Alla funktioner är rena: de tar listor med frysta modeller och returnerar
nya listor där sort_order är 0..N-1 i listans ordning.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


def _clamp(index: int, upper: int) -> int:
    return max(0, min(int(index), upper))


def renumber(collection: Sequence[T]) -> List[T]:
    """Sätter sort_order = position. Orörda element behåller sin identitet."""
    return [
        item if getattr(item, "sort_order") == position else item.model_copy(update={"sort_order": position})
        for position, item in enumerate(collection)
    ]


def sort_by_order(collection: Sequence[T]) -> List[T]:
    # sorted() är stabil → lika sort_order behåller inbördes ordning
    return sorted(collection, key=lambda item: getattr(item, "sort_order"))


def move_within(collection: Sequence[T], from_index: int, to_index: int) -> List[T]:
    """
    Flyttar elementet på from_index till to_index inom samma lista.
    Index kläms till giltiga gränser.
    """
    items = list(collection)
    if not items:
        return items

    last = len(items) - 1
    moved = items.pop(_clamp(from_index, last))
    items.insert(_clamp(to_index, last), moved)
    return renumber(items)


def move_across(
    source: Sequence[T],
    dest: Sequence[T],
    from_index: int,
    to_index: int,
    new_parent_id: str,
    *,
    parent_field: str = "section_id",
) -> Tuple[List[T], List[T]]:
    """
    Flyttar ett element från en lista till en annan (t.ex. rad till annan
    sektion). Elementets föräldrafält sätts till new_parent_id och båda
    listorna numreras om var för sig.
    """
    src = list(source)
    dst = list(dest)
    if not src:
        return renumber(src), renumber(dst)

    moved = src.pop(_clamp(from_index, len(src) - 1))
    dst.insert(_clamp(to_index, len(dst)), moved.model_copy(update={parent_field: new_parent_id}))
    return renumber(src), renumber(dst)


def normalize_subtree(sections: Sequence[T], items: Sequence[T]) -> Tuple[List[T], List[T]]:
    """
    Numrerar om sektioner (per offert) och rader (per section_id) så att
    varje grupp har sort_order 0..N-1. Inbördes ordning behålls.
    """
    ordered_sections = renumber(sort_by_order(sections))

    groups: dict = {}
    for item in sort_by_order(items):
        groups.setdefault(getattr(item, "section_id"), []).append(item)

    ordered_items: List[T] = []
    for section in ordered_sections:
        ordered_items.extend(renumber(groups.pop(section.id, [])))
    # Rader utan sektion (och ev. okända sektioner) i egen grupp
    for rest in groups.values():
        ordered_items.extend(renumber(rest))

    return ordered_sections, ordered_items
