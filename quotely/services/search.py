# fil: quotely/services/search.py

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable, List, TypeVar

from quotely.server.models import SearchResult

if TYPE_CHECKING:
    from quotely.services.quote_store import QuoteStore

RESULTS_PER_TYPE = 3

T = TypeVar("T")


def _format_rate(rate: float) -> str:
    rate = float(rate)
    return str(int(rate)) if rate.is_integer() else str(rate)


def _matches(query: str, *fields: str) -> bool:
    return any(query in (f or "").lower() for f in fields)


def _first(rows: Iterable[T], predicate: Callable[[T], bool], limit: int = RESULTS_PER_TYPE) -> List[T]:
    out: List[T] = []
    for row in rows:
        if predicate(row):
            out.append(row)
            if len(out) >= limit:
                break
    return out


def search(store: "QuoteStore", query: str) -> List[SearchResult]:
    """
    Snabbsök över offerter, mallar, projekt, affärsområden och kontakter.

    - Skiftlägesokänslig delsträngsmatchning
    - Max 3 träffar per typ, i ordningen Quote, Template, Project, Domain, Contact
    - Tom söksträng → tom lista

    Ren, synkron läsning – debounce o.d. sköts av den som anropar.
    """
    q = (query or "").lower()
    if not q:
        return []

    results: List[SearchResult] = []

    for quote in _first(store.quotes, lambda x: _matches(q, x.title)):
        results.append(
            SearchResult(
                id=quote.id,
                entity_type="Quote",
                label=quote.title,
                route=f"/quote/{quote.id}",
                tags=(store.get_project_name(quote.project_id),),
            )
        )

    for template in _first(store.templates, lambda x: _matches(q, x.title)):
        results.append(
            SearchResult(
                id=template.id,
                entity_type="Template",
                label=template.title,
                route=f"/template/{template.id}",
                tags=(template.description,),
            )
        )

    for project in _first(store.projects, lambda x: _matches(q, x.name, x.description)):
        results.append(
            SearchResult(
                id=project.id,
                entity_type="Project",
                label=project.name,
                route=f"/project/{project.id}",
                tags=(project.description,),
            )
        )

    for domain in _first(store.domains, lambda x: _matches(q, x.name)):
        results.append(
            SearchResult(
                id=domain.id,
                entity_type="Domain",
                label=domain.name,
                route=f"/domain/{domain.id}",
                tags=(f"Rate: {_format_rate(domain.hourly_rate)}",),
            )
        )

    for contact in _first(store.contacts, lambda x: _matches(q, x.name, x.email)):
        results.append(
            SearchResult(
                id=contact.id,
                entity_type="Contact",
                label=contact.name,
                route=f"/contact/{contact.id}",
                tags=(contact.email,),
            )
        )

    return results
