"""
QuoteStore – äger alla samlingar (offerter, mallar, sektioner, rader,
projekt, kontakter, affärsområden).

Principer:
  - Läsvyer är tupler av frysta modeller → anroparen kan inte mutera tillståndet.
  - Varje muterande metod validerar först, uppdaterar sedan minnet och sparar
    till snapshot-lagret (save-on-write).
  - Sparfel loggas men stoppar aldrig mutationen – minnet är sanningen
    för den körande processen.
  - Sektioner + rader för en offert ersätts alltid som helhet vid sparning.
"""

from __future__ import annotations

import json
import math
import re
from datetime import date
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from quotely.core.cloning import (
    ClonedSubtree,
    clone_subtree,
    duplicate_quote_header,
    instantiate_template,
)
from quotely.core.errors import DeleteOutcome, QuoteValidationError
from quotely.core.ids import IdGenerator, new_id, new_share_token, unique_id_generator
from quotely.core.ordering import normalize_subtree, sort_by_order
from quotely.core.rates import RateResolver, with_resolved_rate
from quotely.core.totals import QuoteTotals, compute_totals
from quotely.server.models import (
    SNAPSHOT_KEYS,
    BusinessDomain,
    Contact,
    Project,
    Quote,
    QuoteBundle,
    QuoteLineItem,
    QuoteSection,
    QuoteStatus,
    SearchResult,
    Snapshot,
)
from quotely.services.event_log import EventLog
from quotely.services.seed import load_seed_snapshot
from quotely.services.snapshot_store import SnapshotStore

GENERAL_SECTION_TITLE = "General"
DEFAULT_PRICE_PER_HOUR = 100.0
DEFAULT_DOMAIN_RATE = 100.0

APPROVAL_CODE_RE = re.compile(r"[0-9]{5}")
APPROVABLE_STATUSES = (QuoteStatus.SHARED, QuoteStatus.WAITING)


class QuoteStore:
    def __init__(
        self,
        snapshot_store: SnapshotStore,
        *,
        seed_loader: Callable[[], Snapshot] = load_seed_snapshot,
        id_generator: IdGenerator = new_id,
        token_generator: Callable[[], str] = new_share_token,
        clock: Callable[[], date] = date.today,
        created_by: str = "Jon Snow",
        prefix: str = "quotely",
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._snapshot_store = snapshot_store
        self._seed_loader = seed_loader
        self._id_generator = id_generator
        self._token_generator = token_generator
        self._clock = clock
        self._created_by = created_by
        self._prefix = prefix
        self._event_log = event_log or EventLog(tag="quote_store")
        self._rates = RateResolver()

        self._quotes: Tuple[Quote, ...] = ()
        self._projects: Tuple[Project, ...] = ()
        self._contacts: Tuple[Contact, ...] = ()
        self._domains: Tuple[BusinessDomain, ...] = ()
        self._line_items: Tuple[QuoteLineItem, ...] = ()
        self._sections: Tuple[QuoteSection, ...] = ()
        self._templates: Tuple[Quote, ...] = ()

    # ==============================
    # SNAPSHOT
    # ==============================

    def _key(self, collection: str) -> str:
        return f"{self._prefix}-{SNAPSHOT_KEYS[collection]}"

    def _apply(self, snapshot: Snapshot) -> None:
        self._quotes = tuple(snapshot.quotes)
        self._projects = tuple(snapshot.projects)
        self._contacts = tuple(snapshot.contacts)
        self._domains = tuple(snapshot.domains)
        self._line_items = tuple(snapshot.line_items)
        self._sections = tuple(snapshot.sections)
        self._templates = tuple(snapshot.templates)
        self._rates.clear()

    def snapshot(self) -> Snapshot:
        return Snapshot(
            quotes=self._quotes,
            projects=self._projects,
            contacts=self._contacts,
            domains=self._domains,
            line_items=self._line_items,
            sections=self._sections,
            templates=self._templates,
        )

    def load(self) -> Snapshot:
        """
        Läser in alla samlingar från snapshot-lagret.
        Finns inget sparat (ingen quotes-nyckel) laddas startdata och sparas direkt.
        """
        try:
            raw_quotes = self._snapshot_store.get(self._key("quotes"))
            if raw_quotes is None:
                return self.reset_to_initial_data()

            payload = {}
            for collection, suffix in SNAPSHOT_KEYS.items():
                raw = raw_quotes if collection == "quotes" else self._snapshot_store.get(self._key(collection))
                payload[suffix] = json.loads(raw) if raw else []
            snapshot = Snapshot.model_validate(payload)
        except Exception as e:  # noqa: BLE001
            self._event_log.emit(
                "snapshot_load_failed",
                f"Kunde inte läsa snapshot, laddar startdata istället: {e}",
            )
            return self.reset_to_initial_data()

        self._apply(snapshot)
        return snapshot

    def reset_to_initial_data(self) -> Snapshot:
        snapshot = self._seed_loader()
        self._apply(snapshot)
        self._event_log.emit("seed_loaded", "Startdata laddad.", quotes=len(snapshot.quotes))
        self.save()
        return snapshot

    def save(self) -> bool:
        """Sparar alla sju samlingar tillsammans. Returnerar False om lagret fallerade."""
        try:
            entries = {
                self._key(collection): json.dumps(
                    [entity.to_json_dict() for entity in getattr(self, f"_{collection}")],
                    ensure_ascii=False,
                )
                for collection in SNAPSHOT_KEYS
            }
            self._snapshot_store.put_many(entries)
        except Exception as e:  # noqa: BLE001
            self._event_log.emit("snapshot_save_failed", f"Kunde inte spara snapshot: {e}")
            return False
        return True

    # ==============================
    # LÄSVYER
    # ==============================

    @property
    def quotes(self) -> Tuple[Quote, ...]:
        return self._quotes

    @property
    def templates(self) -> Tuple[Quote, ...]:
        return self._templates

    @property
    def projects(self) -> Tuple[Project, ...]:
        return self._projects

    @property
    def contacts(self) -> Tuple[Contact, ...]:
        return self._contacts

    @property
    def domains(self) -> Tuple[BusinessDomain, ...]:
        return self._rates.resolve_all(self._domains)

    @property
    def sections(self) -> Tuple[QuoteSection, ...]:
        return self._sections

    @property
    def line_items(self) -> Tuple[QuoteLineItem, ...]:
        return self._line_items

    @staticmethod
    def _find(collection: Iterable, entity_id: str):
        if not entity_id:
            return None
        return next((e for e in collection if e.id == entity_id), None)

    def get_quote_by_id(self, quote_id: str) -> Optional[Quote]:
        return self._find(self._quotes, quote_id)

    def get_template_by_id(self, template_id: str) -> Optional[Quote]:
        return self._find(self._templates, template_id)

    def get_project_by_id(self, project_id: str) -> Optional[Project]:
        return self._find(self._projects, project_id)

    def get_contact_by_id(self, contact_id: str) -> Optional[Contact]:
        return self._find(self._contacts, contact_id)

    def get_domain_by_id(self, domain_id: str) -> Optional[BusinessDomain]:
        domain = self._find(self._domains, domain_id)
        return self._rates.resolve(domain) if domain is not None else None

    def get_project_name(self, project_id: str) -> str:
        project = self.get_project_by_id(project_id)
        return project.name if project else "-"

    def get_contact_name(self, contact_id: str) -> str:
        contact = self.get_contact_by_id(contact_id)
        return contact.name if contact else "-"

    def get_sections_for_quote(self, quote_id: str) -> List[QuoteSection]:
        return sort_by_order([s for s in self._sections if s.quote_id == quote_id])

    def get_line_items_for_quote(self, quote_id: str) -> List[QuoteLineItem]:
        return sort_by_order([li for li in self._line_items if li.quote_id == quote_id])

    def get_bundle(self, quote_id: str) -> Optional[QuoteBundle]:
        """Offert ELLER mall med sektioner och rader."""
        quote = self.get_quote_by_id(quote_id) or self.get_template_by_id(quote_id)
        if quote is None:
            return None
        return QuoteBundle(
            quote=quote,
            sections=tuple(self.get_sections_for_quote(quote.id)),
            line_items=tuple(self.get_line_items_for_quote(quote.id)),
        )

    def get_quote_by_share_token(self, token: str) -> Optional[QuoteBundle]:
        if not token:
            return None
        quote = next((q for q in self._quotes if q.share_token == token), None)
        if quote is None:
            return None
        return self.get_bundle(quote.id)

    def get_totals(self, quote_id: str) -> Optional[QuoteTotals]:
        bundle = self.get_bundle(quote_id)
        if bundle is None:
            return None
        return compute_totals(bundle.quote, bundle.sections, bundle.line_items)

    def search(self, query: str) -> List[SearchResult]:
        from quotely.services.search import search

        return search(self, query)

    # ==============================
    # ID / DATUM
    # ==============================

    def _today(self) -> str:
        return self._clock().isoformat()

    def _all_ids(self) -> List[str]:
        ids: List[str] = []
        for collection in SNAPSHOT_KEYS:
            ids.extend(e.id for e in getattr(self, f"_{collection}"))
        return ids

    def id_allocator(self) -> IdGenerator:
        return unique_id_generator(self._id_generator, self._all_ids())

    def _token_taken(self, token: str) -> bool:
        return any(q.share_token == token for q in self._quotes + self._templates)

    def _new_share_token(self) -> str:
        taken = [q.share_token for q in self._quotes + self._templates]
        return unique_id_generator(lambda _prefix: self._token_generator(), taken)("")

    # ==============================
    # HJÄLPARE FÖR MUTATIONER
    # ==============================

    def _replace_or_append(self, collection: str, entity) -> None:
        current = getattr(self, f"_{collection}")
        if any(e.id == entity.id for e in current):
            updated = tuple(entity if e.id == entity.id else e for e in current)
        else:
            updated = current + (entity,)
        setattr(self, f"_{collection}", updated)

    def _replace_subtree(
        self,
        quote_id: str,
        sections: Sequence[QuoteSection],
        line_items: Sequence[QuoteLineItem],
    ) -> None:
        self._sections = tuple(s for s in self._sections if s.quote_id != quote_id) + tuple(sections)
        self._line_items = tuple(li for li in self._line_items if li.quote_id != quote_id) + tuple(line_items)

    def _remove_subtree(self, quote_id: str) -> None:
        self._replace_subtree(quote_id, (), ())

    @staticmethod
    def _validate_subtree(
        quote: Quote,
        sections: Sequence[QuoteSection],
        line_items: Sequence[QuoteLineItem],
    ) -> Tuple[List[QuoteSection], List[QuoteLineItem]]:
        if not quote.id:
            raise QuoteValidationError("Quote id is missing.")
        if not sections:
            raise QuoteValidationError("A quote needs at least one section.")

        section_ids = set()
        for section in sections:
            if section.quote_id != quote.id:
                raise QuoteValidationError(f"Section '{section.title}' belongs to another quote.")
            if section.id in section_ids:
                raise QuoteValidationError(f"Duplicate section id '{section.id}'.")
            section_ids.add(section.id)

        item_ids = set()
        for item in line_items:
            if item.quote_id != quote.id:
                raise QuoteValidationError(f"Line item '{item.title}' belongs to another quote.")
            if item.id in item_ids:
                raise QuoteValidationError(f"Duplicate line item id '{item.id}'.")
            if item.section_id and item.section_id not in section_ids:
                raise QuoteValidationError(f"Line item '{item.title}' references an unknown section.")
            if item.hours < 0:
                raise QuoteValidationError(f"Line item '{item.title}' cannot have negative hours.")
            item_ids.add(item.id)

        return normalize_subtree(sections, line_items)

    # ==============================
    # OFFERTER & MALLAR
    # ==============================

    def _create_blank(self, *, template: bool) -> QuoteBundle:
        allocate = self.id_allocator()
        today = self._today()
        quote_id = allocate("t-" if template else "q")

        quote = Quote(
            id=quote_id,
            title="New Template" if template else "New Estimation",
            status=QuoteStatus.DRAFT,
            price_per_hour=DEFAULT_PRICE_PER_HOUR,
            description="A reusable template for future quotes." if template else "",
            request_date=today,
            created_by=self._created_by,
            updated_at=today,
            share_token=self._new_share_token(),
        )
        # Varje ny offert får en "General"-sektion så att rader kan läggas till direkt
        general = QuoteSection(
            id=allocate("s-t-" if template else "s"),
            quote_id=quote_id,
            title=GENERAL_SECTION_TITLE,
            sort_order=0,
            is_hidden=False,
        )

        if template:
            self._templates = self._templates + (quote,)
        else:
            self._quotes = self._quotes + (quote,)
        self._sections = self._sections + (general,)
        self.save()
        return QuoteBundle(quote=quote, sections=(general,))

    def create_blank_quote(self) -> QuoteBundle:
        return self._create_blank(template=False)

    def create_blank_template(self) -> QuoteBundle:
        return self._create_blank(template=True)

    def _save_details(
        self,
        quote: Quote,
        sections: Sequence[QuoteSection],
        line_items: Sequence[QuoteLineItem],
        *,
        collection: str,
    ) -> Quote:
        other = "_templates" if collection == "quotes" else "_quotes"
        if self._find(getattr(self, other), quote.id) is not None:
            kind = "template" if collection == "quotes" else "quote"
            raise QuoteValidationError(f"'{quote.id}' is already stored as a {kind}.")

        sections, line_items = self._validate_subtree(quote, sections, line_items)

        # Delningslänken (och skaparen) följer offerten hela livet
        existing = self._find(getattr(self, f"_{collection}"), quote.id)
        if existing is not None:
            token, created_by = existing.share_token, existing.created_by
        else:
            token, created_by = quote.share_token, quote.created_by or self._created_by
            if not token or self._token_taken(token):
                token = self._new_share_token()

        # Cache-fälten skrivs om från kundsummorna vid varje sparning
        totals = compute_totals(quote, sections, line_items)
        stored = quote.model_copy(
            update={
                "share_token": token,
                "created_by": created_by,
                "total_hours": totals.client_hours,
                "total_points": totals.client_points,
                "total_price": totals.client_price,
                "updated_at": self._today(),
            }
        )

        self._replace_or_append(collection, stored)
        self._replace_subtree(stored.id, sections, line_items)
        self.save()
        return stored

    def save_quote_details(
        self,
        quote: Quote,
        sections: Sequence[QuoteSection],
        line_items: Sequence[QuoteLineItem],
    ) -> Quote:
        return self._save_details(quote, sections, line_items, collection="quotes")

    def save_template_details(
        self,
        template: Quote,
        sections: Sequence[QuoteSection],
        line_items: Sequence[QuoteLineItem],
    ) -> Quote:
        return self._save_details(template, sections, line_items, collection="templates")

    def delete_quote(self, quote_id: str) -> DeleteOutcome:
        if self.get_quote_by_id(quote_id) is None:
            return DeleteOutcome.NOT_FOUND
        self._quotes = tuple(q for q in self._quotes if q.id != quote_id)
        self._remove_subtree(quote_id)
        self.save()
        return DeleteOutcome.DELETED

    def delete_template(self, template_id: str) -> DeleteOutcome:
        if self.get_template_by_id(template_id) is None:
            return DeleteOutcome.NOT_FOUND
        self._templates = tuple(t for t in self._templates if t.id != template_id)
        self._remove_subtree(template_id)
        self.save()
        return DeleteOutcome.DELETED

    def clone_subtree(
        self,
        source_quote_id: str,
        target_quote_id: str,
        id_generator: Optional[IdGenerator] = None,
    ) -> ClonedSubtree:
        """Kopierar (utan att spara) sektioner + rader från en offert/mall till ett nytt offert-id."""
        return clone_subtree(
            self._sections,
            self._line_items,
            source_quote_id,
            target_quote_id,
            id_generator or self.id_allocator(),
        )

    def _append_clone(self, source_id: str, new_quote: Quote, allocate: IdGenerator) -> None:
        cloned = self.clone_subtree(source_id, new_quote.id, allocate)
        # Allt i en uppdatering, en sparning
        self._quotes = self._quotes + (new_quote,)
        self._sections = self._sections + tuple(cloned.sections)
        self._line_items = self._line_items + tuple(cloned.line_items)
        self.save()

    def create_quote_from_template(self, template_id: str) -> Optional[Quote]:
        template = self.get_template_by_id(template_id)
        if template is None:
            return None

        allocate = self.id_allocator()
        new_quote = instantiate_template(template, allocate("q"), self._new_share_token(), self._today())
        self._append_clone(template.id, new_quote, allocate)
        return new_quote

    def duplicate_quote(self, quote_id: str) -> Optional[Quote]:
        original = self.get_quote_by_id(quote_id)
        if original is None:
            return None

        allocate = self.id_allocator()
        new_quote = duplicate_quote_header(original, allocate("q"), self._new_share_token(), self._today())
        self._append_clone(original.id, new_quote, allocate)
        return new_quote

    # ==============================
    # DELNING / GODKÄNNANDE
    # ==============================

    def approve_by_share_token(self, token: str, approval_code: str) -> Optional[Quote]:
        """
        Godkänner en delad offert från kundvyn.

        Kräver status Shared eller "Waiting for approval" och en femsiffrig kod.
        Koden sparas inte – bara statusändringen.
        Returnerar None om token inte finns.
        """
        quote = next((q for q in self._quotes if token and q.share_token == token), None)
        if quote is None:
            return None

        if not APPROVAL_CODE_RE.fullmatch(approval_code or ""):
            raise QuoteValidationError("Please enter a valid 5-digit approval code.")
        if quote.status not in APPROVABLE_STATUSES:
            raise QuoteValidationError(f"A quote with status '{quote.status.value}' cannot be approved.")

        approved = quote.model_copy(update={"status": QuoteStatus.APPROVED, "updated_at": self._today()})
        self._replace_or_append("quotes", approved)
        self.save()
        return approved

    # ==============================
    # PROJEKT / KONTAKTER / AFFÄRSOMRÅDEN
    # ==============================

    def _guarded_delete(self, collection: str, entity_id: str, field: str, label: str) -> DeleteOutcome:
        current = getattr(self, f"_{collection}")
        if self._find(current, entity_id) is None:
            return DeleteOutcome.NOT_FOUND

        # Mallar räknas också – de har samma referenser som offerter
        if any(getattr(q, field) == entity_id for q in self._quotes + self._templates):
            self._event_log.emit(
                "delete_declined",
                f"Kan inte ta bort {label} {entity_id}: används av en eller flera offerter.",
                entity=label,
                id=entity_id,
            )
            return DeleteOutcome.IN_USE

        setattr(self, f"_{collection}", tuple(e for e in current if e.id != entity_id))
        self.save()
        return DeleteOutcome.DELETED

    def new_project(self) -> Project:
        return Project(id=self.id_allocator()("p"), created_by=self._created_by, updated_at=self._today())

    def save_project(self, project: Project) -> Project:
        if not (project.name or "").strip():
            raise QuoteValidationError("Project name is required.")
        stored = project.model_copy(update={"updated_at": self._today()})
        self._replace_or_append("projects", stored)
        self.save()
        return stored

    def delete_project(self, project_id: str) -> DeleteOutcome:
        return self._guarded_delete("projects", project_id, "project_id", "project")

    def new_domain(self) -> BusinessDomain:
        return BusinessDomain(
            id=self.id_allocator()("bd"),
            hourly_rate=DEFAULT_DOMAIN_RATE,
            rate_components=(),
            created_by=self._created_by,
            updated_at=self._today(),
        )

    def save_domain(self, domain: BusinessDomain) -> BusinessDomain:
        resolved = with_resolved_rate(domain)
        if not (resolved.name or "").strip() or not math.isfinite(resolved.hourly_rate) or resolved.hourly_rate < 0:
            raise QuoteValidationError("Domain name and a valid hourly rate are required.")
        stored = resolved.model_copy(update={"updated_at": self._today()})
        self._replace_or_append("domains", stored)
        self.save()
        return self._rates.resolve(stored)

    def delete_domain(self, domain_id: str) -> DeleteOutcome:
        outcome = self._guarded_delete("domains", domain_id, "business_domain_id", "domain")
        if outcome is DeleteOutcome.DELETED:
            self._rates.forget(domain_id)
        return outcome

    def new_contact(self) -> Contact:
        return Contact(id=self.id_allocator()("c"), created_by=self._created_by, updated_at=self._today())

    def save_contact(self, contact: Contact) -> Contact:
        if not (contact.name or "").strip() or not (contact.email or "").strip():
            raise QuoteValidationError("Contact name and email are required.")
        stored = contact.model_copy(update={"updated_at": self._today()})
        self._replace_or_append("contacts", stored)
        self.save()
        return stored

    def delete_contact(self, contact_id: str) -> DeleteOutcome:
        return self._guarded_delete("contacts", contact_id, "contact_id", "contact")
