import json

import pytest

from quotely.core.errors import DeleteOutcome, QuoteValidationError
from quotely.server.models import BusinessDomain, Contact, Project, QuoteSection, QuoteStatus, RateComponent
from quotely.services.snapshot_store import MemorySnapshotStore


class BrokenSnapshotStore:
    def get(self, key):
        return None

    def put_many(self, entries):
        raise OSError("disk full")


# ==============================
# LADDA / SPARA
# ==============================

def test_load_seeds_and_persists_when_empty(store, memory):
    assert len(store.quotes) == 5
    assert len(store.templates) == 1
    assert {p.id for p in store.projects} == {"p1", "p2", "p3"}
    assert "quotely-quotes" in memory.data
    assert "quotely-lineItems" in memory.data
    assert memory.write_count >= 1


def test_load_reads_existing_snapshot(store, memory, store_factory):
    project = store.new_project().model_copy(update={"name": "Apollo"})
    store.save_project(project)

    again = store_factory(memory)
    again.load()
    assert again.get_project_by_id(project.id).name == "Apollo"


def test_unreadable_snapshot_falls_back_to_seed(store_factory):
    memory = MemorySnapshotStore({"quotely-quotes": "not json"})
    s = store_factory(memory)
    s.load()
    assert len(s.quotes) == 5


def test_custom_prefix_keys(store_factory):
    memory = MemorySnapshotStore()
    store_factory(memory, prefix="demo").load()
    assert "demo-sections" in memory.data
    assert "quotely-sections" not in memory.data


def test_save_failure_is_logged_not_raised(store_factory):
    s = store_factory(BrokenSnapshotStore())
    s.load()
    assert s.save() is False

    project = s.new_project().model_copy(update={"name": "Offline"})
    stored = s.save_project(project)
    assert s.get_project_by_id(stored.id) is not None


# ==============================
# LÄSNING
# ==============================

def test_lookups(store):
    assert store.get_project_name("p1") == "Ursula"
    assert store.get_project_name("missing") == "-"
    assert store.get_contact_name("c3") == "Henk"
    assert store.get_quote_by_id("t-fasttrack") is None
    assert store.get_template_by_id("t-fasttrack") is not None


def test_sections_and_items_sorted(store):
    orders = [s.sort_order for s in store.get_sections_for_quote("t-fasttrack")]
    assert orders == sorted(orders)
    assert [li.id for li in store.get_line_items_for_quote("q1")] == ["li1", "li2", "li3", "li4", "li5"]


def test_read_views_are_immutable(store):
    with pytest.raises(Exception):
        store.quotes[0].title = "changed"
    assert isinstance(store.quotes, tuple)


def test_share_token_lookup(store):
    bundle = store.get_quote_by_share_token("token-q1")
    assert bundle.quote.id == "q1"
    assert len(bundle.line_items) == 5
    assert store.get_quote_by_share_token("nope") is None
    assert store.get_quote_by_share_token("") is None


def test_seed_totals_use_fallback_section(store):
    totals = store.get_totals("q1")
    assert totals.client_hours == 40
    assert totals.client_price == 4000


# ==============================
# OFFERTER
# ==============================

def test_create_blank_quote_has_general_section(store):
    bundle = store.create_blank_quote()
    assert bundle.quote.title == "New Estimation"
    assert bundle.quote.status == QuoteStatus.DRAFT
    assert bundle.quote.price_per_hour == 100
    assert bundle.quote.created_by == "Jon Snow"
    assert [s.title for s in bundle.sections] == ["General"]
    assert store.get_quote_by_id(bundle.quote.id) is not None


def test_create_blank_template(store):
    bundle = store.create_blank_template()
    assert bundle.quote.title == "New Template"
    assert store.get_template_by_id(bundle.quote.id) is not None
    assert store.get_quote_by_id(bundle.quote.id) is None


def test_save_recomputes_cached_totals(store):
    bundle = store.get_bundle("q1")
    hidden = bundle.sections[0].model_copy(update={"is_hidden": True})
    saved = store.save_quote_details(bundle.quote, [hidden], bundle.line_items)

    assert saved.total_hours == 0
    assert saved.total_price == 0
    assert saved.updated_at == "2025-03-01"
    assert store.get_totals("q1").internal_hours == 40


def test_save_normalises_sort_orders(store):
    bundle = store.get_bundle("q1")
    extra = QuoteSection(id="s-extra", quote_id="q1", title="Extra", sort_order=9)
    first = bundle.sections[0].model_copy(update={"sort_order": 4})
    store.save_quote_details(bundle.quote, [first, extra], bundle.line_items)

    assert [(s.id, s.sort_order) for s in store.get_sections_for_quote("q1")] == [("s-q1", 0), ("s-extra", 1)]


def test_save_replaces_whole_subtree(store):
    bundle = store.get_bundle("q1")
    store.save_quote_details(bundle.quote, bundle.sections, bundle.line_items[:2])
    assert len(store.get_line_items_for_quote("q1")) == 2


def test_save_rejects_quote_without_sections(store):
    bundle = store.get_bundle("q1")
    with pytest.raises(QuoteValidationError):
        store.save_quote_details(bundle.quote, [], bundle.line_items)
    assert len(store.get_sections_for_quote("q1")) == 1


def test_save_rejects_item_in_unknown_section(store):
    bundle = store.get_bundle("q1")
    stray = bundle.line_items[0].model_copy(update={"section_id": "s-q2"})
    with pytest.raises(QuoteValidationError):
        store.save_quote_details(bundle.quote, bundle.sections, [stray])


def test_save_rejects_section_of_other_quote(store):
    bundle = store.get_bundle("q1")
    foreign = store.get_sections_for_quote("q2")
    with pytest.raises(QuoteValidationError):
        store.save_quote_details(bundle.quote, foreign, [])


def test_save_rejects_template_id_as_quote(store):
    bundle = store.get_bundle("t-fasttrack")
    with pytest.raises(QuoteValidationError):
        store.save_quote_details(bundle.quote, bundle.sections, bundle.line_items)


def test_delete_quote_cascades(store):
    assert store.delete_quote("q1") is DeleteOutcome.DELETED
    assert store.get_quote_by_id("q1") is None
    assert not [s for s in store.sections if s.quote_id == "q1"]
    assert not [li for li in store.line_items if li.quote_id == "q1"]
    assert store.delete_quote("q1") is DeleteOutcome.NOT_FOUND


def test_delete_template_cascades(store):
    assert store.delete_template("t-fasttrack")
    assert not store.get_line_items_for_quote("t-fasttrack")


def test_quote_from_template(store):
    quote = store.create_quote_from_template("t-fasttrack")

    assert quote.status == QuoteStatus.DRAFT
    assert quote.project_id == "" and quote.contact_id == ""
    assert quote.request_date == "2025-03-01"
    assert store.get_quote_by_id(quote.id) is not None

    sections = store.get_sections_for_quote(quote.id)
    items = store.get_line_items_for_quote(quote.id)
    assert [s.title for s in sections] == ["General actions", "Must Haves", "Nice to haves"]
    assert len(items) == 6
    assert {i.section_id for i in items} <= {s.id for s in sections}

    template_ids = {s.id for s in store.get_sections_for_quote("t-fasttrack")}
    template_ids |= {i.id for i in store.get_line_items_for_quote("t-fasttrack")}
    assert template_ids.isdisjoint({s.id for s in sections} | {i.id for i in items})
    assert len(store.get_sections_for_quote("t-fasttrack")) == 3
    assert store.get_totals(quote.id).internal_hours == 76


def test_quote_from_unknown_template(store):
    assert store.create_quote_from_template("nope") is None


def test_duplicate_quote(store):
    copy = store.duplicate_quote("q1")
    assert copy.title == "Architecture Review (Copy)"
    assert copy.status == QuoteStatus.DRAFT
    assert copy.project_id == "p1"
    assert copy.share_token != "token-q1"
    assert len(store.get_line_items_for_quote(copy.id)) == 5
    assert store.duplicate_quote("nope") is None


def test_id_allocator_skips_existing_ids(store_factory):
    ids = iter(["q1", "s-q1", "q-fresh"])
    s = store_factory(id_generator=lambda prefix: next(ids))
    s.load()
    assert s.id_allocator()("q") == "q-fresh"


# ==============================
# GODKÄNNANDE
# ==============================

def test_approval_scenario(store, memory):
    with pytest.raises(QuoteValidationError):
        store.approve_by_share_token("token-q3", "1234")
    with pytest.raises(QuoteValidationError):
        store.approve_by_share_token("token-q3", "12a45")
    assert store.get_quote_by_id("q3").status == QuoteStatus.WAITING

    approved = store.approve_by_share_token("token-q3", "12345")
    assert approved.status == QuoteStatus.APPROVED

    persisted = {q["id"]: q for q in json.loads(memory.data["quotely-quotes"])}
    assert persisted["q3"]["status"] == "Approved"
    assert "12345" not in memory.data["quotely-quotes"]

    with pytest.raises(QuoteValidationError):
        store.approve_by_share_token("token-q3", "12345")


def test_approval_rejects_draft(store):
    with pytest.raises(QuoteValidationError):
        store.approve_by_share_token("token-q4", "12345")


def test_approval_unknown_token(store):
    assert store.approve_by_share_token("nope", "12345") is None


# ==============================
# PROJEKT / KONTAKTER / AFFÄRSOMRÅDEN
# ==============================

def test_referenced_project_cannot_be_deleted(store):
    outcome = store.delete_project("p1")
    assert outcome is DeleteOutcome.IN_USE
    assert not outcome
    assert store.get_project_by_id("p1") is not None


def test_delete_unknown_is_not_found(store):
    assert store.delete_contact("nope") is DeleteOutcome.NOT_FOUND
    assert store.delete_domain("nope") is DeleteOutcome.NOT_FOUND


def test_unreferenced_project_can_be_deleted(store):
    project = store.save_project(Project(id="p-free", name="Free"))
    assert store.delete_project(project.id)
    assert store.get_project_by_id("p-free") is None


def test_domain_used_by_template_is_guarded(store):
    domain = store.save_domain(BusinessDomain(id="bd-new", name="New", hourly_rate=50))
    bundle = store.get_bundle("t-fasttrack")
    template = bundle.quote.model_copy(update={"business_domain_id": domain.id})
    store.save_template_details(template, bundle.sections, bundle.line_items)

    assert store.delete_domain(domain.id) is DeleteOutcome.IN_USE


def test_save_domain_stores_resolved_rate(store, memory):
    domain = BusinessDomain(
        id="bd-x",
        name="Mixed",
        hourly_rate=1,
        rate_components=(RateComponent(id="a", value=60), RateComponent(id="b", value=15)),
    )
    saved = store.save_domain(domain)
    assert saved.hourly_rate == 75

    persisted = {d["id"]: d for d in json.loads(memory.data["quotely-domains"])}
    assert persisted["bd-x"]["hourlyRate"] == 75


def test_save_domain_validation(store):
    with pytest.raises(QuoteValidationError):
        store.save_domain(BusinessDomain(id="bd-x", name="", hourly_rate=10))
    with pytest.raises(QuoteValidationError):
        store.save_domain(BusinessDomain(id="bd-x", name="Neg", hourly_rate=-1))


def test_contact_requires_name_and_email(store):
    with pytest.raises(QuoteValidationError):
        store.save_contact(Contact(id="c-x", name="Arya", email=""))
    saved = store.save_contact(Contact(id="c-x", name="Arya", email="arya@example.com"))
    assert saved.updated_at == "2025-03-01"


def test_blank_factories_are_unsaved(store):
    project = store.new_project()
    domain = store.new_domain()
    contact = store.new_contact()
    assert store.get_project_by_id(project.id) is None
    assert domain.hourly_rate == 100
    assert store.get_contact_by_id(contact.id) is None


def test_save_keeps_stored_share_token(store):
    bundle = store.get_bundle("q2")
    hijack = bundle.quote.model_copy(update={"share_token": "token-q1", "created_by": "Someone"})
    saved = store.save_quote_details(hijack, bundle.sections, bundle.line_items)

    assert saved.share_token == "token-q2"
    assert saved.created_by == "Jon Snow"
    assert store.get_quote_by_share_token("token-q1").quote.id == "q1"
    assert store.get_quote_by_share_token("token-q2").quote.id == "q2"

    cleared = bundle.quote.model_copy(update={"share_token": ""})
    assert store.save_quote_details(cleared, bundle.sections, bundle.line_items).share_token == "token-q2"


def test_new_quote_gets_unique_share_token(store):
    quote = store.get_quote_by_id("q1").model_copy(update={"id": "q-new", "share_token": "token-q1"})
    section = QuoteSection(id="s-new", quote_id="q-new", title="General")
    saved = store.save_quote_details(quote, [section], [])

    tokens = [q.share_token for q in store.quotes + store.templates]
    assert saved.share_token != "token-q1"
    assert saved.share_token
    assert len(tokens) == len(set(tokens))


def test_approval_code_is_not_trimmed(store):
    with pytest.raises(QuoteValidationError):
        store.approve_by_share_token("token-q3", " 12345 ")
    assert store.get_quote_by_id("q3").status == QuoteStatus.WAITING


def test_save_domain_rejects_nan_rate(store):
    with pytest.raises(QuoteValidationError):
        store.save_domain(BusinessDomain(id="bd-x", name="Broken", hourly_rate=float("nan")))
    assert store.get_domain_by_id("bd-x") is None
