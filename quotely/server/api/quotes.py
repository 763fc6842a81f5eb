from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from quotely.core.errors import QuoteValidationError
from quotely.core.totals import QuoteTotals, compute_totals
from quotely.server.deps import get_store, raise_for_outcome
from quotely.server.models import QuoteBundle
from quotely.server.schemas.quote import DomainChangeIn, LineItemMoveIn, QuoteDetailsIn, SectionMoveIn
from quotely.services.quote_editor import QuoteEditor
from quotely.services.quote_store import QuoteStore

router = APIRouter(prefix="/quotes", tags=["quotes"])


# ==============================
# HELPERS
# ==============================

def serialize_totals(totals: QuoteTotals) -> dict:
    return {**asdict(totals), "hidden_hours": totals.hidden_hours}


def serialize_bundle(bundle: QuoteBundle, store: QuoteStore) -> dict:
    quote = bundle.quote
    return {
        "quote": quote.to_json_dict(),
        "sections": [s.to_json_dict() for s in bundle.sections],
        "lineItems": [li.to_json_dict() for li in bundle.line_items],
        "totals": serialize_totals(compute_totals(quote, bundle.sections, bundle.line_items)),
        "projectName": store.get_project_name(quote.project_id),
        "contactName": store.get_contact_name(quote.contact_id),
    }


def _serialize_editor(editor: QuoteEditor, store: QuoteStore) -> dict:
    bundle = QuoteBundle(quote=editor.quote, sections=tuple(editor.sections), line_items=tuple(editor.line_items))
    return serialize_bundle(bundle, store)


def _open_quote(store: QuoteStore, quote_id: str) -> QuoteEditor:
    if store.get_quote_by_id(quote_id) is None:
        raise HTTPException(status_code=404, detail="Quote not found")
    return QuoteEditor.open(store, quote_id)


# ==============================
# LISTA / HÄMTA
# ==============================

@router.get("", summary="Lista alla offerter")
@router.get("/", include_in_schema=False)
def list_quotes(store: QuoteStore = Depends(get_store)) -> List[dict]:
    out = []
    for quote in store.quotes:
        row = quote.to_json_dict()
        row["projectName"] = store.get_project_name(quote.project_id)
        out.append(row)
    return out


@router.get("/{quote_id}", summary="Offert med sektioner, rader och summor")
def get_quote(quote_id: str, store: QuoteStore = Depends(get_store)):
    if store.get_quote_by_id(quote_id) is None:
        raise HTTPException(status_code=404, detail="Quote not found")
    return serialize_bundle(store.get_bundle(quote_id), store)


# ==============================
# SKAPA / SPARA / TA BORT
# ==============================

@router.post("", status_code=201, summary="Skapa tom offert")
def create_quote(store: QuoteStore = Depends(get_store)):
    return serialize_bundle(store.create_blank_quote(), store)


@router.put("/{quote_id}", summary="Spara offert (ersätter sektioner och rader)")
def save_quote(quote_id: str, payload: QuoteDetailsIn, store: QuoteStore = Depends(get_store)):
    if payload.quote.id != quote_id:
        raise HTTPException(status_code=400, detail="Quote id in body does not match the URL")
    try:
        saved = store.save_quote_details(payload.quote, payload.sections, payload.line_items)
    except QuoteValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return serialize_bundle(store.get_bundle(saved.id), store)


@router.delete("/{quote_id}", summary="Ta bort offert (med sektioner och rader)")
def delete_quote(quote_id: str, store: QuoteStore = Depends(get_store)):
    raise_for_outcome(store.delete_quote(quote_id), "Quote")
    return {"status": "deleted", "id": quote_id}


@router.post("/{quote_id}/duplicate", status_code=201, summary="Duplicera offert")
def duplicate_quote(quote_id: str, store: QuoteStore = Depends(get_store)):
    copy = store.duplicate_quote(quote_id)
    if copy is None:
        raise HTTPException(status_code=404, detail="Quote not found")
    return serialize_bundle(store.get_bundle(copy.id), store)


# ==============================
# EDITOR-OPERATIONER
# ==============================

@router.post("/{quote_id}/sections/move", summary="Flytta sektion")
def move_section(quote_id: str, payload: SectionMoveIn, store: QuoteStore = Depends(get_store)):
    editor = _open_quote(store, quote_id)
    editor.move_section(payload.from_index, payload.to_index)
    try:
        editor.save()
    except QuoteValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _serialize_editor(editor, store)


@router.post("/{quote_id}/line-items/move", summary="Flytta rad inom eller mellan sektioner")
def move_line_item(quote_id: str, payload: LineItemMoveIn, store: QuoteStore = Depends(get_store)):
    editor = _open_quote(store, quote_id)
    try:
        editor.move_line_item(payload.section_id, payload.from_index, payload.to_index, payload.to_section_id)
        editor.save()
    except QuoteValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _serialize_editor(editor, store)


@router.post("/{quote_id}/domain", summary="Byt affärsområde (timpriset följer med)")
def change_domain(quote_id: str, payload: DomainChangeIn, store: QuoteStore = Depends(get_store)):
    editor = _open_quote(store, quote_id)
    editor.change_domain(payload.business_domain_id)
    try:
        editor.save()
    except QuoteValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _serialize_editor(editor, store)
