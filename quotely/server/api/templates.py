from typing import List

from fastapi import APIRouter, Depends, HTTPException

from quotely.core.errors import QuoteValidationError
from quotely.server.api.quotes import serialize_bundle
from quotely.server.deps import get_store, raise_for_outcome
from quotely.server.schemas.quote import QuoteDetailsIn
from quotely.services.quote_store import QuoteStore

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("", summary="Lista mallar")
@router.get("/", include_in_schema=False)
def list_templates(store: QuoteStore = Depends(get_store)) -> List[dict]:
    return [t.to_json_dict() for t in store.templates]


@router.get("/{template_id}")
def get_template(template_id: str, store: QuoteStore = Depends(get_store)):
    if store.get_template_by_id(template_id) is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return serialize_bundle(store.get_bundle(template_id), store)


@router.post("", status_code=201, summary="Skapa tom mall")
def create_template(store: QuoteStore = Depends(get_store)):
    return serialize_bundle(store.create_blank_template(), store)


@router.put("/{template_id}")
def save_template(template_id: str, payload: QuoteDetailsIn, store: QuoteStore = Depends(get_store)):
    if payload.quote.id != template_id:
        raise HTTPException(status_code=400, detail="Template id in body does not match the URL")
    try:
        saved = store.save_template_details(payload.quote, payload.sections, payload.line_items)
    except QuoteValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return serialize_bundle(store.get_bundle(saved.id), store)


@router.delete("/{template_id}")
def delete_template(template_id: str, store: QuoteStore = Depends(get_store)):
    raise_for_outcome(store.delete_template(template_id), "Template")
    return {"status": "deleted", "id": template_id}


@router.post("/{template_id}/instantiate", status_code=201, summary="Ny offert från mall")
def instantiate_template(template_id: str, store: QuoteStore = Depends(get_store)):
    quote = store.create_quote_from_template(template_id)
    if quote is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return serialize_bundle(store.get_bundle(quote.id), store)
