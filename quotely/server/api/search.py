from fastapi import APIRouter, Depends, Query

from quotely.server.deps import get_store
from quotely.services.quote_store import QuoteStore

router = APIRouter(tags=["search"])


@router.get("/search", summary="Snabbsök (max 3 träffar per typ)")
def search(q: str = Query(""), store: QuoteStore = Depends(get_store)):
    return [r.to_json_dict() for r in store.search(q)]
