from fastapi import APIRouter, Depends

from quotely.server.deps import get_store
from quotely.services.dashboard import dashboard_summary
from quotely.services.quote_store import QuoteStore

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard")
def dashboard(store: QuoteStore = Depends(get_store)):
    return dashboard_summary(store)
