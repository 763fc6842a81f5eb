from fastapi import HTTPException, Request

from quotely.core.errors import DeleteOutcome
from quotely.server.settings import Settings
from quotely.services.event_log import EventLog
from quotely.services.quote_store import QuoteStore
from quotely.services.snapshot_store import build_snapshot_store


def build_store(settings: Settings) -> QuoteStore:
    """Bygger och laddar en QuoteStore enligt inställningarna (lagring, prefix, logg)."""
    store = QuoteStore(
        build_snapshot_store(settings),
        created_by=settings.current_user,
        prefix=settings.storage_prefix,
        event_log=EventLog(settings.event_log_path, tag="quote_store"),
    )
    store.load()
    return store


def get_store(request: Request) -> QuoteStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Store is not initialised")
    return store


def raise_for_outcome(outcome: DeleteOutcome, label: str) -> None:
    if outcome is DeleteOutcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    if outcome is DeleteOutcome.IN_USE:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot delete {label.lower()}: it is used by one or more quotes.",
        )
