from __future__ import annotations

from typing import Any, Dict, List

from quotely.server.models import QuoteStatus
from quotely.services.quote_store import QuoteStore

RECENT_QUOTES_LIMIT = 5


def dashboard_summary(store: QuoteStore) -> Dict[str, Any]:
    """
    Nyckeltal för startsidan + de senast uppdaterade offerterna.

    updated_at är ISO-datum (YYYY-MM-DD) så strängsortering räcker.
    """
    quotes = store.quotes

    recent: List[Dict[str, Any]] = []
    for quote in sorted(quotes, key=lambda q: q.updated_at or "", reverse=True)[:RECENT_QUOTES_LIMIT]:
        row = quote.to_json_dict()
        row["projectName"] = store.get_project_name(quote.project_id)
        recent.append(row)

    return {
        "total_quotes": len(quotes),
        "approved_quotes": sum(1 for q in quotes if q.status == QuoteStatus.APPROVED),
        "pending_quotes": sum(1 for q in quotes if q.status == QuoteStatus.WAITING),
        "total_projects": len(store.projects),
        "recent_quotes": recent,
    }
