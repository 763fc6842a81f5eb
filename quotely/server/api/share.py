# Kundvyn: offentlig via delningslänken, dolda sektioner visas aldrig

from fastapi import APIRouter, Depends, HTTPException

from quotely.core.errors import QuoteValidationError
from quotely.core.totals import compute_totals, group_sections
from quotely.server.deps import get_store
from quotely.server.schemas.quote import ApprovalIn
from quotely.services.quote_store import QuoteStore

router = APIRouter(prefix="/client", tags=["share"])

# Interna cachefält som inte ska ut till kunden
_INTERNAL_QUOTE_KEYS = ("totalHours", "totalPoints", "totalPrice", "createdBy")


@router.get("/{token}", summary="Offert som kunden ser den")
def get_shared_quote(token: str, store: QuoteStore = Depends(get_store)):
    bundle = store.get_quote_by_share_token(token)
    if bundle is None:
        raise HTTPException(status_code=404, detail="Quote not found")

    quote = bundle.quote
    totals = compute_totals(quote, bundle.sections, bundle.line_items)
    visible = group_sections(bundle.sections, bundle.line_items, include_hidden=False)

    quote_json = {k: v for k, v in quote.to_json_dict().items() if k not in _INTERNAL_QUOTE_KEYS}
    domain = store.get_domain_by_id(quote.business_domain_id)

    return {
        "quote": quote_json,
        "sections": [
            {
                **group.section.to_json_dict(),
                "hours": group.hours,
                "lineItems": [item.to_json_dict() for item in group.items],
            }
            for group in visible
        ],
        "totalHours": totals.client_hours,
        "totalPoints": totals.client_points,
        "totalPrice": totals.client_price,
        "projectName": store.get_project_name(quote.project_id),
        "contactName": store.get_contact_name(quote.contact_id),
        "domainName": domain.name if domain else "-",
    }


@router.post("/{token}/approve", summary="Godkänn offert med femsiffrig kod")
def approve_shared_quote(token: str, payload: ApprovalIn, store: QuoteStore = Depends(get_store)):
    try:
        approved = store.approve_by_share_token(token, payload.approval_code)
    except QuoteValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if approved is None:
        raise HTTPException(status_code=404, detail="Quote not found")
    return {"status": approved.status.value, "id": approved.id}
