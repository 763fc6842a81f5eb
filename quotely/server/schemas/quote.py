# fil: quotely/server/schemas/quote.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from quotely.server.models import Quote, QuoteLineItem, QuoteSection


class _In(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class QuoteDetailsIn(_In):
    """
    Hela offerten (eller mallen) som den ligger i editorn:
    huvud + alla sektioner + alla rader. Ersätter det som finns sparat.
    """
    quote: Quote
    sections: List[QuoteSection] = Field(default_factory=list)
    line_items: List[QuoteLineItem] = Field(default_factory=list, alias="lineItems")


class SectionMoveIn(_In):
    from_index: int = Field(alias="fromIndex")
    to_index: int = Field(alias="toIndex")


class LineItemMoveIn(_In):
    section_id: str = Field(alias="sectionId")
    from_index: int = Field(alias="fromIndex")
    to_index: int = Field(alias="toIndex")
    # Saknas → flytt inom samma sektion
    to_section_id: Optional[str] = Field(default=None, alias="toSectionId")


class DomainChangeIn(_In):
    business_domain_id: str = Field(default="", alias="businessDomainId")


class ApprovalIn(_In):
    approval_code: str = Field(alias="approvalCode")
