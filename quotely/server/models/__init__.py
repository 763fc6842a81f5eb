from .entities import (
    SNAPSHOT_KEYS,
    BusinessDomain,
    Contact,
    Project,
    Quote,
    QuoteBundle,
    QuoteLineItem,
    QuoteSection,
    QuoteStatus,
    RateComponent,
    SearchResult,
    Snapshot,
)
from .snapshot import SnapshotEntry

__all_models = [SnapshotEntry]
