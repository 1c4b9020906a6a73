"""State management exports."""

from src.state.models import (
    ALL_CONDITIONS,
    CacheEntry,
    CacheInfo,
    Candidate,
    CandidateReviews,
    Category,
    Condition,
    DebugInfo,
    DebugStep,
    Intent,
    ListingFacts,
    ListingFragment,
    PanelType,
    ReviewSet,
    ReviewSource,
    SearchRequest,
    SearchResult,
    SourceKind,
    SourceStatus,
)

__all__ = [
    "ALL_CONDITIONS",
    "CacheEntry",
    "CacheInfo",
    "Candidate",
    "CandidateReviews",
    "Category",
    "Condition",
    "DebugInfo",
    "DebugStep",
    "Intent",
    "ListingFacts",
    "ListingFragment",
    "PanelType",
    "ReviewSet",
    "ReviewSource",
    "SearchRequest",
    "SearchResult",
    "SourceKind",
    "SourceStatus",
]
