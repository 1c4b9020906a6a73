"""Candidate merging, filtering and fact enrichment."""

from typing import Iterable

import structlog

from src.state.models import Candidate, Category, Intent, ListingFacts
from src.tools.scraping.base_adapter import AdapterResult
from src.tools.scraping.filters import looks_bad_condition, looks_like_accessory, matches_exclusion

logger = structlog.get_logger()

FACTS_LIMIT = 12


def merge_candidates(results: Iterable[AdapterResult], intent: Intent) -> list[Candidate]:
    """Concatenate adapter items in adapter order and apply the hard filters.

    ``results`` must already be in source priority order (price comparison,
    resale, discovery, user targets). Links are not deduplicated across
    sources: the same item may legitimately be listed at different links.
    """
    merged = [Candidate.from_fragment(item) for result in results for item in result.items]
    total = len(merged)

    candidates = [c for c in merged if c.link and c.has_text]

    if intent.category != Category.ACCESSORY:
        candidates = [c for c in candidates if not looks_like_accessory(c.title)]

    candidates = [c for c in candidates if not looks_bad_condition(c.text_blob())]

    if intent.must_exclude:
        candidates = [
            c for c in candidates if not matches_exclusion(c.text_blob(), intent.must_exclude)
        ]

    logger.info("Candidates merged", total=total, kept=len(candidates))
    return candidates


def apply_facts(candidates: list[Candidate], facts: Iterable[ListingFacts]) -> list[Candidate]:
    """Merge fact records into candidates by exact link match.

    Price and link always come from the listing, never from the facts.
    Unmatched candidates keep their default enrichment.
    """
    by_link = {f.link: f for f in facts}
    if not by_link:
        return candidates

    enriched = []
    for candidate in candidates:
        fact = by_link.get(candidate.link)
        if fact is None:
            enriched.append(candidate)
            continue
        enriched.append(
            candidate.model_copy(
                update={
                    "condition": fact.condition,
                    "negotiable": fact.negotiable,
                    "defects": list(fact.defects),
                    "size_inch": fact.size_inch if fact.size_inch is not None else candidate.size_inch,
                    "notes": fact.notes if fact.notes is not None else candidate.notes,
                }
            )
        )
    return enriched
