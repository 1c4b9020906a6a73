"""Shared keyword filters and per-source deduplication."""

import re
from typing import Iterable, Optional

import structlog

from src.state.models import ListingFragment, PanelType

logger = structlog.get_logger()

# Titles of add-ons rather than the device itself (Romanian + English)
ACCESSORY_KEYWORDS = (
    "husa",
    "husă",
    "case",
    "cover",
    "folie",
    "screen protector",
    "protector",
    "stand",
    "suport",
    "curea",
    "strap",
    "charger",
    "incarcator",
    "încărcător",
    "cablu",
    "cable",
    "remote",
    "telecomanda",
    "telecomandă",
)

# Listings that are hard rejects regardless of price
BAD_CONDITION_KEYWORDS = (
    "nu porneste",
    "nu pornește",
    "spart",
    "crapat",
    "crăpat",
    "ecran spart",
    "display broken",
    "screen broken",
    "broken screen",
    "not working",
    "for parts",
    "pentru piese",
    "piese",
    "defect",
    "burn-in sever",
    "ars",
)

# Short stems that only count as whole words ("ars" but not "Marshall")
WHOLE_WORD_KEYWORDS = {"ars"}

BAD_CONDITION_RE = re.compile(
    "|".join(
        rf"(?<!\w){re.escape(k)}" + (r"(?!\w)" if k in WHOLE_WORD_KEYWORDS else "")
        for k in BAD_CONDITION_KEYWORDS
    ),
    re.IGNORECASE,
)

# Default exclusions when no oracle refines the intent
DEFAULT_MUST_EXCLUDE = ["nu porneste", "ecran spart", "pentru piese", "defect"]


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    lowered = (text or "").lower()
    return any(k in lowered for k in keywords)


def looks_like_accessory(title: Optional[str]) -> bool:
    """Whether a title names an accessory (case-insensitive substring match)."""
    return _contains_any(title or "", ACCESSORY_KEYWORDS)


def looks_bad_condition(text: Optional[str]) -> bool:
    """Whether free text describes a broken / for-parts item.

    Keywords must start at a word boundary, so "Marshall" or "reparsat" do
    not match "ars".
    """
    return bool(BAD_CONDITION_RE.search(text or ""))


def matches_exclusion(text: Optional[str], exclusions: Iterable[str]) -> bool:
    """Whether text contains any user/oracle exclusion keyword."""
    keywords = [str(x).lower() for x in exclusions if str(x).strip()]
    return bool(keywords) and _contains_any(text or "", keywords)


def guess_panel_type(title: Optional[str]) -> PanelType:
    """Panel technology from title keywords."""
    t = (title or "").lower()
    if "qled" in t:
        return PanelType.QLED
    if "oled" in t:
        return PanelType.OLED
    if "mini led" in t or "miniled" in t:
        return PanelType.LCD
    return PanelType.UNKNOWN


def dedupe_by_link(fragments: list[ListingFragment]) -> list[ListingFragment]:
    """Keep one fragment per link; the cheaper known price wins.

    First-seen order of links is preserved. A priced fragment beats an
    unpriced one for the same link.
    """
    best: dict[str, ListingFragment] = {}
    for fragment in fragments:
        previous = best.get(fragment.link)
        if previous is None:
            best[fragment.link] = fragment
            continue
        if fragment.price_ron is None:
            continue
        if previous.price_ron is None or fragment.price_ron < previous.price_ron:
            best[fragment.link] = fragment

    if len(best) != len(fragments):
        logger.debug(
            "Duplicate links filtered",
            original=len(fragments),
            unique=len(best),
        )
    return list(best.values())
