"""Deterministic scoring: hard-fit and the oracle-free score fallback."""

from typing import Iterable, Optional

import structlog
from pydantic import Field, field_validator

from src.state.models import (
    ApiModel,
    Candidate,
    Condition,
    Intent,
    PanelType,
    coerce_enum,
    string_list,
)
from src.tools.scraping.filters import guess_panel_type

logger = structlog.get_logger()

BUDGET_BONUS = 20
OVER_BUDGET_STEP_LEI = 50
OVER_BUDGET_CAP = 35
SIZE_BONUS = 5
SIZE_PENALTY = 10
OLED_BONUS = 10
OLED_PENALTY = 15
CONDITION_BONUS = 5
DEFECT_PENALTY = 5
DEFECTS_CAP = 25

FALLBACK_OVERALL_SCORE = 50.0
NEUTRAL_VALUE_SCORE = 50.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def hard_fit(candidate: Candidate, intent: Intent) -> float:
    """Oracle-independent fit score.

    Terms are additive and skipped when either side lacks the input.
    """
    score = 0.0
    price = candidate.price_ron

    if intent.budget_lei is not None and price is not None:
        if price <= intent.budget_lei:
            score += BUDGET_BONUS
        else:
            score -= clamp((price - intent.budget_lei) / OVER_BUDGET_STEP_LEI, 0, OVER_BUDGET_CAP)

    if candidate.size_inch is not None:
        if intent.size_min is not None:
            score += SIZE_BONUS if candidate.size_inch >= intent.size_min else -SIZE_PENALTY
        if intent.size_max is not None:
            score += SIZE_BONUS if candidate.size_inch <= intent.size_max else -SIZE_PENALTY

    if intent.wants_oled():
        text = f"{candidate.title or ''} {candidate.canonical or ''}".lower()
        score += OLED_BONUS if "oled" in text else -OLED_PENALTY

    if candidate.condition in intent.condition_ok:
        score += CONDITION_BONUS

    if candidate.defects:
        score -= clamp(len(candidate.defects) * DEFECT_PENALTY, 0, DEFECTS_CAP)

    return score


def fallback_value_score(price: Optional[float], budget: Optional[float]) -> float:
    """Price distance to budget mapped onto 0..100; 50 when either is unknown."""
    if price is None or budget is None:
        return NEUTRAL_VALUE_SCORE
    return clamp(100 - abs(price - budget) / OVER_BUDGET_STEP_LEI, 0, 100)


def fallback_scores(candidates: Iterable[Candidate], intent: Intent) -> list[Candidate]:
    """Scores used when no scoring oracle answered."""
    return [
        c.model_copy(
            update={
                "overall_score": FALLBACK_OVERALL_SCORE,
                "value_score": fallback_value_score(c.price_ron, intent.budget_lei),
                "panel_type": (
                    c.panel_type if c.panel_type != PanelType.UNKNOWN else guess_panel_type(c.title)
                ),
            }
        )
        for c in candidates
    ]


class CandidateScore(ApiModel):
    """One scored item as returned by the scoring oracle."""

    link: str
    overall_score: Optional[float] = None
    value_score: Optional[float] = None
    model_code: Optional[str] = None
    product_key: Optional[str] = None
    canonical: Optional[str] = None
    panel_type: Optional[PanelType] = None
    condition: Optional[Condition] = None
    differences: list[str] = Field(default_factory=list)
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)

    @field_validator("overall_score", "value_score", mode="before")
    @classmethod
    def _score(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            return clamp(float(v), 0, 100)
        except (TypeError, ValueError):
            return None

    @field_validator("panel_type", mode="before")
    @classmethod
    def _panel(cls, v):
        return None if v is None else coerce_enum(PanelType, v, PanelType.UNKNOWN)

    @field_validator("condition", mode="before")
    @classmethod
    def _condition(cls, v):
        return None if v is None else coerce_enum(Condition, v, Condition.UNKNOWN)

    @field_validator("differences", "pros", "cons", mode="before")
    @classmethod
    def _lists(cls, v):
        return string_list(v)


def apply_oracle_scores(
    candidates: list[Candidate], scores: Iterable[CandidateScore]
) -> list[Candidate]:
    """Merge oracle scores into candidates by link.

    Scores for links that are not among ``candidates`` are dropped; link and
    price always come from the candidate. Candidates the oracle skipped are
    dropped too, matching an oracle that only returns what it ranked. When
    several sources listed the same link, every copy keeps its own price and
    takes the first score given for that link.
    """
    by_link: dict[str, list[Candidate]] = {}
    for c in candidates:
        by_link.setdefault(c.link, []).append(c)

    scored: list[Candidate] = []
    seen: set[str] = set()
    dropped = 0

    for score in scores:
        copies = by_link.get(score.link)
        if not copies or score.link in seen:
            dropped += 1
            continue
        seen.add(score.link)
        update = score.model_dump(exclude={"link"}, exclude_none=True)
        for field in ("differences", "pros", "cons"):
            if not update.get(field):
                update.pop(field, None)
        scored.extend(c.model_copy(update=update) for c in copies)

    if dropped:
        logger.debug("Oracle scores for unknown links dropped", dropped=dropped)
    return scored


def attach_hard_fit(candidates: Iterable[Candidate], intent: Intent) -> list[Candidate]:
    return [c.model_copy(update={"hard_fit": hard_fit(c, intent)}) for c in candidates]
