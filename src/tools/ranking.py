"""Final ordering of scored candidates."""

from typing import Iterable

from src.state.models import Candidate

TOP_N = 10


def _sort_key(candidate: Candidate) -> tuple:
    price = candidate.price_ron if candidate.price_ron is not None else float("inf")
    return (-(candidate.overall_score or 0), -(candidate.value_score or 0), price)


def rank_candidates(candidates: Iterable[Candidate], limit: int = TOP_N) -> list[Candidate]:
    """Sort by overall score desc, value score desc, then price asc (unknown last).

    ``hard_fit`` is carried along but does not affect the order. The sort is
    stable, so merge order breaks any remaining ties.
    """
    return sorted(candidates, key=_sort_key)[:limit]
