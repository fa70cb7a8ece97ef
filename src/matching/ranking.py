"""
Deterministic scoring and ordering shared by product and supplier matching.

Keyword scoring is the fallback when the inference gateway is unavailable:
each need token of at least ``keyword_min_token_length`` characters found in
the candidate text adds ``keyword_token_weight`` to the score.
"""

import re
from typing import Callable, Iterable, Optional, TypeVar

from src.config import MatchingConfig, settings
from src.utils import clamp_score

T = TypeVar("T")

_TOKEN_SPLIT = re.compile(r"[^\w]+")


def tokenize_need(need: str, min_length: Optional[int] = None) -> list[str]:
    """Lowercase need tokens long enough to be meaningful, in order, without repeats."""
    min_length = min_length if min_length is not None else settings.matching.keyword_min_token_length
    tokens: list[str] = []
    for token in _TOKEN_SPLIT.split(need.lower()):
        if len(token) >= min_length and token not in tokens:
            tokens.append(token)
    return tokens


def keyword_score(
    need: str,
    text: str,
    config: Optional[MatchingConfig] = None,
) -> tuple[float, list[str]]:
    """
    Score ``text`` against ``need`` by token containment.

    Returns:
        (score clamped to [0, 1], the need tokens that were found)
    """
    config = config or settings.matching
    haystack = text.lower()
    found = [t for t in tokenize_need(need, config.keyword_min_token_length) if t in haystack]
    return clamp_score(config.keyword_token_weight * len(found)), found


def keyword_reason(found: Iterable[str]) -> str:
    return f"Keyword match: {', '.join(found)}"


def sort_with_supplier_preference(
    candidates: list[T],
    score_of: Callable[[T], float],
    supplier_of: Callable[[T], Optional[str]],
    supplier_ranks: dict[str, int],
    config: Optional[MatchingConfig] = None,
) -> list[T]:
    """
    Order candidates by score, preferring better-ranked suppliers on near ties.

    Candidates are grouped into tie bands walking down from the best score:
    a band holds every candidate within ``tie_break_window`` of the band's
    top score. Within a band, supplier preference rank (lower first) decides
    and score breaks equal ranks; unranked suppliers count as
    ``unranked_supplier_rank``. The result does not depend on input order
    except between candidates with equal score and rank.
    """
    config = config or settings.matching

    def rank(candidate: T) -> int:
        supplier_id = supplier_of(candidate)
        if supplier_id is None:
            return config.unranked_supplier_rank
        return supplier_ranks.get(supplier_id, config.unranked_supplier_rank)

    by_score = sorted(candidates, key=score_of, reverse=True)
    keyed = []
    band, band_top = 0, None
    for candidate in by_score:
        score = score_of(candidate)
        if band_top is None:
            band_top = score
        elif band_top - score > config.tie_break_window:
            band, band_top = band + 1, score
        keyed.append(((band, rank(candidate), -score), candidate))
    keyed.sort(key=lambda pair: pair[0])
    return [candidate for _, candidate in keyed]
