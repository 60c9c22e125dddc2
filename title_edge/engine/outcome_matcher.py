from __future__ import annotations

import logging
import math
import re
from typing import Dict, Iterable, Optional, Union

from rapidfuzz.distance import Levenshtein

from title_edge.engine.canonicalizer import canonicalize, matching_key
from title_edge.engine.identity_cache import IdentityCache, SnapshotRow
from title_edge.models import MATCH_EXACT, MATCH_FUZZY, MATCH_NONE, OutcomeMatch

logger = logging.getLogger(__name__)

DEFAULT_MAX_DISTANCE = 3

_TRAILING_PARENTHETICAL = re.compile(r"\s*\([^()]*\)\s*$")
_TRAILING_SEASON = re.compile(r":\s*Season\s+\d+\s*$", re.IGNORECASE)

TitleSource = Union[IdentityCache, Iterable[SnapshotRow]]


def clean_outcome_name(name: str) -> str:
    cleaned = _TRAILING_PARENTHETICAL.sub("", name or "")
    cleaned = _TRAILING_SEASON.sub("", cleaned)
    return canonicalize(cleaned).canonical


def fuzzy_threshold(key: str, max_distance: int = DEFAULT_MAX_DISTANCE, max_distance_ratio: float = 0.0) -> int:
    threshold = max(0, int(max_distance))
    if max_distance_ratio and max_distance_ratio > 0:
        threshold = min(threshold, int(math.floor(len(key) * max_distance_ratio)))
    return threshold


def match_outcome(
    outcome_name: str,
    titles: TitleSource,
    max_distance: int = DEFAULT_MAX_DISTANCE,
    max_distance_ratio: float = 0.0,
) -> OutcomeMatch:
    """Resolve a market outcome label to a known title.

    Exact matching key equality on canonical names and aliases wins first, in snapshot
    order. Otherwise the closest Levenshtein candidate within the threshold is taken, the
    earliest one on ties. No match is a normal result, never an error.
    """
    cache = titles if isinstance(titles, IdentityCache) else IdentityCache.from_snapshot(titles)
    key = matching_key(clean_outcome_name(outcome_name))
    if not key:
        return OutcomeMatch(outcome_name=outcome_name, match_confidence=MATCH_NONE)

    exact = cache.find_exact(key)
    if exact is not None:
        return OutcomeMatch(
            outcome_name=outcome_name,
            matched_title_id=exact.id,
            matched_title_name=exact.canonical_name,
            match_confidence=MATCH_EXACT,
            distance=0,
        )

    threshold = fuzzy_threshold(key, max_distance=max_distance, max_distance_ratio=max_distance_ratio)
    best_id: Optional[str] = None
    best_name: Optional[str] = None
    best_distance = threshold + 1
    for candidate_key, title in cache.candidate_keys():
        distance = Levenshtein.distance(key, candidate_key, score_cutoff=threshold)
        if distance < best_distance:
            best_id = title.id
            best_name = title.canonical_name
            best_distance = distance

    if best_id is None:
        logger.debug("No title match for outcome %r (key=%s)", outcome_name, key)
        return OutcomeMatch(outcome_name=outcome_name, match_confidence=MATCH_NONE)

    return OutcomeMatch(
        outcome_name=outcome_name,
        matched_title_id=best_id,
        matched_title_name=best_name,
        match_confidence=MATCH_FUZZY,
        distance=best_distance,
    )


def match_outcomes(
    outcome_names: Iterable[str],
    titles: TitleSource,
    max_distance: int = DEFAULT_MAX_DISTANCE,
    max_distance_ratio: float = 0.0,
) -> Dict[str, OutcomeMatch]:
    cache = titles if isinstance(titles, IdentityCache) else IdentityCache.from_snapshot(titles)
    results: Dict[str, OutcomeMatch] = {}
    for name in outcome_names:
        results[name] = match_outcome(
            name,
            cache,
            max_distance=max_distance,
            max_distance_ratio=max_distance_ratio,
        )
    return results
