from __future__ import annotations

import logging
import math
from typing import Iterable, List, Mapping, Optional, Union

from title_edge.models import (
    MomentumBreakdown,
    MomentumResult,
    MomentumWeights,
    SignalContribution,
    SignalSet,
    TrackRecordBoost,
)

logger = logging.getLogger(__name__)

DEFAULT_BREAKOUT_THRESHOLD = 60
RANK_DELTA_FLOOR = -10.0
RANK_DELTA_CEILING = 10.0

SignalInput = Union[SignalSet, Mapping[str, object]]


def compute_momentum(
    signals: SignalInput,
    weights: Optional[MomentumWeights] = None,
    previous_score: Optional[float] = None,
    track_record: Optional[TrackRecordBoost] = None,
) -> MomentumResult:
    """Blend search interest, page views and rank movement into a 0-100 momentum score.

    Only signals that are present count toward the weighted average. A creator
    track-record boost is added on top before clamping and reported on its own.
    """
    signal_set = signals if isinstance(signals, SignalSet) else SignalSet.model_validate(dict(signals))
    weights = weights or MomentumWeights()

    trends = _contribution(_usable(signal_set.trends, "trends"), weights.trends_weight, normalize_trends)
    wiki = _contribution(_usable(signal_set.wiki_views, "wiki_views"), weights.wikipedia_weight, normalize_page_views)
    rank = _contribution(
        _usable(signal_set.effective_rank_delta(), "rank_delta"),
        weights.rank_delta_weight,
        normalize_rank_delta,
    )

    present = [c for c in (trends, wiki, rank) if c.present]
    total_weight = sum(c.weight for c in present)
    weighted_score = sum(c.contribution for c in present) / total_weight if total_weight > 0 else 0.0

    score = _round_half_up(weighted_score)
    if track_record is not None:
        score += track_record.boost
    score = int(_clamp(score, 0, 100))

    return MomentumResult(
        title_id=signal_set.title_id,
        score=score,
        acceleration_score=compute_acceleration(score, previous_score),
        previous_score=previous_score if _is_finite(previous_score) else None,
        breakdown=MomentumBreakdown(
            trends=trends,
            wiki_views=wiki,
            rank_delta=rank,
            weights=weights,
            total_weight=total_weight,
            weighted_score=weighted_score,
            track_record=track_record,
            total_score=score,
        ),
    )


def compute_acceleration(current: float, previous: Optional[float]) -> float:
    if not _is_finite(previous) or not _is_finite(current):
        return 0.0
    return _clamp((current - previous) * 2, -100.0, 100.0)


def normalize_trends(value: float) -> Optional[float]:
    return value


def normalize_page_views(value: float) -> Optional[float]:
    if value <= 0:
        return None
    # 1k views -> 30, 100k -> 50, 1M -> 60
    return min(100.0, math.log10(value) * 10)


def normalize_rank_delta(value: float) -> Optional[float]:
    span = RANK_DELTA_CEILING - RANK_DELTA_FLOOR
    return _clamp((value - RANK_DELTA_FLOOR) / span * 100, 0.0, 100.0)


def calculate_rank_delta(current_rank: Optional[float], previous_rank: Optional[float]) -> Optional[float]:
    if current_rank is None or previous_rank is None:
        return None
    return previous_rank - current_rank


def calculate_growth_pct(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    if current is None or previous is None or previous == 0:
        return None
    return (current - previous) / previous * 100


def top_movers(results: Iterable[MomentumResult], limit: int = 10) -> List[MomentumResult]:
    ranked = sorted((r for r in results if r.score > 0), key=lambda r: r.score, reverse=True)
    return ranked[: max(0, int(limit))]


def breakouts(results: Iterable[MomentumResult], threshold: int = DEFAULT_BREAKOUT_THRESHOLD) -> List[MomentumResult]:
    hits = [r for r in results if r.score >= threshold and r.acceleration_score > 0]
    return sorted(hits, key=lambda r: r.acceleration_score, reverse=True)


def _contribution(raw: Optional[float], weight: float, normalizer) -> SignalContribution:
    if raw is None:
        return SignalContribution(raw=None, weight=weight)
    normalized = normalizer(raw)
    if normalized is None:
        logger.debug("Signal value %s treated as absent", raw)
        return SignalContribution(raw=raw, weight=weight)
    return SignalContribution(
        raw=raw,
        normalized=normalized,
        weight=weight,
        contribution=normalized * weight,
        present=True,
    )


def _usable(value: Optional[float], name: str) -> Optional[float]:
    if value is None:
        return None
    if not _is_finite(value):
        logger.debug("Dropping non-finite %s signal: %s", name, value)
        return None
    return float(value)


def _is_finite(value: Optional[float]) -> bool:
    if value is None:
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
