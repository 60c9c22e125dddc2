from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Union

from title_edge.config import Settings, get_settings
from title_edge.engine.edge import compute_edge
from title_edge.engine.forecaster import forecast
from title_edge.engine.identity_cache import IdentityCache, SnapshotRow
from title_edge.engine.momentum import SignalInput, compute_momentum
from title_edge.engine.outcome_matcher import match_outcome
from title_edge.knowledge.creator_track_record import creator_momentum_boost
from title_edge.models import (
    TARGET_RANK,
    CanonicalTitle,
    Forecast,
    MomentumResult,
    MomentumWeights,
    OutcomeEvaluation,
    SignalSet,
)

logger = logging.getLogger(__name__)

TitleSource = Union[IdentityCache, Iterable[SnapshotRow]]


def evaluate_outcome(
    outcome_name: str,
    snapshot: TitleSource,
    signals_by_title: Optional[Mapping[str, SignalInput]] = None,
    history_by_title: Optional[Mapping[str, Iterable]] = None,
    market_probability: Optional[float] = None,
    previous_scores: Optional[Mapping[str, float]] = None,
    target: str = TARGET_RANK,
    evaluation_date: Optional[date] = None,
    weights: Optional[MomentumWeights] = None,
    settings: Optional[Settings] = None,
) -> OutcomeEvaluation:
    """Match one market outcome to a title and carry it through momentum, forecast and edge.

    An unmatched outcome comes back with only the match filled in.
    """
    settings = settings or get_settings()
    cache = snapshot if isinstance(snapshot, IdentityCache) else IdentityCache.from_snapshot(snapshot)

    match = match_outcome(
        outcome_name,
        cache,
        max_distance=settings.fuzzy_max_distance,
        max_distance_ratio=settings.fuzzy_max_distance_ratio,
    )
    title = cache.get(match.matched_title_id) if match.matched_title_id else None
    if title is None:
        logger.info("Outcome did not match a known title: %s", outcome_name)
        return OutcomeEvaluation(match=match, market_probability=market_probability)

    momentum = _title_momentum(
        title,
        (signals_by_title or {}).get(title.id),
        (previous_scores or {}).get(title.id),
        weights or settings.momentum_weights(),
        settings,
    )
    title_forecast = _title_forecast(
        title,
        (history_by_title or {}).get(title.id),
        momentum,
        target,
        evaluation_date,
        settings,
    )
    edge = compute_edge(market_probability, title_forecast, momentum, hold_threshold=settings.edge_hold_threshold)

    logger.info(
        "Evaluated outcome %s -> %s (%s) | momentum=%s p50=%s edge=%s %s",
        outcome_name,
        title.canonical_name,
        match.match_confidence,
        momentum.score,
        title_forecast.p50,
        edge.edge_percent,
        edge.direction,
    )
    return OutcomeEvaluation(
        match=match,
        market_probability=edge.market_probability,
        momentum=momentum,
        forecast=title_forecast,
        edge=edge,
    )


def evaluate_outcomes(
    outcomes: Mapping[str, Optional[float]],
    snapshot: TitleSource,
    signals_by_title: Optional[Mapping[str, SignalInput]] = None,
    history_by_title: Optional[Mapping[str, Iterable]] = None,
    previous_scores: Optional[Mapping[str, float]] = None,
    target: str = TARGET_RANK,
    evaluation_date: Optional[date] = None,
    weights: Optional[MomentumWeights] = None,
    settings: Optional[Settings] = None,
) -> List[OutcomeEvaluation]:
    """Evaluate every outcome label against one snapshot, in input order."""
    settings = settings or get_settings()
    cache = snapshot if isinstance(snapshot, IdentityCache) else IdentityCache.from_snapshot(snapshot)
    if not outcomes:
        return []

    logger.info("Evaluating outcomes (count=%s, titles=%s)", len(outcomes), len(cache))
    evaluations: List[OutcomeEvaluation] = []
    for outcome_name, market_probability in outcomes.items():
        evaluations.append(
            evaluate_outcome(
                outcome_name,
                cache,
                signals_by_title=signals_by_title,
                history_by_title=history_by_title,
                market_probability=market_probability,
                previous_scores=previous_scores,
                target=target,
                evaluation_date=evaluation_date,
                weights=weights,
                settings=settings,
            )
        )
    return evaluations


def _title_momentum(
    title: CanonicalTitle,
    signals: Optional[SignalInput],
    previous_score: Optional[float],
    weights: MomentumWeights,
    settings: Settings,
) -> MomentumResult:
    signal_set = _signal_set_for(title.id, signals)
    boost = creator_momentum_boost(title.canonical_name, title.aliases, scale=settings.track_record_boost_scale)
    if boost is not None:
        logger.debug("Creator track record boost for %s: %s (+%s)", title.canonical_name, boost.creator, boost.boost)
    return compute_momentum(signal_set, weights=weights, previous_score=previous_score, track_record=boost)


def _title_forecast(
    title: CanonicalTitle,
    history: Optional[Iterable],
    momentum: MomentumResult,
    target: str,
    evaluation_date: Optional[date],
    settings: Settings,
) -> Forecast:
    return forecast(
        list(history or []),
        momentum,
        target=target,
        evaluation_date=evaluation_date,
        title_id=title.id,
        boundary_weekday=settings.forecast_boundary_weekday,
    )


def _signal_set_for(title_id: str, signals: Optional[SignalInput]) -> SignalSet:
    if signals is None:
        return SignalSet(title_id=title_id)
    if isinstance(signals, SignalSet):
        return signals if signals.title_id else signals.model_copy(update={"title_id": title_id})
    data: Dict[str, object] = dict(signals)
    data.setdefault("title_id", title_id)
    return SignalSet.model_validate(data)
