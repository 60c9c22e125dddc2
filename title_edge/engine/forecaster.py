from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta, timezone
from statistics import pstdev
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from title_edge.models import (
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    TARGET_RANK,
    TARGET_VIEWERSHIP,
    Forecast,
    HistoryPoint,
    MomentumResult,
    TrendFit,
)

logger = logging.getLogger(__name__)

SUNDAY = 6
RANK_FLOOR = 1
RANK_CEILING = 10
Z_P90 = 1.28
MIN_HISTORY_FOR_HIGH_CONFIDENCE = 4

PATTERN_INSUFFICIENT = "insufficient_data"
PATTERN_PRE_RELEASE = "pre_release"
PATTERN_CLIMBING_FAST = "climbing_fast"
PATTERN_CLIMBING_SLOW = "climbing_slow"
PATTERN_STABLE = "stable"
PATTERN_FALLING_SLOW = "falling_slow"
PATTERN_FALLING_FAST = "falling_fast"

# Rank uncertainty (in rank positions) when the history is too short to measure spread.
_RANK_UNCERTAINTY_TWO_POINTS = 2.0
_RANK_UNCERTAINTY_DEGENERATE = 3.0
# Same, in natural-log views.
_LOG_UNCERTAINTY_TWO_POINTS = 0.5
_LOG_UNCERTAINTY_DEGENERATE = 0.75

_MOMENTUM_RANK_SWING = 1.5
_MAX_LOG_VIEWS = 700.0

HistoryInput = Union[HistoryPoint, Mapping[str, object], float]


def next_week_boundary(evaluation_date: date, weekday: int = SUNDAY) -> date:
    """Next occurrence of ``weekday`` strictly after ``evaluation_date``."""
    days_ahead = (weekday - evaluation_date.weekday()) % 7 or 7
    return evaluation_date + timedelta(days=days_ahead)


def classify_slope(slope: float) -> str:
    if slope <= -0.5:
        return PATTERN_CLIMBING_FAST
    if slope <= -0.1:
        return PATTERN_CLIMBING_SLOW
    if slope >= 0.5:
        return PATTERN_FALLING_FAST
    if slope >= 0.1:
        return PATTERN_FALLING_SLOW
    return PATTERN_STABLE


def fit_trend(values: Sequence[float], higher_is_better: bool = False) -> TrendFit:
    """Ordinary least squares of value against position 0..n-1.

    Patterns read in rank terms: a falling rank number is "climbing". With
    ``higher_is_better`` the slope is negated before classification.
    """
    n = len(values)
    if n < 2:
        intercept = float(values[0]) if n == 1 else None
        return TrendFit(slope=0.0, intercept=intercept, pattern=PATTERN_INSUFFICIENT, points=n)

    mean_x = (n - 1) / 2.0
    mean_y = sum(values) / n
    sxx = sum((i - mean_x) ** 2 for i in range(n))
    sxy = sum((i - mean_x) * (v - mean_y) for i, v in enumerate(values))
    slope = sxy / sxx
    intercept = mean_y - slope * mean_x

    pattern = classify_slope(-slope if higher_is_better else slope)
    return TrendFit(slope=slope, intercept=intercept, pattern=pattern, points=n)


def assign_confidence(history_points: int, has_live_signal: bool) -> str:
    enough_history = history_points >= MIN_HISTORY_FOR_HIGH_CONFIDENCE
    if enough_history and has_live_signal:
        return CONFIDENCE_HIGH
    if enough_history or has_live_signal:
        return CONFIDENCE_MEDIUM
    return CONFIDENCE_LOW


def forecast(
    history: Iterable[HistoryInput],
    momentum: MomentumResult,
    target: str = TARGET_RANK,
    evaluation_date: Optional[date] = None,
    title_id: str = "",
    boundary_weekday: int = SUNDAY,
) -> Forecast:
    evaluation_date = evaluation_date or datetime.now(timezone.utc).date()
    week_start = next_week_boundary(evaluation_date, boundary_weekday)
    title_id = title_id or momentum.title_id

    target = (target or TARGET_RANK).upper()
    if target == TARGET_VIEWERSHIP:
        values = _clean_history(history, positive_only=True)
        return _viewership_forecast(values, momentum, evaluation_date, week_start, title_id)
    if target != TARGET_RANK:
        logger.debug("Unknown forecast target %r, forecasting rank", target)
    values = _clean_history(history)
    if not values:
        return pre_release_forecast(momentum, evaluation_date, title_id, boundary_weekday)
    return _rank_forecast(values, momentum, evaluation_date, week_start, title_id)


def pre_release_forecast(
    momentum: MomentumResult,
    evaluation_date: Optional[date] = None,
    title_id: str = "",
    boundary_weekday: int = SUNDAY,
) -> Forecast:
    """Rank forecast for a title with no chart history, driven only by momentum."""
    evaluation_date = evaluation_date or datetime.now(timezone.utc).date()
    week_start = next_week_boundary(evaluation_date, boundary_weekday)
    predicted = _rank_from_momentum(momentum.score)
    uncertainty = 2.5 if momentum.has_live_signal else 3.5
    p10, p50, p90 = _rank_band(float(predicted), uncertainty)

    return Forecast(
        title_id=title_id or momentum.title_id,
        target=TARGET_RANK,
        evaluation_date=evaluation_date,
        week_start=week_start,
        week_end=week_start + timedelta(days=6),
        p10=p10,
        p50=p50,
        p90=p90,
        confidence=CONFIDENCE_MEDIUM if momentum.has_live_signal else CONFIDENCE_LOW,
        pattern=PATTERN_PRE_RELEASE,
        uncertainty=uncertainty,
        momentum_score=momentum.score,
        acceleration_score=momentum.acceleration_score,
        history_points=0,
    )


def _rank_forecast(
    values: List[float],
    momentum: MomentumResult,
    evaluation_date: date,
    week_start: date,
    title_id: str,
) -> Forecast:
    trend = fit_trend(values)
    n = len(values)

    if n == 1:
        base = values[0]
    else:
        base = trend.intercept + trend.slope * n
    base = _clamp(base, RANK_FLOOR, RANK_CEILING)

    # 50 is neutral; 100 pulls the rank 1.5 places toward #1.
    adjustment = (momentum.score - 50) / 50.0 * _MOMENTUM_RANK_SWING
    adjusted = base - adjustment

    if n >= 3:
        uncertainty = pstdev(values)
    elif n == 2:
        uncertainty = _RANK_UNCERTAINTY_TWO_POINTS
    else:
        uncertainty = _RANK_UNCERTAINTY_DEGENERATE

    p10, p50, p90 = _rank_band(adjusted, uncertainty)
    return Forecast(
        title_id=title_id,
        target=TARGET_RANK,
        evaluation_date=evaluation_date,
        week_start=week_start,
        week_end=week_start + timedelta(days=6),
        p10=p10,
        p50=p50,
        p90=p90,
        confidence=assign_confidence(n, momentum.has_live_signal),
        pattern=trend.pattern,
        slope=trend.slope,
        intercept=trend.intercept,
        uncertainty=uncertainty,
        momentum_adjustment=adjustment,
        momentum_score=momentum.score,
        acceleration_score=momentum.acceleration_score,
        history_points=n,
    )


def _viewership_forecast(
    values: List[float],
    momentum: MomentumResult,
    evaluation_date: date,
    week_start: date,
    title_id: str,
) -> Forecast:
    n = len(values)
    common = dict(
        title_id=title_id,
        target=TARGET_VIEWERSHIP,
        evaluation_date=evaluation_date,
        week_start=week_start,
        week_end=week_start + timedelta(days=6),
        confidence=assign_confidence(n, momentum.has_live_signal),
        momentum_score=momentum.score,
        acceleration_score=momentum.acceleration_score,
        history_points=n,
    )
    if n == 0:
        return Forecast(p10=0.0, p50=0.0, p90=0.0, pattern=PATTERN_INSUFFICIENT, **common)

    logs = [math.log(v) for v in values]
    trend = fit_trend(logs, higher_is_better=True)
    if n == 1:
        projected = logs[0]
        uncertainty = _LOG_UNCERTAINTY_DEGENERATE
    else:
        projected = trend.intercept + trend.slope * n
        if n >= 3:
            residuals = [y - (trend.intercept + trend.slope * i) for i, y in enumerate(logs)]
            uncertainty = pstdev(residuals)
        else:
            uncertainty = _LOG_UNCERTAINTY_TWO_POINTS

    # Momentum 70 scales views by 1.10, momentum 30 by 0.90.
    factor = 1 + (momentum.score - 50) / 200.0
    adjustment = math.log(factor)
    projected += adjustment

    p10 = float(_round_half_up(_safe_exp(projected - uncertainty * Z_P90)))
    p50 = float(_round_half_up(_safe_exp(projected)))
    p90 = float(_round_half_up(_safe_exp(projected + uncertainty * Z_P90)))
    if not p10 <= p50 <= p90:
        p10 = p90 = p50

    return Forecast(
        p10=p10,
        p50=p50,
        p90=p90,
        pattern=trend.pattern,
        slope=trend.slope,
        intercept=trend.intercept,
        uncertainty=uncertainty,
        momentum_adjustment=adjustment,
        **common,
    )


def _rank_band(center: float, uncertainty: float) -> Tuple[float, float, float]:
    p50 = _rank_point(center)
    p10 = _rank_point(center - uncertainty * Z_P90)
    p90 = _rank_point(center + uncertainty * Z_P90)
    if not p10 <= p50 <= p90:
        logger.debug("Rank band out of order (%s, %s, %s); collapsing to p50", p10, p50, p90)
        p10 = p90 = p50
    return float(p10), float(p50), float(p90)


def _rank_point(value: float) -> int:
    return int(_clamp(_round_half_up(_clamp(value, RANK_FLOOR, RANK_CEILING)), RANK_FLOOR, RANK_CEILING))


def _rank_from_momentum(score: float) -> int:
    if score >= 80:
        return 1
    if score >= 70:
        return 2
    if score >= 60:
        return 3
    if score >= 50:
        return 5
    if score >= 40:
        return 7
    return 9


def _clean_history(history: Iterable[HistoryInput], positive_only: bool = False) -> List[float]:
    points: List[HistoryPoint] = []
    for i, row in enumerate(history or []):
        if isinstance(row, HistoryPoint):
            point = row
        elif isinstance(row, (int, float)):
            # Bare values are consecutive periods in the order given.
            point = HistoryPoint(period_index=i, value=row)
        else:
            point = HistoryPoint.model_validate(dict(row))
        if not math.isfinite(point.value):
            logger.debug("Skipping non-finite history value at period %s", point.period_index)
            continue
        if positive_only and point.value <= 0:
            continue
        points.append(point)
    points.sort(key=lambda p: p.period_index)
    return [p.value for p in points]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _safe_exp(value: float) -> float:
    return math.exp(min(value, _MAX_LOG_VIEWS))
