from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional, Tuple

from title_edge.models import (
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    DIRECTION_AVOID,
    DIRECTION_BUY,
    DIRECTION_HOLD,
    STRENGTH_MODERATE,
    STRENGTH_STRONG,
    STRENGTH_WEAK,
    TARGET_RANK,
    EdgeResult,
    Forecast,
    ModelProbability,
    MomentumResult,
)

logger = logging.getLogger(__name__)

DEFAULT_HOLD_THRESHOLD = 5.0
DEFAULT_MIN_SIGNIFICANT_EDGE = 10.0
STRONG_EDGE = 20.0
MODERATE_EDGE = 10.0

MIN_PROBABILITY = 0.01
MAX_PROBABILITY = 0.90

# Winning #1 takes better than average momentum, so the curve is centred above 50.
_MOMENTUM_CENTER = 65.0
_MOMENTUM_SCALE = 35.0
_MOMENTUM_STEEPNESS = 3.5
_MOMENTUM_CEILING = 0.85

_MAX_ACCELERATION_BONUS = 0.05

_CONFIDENCE_MULTIPLIERS = {
    CONFIDENCE_LOW: 0.70,
    CONFIDENCE_MEDIUM: 0.85,
    CONFIDENCE_HIGH: 1.0,
}

_MAX_REASONS = 3


def momentum_to_probability(momentum_score: float) -> float:
    clamped = _clamp(momentum_score, 0.0, 100.0)
    normalized = (clamped - _MOMENTUM_CENTER) / _MOMENTUM_SCALE
    sigmoid = 1.0 / (1.0 + math.exp(-_MOMENTUM_STEEPNESS * normalized))
    return min(_MOMENTUM_CEILING, sigmoid * _MOMENTUM_CEILING)


def apply_rank_forecast_adjustment(base_probability: float, p10: float, p50: float, p90: float) -> float:
    adjustment = 0.0
    if p50 == 1:
        adjustment += 0.18
    elif p50 == 2:
        adjustment += 0.08
    elif p50 == 3:
        adjustment += 0.03

    if p10 == 1 and p50 != 1:
        adjustment += 0.05

    if p90 <= 2:
        adjustment += 0.08
    elif p90 <= 3:
        adjustment += 0.03

    return min(MAX_PROBABILITY, base_probability + adjustment)


def calculate_model_probability(
    momentum_score: float,
    acceleration_score: float,
    forecast: Optional[Forecast] = None,
    confidence: Optional[str] = None,
) -> ModelProbability:
    """Model-implied probability that the title finishes #1.

    Momentum sets the base, a rank forecast adds a bonus, acceleration nudges by at
    most five points and the result is discounted by forecast confidence.
    """
    probability = momentum_to_probability(momentum_score)
    momentum_component = probability

    rank_component = 0.0
    if forecast is not None and forecast.target == TARGET_RANK:
        before = probability
        probability = apply_rank_forecast_adjustment(probability, forecast.p10, forecast.p50, forecast.p90)
        rank_component = probability - before

    acceleration = acceleration_score if _is_finite(acceleration_score) else 0.0
    bonus = _clamp(acceleration / 200.0, -_MAX_ACCELERATION_BONUS, _MAX_ACCELERATION_BONUS)
    probability += bonus

    if confidence is None:
        confidence = forecast.confidence if forecast is not None else CONFIDENCE_LOW
    multiplier = _CONFIDENCE_MULTIPLIERS.get(confidence, _CONFIDENCE_MULTIPLIERS[CONFIDENCE_LOW])
    probability *= multiplier

    return ModelProbability(
        probability=_clamp(probability, MIN_PROBABILITY, MAX_PROBABILITY),
        momentum_component=momentum_component,
        rank_forecast_component=rank_component,
        acceleration_bonus=bonus,
        confidence_multiplier=multiplier,
    )


def calculate_edge(market_probability: float, model_probability: float) -> Tuple[float, str, str]:
    """Return (edge_percent, strength, direction) before the hold threshold is applied."""
    # 0.55 - 0.30 is 24.999999999999996 in binary floating point.
    edge_percent = round((model_probability - market_probability) * 100, 6)
    return edge_percent, _strength(edge_percent), DIRECTION_BUY if edge_percent > 0 else DIRECTION_AVOID


def classify_signal(
    edge_percent: Optional[float],
    hold_threshold: float = DEFAULT_HOLD_THRESHOLD,
) -> Tuple[str, str]:
    if edge_percent is None or not _is_finite(edge_percent):
        return DIRECTION_HOLD, STRENGTH_WEAK
    if abs(edge_percent) < hold_threshold:
        return DIRECTION_HOLD, STRENGTH_WEAK
    return (DIRECTION_BUY if edge_percent > 0 else DIRECTION_AVOID), _strength(edge_percent)


def generate_reasoning(
    direction: str,
    edge_percent: Optional[float],
    momentum_score: float,
    acceleration_score: float,
    forecast: Optional[Forecast],
    market_probability: Optional[float],
    hold_threshold: float = DEFAULT_HOLD_THRESHOLD,
) -> str:
    parts: List[str] = []
    if edge_percent is None:
        parts.append(f"{direction}: no market price")
    elif direction == DIRECTION_HOLD:
        parts.append(f"{direction}: edge {edge_percent:+.1f} pts inside +/-{hold_threshold:g}")
    else:
        parts.append(f"{direction}: edge {edge_percent:+.1f} pts")
    parts.append(f"momentum {int(momentum_score)}, acceleration {acceleration_score:+.0f}")
    if forecast is not None:
        parts.append(_describe_band(forecast))

    if direction in (DIRECTION_BUY, DIRECTION_AVOID):
        reasons = _signal_reasons(direction, momentum_score, acceleration_score, forecast, market_probability)
        if reasons:
            parts.extend(reasons[:_MAX_REASONS])
        else:
            parts.append("Model sees upside potential" if direction == DIRECTION_BUY else "Model sees downside risk")
    return " | ".join(parts)


def compute_edge(
    market_probability: Optional[float],
    forecast: Optional[Forecast],
    momentum: MomentumResult,
    hold_threshold: float = DEFAULT_HOLD_THRESHOLD,
) -> EdgeResult:
    model = calculate_model_probability(momentum.score, momentum.acceleration_score, forecast)
    market = _usable_market_probability(market_probability)

    edge_percent: Optional[float] = None
    if market is not None:
        edge_percent, _, _ = calculate_edge(market, model.probability)
    direction, strength = classify_signal(edge_percent, hold_threshold)

    return EdgeResult(
        title_id=forecast.title_id if forecast is not None else momentum.title_id,
        model_probability=model.probability,
        market_probability=market,
        edge_percent=edge_percent,
        direction=direction,
        strength=strength,
        reasoning=generate_reasoning(
            direction,
            edge_percent,
            momentum.score,
            momentum.acceleration_score,
            forecast,
            market,
            hold_threshold,
        ),
        components=model,
    )


def filter_significant_edges(
    edges: Iterable[EdgeResult],
    min_edge_percent: float = DEFAULT_MIN_SIGNIFICANT_EDGE,
) -> List[EdgeResult]:
    significant = [e for e in edges if e.edge_percent is not None and abs(e.edge_percent) >= min_edge_percent]
    return sorted(significant, key=lambda e: abs(e.edge_percent), reverse=True)


def _signal_reasons(
    direction: str,
    momentum_score: float,
    acceleration_score: float,
    forecast: Optional[Forecast],
    market_probability: Optional[float],
) -> List[str]:
    rank = forecast if forecast is not None and forecast.target == TARGET_RANK else None
    pattern = forecast.pattern if forecast is not None else ""
    reasons: List[str] = []

    if direction == DIRECTION_BUY:
        if rank is not None and rank.p50 <= 2:
            reasons.append(f"Model forecasts #{int(rank.p50)} rank")
        if momentum_score >= 70:
            reasons.append(f"High momentum ({int(momentum_score)})")
        elif momentum_score >= 55:
            reasons.append(f"Good momentum ({int(momentum_score)})")
        if acceleration_score > 10:
            reasons.append("Trending up")
        if pattern == "climbing_fast":
            reasons.append("Climbing fast in charts")
        elif pattern == "climbing_slow":
            reasons.append("Steadily climbing")
        if rank is not None and rank.p90 <= 3:
            reasons.append(f"Even worst case is top {int(rank.p90)}")
        if market_probability is not None and market_probability < 0.1:
            reasons.append("Market undervaluing")
        return reasons

    if rank is not None and rank.p50 > 3:
        reasons.append(f"Model forecasts only #{int(rank.p50)}")
    if momentum_score < 40:
        reasons.append(f"Low momentum ({int(momentum_score)})")
    elif momentum_score < 55:
        reasons.append(f"Moderate momentum ({int(momentum_score)})")
    if acceleration_score < -10:
        reasons.append("Losing steam")
    if pattern == "falling_fast":
        reasons.append("Falling fast in charts")
    elif pattern == "falling_slow":
        reasons.append("Slowly declining")
    if rank is not None and rank.p10 > 2:
        reasons.append(f"Even best case is only #{int(rank.p10)}")
    if market_probability is not None and market_probability > 0.7:
        reasons.append("Market may be overconfident")
    return reasons


def _describe_band(forecast: Forecast) -> str:
    if forecast.target == TARGET_RANK:
        return f"forecast #{int(forecast.p50)} (#{int(forecast.p10)}-#{int(forecast.p90)})"
    return f"forecast {forecast.p50:,.0f} views ({forecast.p10:,.0f}-{forecast.p90:,.0f})"


def _strength(edge_percent: float) -> str:
    magnitude = abs(edge_percent)
    if magnitude >= STRONG_EDGE:
        return STRENGTH_STRONG
    if magnitude >= MODERATE_EDGE:
        return STRENGTH_MODERATE
    return STRENGTH_WEAK


def _usable_market_probability(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    if not _is_finite(value) or not 0.0 <= value <= 1.0:
        logger.debug("Ignoring unusable market probability %r", value)
        return None
    return float(value)


def _is_finite(value: Optional[float]) -> bool:
    if value is None:
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
