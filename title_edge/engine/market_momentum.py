from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Mapping, Optional, Union

from title_edge.models import (
    DIRECTION_AVOID,
    DIRECTION_BUY,
    STRENGTH_MODERATE,
    STRENGTH_STRONG,
    STRENGTH_WEAK,
    MarketMomentumSignal,
    PricePoint,
)

logger = logging.getLogger(__name__)

DAY = timedelta(days=1)
WEEK = timedelta(days=7)
STRONG_SCORE = 15.0
MODERATE_SCORE = 5.0
HIGH_VOLUME = 50_000

PriceInput = Union[PricePoint, Mapping[str, object]]


def price_change(
    history: Iterable[PriceInput],
    now: Optional[datetime] = None,
    window: timedelta = DAY,
) -> Optional[float]:
    """Change in percentage points between the latest price and the last one at or before ``now - window``."""
    now = _aware(now or datetime.now(timezone.utc))
    points = _clean_prices(history, now)
    if len(points) < 2:
        return None

    cutoff = now - window
    older = [p for p in points if p.timestamp <= cutoff]
    if not older:
        return None

    change = (points[-1].probability - older[-1].probability) * 100
    return round(change, 1)


def calculate_momentum_score(change_24h: Optional[float], change_7d: Optional[float]) -> float:
    # The last day counts four times as much as the week.
    return (change_24h or 0.0) * 2 + (change_7d or 0.0) * 0.5


def market_momentum_signal(
    change_24h: Optional[float],
    change_7d: Optional[float],
    market_probability: float,
    volume: float = 0.0,
) -> MarketMomentumSignal:
    score = calculate_momentum_score(change_24h, change_7d)
    direction = DIRECTION_BUY if score > 0 else DIRECTION_AVOID
    magnitude = abs(score)
    if magnitude >= STRONG_SCORE:
        strength = STRENGTH_STRONG
    elif magnitude >= MODERATE_SCORE:
        strength = STRENGTH_MODERATE
    else:
        strength = STRENGTH_WEAK

    return MarketMomentumSignal(
        direction=direction,
        strength=strength,
        score=score,
        price_change_24h=change_24h,
        price_change_7d=change_7d,
        reasoning=generate_momentum_reasoning(direction, change_24h, change_7d, market_probability, volume),
    )


def generate_momentum_reasoning(
    direction: str,
    change_24h: Optional[float],
    change_7d: Optional[float],
    market_probability: float,
    volume: float = 0.0,
) -> str:
    reasons: List[str] = []
    if direction == DIRECTION_BUY:
        if change_24h is not None and change_24h > 5:
            reasons.append(f"Price up {change_24h:.1f}% (24h)")
        elif change_24h is not None and change_24h > 2:
            reasons.append(f"Price rising ({change_24h:.1f}% 24h)")
        if change_7d is not None and change_7d > 10:
            reasons.append(f"Strong weekly trend (+{change_7d:.1f}%)")
        if market_probability < 0.15 and change_24h is not None and change_24h > 0:
            reasons.append("Low odds, gaining momentum")
        if volume and volume > HIGH_VOLUME:
            reasons.append("High trading volume")
    else:
        if change_24h is not None and change_24h < -5:
            reasons.append(f"Price down {abs(change_24h):.1f}% (24h)")
        elif change_24h is not None and change_24h < -2:
            reasons.append(f"Price falling ({change_24h:.1f}% 24h)")
        if change_7d is not None and change_7d < -10:
            reasons.append(f"Weak weekly trend ({change_7d:.1f}%)")
        if market_probability > 0.5 and change_24h is not None and change_24h < 0:
            reasons.append("High odds, losing momentum")

    if not reasons:
        return "Market price trending up" if direction == DIRECTION_BUY else "Market price trending down"
    return " | ".join(reasons[:3])


def _clean_prices(history: Iterable[PriceInput], now: datetime) -> List[PricePoint]:
    points: List[PricePoint] = []
    for row in history or []:
        point = row if isinstance(row, PricePoint) else PricePoint.model_validate(dict(row))
        if not math.isfinite(point.probability):
            logger.debug("Skipping non-finite price at %s", point.timestamp)
            continue
        point = point.model_copy(update={"timestamp": _aware(point.timestamp)})
        if point.timestamp > now:
            continue
        points.append(point)
    points.sort(key=lambda p: p.timestamp)
    return points


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
