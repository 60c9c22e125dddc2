from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MEDIA_SHOW = "SHOW"
MEDIA_MOVIE = "MOVIE"

MATCH_EXACT = "EXACT"
MATCH_FUZZY = "FUZZY"
MATCH_NONE = "NONE"

TARGET_RANK = "RANK"
TARGET_VIEWERSHIP = "VIEWERSHIP"

CONFIDENCE_LOW = "LOW"
CONFIDENCE_MEDIUM = "MEDIUM"
CONFIDENCE_HIGH = "HIGH"

DIRECTION_BUY = "BUY"
DIRECTION_AVOID = "AVOID"
DIRECTION_HOLD = "HOLD"

STRENGTH_STRONG = "STRONG"
STRENGTH_MODERATE = "MODERATE"
STRENGTH_WEAK = "WEAK"

WEIGHT_SUM_TOLERANCE = 0.01


class NormalizedTitle(BaseModel):
    original: str
    canonical: str
    normalized: str
    season: Optional[int] = None
    title_key: str
    media_kind: str = MEDIA_SHOW


class CanonicalTitle(BaseModel):
    id: str
    canonical_name: str
    media_kind: str = MEDIA_SHOW
    aliases: List[str] = Field(default_factory=list)
    title_key: str


class TitleSnapshotEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    canonical_name: str = Field(alias="canonicalName")
    aliases: Optional[List[str]] = None
    media_kind: str = Field(default=MEDIA_SHOW, alias="mediaKind")

    @field_validator("aliases", mode="before")
    @classmethod
    def _keep_string_aliases(cls, value):
        # Snapshot rows come from loosely typed stores; anything but text is not an alias.
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return [a for a in value if isinstance(a, str)]
        return None


class OutcomeMatch(BaseModel):
    outcome_name: str
    matched_title_id: Optional[str] = None
    matched_title_name: Optional[str] = None
    match_confidence: str = MATCH_NONE
    distance: Optional[int] = None


class SignalSet(BaseModel):
    """Named observations for one title and one period, as handed over by the ingest layer."""

    model_config = ConfigDict(populate_by_name=True)

    title_id: str = ""
    period_start: Optional[date] = None
    trends: Optional[float] = None
    wiki_views: Optional[float] = Field(default=None, alias="wikiViews")
    rank_delta: Optional[float] = Field(default=None, alias="rankDelta")
    current_rank: Optional[float] = None
    previous_rank: Optional[float] = None

    def effective_rank_delta(self) -> Optional[float]:
        if self.rank_delta is not None:
            return self.rank_delta
        if self.current_rank is None or self.previous_rank is None:
            return None
        # Climbing from #5 to #2 is +3.
        return self.previous_rank - self.current_rank


class MomentumWeights(BaseModel):
    trends_weight: float = Field(default=0.33, ge=0.0)
    wikipedia_weight: float = Field(default=0.33, ge=0.0)
    rank_delta_weight: float = Field(default=0.34, ge=0.0)

    @model_validator(mode="after")
    def _check_sum(self) -> "MomentumWeights":
        total = self.trends_weight + self.wikipedia_weight + self.rank_delta_weight
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"momentum weights must sum to 1 (+/-{WEIGHT_SUM_TOLERANCE}), got {total:.4f}")
        return self


class SignalContribution(BaseModel):
    raw: Optional[float] = None
    normalized: Optional[float] = None
    weight: float = 0.0
    contribution: float = 0.0
    present: bool = False


class TrackRecordBoost(BaseModel):
    creator: str
    hit_rate: float
    boost: int
    reason: str = ""


class MomentumBreakdown(BaseModel):
    trends: SignalContribution
    wiki_views: SignalContribution
    rank_delta: SignalContribution
    weights: MomentumWeights
    total_weight: float = 0.0
    weighted_score: float = 0.0
    track_record: Optional[TrackRecordBoost] = None
    total_score: int = 0


class MomentumResult(BaseModel):
    title_id: str = ""
    score: int = Field(default=0, ge=0, le=100)
    acceleration_score: float = Field(default=0.0, ge=-100.0, le=100.0)
    previous_score: Optional[float] = None
    breakdown: MomentumBreakdown

    @property
    def has_live_signal(self) -> bool:
        return self.breakdown.trends.present or self.breakdown.wiki_views.present


class HistoryPoint(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    period_index: int = Field(alias="periodIndex")
    value: float


class TrendFit(BaseModel):
    slope: float
    intercept: Optional[float] = None
    pattern: str
    points: int = 0


class Forecast(BaseModel):
    model_config = ConfigDict(frozen=True)

    title_id: str = ""
    target: str = TARGET_RANK
    evaluation_date: date
    week_start: date
    week_end: date
    p10: float
    p50: float
    p90: float
    confidence: str = CONFIDENCE_LOW
    pattern: str
    slope: float = 0.0
    intercept: Optional[float] = None
    uncertainty: float = 0.0
    momentum_adjustment: Optional[float] = None
    momentum_score: int = 0
    acceleration_score: float = 0.0
    history_points: int = 0


class ModelProbability(BaseModel):
    probability: float = Field(ge=0.0, le=1.0)
    momentum_component: float = 0.0
    rank_forecast_component: float = 0.0
    acceleration_bonus: float = 0.0
    confidence_multiplier: float = 1.0


class EdgeResult(BaseModel):
    title_id: str = ""
    model_probability: float = Field(ge=0.0, le=1.0)
    market_probability: Optional[float] = None
    edge_percent: Optional[float] = None
    direction: str = DIRECTION_HOLD
    strength: str = STRENGTH_WEAK
    reasoning: str = ""
    components: Optional[ModelProbability] = None


class MarketMomentumSignal(BaseModel):
    direction: str
    strength: str
    score: float
    price_change_24h: Optional[float] = None
    price_change_7d: Optional[float] = None
    reasoning: str = ""


class OutcomeEvaluation(BaseModel):
    match: OutcomeMatch
    market_probability: Optional[float] = None
    momentum: Optional[MomentumResult] = None
    forecast: Optional[Forecast] = None
    edge: Optional[EdgeResult] = None


class PricePoint(BaseModel):
    timestamp: datetime
    probability: float
