from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from title_edge.models import MomentumWeights


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    momentum_trends_weight: float = Field(default=0.33, alias="MOMENTUM_TRENDS_WEIGHT")
    momentum_wikipedia_weight: float = Field(default=0.33, alias="MOMENTUM_WIKIPEDIA_WEIGHT")
    momentum_rank_delta_weight: float = Field(default=0.34, alias="MOMENTUM_RANK_DELTA_WEIGHT")
    breakout_threshold: int = Field(default=60, alias="BREAKOUT_THRESHOLD")
    track_record_boost_scale: float = Field(default=45.0, alias="TRACK_RECORD_BOOST_SCALE")

    fuzzy_max_distance: int = Field(default=3, alias="FUZZY_MAX_DISTANCE")
    # 0 disables the length-relative cap.
    fuzzy_max_distance_ratio: float = Field(default=0.0, alias="FUZZY_MAX_DISTANCE_RATIO")

    forecast_boundary_weekday: int = Field(default=6, alias="FORECAST_BOUNDARY_WEEKDAY")

    edge_hold_threshold: float = Field(default=5.0, alias="EDGE_HOLD_THRESHOLD")
    min_significant_edge: float = Field(default=10.0, alias="MIN_SIGNIFICANT_EDGE")

    def momentum_weights(self) -> MomentumWeights:
        return MomentumWeights(
            trends_weight=self.momentum_trends_weight,
            wikipedia_weight=self.momentum_wikipedia_weight,
            rank_delta_weight=self.momentum_rank_delta_weight,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
