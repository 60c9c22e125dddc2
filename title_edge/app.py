from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from title_edge.config import get_settings
from title_edge.engine.pipeline import evaluate_outcomes
from title_edge.engine.reporting import evaluations_to_doc, format_evaluations_text
from title_edge.models import TARGET_RANK, HistoryPoint, OutcomeEvaluation, SignalSet, TitleSnapshotEntry
from title_edge.utils.logging import configure_logging

logger = logging.getLogger(__name__)


class ScenarioOutcome(BaseModel):
    name: str
    probability: Optional[float] = None


class Scenario(BaseModel):
    """A self-contained evaluation input: known titles, market outcomes and their signals."""

    model_config = ConfigDict(populate_by_name=True)

    evaluation_date: Optional[date] = Field(default=None, alias="evaluationDate")
    target: str = TARGET_RANK
    titles: List[TitleSnapshotEntry] = Field(default_factory=list)
    outcomes: List[ScenarioOutcome] = Field(default_factory=list)
    signals: Dict[str, SignalSet] = Field(default_factory=dict)
    history: Dict[str, List[HistoryPoint]] = Field(default_factory=dict)
    previous_scores: Dict[str, float] = Field(default_factory=dict, alias="previousScores")

    @field_validator("outcomes", mode="before")
    @classmethod
    def _outcomes_from_mapping(cls, value):
        if isinstance(value, dict):
            return [{"name": k, "probability": v} for k, v in value.items()]
        return value

    @field_validator("history", mode="before")
    @classmethod
    def _history_from_values(cls, value):
        # Bare number lists are read as consecutive periods.
        if not isinstance(value, dict):
            return value
        out = {}
        for title_id, rows in value.items():
            out[title_id] = [
                {"period_index": i, "value": row} if isinstance(row, (int, float)) else row
                for i, row in enumerate(rows or [])
            ]
        return out


def load_scenario(path: Union[str, Path]) -> Scenario:
    raw = Path(path).read_text(encoding="utf-8")
    return Scenario.model_validate(json.loads(raw))


def run_scenario(scenario: Scenario) -> List[OutcomeEvaluation]:
    settings = get_settings()
    outcomes: Dict[str, Optional[float]] = {o.name: o.probability for o in scenario.outcomes}
    return evaluate_outcomes(
        outcomes,
        scenario.titles,
        signals_by_title=scenario.signals,
        history_by_title=scenario.history,
        previous_scores=scenario.previous_scores,
        target=scenario.target,
        evaluation_date=scenario.evaluation_date,
        weights=settings.momentum_weights(),
        settings=settings,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Streaming title forecast and market edge engine")
    parser.add_argument("--scenario", required=True, help="JSON file with titles, outcomes, signals and history")
    parser.add_argument("--json", action="store_true", help="Print evaluations as JSON instead of a text report")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    try:
        scenario = load_scenario(args.scenario)
        evaluations = run_scenario(scenario)
    except (OSError, ValueError) as exc:
        logger.error("Could not evaluate scenario", extra={"path": args.scenario, "error": str(exc)})
        return 2

    if args.json:
        print(json.dumps(evaluations_to_doc(evaluations), indent=2))
    else:
        print(format_evaluations_text(evaluations))
    logger.info("Scenario complete", extra={"outcomes": len(evaluations)})
    return 0


if __name__ == "__main__":
    sys.exit(main())
