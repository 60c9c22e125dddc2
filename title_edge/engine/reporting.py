from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from title_edge.models import TARGET_RANK, Forecast, OutcomeEvaluation


def evaluation_to_doc(evaluation: OutcomeEvaluation) -> Dict:
    doc = evaluation.model_dump(mode="json")
    doc["outcome_name"] = evaluation.match.outcome_name
    return doc


def evaluations_to_doc(evaluations: Iterable[OutcomeEvaluation], generated_at: Optional[datetime] = None) -> Dict:
    rows = [evaluation_to_doc(e) for e in evaluations]
    return {
        "generated_at": (generated_at or datetime.now(timezone.utc)).isoformat(),
        "outcome_count": len(rows),
        "matched_count": sum(1 for r in rows if r["match"]["matched_title_id"]),
        "evaluations": rows,
    }


def format_evaluations_text(evaluations: Iterable[OutcomeEvaluation]) -> str:
    evaluations = list(evaluations)
    lines: List[str] = ["Title Edge Report", ""]
    if not evaluations:
        lines.append("No outcomes evaluated.")
        return "\n".join(lines)

    for i, evaluation in enumerate(evaluations, start=1):
        match = evaluation.match
        if not match.matched_title_id:
            lines.append(f"{i}. {match.outcome_name} | no matching title")
            continue

        edge = evaluation.edge
        header = f"{i}. {match.outcome_name} -> {match.matched_title_name} ({match.match_confidence.lower()}"
        if match.distance:
            header += f", distance {match.distance}"
        header += ")"
        lines.append(header)

        if evaluation.momentum is not None:
            m = evaluation.momentum
            line = f"   Momentum: {m.score} | acceleration {m.acceleration_score:+.0f}"
            if m.breakdown.track_record is not None:
                line += f" | track record {m.breakdown.track_record.creator} (+{m.breakdown.track_record.boost})"
            lines.append(line)
        if evaluation.forecast is not None:
            lines.append(f"   Forecast: {_forecast_line(evaluation.forecast)}")
        if edge is not None:
            market = f"{edge.market_probability:.1%}" if edge.market_probability is not None else "n/a"
            edge_text = f"{edge.edge_percent:+.1f} pts" if edge.edge_percent is not None else "n/a"
            lines.append(
                f"   Signal: {edge.direction} {edge.strength.lower()} | model {edge.model_probability:.1%} "
                f"vs market {market} | edge {edge_text}"
            )
            lines.append(f"   Why: {edge.reasoning}")

    lines.append("")
    lines.append("Decision support only, not investment advice.")
    return "\n".join(lines)


def _forecast_line(forecast: Forecast) -> str:
    window = f"week of {forecast.week_start.isoformat()}"
    if forecast.target == TARGET_RANK:
        band = f"#{forecast.p50:.0f} (p10 #{forecast.p10:.0f}, p90 #{forecast.p90:.0f})"
    else:
        band = f"{forecast.p50:,.0f} views (p10 {forecast.p10:,.0f}, p90 {forecast.p90:,.0f})"
    return f"{band} | {forecast.pattern} | {forecast.confidence.lower()} confidence | {window}"
