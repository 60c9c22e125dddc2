from __future__ import annotations

import math
import unittest
from datetime import date, timedelta

from title_edge.engine.forecaster import (
    PATTERN_CLIMBING_FAST,
    PATTERN_CLIMBING_SLOW,
    PATTERN_FALLING_FAST,
    PATTERN_FALLING_SLOW,
    PATTERN_INSUFFICIENT,
    PATTERN_PRE_RELEASE,
    PATTERN_STABLE,
    assign_confidence,
    classify_slope,
    fit_trend,
    forecast,
    next_week_boundary,
    pre_release_forecast,
)
from title_edge.engine.momentum import compute_momentum
from title_edge.models import CONFIDENCE_HIGH, CONFIDENCE_LOW, CONFIDENCE_MEDIUM, TARGET_VIEWERSHIP

WEDNESDAY = date(2025, 1, 15)


def _momentum(trends=None, previous=None):
    signals = {"title_id": "t1"}
    if trends is not None:
        signals["trends"] = trends
    return compute_momentum(signals, previous_score=previous)


class HorizonTests(unittest.TestCase):
    def test_next_sunday_after_weekday(self) -> None:
        self.assertEqual(next_week_boundary(WEDNESDAY), date(2025, 1, 19))
        self.assertEqual(next_week_boundary(date(2025, 1, 18)), date(2025, 1, 19))

    def test_sunday_moves_a_full_week(self) -> None:
        self.assertEqual(next_week_boundary(date(2025, 1, 12)), date(2025, 1, 19))

    def test_other_boundary_weekday(self) -> None:
        # Monday boundary from a Monday.
        self.assertEqual(next_week_boundary(date(2025, 1, 13), weekday=0), date(2025, 1, 20))

    def test_forecast_window(self) -> None:
        result = forecast([3, 2], _momentum(50), evaluation_date=WEDNESDAY)
        self.assertEqual(result.week_start, date(2025, 1, 19))
        self.assertEqual(result.week_end, result.week_start + timedelta(days=6))
        self.assertEqual(result.evaluation_date, WEDNESDAY)


class TrendTests(unittest.TestCase):
    def test_improving_rank_is_climbing_fast(self) -> None:
        trend = fit_trend([5, 4, 3, 2, 1])
        self.assertAlmostEqual(trend.slope, -1.0)
        self.assertAlmostEqual(trend.intercept, 5.0)
        self.assertEqual(trend.pattern, PATTERN_CLIMBING_FAST)

    def test_flat_history_is_stable(self) -> None:
        trend = fit_trend([4, 4, 4, 4])
        self.assertAlmostEqual(trend.slope, 0.0)
        self.assertEqual(trend.pattern, PATTERN_STABLE)

    def test_short_history_is_insufficient(self) -> None:
        self.assertEqual(fit_trend([]).pattern, PATTERN_INSUFFICIENT)
        single = fit_trend([7])
        self.assertEqual(single.pattern, PATTERN_INSUFFICIENT)
        self.assertEqual(single.slope, 0.0)
        self.assertEqual(single.intercept, 7.0)

    def test_slope_ladder_boundaries(self) -> None:
        self.assertEqual(classify_slope(-0.5), PATTERN_CLIMBING_FAST)
        self.assertEqual(classify_slope(-0.1), PATTERN_CLIMBING_SLOW)
        self.assertEqual(classify_slope(-0.09), PATTERN_STABLE)
        self.assertEqual(classify_slope(0.09), PATTERN_STABLE)
        self.assertEqual(classify_slope(0.1), PATTERN_FALLING_SLOW)
        self.assertEqual(classify_slope(0.5), PATTERN_FALLING_FAST)

    def test_higher_is_better_flips_pattern(self) -> None:
        self.assertEqual(fit_trend([1, 2, 3, 4], higher_is_better=True).pattern, PATTERN_CLIMBING_FAST)


class ConfidenceTests(unittest.TestCase):
    def test_confidence_ladder(self) -> None:
        self.assertEqual(assign_confidence(4, True), CONFIDENCE_HIGH)
        self.assertEqual(assign_confidence(4, False), CONFIDENCE_MEDIUM)
        self.assertEqual(assign_confidence(1, True), CONFIDENCE_MEDIUM)
        self.assertEqual(assign_confidence(3, False), CONFIDENCE_LOW)


class RankForecastTests(unittest.TestCase):
    def test_climbing_title(self) -> None:
        result = forecast([5, 4, 3, 2, 1], _momentum(50), evaluation_date=WEDNESDAY)
        self.assertEqual(result.pattern, PATTERN_CLIMBING_FAST)
        self.assertEqual(result.confidence, CONFIDENCE_HIGH)
        self.assertEqual((result.p10, result.p50, result.p90), (1.0, 1.0, 3.0))
        self.assertAlmostEqual(result.uncertainty, math.sqrt(2))
        self.assertEqual(result.history_points, 5)

    def test_band_is_ordered_and_bounded(self) -> None:
        histories = ([], [1], [10], [10, 1], [1, 10, 1, 10], [9, 9, 10, 10, 10], [2, 3, 8, 1])
        for history in histories:
            for momentum in (_momentum(), _momentum(0), _momentum(100)):
                result = forecast(history, momentum, evaluation_date=WEDNESDAY)
                self.assertLessEqual(result.p10, result.p50, history)
                self.assertLessEqual(result.p50, result.p90, history)
                self.assertGreaterEqual(result.p10, 1)
                self.assertLessEqual(result.p90, 10)

    def test_momentum_pulls_rank_toward_first(self) -> None:
        hot = forecast([5, 5, 5, 5], _momentum(100), evaluation_date=WEDNESDAY)
        cold = forecast([5, 5, 5, 5], _momentum(), evaluation_date=WEDNESDAY)
        self.assertEqual(hot.p50, 4.0)
        self.assertEqual(cold.p50, 7.0)
        self.assertAlmostEqual(hot.momentum_adjustment, 1.5)
        self.assertEqual(cold.confidence, CONFIDENCE_MEDIUM)

    def test_single_point_widens_band(self) -> None:
        result = forecast([4], _momentum(50), evaluation_date=WEDNESDAY)
        self.assertEqual(result.pattern, PATTERN_INSUFFICIENT)
        self.assertEqual(result.uncertainty, 3.0)
        self.assertEqual((result.p10, result.p50, result.p90), (1.0, 4.0, 8.0))

    def test_history_points_are_ordered_by_period(self) -> None:
        history = [
            {"periodIndex": 2, "value": 1},
            {"periodIndex": 0, "value": 3},
            {"period_index": 1, "value": 2},
        ]
        result = forecast(history, _momentum(50), evaluation_date=WEDNESDAY)
        self.assertAlmostEqual(result.slope, -1.0)

    def test_non_finite_history_is_skipped(self) -> None:
        history = [{"period_index": 0, "value": 3}, {"period_index": 1, "value": math.nan}]
        result = forecast(history, _momentum(50), evaluation_date=WEDNESDAY)
        self.assertEqual(result.history_points, 1)


class ViewershipForecastTests(unittest.TestCase):
    def test_log_linear_growth(self) -> None:
        result = forecast([1000, 2000, 4000, 8000], _momentum(50), target=TARGET_VIEWERSHIP, evaluation_date=WEDNESDAY)
        self.assertEqual(result.p50, 16000.0)
        self.assertEqual(result.pattern, PATTERN_CLIMBING_FAST)
        self.assertLessEqual(result.p10, result.p50)
        self.assertLessEqual(result.p50, result.p90)

    def test_momentum_scales_views(self) -> None:
        result = forecast([1000, 2000, 4000, 8000], _momentum(70), target="viewership", evaluation_date=WEDNESDAY)
        self.assertEqual(result.p50, 17600.0)
        self.assertAlmostEqual(result.momentum_adjustment, math.log(1.1))

    def test_non_positive_values_are_dropped(self) -> None:
        result = forecast([0, -5, 2500], _momentum(50), target=TARGET_VIEWERSHIP, evaluation_date=WEDNESDAY)
        self.assertEqual(result.history_points, 1)
        self.assertEqual(result.p50, 2500.0)
        self.assertLess(result.p10, result.p50)
        self.assertGreater(result.p90, result.p50)

    def test_empty_history(self) -> None:
        result = forecast([], _momentum(50), target=TARGET_VIEWERSHIP, evaluation_date=WEDNESDAY)
        self.assertEqual(result.pattern, PATTERN_INSUFFICIENT)
        self.assertEqual((result.p10, result.p50, result.p90), (0.0, 0.0, 0.0))


class PreReleaseForecastTests(unittest.TestCase):
    def test_momentum_ladder(self) -> None:
        strong = pre_release_forecast(_momentum(85), evaluation_date=WEDNESDAY)
        self.assertEqual(strong.p50, 1.0)
        self.assertEqual(strong.pattern, PATTERN_PRE_RELEASE)
        self.assertEqual(strong.confidence, CONFIDENCE_MEDIUM)
        self.assertEqual(strong.uncertainty, 2.5)

        weak = pre_release_forecast(_momentum(), evaluation_date=WEDNESDAY)
        self.assertEqual(weak.p50, 9.0)
        self.assertEqual(weak.confidence, CONFIDENCE_LOW)
        self.assertEqual(weak.uncertainty, 3.5)

    def test_rank_forecast_without_history_uses_momentum_ladder(self) -> None:
        momentum = _momentum(85)
        expected = pre_release_forecast(momentum, evaluation_date=WEDNESDAY)
        self.assertEqual(forecast([], momentum, evaluation_date=WEDNESDAY), expected)

        only_gaps = [{"period_index": 0, "value": math.nan}]
        result = forecast(only_gaps, _momentum(), evaluation_date=WEDNESDAY)
        self.assertEqual(result.pattern, PATTERN_PRE_RELEASE)
        self.assertEqual(result.uncertainty, 3.5)
        self.assertEqual(result.history_points, 0)


if __name__ == "__main__":
    unittest.main()
