from __future__ import annotations

import math
import unittest

from pydantic import ValidationError

from title_edge.engine.momentum import (
    breakouts,
    calculate_growth_pct,
    calculate_rank_delta,
    compute_acceleration,
    compute_momentum,
    normalize_page_views,
    normalize_rank_delta,
    top_movers,
)
from title_edge.knowledge.creator_track_record import creator_momentum_boost, get_creator_track_record
from title_edge.models import MomentumWeights, SignalSet

TRENDS_ONLY = MomentumWeights(trends_weight=1.0, wikipedia_weight=0.0, rank_delta_weight=0.0)


class MomentumScoreTests(unittest.TestCase):
    def test_no_signals_scores_zero(self) -> None:
        result = compute_momentum(SignalSet(title_id="t1"))
        self.assertEqual(result.score, 0)
        self.assertEqual(result.breakdown.total_weight, 0.0)
        self.assertFalse(result.has_live_signal)

    def test_single_full_signal_scores_hundred(self) -> None:
        result = compute_momentum({"title_id": "t1", "trends": 100}, weights=TRENDS_ONLY)
        self.assertEqual(result.score, 100)
        self.assertTrue(result.breakdown.trends.present)

    def test_missing_signals_are_renormalized(self) -> None:
        result = compute_momentum({"trends": 80})
        self.assertEqual(result.score, 80)
        self.assertAlmostEqual(result.breakdown.total_weight, 0.33)

    def test_weighted_blend(self) -> None:
        result = compute_momentum({"trends": 80, "wikiViews": 100_000, "rankDelta": 0})
        # (80 * .33 + 50 * .33 + 50 * .34) / 1.0 = 59.9
        self.assertAlmostEqual(result.breakdown.weighted_score, 59.9)
        self.assertEqual(result.score, 60)

    def test_rank_delta_from_ranks(self) -> None:
        signals = SignalSet(title_id="t1", current_rank=2, previous_rank=5)
        result = compute_momentum(signals)
        self.assertEqual(result.breakdown.rank_delta.raw, 3.0)
        self.assertEqual(result.score, 65)

    def test_non_finite_values_are_absent(self) -> None:
        result = compute_momentum({"trends": math.nan, "wikiViews": math.inf, "rankDelta": 10})
        self.assertFalse(result.breakdown.trends.present)
        self.assertFalse(result.breakdown.wiki_views.present)
        self.assertEqual(result.score, 100)

    def test_zero_page_views_are_absent(self) -> None:
        result = compute_momentum({"wikiViews": 0})
        self.assertFalse(result.breakdown.wiki_views.present)
        self.assertEqual(result.score, 0)

    def test_scores_stay_in_range(self) -> None:
        for signals in ({"trends": 1000}, {"trends": -50}, {"rankDelta": 99}, {"rankDelta": -99}):
            result = compute_momentum(signals, previous_score=0)
            self.assertGreaterEqual(result.score, 0)
            self.assertLessEqual(result.score, 100)
            self.assertGreaterEqual(result.acceleration_score, -100)
            self.assertLessEqual(result.acceleration_score, 100)

    def test_track_record_boost_is_added_and_reported(self) -> None:
        boost = creator_momentum_boost("Fool Me Once")
        self.assertIsNotNone(boost)
        self.assertEqual(boost.creator, "Harlan Coben")
        self.assertEqual(boost.boost, 43)

        result = compute_momentum({"trends": 40}, track_record=boost)
        self.assertAlmostEqual(result.breakdown.weighted_score, 40)
        self.assertEqual(result.score, 83)
        self.assertEqual(result.breakdown.track_record.creator, "Harlan Coben")

        capped = compute_momentum({"trends": 80}, track_record=boost)
        self.assertEqual(capped.score, 100)

    def test_acceleration_against_previous_score(self) -> None:
        result = compute_momentum({"trends": 70}, previous_score=50)
        self.assertEqual(result.acceleration_score, 40)
        self.assertEqual(compute_momentum({"trends": 70}).acceleration_score, 0)


class WeightValidationTests(unittest.TestCase):
    def test_weights_must_sum_to_one(self) -> None:
        with self.assertRaises(ValidationError):
            MomentumWeights(trends_weight=0.5, wikipedia_weight=0.5, rank_delta_weight=0.5)

    def test_negative_weight_rejected(self) -> None:
        with self.assertRaises(ValueError):
            MomentumWeights(trends_weight=1.2, wikipedia_weight=-0.2, rank_delta_weight=0.0)

    def test_small_rounding_tolerated(self) -> None:
        weights = MomentumWeights(trends_weight=0.333, wikipedia_weight=0.333, rank_delta_weight=0.333)
        self.assertAlmostEqual(weights.trends_weight, 0.333)


class HelperTests(unittest.TestCase):
    def test_compute_acceleration(self) -> None:
        self.assertEqual(compute_acceleration(70, 50), 40)
        self.assertEqual(compute_acceleration(100, 0), 100)
        self.assertEqual(compute_acceleration(0, 100), -100)
        self.assertEqual(compute_acceleration(50, None), 0)
        self.assertEqual(compute_acceleration(50, math.nan), 0)

    def test_normalizers(self) -> None:
        self.assertAlmostEqual(normalize_page_views(1_000_000), 60.0)
        self.assertEqual(normalize_page_views(10**12), 100.0)
        self.assertIsNone(normalize_page_views(-5))
        self.assertEqual(normalize_rank_delta(0), 50.0)
        self.assertEqual(normalize_rank_delta(-25), 0.0)

    def test_rank_delta_and_growth(self) -> None:
        self.assertEqual(calculate_rank_delta(2, 5), 3)
        self.assertIsNone(calculate_rank_delta(None, 5))
        self.assertEqual(calculate_growth_pct(150, 100), 50)
        self.assertIsNone(calculate_growth_pct(150, 0))

    def test_top_movers_and_breakouts(self) -> None:
        quiet = compute_momentum({"title_id": "quiet", "trends": 0})
        rising = compute_momentum({"title_id": "rising", "trends": 75}, previous_score=50)
        steady = compute_momentum({"title_id": "steady", "trends": 90}, previous_score=90)
        surging = compute_momentum({"title_id": "surging", "trends": 65}, previous_score=20)

        movers = top_movers([quiet, rising, steady, surging], limit=2)
        self.assertEqual([m.title_id for m in movers], ["steady", "rising"])

        hits = breakouts([quiet, rising, steady, surging])
        self.assertEqual([h.title_id for h in hits], ["surging", "rising"])


class CreatorTrackRecordTests(unittest.TestCase):
    def test_longest_title_wins(self) -> None:
        creator, _ = get_creator_track_record("You Are So Not Invited")
        self.assertEqual(creator, "Happy Madison")

    def test_alias_lookup_and_word_boundaries(self) -> None:
        creator, _ = get_creator_track_record("Unknown Working Title", aliases=["Bridgerton: Season 4"])
        self.assertEqual(creator, "Shonda Rhimes")
        self.assertIsNone(get_creator_track_record("Safety Not Guaranteed"))
        self.assertIsNone(creator_momentum_boost("A Brand New Show"))

    def test_short_titles_need_a_whole_title_match(self) -> None:
        self.assertIsNone(get_creator_track_record("I Know What You Did Last Summer"))
        self.assertIsNone(get_creator_track_record("Love You to Death"))
        self.assertIsNone(get_creator_track_record("Leo and the Lions"))

        creator, _ = get_creator_track_record("You: Season 4")
        self.assertEqual(creator, "Greg Berlanti")
        creator, _ = get_creator_track_record("Untitled Sandler Project", aliases=["Leo"])
        self.assertEqual(creator, "Happy Madison")

    def test_full_catalog_of_creators(self) -> None:
        expected = {
            "Leo": "Happy Madison",
            "The Mist": "Stephen King",
            "1922": "Stephen King",
            "6 Underground": "Michael Bay",
            "Don't Look Up": "Adam McKay",
            "White Noise": "Noah Baumbach",
            "Daisy Jones & The Six": "Taylor Jenkins Reid",
            "The Midnight Club": "Mike Flanagan",
            "Shelter": "Harlan Coben",
            "Monster": "Ryan Murphy",
            "Ugly Love": "Colleen Hoover",
        }
        for title, creator in expected.items():
            self.assertEqual(get_creator_track_record(title)[0], creator, title)

        boost = creator_momentum_boost("A Jenji Kohan Series", scale=20)
        self.assertEqual(boost.creator, "Jenji Kohan")
        self.assertEqual(boost.boost, 11)

    def test_scale_is_configurable(self) -> None:
        boost = creator_momentum_boost("Glass Onion", scale=20)
        self.assertEqual(boost.boost, 17)


if __name__ == "__main__":
    unittest.main()
