"""
Tests for the per-capacity signals: percent, color score, opacity.
Run: pytest tests/ -v
"""
from dataclasses import replace

import pytest


def _ex(ex_id="ex", contribution="high", focus=None, days7=0, days21=0, days_since=None):
    """Helper: one exercise entry as produced by build_buckets."""
    return {
        "id": ex_id,
        "name": ex_id,
        "contribution": contribution,
        "focus": focus,
        "last_done": None,
        "days_since": days_since,
        "days7": days7,
        "days21": days21,
    }


def _bucket(*exercises) -> dict:
    """Helper: minimal capacity bucket, multi-focus flagged like build_buckets does."""
    from rehab_coverage.buckets import group_exercises_by_focus
    exercises = list(exercises)
    return {
        "exercises": exercises,
        "multi_focus": len(group_exercises_by_focus(exercises)) > 1,
    }


# ═══════════════════════════════════════════════════════════════════════
# FOCUS COMBINATOR
# ═══════════════════════════════════════════════════════════════════════

class TestCombineWorstOthers:

    def test_single_focus_others_equals_worst(self):
        from rehab_coverage.signals import combine_worst_others
        result = combine_worst_others({"a": [50]}, lambda xs: xs[0])
        assert result == pytest.approx(50)

    def test_worst_biased_weighting(self):
        from rehab_coverage.signals import combine_worst_others
        result = combine_worst_others({"a": [100], "b": [0]}, lambda xs: xs[0])
        assert result == pytest.approx(40)

    def test_tied_worst_excluded_once(self):
        """[0, 0, 100] → worst 0, others mean(0, 100) = 50 → 20."""
        from rehab_coverage.signals import combine_worst_others
        result = combine_worst_others({"a": [0], "b": [0], "c": [100]}, lambda xs: xs[0])
        assert result == pytest.approx(20)

    def test_tie_result_independent_of_labels(self):
        from rehab_coverage.signals import combine_worst_others
        first = combine_worst_others({"z": [10], "a": [10], "m": [70]}, lambda xs: xs[0])
        second = combine_worst_others({"a": [10], "m": [70], "z": [10]}, lambda xs: xs[0])
        assert first == second

    def test_custom_weights(self):
        from rehab_coverage.config import COVERAGE_CONSTANTS
        from rehab_coverage.signals import combine_worst_others
        config = replace(COVERAGE_CONSTANTS, focus_worst_weight=1.0, focus_others_weight=0.0)
        result = combine_worst_others({"a": [100], "b": [30]}, lambda xs: xs[0], config)
        assert result == pytest.approx(30)


# ═══════════════════════════════════════════════════════════════════════
# PERCENT — 7-day density
# ═══════════════════════════════════════════════════════════════════════

class TestCalculatePercent:

    def test_empty_bucket(self):
        from rehab_coverage.signals import calculate_percent
        assert calculate_percent(_bucket()) == 0

    def test_full_week_high(self):
        from rehab_coverage.signals import calculate_percent
        assert calculate_percent(_bucket(_ex(days7=7))) == pytest.approx(100)

    def test_partial_week_high(self):
        from rehab_coverage.signals import calculate_percent
        assert calculate_percent(_bucket(_ex(days7=3))) == pytest.approx(300 / 7)

    def test_high_average_across_exercises(self):
        from rehab_coverage.signals import calculate_percent
        bucket = _bucket(_ex("a", days7=7), _ex("b", days7=0))
        assert calculate_percent(bucket) == pytest.approx(50)

    def test_medium_only_capped_at_50(self):
        from rehab_coverage.signals import calculate_percent
        bucket = _bucket(_ex("a", "medium", days7=7), _ex("b", "medium", days7=7))
        assert calculate_percent(bucket) == 50

    def test_medium_only_below_cap(self):
        from rehab_coverage.signals import calculate_percent
        bucket = _bucket(_ex("a", "medium", days7=2))
        assert calculate_percent(bucket) == pytest.approx(200 / 7)

    def test_medium_bonus_capped(self):
        """1 medium done all week on 1 high → 40% raw bonus, capped to 15."""
        from rehab_coverage.signals import calculate_percent
        bucket = _bucket(_ex("h", days7=0), _ex("m", "medium", days7=7))
        assert calculate_percent(bucket) == pytest.approx(15)

    def test_medium_bonus_below_cap(self):
        """bonus = 1/7 * 0.4 / 1 * 100 ≈ 5.71"""
        from rehab_coverage.signals import calculate_percent
        bucket = _bucket(_ex("h", days7=0), _ex("m", "medium", days7=1))
        assert calculate_percent(bucket) == pytest.approx(40 / 7)

    def test_total_clamped_to_100(self):
        from rehab_coverage.signals import calculate_percent
        bucket = _bucket(_ex("h", days7=7), _ex("m", "medium", days7=7))
        assert calculate_percent(bucket) == 100

    def test_low_never_counts(self):
        from rehab_coverage.signals import calculate_percent
        bucket = _bucket(_ex("h", days7=0), _ex("l", "low", days7=7))
        assert calculate_percent(bucket) == 0

    def test_multi_focus_split(self):
        from rehab_coverage.signals import calculate_percent
        bucket = _bucket(
            _ex("a", focus="anti_rotation", days7=7),
            _ex("b", focus="anti_extension", days7=0),
        )
        assert bucket["multi_focus"] is True
        assert calculate_percent(bucket) == pytest.approx(40)

    def test_multi_focus_general_counts_as_focus(self):
        from rehab_coverage.signals import calculate_percent
        bucket = _bucket(_ex("a", focus="anti_rotation", days7=0), _ex("b", days7=7))
        assert calculate_percent(bucket) == pytest.approx(40)


# ═══════════════════════════════════════════════════════════════════════
# COLOR SCORE — recency
# ═══════════════════════════════════════════════════════════════════════

class TestDaysToColorScore:

    @pytest.mark.parametrize("days,expected", [
        (0, 100), (1, 85), (2, 60), (3, 35), (4, 15),
        (5, 13), (6, 11), (11, 1), (12, 0), (100, 0),
    ])
    def test_table(self, days, expected):
        from rehab_coverage.signals import days_to_color_score
        assert days_to_color_score(days) == expected

    def test_monotonic(self):
        from rehab_coverage.signals import days_to_color_score
        scores = [days_to_color_score(d) for d in range(40)]
        assert scores == sorted(scores, reverse=True)


class TestCalculateColorScore:

    def test_empty_bucket(self):
        from rehab_coverage.signals import calculate_color_score
        assert calculate_color_score(_bucket()) == 0

    def test_never_done(self):
        from rehab_coverage.signals import calculate_color_score
        assert calculate_color_score(_bucket(_ex(days_since=None))) == 0

    def test_worst_exercise_decides(self):
        from rehab_coverage.signals import calculate_color_score
        bucket = _bucket(_ex("a", days_since=1), _ex("b", days_since=3))
        assert calculate_color_score(bucket) == 35

    def test_one_never_done_zeroes_tier(self):
        from rehab_coverage.signals import calculate_color_score
        bucket = _bucket(_ex("a", days_since=0), _ex("b", days_since=None))
        assert calculate_color_score(bucket) == 0

    def test_medium_fallback(self):
        from rehab_coverage.signals import calculate_color_score
        bucket = _bucket(_ex("m", "medium", days_since=1), _ex("l", "low", days_since=0))
        assert calculate_color_score(bucket) == 85

    def test_low_fallback(self):
        from rehab_coverage.signals import calculate_color_score
        assert calculate_color_score(_bucket(_ex("l", "low", days_since=2))) == 60

    def test_high_ignores_lower_tiers(self):
        from rehab_coverage.signals import calculate_color_score
        bucket = _bucket(_ex("h", days_since=0), _ex("m", "medium", days_since=None))
        assert calculate_color_score(bucket) == 100

    def test_multi_focus_high(self):
        from rehab_coverage.signals import calculate_color_score
        bucket = _bucket(
            _ex("a", focus="anti_rotation", days_since=0),
            _ex("b", focus="anti_extension", days_since=None),
        )
        assert calculate_color_score(bucket) == pytest.approx(40)

    def test_multi_focus_medium_not_split(self):
        """Per-focus scoring only applies when HIGH is the anchor."""
        from rehab_coverage.signals import calculate_color_score
        bucket = _bucket(
            _ex("a", "medium", focus="x", days_since=0),
            _ex("b", "medium", focus="y", days_since=4),
        )
        assert calculate_color_score(bucket) == 15

    def test_monotonic_single_exercise(self):
        from rehab_coverage.signals import calculate_color_score
        scores = [calculate_color_score(_bucket(_ex(days_since=d))) for d in range(30)]
        assert all(earlier >= later for earlier, later in zip(scores, scores[1:]))

    def test_always_float(self):
        from rehab_coverage.signals import calculate_color_score
        buckets = [
            _bucket(),
            _bucket(_ex(days_since=None)),
            _bucket(_ex(days_since=1)),
            _bucket(_ex("a", focus="x", days_since=0), _ex("b", focus="y", days_since=None)),
        ]
        assert all(type(calculate_color_score(b)) is float for b in buckets)


# ═══════════════════════════════════════════════════════════════════════
# OPACITY — 21-day trend
# ═══════════════════════════════════════════════════════════════════════

class TestCalculateOpacity:

    def test_empty_bucket_cold_start(self):
        from rehab_coverage.signals import calculate_opacity
        assert calculate_opacity(_bucket()) == 20

    def test_low_only_cold_start(self):
        from rehab_coverage.signals import calculate_opacity
        assert calculate_opacity(_bucket(_ex("l", "low", days7=7, days21=15, days_since=0))) == 20

    def test_never_done(self):
        from rehab_coverage.signals import calculate_opacity
        assert calculate_opacity(_bucket(_ex())) == 0

    def test_full_trend(self):
        from rehab_coverage.signals import calculate_opacity
        assert calculate_opacity(_bucket(_ex(days21=15, days_since=0))) == 100

    def test_base_is_capped(self):
        from rehab_coverage.signals import calculate_opacity
        assert calculate_opacity(_bucket(_ex(days21=21, days_since=0))) == 100

    def test_rounding(self):
        """1/15 → 6.67 → 7"""
        from rehab_coverage.signals import calculate_opacity
        assert calculate_opacity(_bucket(_ex(days21=1, days7=1, days_since=0))) == 7

    @pytest.mark.parametrize("days_since,expected", [
        (6, 100), (7, 80), (9, 80), (10, 50), (13, 50), (14, 30), (30, 30),
    ])
    def test_decay(self, days_since, expected):
        from rehab_coverage.signals import calculate_opacity
        assert calculate_opacity(_bucket(_ex(days21=15, days_since=days_since))) == expected

    def test_decay_uses_most_recent_exercise(self):
        from rehab_coverage.signals import calculate_opacity
        bucket = _bucket(_ex("a", days21=15, days_since=20), _ex("b", days21=15, days_since=2))
        assert calculate_opacity(bucket) == 100

    @pytest.mark.parametrize("days7,expected", [(5, 90), (4, 70), (3, 50), (2, 20)])
    def test_recovery_floors(self, days7, expected):
        from rehab_coverage.signals import calculate_opacity
        assert calculate_opacity(_bucket(_ex(days21=3, days7=days7, days_since=0))) == expected

    @pytest.mark.parametrize("days7,expected", [(5, 70), (4, 50), (3, 35), (2, 20)])
    def test_medium_recovery_floors(self, days7, expected):
        from rehab_coverage.signals import calculate_opacity
        bucket = _bucket(_ex("m", "medium", days21=3, days7=days7, days_since=0))
        assert calculate_opacity(bucket) == expected

    def test_recovery_overrides_decay(self):
        from rehab_coverage.signals import calculate_opacity
        bucket = _bucket(_ex(days21=6, days7=5, days_since=14))
        assert calculate_opacity(bucket) == 90

    def test_multi_focus(self):
        """focus a → 100, focus b never done → 0 → 0.6*0 + 0.4*100 = 40."""
        from rehab_coverage.signals import calculate_opacity
        bucket = _bucket(
            _ex("a", focus="anti_rotation", days21=15, days7=7, days_since=0),
            _ex("b", focus="anti_extension"),
        )
        assert calculate_opacity(bucket) == 40

    def test_always_integer(self):
        from rehab_coverage.signals import calculate_opacity
        bucket = _bucket(_ex(days21=15, days7=5, days_since=0))
        assert isinstance(calculate_opacity(bucket), int)


# ═══════════════════════════════════════════════════════════════════════
# COLOR MAPPER
# ═══════════════════════════════════════════════════════════════════════

class TestColorScoreToRgb:

    @pytest.mark.parametrize("score,expected", [
        (100, "rgb(16, 245, 129)"),
        (85, "rgb(132, 204, 129)"),
        (60, "rgb(250, 204, 21)"),
        (35, "rgb(249, 115, 22)"),
        (15, "rgb(239, 68, 22)"),
        (0, "rgb(185, 28, 28)"),
    ])
    def test_breakpoints(self, score, expected):
        from rehab_coverage.signals import color_score_to_rgb
        assert color_score_to_rgb(score) == expected
