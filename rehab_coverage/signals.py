"""
Rehab Coverage — Signal Calculator

Three independent 0-100 signals per capacity bucket:

- percent      7-day density (how much of the week was covered)
- color_score  recency (how long since the most neglected exercise)
- opacity      21-day trend, slow decay / fast recovery

Contribution tiers:
- HIGH exercises anchor every signal
- MEDIUM add a capped bonus, or anchor when there is no HIGH
- LOW only feed the recency fallback

All thresholds come from CoverageConfig.
"""
import math
from typing import Callable

from rehab_coverage.buckets import group_exercises_by_focus, split_by_tier
from rehab_coverage.config import COVERAGE_CONSTANTS, CONTRIBUTION_TIERS, CoverageConfig


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _mean(values: list) -> float:
    return sum(values) / len(values) if values else 0.0


# ═══════════════════════════════════════════════════════════════════════
# FOCUS COMBINATOR — shared by all three signals
# ═══════════════════════════════════════════════════════════════════════

def combine_worst_others(
    focus_groups: dict,
    score_fn: Callable[[list], float],
    config: CoverageConfig = COVERAGE_CONSTANTS,
) -> float:
    """
    Score each focus group and blend worst vs. the rest.

    result = worst_weight * worst + others_weight * mean(others)

    Groups are ordered by (score, focus label) and the first one is "worst";
    it is left out of "others" exactly once, so tied foci give the same
    result whichever one is picked. With a single focus, others == worst.
    """
    scored = sorted(
        (score_fn(exercises), str(label)) for label, exercises in focus_groups.items()
    )
    if not scored:
        return 0.0
    worst = scored[0][0]
    others = [score for score, _ in scored[1:]]
    avg_others = _mean(others) if others else worst
    return config.focus_worst_weight * worst + config.focus_others_weight * avg_others


# ═══════════════════════════════════════════════════════════════════════
# 1. PERCENT — 7-day density
# ═══════════════════════════════════════════════════════════════════════

def _coverage_pct(exercises: list[dict], config: CoverageConfig) -> float:
    window = config.density_window_days
    return _mean([ex["days7"] / window for ex in exercises]) * 100


def _medium_bonus(medium: list[dict], high_count: int, config: CoverageConfig) -> float:
    window = config.density_window_days
    contribution = sum(ex["days7"] / window * config.medium_weight for ex in medium)
    return min(contribution / high_count * 100, config.medium_bonus_cap)


def calculate_percent(bucket: dict, config: CoverageConfig = COVERAGE_CONSTANTS) -> float:
    """7-day density for a capacity bucket (0-100)."""
    tiers = split_by_tier(bucket["exercises"])
    high, medium = tiers["high"], tiers["medium"]

    if not high:
        if not medium:
            return 0.0
        # MEDIUM-only is partial evidence: never full coverage
        return clamp(min(_coverage_pct(medium, config), config.medium_only_cap))

    if bucket.get("multi_focus"):
        base = combine_worst_others(
            group_exercises_by_focus(high),
            lambda exercises: _coverage_pct(exercises, config),
            config,
        )
    else:
        base = _coverage_pct(high, config)

    return clamp(base + _medium_bonus(medium, len(high), config))


# ═══════════════════════════════════════════════════════════════════════
# 2. COLOR SCORE — recency
# ═══════════════════════════════════════════════════════════════════════

def days_to_color_score(days: int, config: CoverageConfig = COVERAGE_CONSTANTS) -> int:
    """Days since last done → 0-100 (higher = more recent)."""
    table = config.color_score_by_day
    days = max(0, days)
    if days < len(table):
        return table[days]
    last_day = len(table) - 1
    return max(0, table[last_day] - (days - last_day) * config.color_score_decay)


def _worst_recency(exercises: list[dict], config: CoverageConfig) -> float:
    # The most neglected exercise decides; never done means 0
    if any(ex["days_since"] is None for ex in exercises):
        return 0
    return days_to_color_score(max(ex["days_since"] for ex in exercises), config)


def calculate_color_score(bucket: dict, config: CoverageConfig = COVERAGE_CONSTANTS) -> float:
    """Recency score for a capacity bucket (0-100)."""
    tiers = split_by_tier(bucket["exercises"])
    anchor_tier = next((tier for tier in CONTRIBUTION_TIERS if tiers[tier]), None)
    if anchor_tier is None:
        return 0.0

    anchor = tiers[anchor_tier]
    if anchor_tier == "high" and bucket.get("multi_focus"):
        score = combine_worst_others(
            group_exercises_by_focus(anchor),
            lambda exercises: _worst_recency(exercises, config),
            config,
        )
    else:
        score = _worst_recency(anchor, config)
    return float(clamp(score))


# ═══════════════════════════════════════════════════════════════════════
# 3. OPACITY — 21-day trend
# ═══════════════════════════════════════════════════════════════════════

def _trend_opacity(exercises: list[dict], floors: tuple, config: CoverageConfig) -> float:
    avg21 = _mean([ex["days21"] for ex in exercises])
    avg7 = _mean([ex["days7"] for ex in exercises])
    done = [ex["days_since"] for ex in exercises if ex["days_since"] is not None]
    min_days_since = min(done) if done else math.inf

    base = min(avg21 / config.trend_optimal_days, 1.0) * 100

    # Slow decay when stale
    for min_days, factor in config.decay_steps:
        if min_days_since >= min_days:
            base *= factor
            break

    # Fast recovery: a recent burst overrides decay
    for min_active, floor in floors:
        if avg7 >= min_active:
            base = max(base, floor)
            break

    return base


def calculate_opacity(bucket: dict, config: CoverageConfig = COVERAGE_CONSTANTS) -> int:
    """21-day trend for a capacity bucket (0-100, integer)."""
    tiers = split_by_tier(bucket["exercises"])
    high, medium = tiers["high"], tiers["medium"]

    if not high:
        if not medium:
            return config.empty_opacity
        value = _trend_opacity(medium, config.medium_recovery_floors, config)
    elif bucket.get("multi_focus"):
        value = combine_worst_others(
            group_exercises_by_focus(high),
            lambda exercises: _trend_opacity(exercises, config.recovery_floors, config),
            config,
        )
    else:
        value = _trend_opacity(high, config.recovery_floors, config)

    return round_half_up(clamp(value))


# ═══════════════════════════════════════════════════════════════════════
# COLOR MAPPER
# ═══════════════════════════════════════════════════════════════════════

def color_score_to_rgb(score: float) -> str:
    """0-100 → "rgb(r, g, b)". 100 = bright green, 50 = amber, 0 = deep red."""
    if score >= 85:
        t = (score - 85) / 15
        r, g, b = 132 - t * 116, 204 + t * 41, 129
    elif score >= 60:
        t = (score - 60) / 25
        r, g, b = 250 - t * 118, 204, 21 + t * 108
    elif score >= 35:
        t = (score - 35) / 25
        r, g, b = 249, 115 + t * 89, 22
    elif score >= 15:
        t = (score - 15) / 20
        r, g, b = 239 + t * 10, 68 + t * 47, 22
    else:
        t = max(0, score) / 15
        r, g, b = 185 + t * 54, 28 + t * 40, 28 - t * 6
    return f"rgb({round_half_up(r)}, {round_half_up(g)}, {round_half_up(b)})"
