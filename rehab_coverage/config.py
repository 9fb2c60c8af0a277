"""
Rehab Coverage — Configuration

All scoring thresholds live in CoverageConfig. The engine never reads a
literal threshold directly: every signal function takes a config, and
COVERAGE_CONSTANTS is the default tuning. To try alternate tuning, build a
new instance with dataclasses.replace(COVERAGE_CONSTANTS, ...).
"""
import os
from dataclasses import dataclass

# ── Calendar ─────────────────────────────────────────────────────────
# Timezone used to turn tz-aware performed_at stamps into calendar days.
COVERAGE_TIMEZONE = os.environ.get("REHAB_COVERAGE_TZ", "UTC")

# ── Role defaults ────────────────────────────────────────────────────
DEFAULT_REGION = "uncategorized"
DEFAULT_CAPACITY = "general"
DEFAULT_CONTRIBUTION = "low"
GENERAL_FOCUS = "general"  # synthetic, never a therapist-defined focus

CONTRIBUTION_TIERS = ("high", "medium", "low")


@dataclass(frozen=True)
class CoverageConfig:
    # Contribution weights
    medium_weight: float = 0.4
    medium_bonus_cap: float = 15.0      # max % bonus from MEDIUM exercises
    medium_only_cap: float = 50.0       # MEDIUM-only buckets never exceed this

    # History windows (days)
    density_window_days: int = 7
    trend_window_days: int = 21
    trend_optimal_days: int = 15        # active days for 100% opacity

    # Decay: (min days since last done, multiplier), checked in order
    decay_steps: tuple = ((14, 0.3), (10, 0.5), (7, 0.8))

    # Recovery: (mean 7-day active days, opacity floor), checked in order
    recovery_floors: tuple = ((5, 90), (4, 70), (3, 50))
    medium_recovery_floors: tuple = ((5, 70), (4, 50), (3, 35))

    empty_opacity: int = 20             # cold-start floor for empty buckets

    # Focus aggregation
    focus_worst_weight: float = 0.6
    focus_others_weight: float = 0.4

    # Region bar
    region_weight_exponent: float = 1.3

    # Recency: score for day 0..4, then -decay per extra day
    color_score_by_day: tuple = (100, 85, 60, 35, 15)
    color_score_decay: int = 2

    # Capacity labels
    recency_recent_min: int = 80
    recency_few_days_min: int = 60
    recency_stale_min: int = 40
    recency_overdue_min: int = 20
    trend_steady_min: int = 70
    trend_ok_min: int = 50
    trend_slipping_min: int = 30

    # Overview labels
    last_activity_good_max: int = 1
    last_activity_warn_max: int = 3
    coverage_good_min: int = 70
    coverage_warn_min: int = 40

    # Exercise is flagged overdue at this many days since last done
    overdue_days: int = 7


COVERAGE_CONSTANTS = CoverageConfig()
