"""
Rehab Coverage — Coverage Engine

Builds the full coverage tree from activity logs and role assignments:

    region → capacity → focus → exercise

Pure: no I/O, no shared state. Same logs + roles + current date always give
the same tree. Output is plain dicts/lists/ints/strings so it can be sent as
a JSON response body as-is.
"""
import logging
from datetime import date

import numpy as np
import pandas as pd

from rehab_coverage.buckets import build_buckets, focus_label, normalize_role
from rehab_coverage.config import (
    COVERAGE_CONSTANTS,
    COVERAGE_TIMEZONE,
    GENERAL_FOCUS,
    CoverageConfig,
)
from rehab_coverage.history import build_exercise_history, days_between, to_calendar_date
from rehab_coverage.signals import (
    calculate_color_score,
    calculate_opacity,
    calculate_percent,
    color_score_to_rgb,
    round_half_up,
)

logger = logging.getLogger(__name__)

REGION_BAR_KEY = "_region_bar"


def capacity_items(region_bucket: dict) -> list[tuple]:
    """(capacity, bucket) pairs of a region, without the region bar."""
    return [(name, bucket) for name, bucket in region_bucket.items() if name != REGION_BAR_KEY]


# ═══════════════════════════════════════════════════════════════════════
# 1. STATUS LABELS
# ═══════════════════════════════════════════════════════════════════════

def recency_label(color_score: float, config: CoverageConfig = COVERAGE_CONSTANTS) -> str:
    if color_score >= config.recency_recent_min:
        return "✓ done recently"
    if color_score >= config.recency_few_days_min:
        return "~ a few days ago"
    if color_score >= config.recency_stale_min:
        return "⚠ getting stale"
    if color_score >= config.recency_overdue_min:
        return "! overdue"
    return "!! very overdue"


def trend_label(opacity: int, config: CoverageConfig = COVERAGE_CONSTANTS) -> str:
    if opacity >= config.trend_steady_min:
        return f"↑ steady ({opacity}%)"
    if opacity >= config.trend_ok_min:
        return f"→ ok ({opacity}%)"
    if opacity >= config.trend_slipping_min:
        return f"↓ slipping ({opacity}%)"
    return f"↓↓ low ({opacity}%)"


def summary_status(summary: dict, config: CoverageConfig = COVERAGE_CONSTANTS) -> dict:
    """
    Overview text + status (success / warning / danger) for each summary line:
    last activity, 7-day coverage and 21-day trend.
    """
    last = summary["days_since_last_activity"]
    if last is None:
        last_activity = {"text": "No activity", "status": "danger"}
    else:
        if last <= config.last_activity_good_max:
            status = "success"
        elif last <= config.last_activity_warn_max:
            status = "warning"
        else:
            status = "danger"
        last_activity = {"text": "Today" if last == 0 else f"{last} days ago", "status": status}

    pct = summary["coverage7_percent"]
    if pct >= config.coverage_good_min:
        week_status = "success"
    elif pct >= config.coverage_warn_min:
        week_status = "warning"
    else:
        week_status = "danger"
    week = {
        "text": f"{pct}% ({summary['exercises_done7']}/{summary['total_exercises']})",
        "status": week_status,
    }

    trend_pct = summary["mean_trend"]
    if trend_pct >= config.trend_steady_min:
        trend = {"text": f"📈 Strong ({trend_pct}%) - exercising consistently", "status": "success"}
    elif trend_pct >= config.trend_ok_min:
        trend = {"text": f"↗️ Building ({trend_pct}%) - good momentum", "status": "success"}
    elif trend_pct >= config.trend_slipping_min:
        trend = {"text": f"↘️ Fading ({trend_pct}%) - activity dropping", "status": "warning"}
    else:
        trend = {"text": f"📉 Low ({trend_pct}%) - needs more sessions", "status": "danger"}

    return {"last_activity": last_activity, "week": week, "trend": trend}


# ═══════════════════════════════════════════════════════════════════════
# 2. CAPACITY + REGION BARS
# ═══════════════════════════════════════════════════════════════════════

def score_bucket(bucket: dict, config: CoverageConfig = COVERAGE_CONSTANTS) -> dict:
    """Fill the three signals, color and labels on a capacity bucket (in place)."""
    bucket["percent"] = calculate_percent(bucket, config)
    bucket["color_score"] = calculate_color_score(bucket, config)
    bucket["opacity"] = calculate_opacity(bucket, config)
    bucket["color"] = color_score_to_rgb(bucket["color_score"])
    bucket["recency_label"] = recency_label(bucket["color_score"], config)
    bucket["trend_label"] = trend_label(bucket["opacity"], config)
    return bucket


def calculate_region_bar(capacity_buckets: list[dict], config: CoverageConfig = COVERAGE_CONSTANTS) -> dict:
    """
    Aggregate scored capacity buckets into one region bar.

    Weight = (HIGH exercise count) ** region_weight_exponent, so capacities
    with no HIGH exercises don't move the average. All weights zero → the
    cold-start bar {0, 0, empty_opacity}.
    """
    weights = [
        len(bucket["by_tier"]["high"]) ** config.region_weight_exponent
        for bucket in capacity_buckets
    ]
    if sum(weights) == 0:
        return {"percent": 0, "color_score": 0, "opacity": config.empty_opacity}

    def weighted(key: str) -> int:
        values = [bucket[key] for bucket in capacity_buckets]
        return round_half_up(float(np.average(values, weights=weights)))

    return {
        "percent": weighted("percent"),
        "color_score": weighted("color_score"),
        "opacity": weighted("opacity"),
    }


# ═══════════════════════════════════════════════════════════════════════
# 3. SUMMARY
# ═══════════════════════════════════════════════════════════════════════

def coverage_summary(tree: dict, roles: list[dict], history: dict, current_date: date) -> dict:
    """
    Overview metrics.

    coverage7_percent only counts exercises that are part of the plan, so it
    never exceeds 100. days_since_last_activity looks at every logged
    exercise, planned or not.
    """
    plan_ids = list(dict.fromkeys(role["exercise_id"] for role in roles))
    done7 = [eid for eid in plan_ids if history.get(eid, {}).get("active_days_7", 0) > 0]
    total = len(plan_ids)

    days_since = [max(0, days_between(h["last_done"], current_date)) for h in history.values()]
    opacities = [region[REGION_BAR_KEY]["opacity"] for region in tree.values()]

    return {
        "days_since_last_activity": min(days_since) if days_since else None,
        "coverage7_percent": round_half_up(len(done7) / total * 100) if total else 0,
        "exercises_done7": len(done7),
        "total_exercises": total,
        "mean_trend": round_half_up(sum(opacities) / len(opacities)) if opacities else 0,
    }


# ═══════════════════════════════════════════════════════════════════════
# 4. ENGINE ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════

def build_coverage_data(
    logs,
    roles,
    current_date=None,
    config: CoverageConfig = COVERAGE_CONSTANTS,
    tz: str = COVERAGE_TIMEZONE,
) -> dict:
    """
    Full pipeline:
    1. Aggregate per-exercise history from logs
    2. Group roles into (region, capacity) buckets
    3. Score each bucket (percent, color_score, opacity)
    4. Aggregate region bars
    5. Compute the summary

    `logs` and `roles` may be lists of mappings or DataFrames.
    `current_date` defaults to today in `tz`. Returns
    {"coverage": tree, "current_date": ISO date, "summary": {...}}.
    """
    current = None if current_date is None else to_calendar_date(current_date, tz)
    if current is None:
        if current_date is not None:
            logger.debug("Unparsable current_date %r, using today", current_date)
        current = pd.Timestamp.now(tz=tz).date()

    history = build_exercise_history(logs, current, config, tz)

    if isinstance(roles, pd.DataFrame):
        roles = roles.to_dict("records")

    plan = []
    for role in roles or []:
        normalized = normalize_role(role)
        if normalized is None:
            logger.debug("Skipping role without exercise_id: %r", role)
            continue
        plan.append(normalized)

    tree = build_buckets(plan, history, current)
    for capacities in tree.values():
        buckets = [score_bucket(bucket, config) for bucket in capacities.values()]
        capacities[REGION_BAR_KEY] = calculate_region_bar(buckets, config)

    summary = coverage_summary(tree, plan, history, current)
    logger.debug("Coverage for %s: %s", current.isoformat(), summary)
    return {"coverage": tree, "current_date": current.isoformat(), "summary": summary}


# ═══════════════════════════════════════════════════════════════════════
# 5. TABULAR VIEWS
# ═══════════════════════════════════════════════════════════════════════

def regions_by_urgency(tree: dict) -> list[str]:
    """Region names, most neglected (lowest region color score) first."""
    return sorted(tree, key=lambda region: tree[region][REGION_BAR_KEY]["color_score"])


def focus_breakdown(bucket: dict) -> list[dict]:
    """
    Per-focus done/total counts for a capacity bucket, "general" first.

    status: "not-covered" (nothing ever done), "needs-attention" (some) or
    "covered" (all done at least once).
    """
    groups = {GENERAL_FOCUS: []}
    for ex in bucket["exercises"]:
        groups.setdefault(focus_label(ex), []).append(ex)

    rows = []
    for focus, exercises in groups.items():
        if not exercises:
            continue
        done = sum(1 for ex in exercises if ex["last_done"])
        total = len(exercises)
        if done == 0:
            status = "not-covered"
        elif done < total:
            status = "needs-attention"
        else:
            status = "covered"
        rows.append({"focus": focus, "done": done, "total": total, "status": status})
    return rows


def exercise_table(tree: dict, config: CoverageConfig = COVERAGE_CONSTANTS) -> pd.DataFrame:
    """
    Flatten the tree to one row per (region, capacity, exercise).
    An exercise is overdue when never done or not done for overdue_days.
    """
    rows = []
    for region, region_bucket in tree.items():
        for capacity, bucket in capacity_items(region_bucket):
            for ex in bucket["exercises"]:
                rows.append({
                    "region": region,
                    "capacity": capacity,
                    "focus": focus_label(ex),
                    "exercise_id": ex["id"],
                    "exercise": ex["name"],
                    "contribution": ex["contribution"],
                    "last_done": ex["last_done"],
                    "days_since": ex["days_since"],
                    "days7": ex["days7"],
                    "days21": ex["days21"],
                    "is_overdue": ex["days_since"] is None or ex["days_since"] >= config.overdue_days,
                })
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows)
