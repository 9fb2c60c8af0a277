"""
Rehab Coverage — Bucket Builder

Groups role assignments by (region, capacity) and attaches each exercise's
history. Buckets are plain dicts; signals are filled in later by coverage.py.
"""
import logging
from datetime import date

from rehab_coverage.config import (
    CONTRIBUTION_TIERS,
    DEFAULT_CAPACITY,
    DEFAULT_CONTRIBUTION,
    DEFAULT_REGION,
    GENERAL_FOCUS,
)
from rehab_coverage.history import days_between, is_missing

logger = logging.getLogger(__name__)


def normalize_role(role: dict) -> dict | None:
    """
    Fill defaults on a raw role assignment.

    Missing region/capacity fall back to DEFAULT_REGION/DEFAULT_CAPACITY,
    missing or unknown contribution to "low", missing focus to None. The
    exercise name may come from exercise_name or a nested
    {"exercises": {"canonical_name": ...}} join. Roles without an
    exercise_id can't be attributed and return None.
    """
    exercise_id = role.get("exercise_id")
    if is_missing(exercise_id):
        return None

    joined = role.get("exercises")
    joined = joined if isinstance(joined, dict) else {}
    name = next(
        (value for value in (role.get("exercise_name"), joined.get("canonical_name")) if not is_missing(value)),
        exercise_id,
    )
    region = role.get("region")
    capacity = role.get("capacity")

    contribution = role.get("contribution")
    contribution = DEFAULT_CONTRIBUTION if is_missing(contribution) else str(contribution).lower()
    if contribution not in CONTRIBUTION_TIERS:
        logger.debug("Unknown contribution %r for %s, using %r",
                     role.get("contribution"), exercise_id, DEFAULT_CONTRIBUTION)
        contribution = DEFAULT_CONTRIBUTION

    focus = role.get("focus")
    return {
        "exercise_id": exercise_id,
        "exercise_name": name,
        "region": DEFAULT_REGION if is_missing(region) else region,
        "capacity": DEFAULT_CAPACITY if is_missing(capacity) else capacity,
        "focus": None if is_missing(focus) else focus,
        "contribution": contribution,
    }


def focus_label(exercise: dict) -> str:
    return exercise.get("focus") or GENERAL_FOCUS


def group_exercises_by_focus(exercises: list[dict]) -> dict:
    """{focus_label: [exercise, ...]} in first-seen order; no focus → "general"."""
    groups = {}
    for ex in exercises:
        groups.setdefault(focus_label(ex), []).append(ex)
    return groups


def split_by_tier(exercises: list[dict]) -> dict:
    """{"high": [...], "medium": [...], "low": [...]}; every exercise lands in one tier."""
    tiers = {tier: [] for tier in CONTRIBUTION_TIERS}
    for ex in exercises:
        tiers[ex["contribution"]].append(ex)
    return tiers


def _new_bucket() -> dict:
    return {
        "exercises": [],
        "by_tier": {tier: [] for tier in CONTRIBUTION_TIERS},
        "by_focus": {},
        "focuses": [],
        "multi_focus": False,
    }


def build_buckets(roles: list[dict], history: dict, current_date: date) -> dict:
    """
    Build the coverage tree skeleton: {region: {capacity: bucket}}.

    `roles` must already be normalized. Each exercise entry carries id, name,
    contribution, focus, last_done (ISO date or None), days_since, days7 and
    days21. A bucket is multi-focus when it has more than one focus label,
    counting the synthetic "general" one.
    """
    tree = {}
    for role in roles:
        exercise_id = role["exercise_id"]
        hist = history.get(exercise_id)
        last_done = hist["last_done"] if hist else None

        exercise = {
            "id": exercise_id,
            "name": role["exercise_name"],
            "contribution": role["contribution"],
            "focus": role["focus"],
            "last_done": last_done.isoformat() if last_done else None,
            "days_since": max(0, days_between(last_done, current_date)) if last_done else None,
            "days7": hist["active_days_7"] if hist else 0,
            "days21": hist["active_days_21"] if hist else 0,
        }

        bucket = tree.setdefault(role["region"], {}).setdefault(role["capacity"], _new_bucket())
        bucket["exercises"].append(exercise)
        bucket["by_tier"][exercise["contribution"]].append(exercise_id)
        bucket["by_focus"].setdefault(focus_label(exercise), []).append(exercise_id)
        if exercise["focus"] and exercise["focus"] not in bucket["focuses"]:
            bucket["focuses"].append(exercise["focus"])

    for capacities in tree.values():
        for bucket in capacities.values():
            bucket["multi_focus"] = len(bucket["by_focus"]) > 1

    logger.debug("Built %d capacity buckets across %d regions",
                 sum(len(c) for c in tree.values()), len(tree))
    return tree
