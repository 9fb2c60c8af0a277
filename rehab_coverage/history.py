"""
Rehab Coverage — Exercise History

Turns raw activity logs into per-exercise history: last done date and the
number of distinct active calendar days in the 7- and 21-day windows.
"""
import logging
import math
from datetime import date

import pandas as pd

from rehab_coverage.config import COVERAGE_CONSTANTS, COVERAGE_TIMEZONE, CoverageConfig

logger = logging.getLogger(__name__)

HISTORY_COLUMNS = ["exercise_id", "date"]


def is_missing(value) -> bool:
    """True for None, empty strings and NaN (pandas fills gaps with NaN)."""
    if value is None or value == "":
        return True
    return isinstance(value, float) and math.isnan(value)


def to_calendar_date(value, tz: str = COVERAGE_TIMEZONE) -> date | None:
    """
    Normalize a timestamp-like value to a calendar date.

    Accepts ISO strings, date, datetime and pandas Timestamps. Tz-aware
    values are converted to `tz` before the day is taken; naive values are
    read as local calendar time. Returns None when the value can't be parsed.
    """
    if is_missing(value):
        return None
    if type(value) is date:
        return value
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(tz)
    return ts.date()


def days_between(earlier: date, later: date) -> int:
    """Whole calendar days from `earlier` to `later` (positive if later is after)."""
    return (later - earlier).days


def logs_to_dataframe(logs, tz: str = COVERAGE_TIMEZONE) -> pd.DataFrame:
    """
    Convert raw activity logs to a flat DataFrame.
    One row per attributable log: exercise_id, date (calendar day).

    `logs` may be a list of {exercise_id, performed_at} mappings or a
    DataFrame with those columns. Logs without an exercise id or with an
    unparsable performed_at are dropped.
    """
    if isinstance(logs, pd.DataFrame):
        records = logs.to_dict("records")
    else:
        records = list(logs or [])

    rows = []
    skipped = 0
    for log in records:
        exercise_id = log.get("exercise_id")
        if is_missing(exercise_id):
            skipped += 1
            continue
        day = to_calendar_date(log.get("performed_at"), tz)
        if day is None:
            skipped += 1
            continue
        rows.append({"exercise_id": exercise_id, "date": day})

    if skipped:
        logger.debug("Skipped %d unattributable activity logs", skipped)
    return pd.DataFrame(rows, columns=HISTORY_COLUMNS)


def build_exercise_history(
    logs,
    current_date: date,
    config: CoverageConfig = COVERAGE_CONSTANTS,
    tz: str = COVERAGE_TIMEZONE,
) -> dict:
    """
    Build {exercise_id: history} from activity logs.

    Each history entry: exercise_id, last_done (date), active_days_7,
    active_days_21. Active days are distinct calendar days inside the
    trailing window, so several logs on the same day count once. Logs dated
    after current_date are treated as done today.
    """
    df = logs_to_dataframe(logs, tz)
    if df.empty:
        return {}

    df["date"] = df["date"].map(lambda d: min(d, current_date))
    df["days_ago"] = df["date"].map(lambda d: days_between(d, current_date))

    last_done = df.groupby("exercise_id", sort=False)["date"].max()

    def active_days(window: int) -> pd.Series:
        in_window = df[df["days_ago"] < window]
        return in_window.groupby("exercise_id", sort=False)["date"].nunique()

    days7 = active_days(config.density_window_days)
    days21 = active_days(config.trend_window_days)

    history = {}
    for exercise_id, last in last_done.items():
        history[exercise_id] = {
            "exercise_id": exercise_id,
            "last_done": last,
            "active_days_7": int(days7.get(exercise_id, 0)),
            "active_days_21": int(days21.get(exercise_id, 0)),
        }
    logger.debug("Built history for %d exercises from %d logs", len(history), len(df))
    return history
