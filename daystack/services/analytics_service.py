"""
analytics_service.py - Trend & Streak Statistics
Pure functions over already-fetched metrics and habit logs: per-habit streaks
and completion rates, weekly/monthly/quarterly progress summaries, metric
trends, and the activity heatmap. Nothing here touches the database.
"""

from datetime import date, timedelta

PERIODS = ("week", "month", "quarter")
TREND_RANGES = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
TREND_THRESHOLD = 0.2
SCORE_FIELDS = ("mood", "energy", "productivity")


def _as_date(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _mean(values) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0


def _day_score(row: dict) -> float:
    return (row["mood"] + row["energy"] + row["productivity"]) / 3


# ----------------------------------------------------------------------
# Shaping fetched metrics
# ----------------------------------------------------------------------
def progress_rows(metrics: list[dict]) -> list[dict]:
    """One chart row per day from serialized DailyMetric records (with habit_logs)."""
    rows = []
    for m in metrics:
        logs = m.get("habit_logs") or []
        rows.append({
            "date": str(m["date"])[:10],
            "mood": m["mood"],
            "energy": m["energy"],
            "productivity": m["productivity"],
            "momentum": m["momentum"],
            "habits_completed": sum(1 for log in logs if log["completed"]),
            "total_habits": len(logs),
        })
    return rows


def flatten_logs(metrics: list[dict]) -> list[dict]:
    """Habit logs lifted out of their day, each carrying that day's date."""
    return [
        {
            "date": str(m["date"])[:10],
            "habit_id": log["habit_id"],
            "completed": log["completed"],
            "value": log.get("value"),
        }
        for m in metrics
        for log in (m.get("habit_logs") or [])
    ]


# ----------------------------------------------------------------------
# Habit statistics
# ----------------------------------------------------------------------
def current_streak(completed_days: set, today: date, limit: int) -> int:
    """Consecutive completed days counting back from today (0 if today is not done)."""
    streak = 0
    for i in range(limit):
        if today - timedelta(days=i) in completed_days:
            streak += 1
        else:
            break
    return streak


def longest_streak(completed_days: set, today: date, limit: int) -> int:
    """Longest run of completed days inside the `limit` days ending today."""
    longest = run = 0
    for i in range(limit - 1, -1, -1):
        if today - timedelta(days=i) in completed_days:
            run += 1
            longest = max(longest, run)
        else:
            run = 0
    return longest


def habit_stats(habits: list[dict], logs: list[dict], time_range: int = 30, today: date | None = None) -> list[dict]:
    """
    Per-habit statistics over the `time_range` days ending today (inclusive).

    completion_rate is a percentage of the window, so a window without logs
    (or a zero-length window) yields 0.
    """
    today = today or date.today()
    start = today - timedelta(days=time_range - 1)

    stats = []
    for habit in habits:
        habit_logs = sorted(
            (log for log in logs
             if log["habit_id"] == habit["id"] and start <= _as_date(log["date"]) <= today),
            key=lambda log: _as_date(log["date"]),
        )
        completed = [log for log in habit_logs if log["completed"]]
        completed_days = {_as_date(log["date"]) for log in completed}

        average_value = None
        if habit.get("type") == "quantity":
            average_value = _mean(log["value"] for log in completed if log.get("value") is not None)

        stats.append({
            "habit_id": habit["id"],
            "name": habit["name"],
            "color": habit.get("color"),
            "completion_rate": (len(completed) / time_range) * 100 if time_range > 0 else 0,
            "current_streak": current_streak(completed_days, today, time_range),
            "longest_streak": longest_streak(completed_days, today, time_range),
            "total_completions": len(completed),
            "average_value": average_value,
        })
    return stats


def overall_stats(stats: list[dict]) -> dict:
    best = None
    for stat in stats:
        if best is None or stat["completion_rate"] > best["completion_rate"]:
            best = stat
    return {
        "total_habits": len(stats),
        "average_completion_rate": _mean(s["completion_rate"] for s in stats),
        "total_streaks": sum(s["current_streak"] for s in stats),
        "best_habit": best,
    }


# ----------------------------------------------------------------------
# Progress summaries
# ----------------------------------------------------------------------
def _period_key(day: date, period: str) -> str:
    if period == "month":
        return day.strftime("%Y-%m")
    return f"{day.year}-Q{(day.month - 1) // 3 + 1}"


def group_periods(rows: list[dict], period: str = "week") -> list[list[dict]]:
    """
    Group day rows into periods, most recent first. A "week" is seven
    consecutive records rather than a calendar week.
    """
    if period not in PERIODS:
        raise ValueError(f"Unknown period: {period}")

    ordered = sorted(rows, key=lambda r: _as_date(r["date"]))
    if period == "week":
        groups = [ordered[i:i + 7] for i in range(0, len(ordered), 7)]
    else:
        buckets: dict[str, list[dict]] = {}
        for row in ordered:
            buckets.setdefault(_period_key(_as_date(row["date"]), period), []).append(row)
        groups = list(buckets.values())
    groups.reverse()
    return groups


def period_label(first_day: date, period: str) -> str:
    if period == "week":
        return f"Week of {first_day.strftime('%b')} {first_day.day}"
    if period == "month":
        return f"{first_day.strftime('%B')} {first_day.year}"
    return f"Q{(first_day.month - 1) // 3 + 1} {first_day.year}"


def trend_direction(current: float, previous: float) -> str:
    if current > previous + TREND_THRESHOLD:
        return "up"
    if current < previous - TREND_THRESHOLD:
        return "down"
    return "stable"


def summarize_period(groups: list[list[dict]], index: int = 0, period: str = "week") -> dict | None:
    """Summary of groups[index], compared against the period before it (index + 1)."""
    if index < 0 or index >= len(groups) or not groups[index]:
        return None

    current = groups[index]
    total_days = len(current)
    average_mood = _mean(d["mood"] for d in current)
    average_energy = _mean(d["energy"] for d in current)
    average_productivity = _mean(d["productivity"] for d in current)

    habits_completed = sum(d["habits_completed"] for d in current)
    habits_available = sum(d["total_habits"] for d in current)

    best_day = current[0]
    for day in current[1:]:
        if _day_score(day) > _day_score(best_day):
            best_day = day

    trend = "stable"
    if index + 1 < len(groups) and groups[index + 1]:
        previous = groups[index + 1]
        previous_avg = sum(d["mood"] + d["energy"] + d["productivity"] for d in previous) / (len(previous) * 3)
        current_avg = (average_mood + average_energy + average_productivity) / 3
        trend = trend_direction(current_avg, previous_avg)

    return {
        "period": period_label(_as_date(current[0]["date"]), period),
        "average_mood": average_mood,
        "average_energy": average_energy,
        "average_productivity": average_productivity,
        "average_habit_completion": (habits_completed / habits_available) * 100 if habits_available > 0 else 0,
        "total_days": total_days,
        "best_day": best_day,
        "improvement_trend": trend,
    }


def period_chart(group: list[dict]) -> list[dict]:
    return [
        {
            "date": d["date"],
            "mood": d["mood"],
            "energy": d["energy"],
            "productivity": d["productivity"],
            "habit_completion": (d["habits_completed"] / d["total_habits"]) * 100 if d["total_habits"] > 0 else 0,
        }
        for d in group
    ]


# ----------------------------------------------------------------------
# Metric trends
# ----------------------------------------------------------------------
def trend_label(trend: float) -> str:
    if trend > TREND_THRESHOLD:
        return "Improving"
    if trend < -TREND_THRESHOLD:
        return "Declining"
    return "Stable"


def metric_trends(rows: list[dict], range_key: str = "30d", metrics=SCORE_FIELDS) -> dict:
    """
    Average and half-over-half trend of each metric over the most recent
    records of the range. Missing or zero values are skipped.
    """
    if range_key not in TREND_RANGES:
        raise ValueError(f"Unknown range: {range_key}")

    ordered = sorted(rows, key=lambda r: _as_date(r["date"]))
    window = ordered[-TREND_RANGES[range_key]:]

    result = {}
    for metric in metrics:
        values = [r[metric] for r in window if r.get(metric)]
        trend = 0
        if len(values) > 1:
            half = len(values) // 2
            trend = _mean(values[half:]) - _mean(values[:half])
        result[metric] = {
            "average": _mean(values),
            "trend": trend,
            "label": trend_label(trend),
        }
    return result


# ----------------------------------------------------------------------
# Activity heatmap
# ----------------------------------------------------------------------
def completion_level(rate: float) -> int:
    """Map a 0..1 completion rate onto heatmap levels 0-4."""
    if rate > 0.8:
        return 4
    if rate > 0.6:
        return 3
    if rate > 0.4:
        return 2
    if rate > 0.2:
        return 1
    return 0


def activity_levels(rows: list[dict]) -> list[dict]:
    cells = []
    for r in rows:
        rate = r["habits_completed"] / r["total_habits"] if r["total_habits"] > 0 else 0
        cells.append({"date": r["date"], "value": r["habits_completed"], "level": completion_level(rate)})
    return cells


def year_grid(cells: list[dict], year: int) -> list[list[dict]]:
    """
    Every day of `year` laid out in Sunday-first weeks. Days without data get
    level 0; the first and last weeks are padded with empty cells (date "").
    """
    by_date = {str(c["date"])[:10]: c for c in cells}
    blank = {"date": "", "value": 0, "level": 0}

    first = date(year, 1, 1)
    # date.weekday() is Monday=0; shift so Sunday=0
    week = [dict(blank) for _ in range((first.weekday() + 1) % 7)]
    weeks = []

    # count days instead of stepping past 31 Dec, which overflows for year 9999
    for offset in range((date(year, 12, 31) - first).days + 1):
        key = (first + timedelta(days=offset)).isoformat()
        week.append(by_date.get(key, {"date": key, "value": 0, "level": 0}))
        if len(week) == 7:
            weeks.append(week)
            week = []

    if week:
        week.extend(dict(blank) for _ in range(7 - len(week)))
        weeks.append(week)
    return weeks
