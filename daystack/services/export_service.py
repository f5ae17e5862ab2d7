# services/export_service.py

import csv
import io
import json
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

FORMATS = ("csv", "json")
RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365, "all": None}
RANGE_LABELS = {
    "7d": "Last 7 days",
    "30d": "Last 30 days",
    "90d": "Last 90 days",
    "1y": "Last year",
    "all": "All time",
}
FILE_PREFIX = "daystack"


def _day(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def filter_export_data(data: dict, range_key: str = "30d", fmt: str = "csv",
                       include_metrics: bool = True, include_habits: bool = True,
                       include_habit_logs: bool = True, now: datetime | None = None) -> dict:
    """
    Narrow already-fetched {"metrics", "habits", "habit_logs"} to the chosen
    range and categories. Habits are never filtered by date.
    """
    if range_key not in RANGE_DAYS:
        raise ValueError(f"Unknown range: {range_key}")
    if fmt not in FORMATS:
        raise ValueError(f"Unknown format: {fmt}")

    now = now or datetime.now(timezone.utc)
    days = RANGE_DAYS[range_key]
    cutoff = date.min if days is None else now.date() - timedelta(days=days)

    result = {
        "exportInfo": {
            "exportDate": now.isoformat(),
            "range": RANGE_LABELS[range_key],
            "format": fmt,
        }
    }
    if include_metrics:
        result["metrics"] = [m for m in data.get("metrics") or [] if _day(m["date"]) >= cutoff]
    if include_habits:
        result["habits"] = list(data.get("habits") or [])
    if include_habit_logs:
        result["habit_logs"] = [log for log in data.get("habit_logs") or [] if _day(log["date"]) >= cutoff]
    return result


def to_csv(rows: list[dict]) -> str | None:
    """CSV text with the header taken from the first row; None when there are no rows."""
    if not rows:
        return None
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()), extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def export_csv(filtered: dict, export_dir: Path, now: datetime | None = None) -> list[Path]:
    """Write one CSV per non-empty category and return the files written."""
    stamp = (now or datetime.now(timezone.utc)).date().isoformat()
    export_dir.mkdir(parents=True, exist_ok=True)

    files = []
    for key, name in (("metrics", "metrics"), ("habits", "habits"), ("habit_logs", "habit-logs")):
        content = to_csv(filtered.get(key) or [])
        if content is None:
            continue
        filename = export_dir / f"{FILE_PREFIX}-{name}-{stamp}.csv"
        with open(filename, "w", newline="", encoding="utf-8") as f:
            f.write(content)
        files.append(filename)
    return files


def export_json(filtered: dict, export_dir: Path, now: datetime | None = None, name: str = "data") -> Path:
    """Write one JSON document as daystack-{name}-DATE.json ("data" for exports, "export" for backups)."""
    stamp = (now or datetime.now(timezone.utc)).date().isoformat()
    export_dir.mkdir(parents=True, exist_ok=True)
    filename = export_dir / f"{FILE_PREFIX}-{name}-{stamp}.json"
    with open(filename, "w", encoding="utf-8") as f:
        json.dump(filtered, f, ensure_ascii=False, indent=2)
    return filename


def build_backup(habits: list[dict], metrics: list[dict], now: datetime | None = None) -> dict:
    """Full account backup: habits plus every metric with its nested habit logs."""
    now = now or datetime.now(timezone.utc)
    return {
        "exportDate": now.isoformat(),
        "user": {"exportedAt": now.date().isoformat()},
        "habits": habits,
        "metrics": [
            {
                "date": str(m["date"])[:10],
                "mood": m["mood"],
                "energy": m["energy"],
                "productivity": m["productivity"],
                "momentum": m["momentum"],
                "note": m.get("note"),
                "habitLogs": [
                    {"habitId": log["habit_id"], "completed": log["completed"], "value": log.get("value")}
                    for log in m.get("habit_logs") or []
                ],
            }
            for m in metrics
        ],
    }
