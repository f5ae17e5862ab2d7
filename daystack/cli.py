"""
cli.py - DayStack command-line client
Talks to a running DayStack API with the session token from DAYSTACK_TOKEN.
Export files, streak stats and habit completion are computed here from
already-fetched data, the same way the web client does it.
"""

import argparse
import json
import sys
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo
from pathlib import Path

import httpx

from daystack.config import DAYSTACK_API_URL, DAYSTACK_TOKEN
from daystack.services import analytics_service as analytics
from daystack.services import export_service
from daystack.services.habit_service import clamp_quantity, quantity_completed
from daystack.services.settings_service import is_valid_timezone

BACKUP_DAYS = 365
BACKUP_NAME = "export"
EPOCH = date(1970, 1, 1)


class DayStackClient:
    """Thin wrapper over the /api/v1 endpoints."""

    def __init__(self, base_url: str = DAYSTACK_API_URL, token: str = DAYSTACK_TOKEN, transport=None):
        self.client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=10.0,
            transport=transport,
        )

    def _request(self, method: str, url: str, **kwargs):
        resp = self.client.request(method, url, **kwargs)
        resp.raise_for_status()
        return resp.json()

    def get_habits(self) -> list[dict]:
        return self._request("GET", "/habits")

    def get_day(self, day: date) -> dict | None:
        return self._request("GET", "/metrics/day", params={"date": day.isoformat()})

    def get_range(self, start: date, end: date) -> list[dict]:
        return self._request("GET", "/metrics/range", params={"start_date": start.isoformat(), "end_date": end.isoformat()})

    def update_log(self, habit_id: int, day: date, completed: bool, value: float | None = None) -> dict:
        return self._request("POST", "/habits/log", json={
            "habit_id": habit_id, "date": day.isoformat(), "completed": completed, "value": value,
        })

    def save_metrics(self, day: date, mood: int, energy: int, productivity: int, note: str | None = None) -> dict:
        body = {"date": day.isoformat(), "mood": mood, "energy": energy, "productivity": productivity}
        if note is not None:
            body["note"] = note
        return self._request("POST", "/metrics", json=body)

    def get_settings(self) -> dict:
        return self._request("GET", "/settings")

    def today(self) -> date:
        """Today in the account's timezone, so the CLI and the dashboard agree on the day."""
        tz = self.get_settings().get("timezone") or "UTC"
        return datetime.now(ZoneInfo(tz) if is_valid_timezone(tz) else timezone.utc).date()

    def close(self):
        self.client.close()


def _parse_date(client: DayStackClient, value: str | None) -> date:
    return date.fromisoformat(value) if value else client.today()


def _print_json(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


def _find_log(day: dict | None, habit_id: int) -> dict | None:
    for log in (day or {}).get("habit_logs", []):
        if log["habit_id"] == habit_id:
            return log
    return None


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------
def _cmd_toggle(client: DayStackClient, args: argparse.Namespace) -> None:
    d = _parse_date(client, args.date)
    current = _find_log(client.get_day(d), args.habit_id)
    completed = not (current and current["completed"])
    _print_json(client.update_log(args.habit_id, d, completed, None))


def _cmd_quantity(client: DayStackClient, args: argparse.Namespace) -> None:
    habit = next((h for h in client.get_habits() if h["id"] == args.habit_id), None)
    if habit is None:
        raise SystemExit(f"habit not found: {args.habit_id}")
    if habit["type"] != "quantity":
        raise SystemExit(f"habit {args.habit_id} is not a quantity habit")

    value = clamp_quantity(args.value)
    log = client.update_log(args.habit_id, _parse_date(client, args.date), quantity_completed(habit["target"], value), value)
    _print_json(log)


def _cmd_log_metrics(client: DayStackClient, args: argparse.Namespace) -> None:
    _print_json(client.save_metrics(_parse_date(client, args.date), args.mood, args.energy, args.productivity, args.note))


def _cmd_stats(client: DayStackClient, args: argparse.Namespace) -> None:
    today = client.today()
    metrics = client.get_range(today - timedelta(days=args.days - 1), today)
    stats = analytics.habit_stats(client.get_habits(), analytics.flatten_logs(metrics), args.days, today)
    _print_json({"stats": stats, "overall": analytics.overall_stats(stats)})


def _cmd_export(client: DayStackClient, args: argparse.Namespace) -> None:
    now = datetime.now(timezone.utc)
    days = export_service.RANGE_DAYS[args.range]
    start = EPOCH if days is None else now.date() - timedelta(days=days)
    metrics = client.get_range(start, now.date())

    data = {
        "metrics": analytics.progress_rows(metrics),
        "habits": client.get_habits(),
        "habit_logs": analytics.flatten_logs(metrics),
    }
    filtered = export_service.filter_export_data(
        data, args.range, args.format,
        include_metrics=not args.no_metrics,
        include_habits=not args.no_habits,
        include_habit_logs=not args.no_habit_logs,
        now=now,
    )
    out = Path(args.out)
    if args.format == "csv":
        files = export_service.export_csv(filtered, out, now)
    else:
        files = [export_service.export_json(filtered, out, now)]
    _print_json({"ok": True, "files": [str(f) for f in files]})


def _cmd_backup(client: DayStackClient, args: argparse.Namespace) -> None:
    now = datetime.now(timezone.utc)
    metrics = client.get_range(now.date() - timedelta(days=BACKUP_DAYS), now.date())
    backup = export_service.build_backup(client.get_habits(), metrics, now)
    path = export_service.export_json(backup, Path(args.out), now, name=BACKUP_NAME)
    _print_json({"ok": True, "files": [str(path)]})


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="daystack", description="DayStack mood & habit tracker client")
    p.add_argument("--api-url", default=DAYSTACK_API_URL, help="Base URL of the /api/v1 endpoints")
    p.add_argument("--token", default=DAYSTACK_TOKEN, help="Session token (defaults to $DAYSTACK_TOKEN)")
    sub = p.add_subparsers(dest="cmd", required=True)

    t = sub.add_parser("toggle", help="Flip a boolean habit for a day")
    t.add_argument("habit_id", type=int)
    t.add_argument("--date", help="YYYY-MM-DD (default: today)")
    t.set_defaults(func=_cmd_toggle)

    q = sub.add_parser("quantity", help="Set the amount logged for a quantity habit")
    q.add_argument("habit_id", type=int)
    q.add_argument("value", type=float)
    q.add_argument("--date", help="YYYY-MM-DD (default: today)")
    q.set_defaults(func=_cmd_quantity)

    m = sub.add_parser("log-metrics", help="Record mood, energy and productivity (1-10)")
    m.add_argument("--mood", type=int, required=True)
    m.add_argument("--energy", type=int, required=True)
    m.add_argument("--productivity", type=int, required=True)
    m.add_argument("--note")
    m.add_argument("--date", help="YYYY-MM-DD (default: today)")
    m.set_defaults(func=_cmd_log_metrics)

    s = sub.add_parser("stats", help="Streaks and completion rates per habit")
    s.add_argument("--days", type=int, default=30)
    s.set_defaults(func=_cmd_stats)

    e = sub.add_parser("export", help="Export metrics, habits and logs as CSV files or one JSON file")
    e.add_argument("--format", choices=export_service.FORMATS, default="csv")
    e.add_argument("--range", choices=list(export_service.RANGE_DAYS), default="30d")
    e.add_argument("--out", default=".")
    e.add_argument("--no-metrics", action="store_true")
    e.add_argument("--no-habits", action="store_true")
    e.add_argument("--no-habit-logs", action="store_true")
    e.set_defaults(func=_cmd_export)

    b = sub.add_parser("backup", help="Full JSON backup of the last year")
    b.add_argument("--out", default=".")
    b.set_defaults(func=_cmd_backup)

    return p


def main(argv: list[str] | None = None, transport=None) -> int:
    args = _build_parser().parse_args(argv)
    client = DayStackClient(args.api_url, args.token, transport=transport)
    try:
        args.func(client, args)
    except httpx.HTTPStatusError as e:
        try:
            detail = e.response.json().get("detail", e.response.text)
        except ValueError:
            detail = e.response.text
        print(f"Request failed ({e.response.status_code}): {detail}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        print(f"Could not reach {args.api_url}: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
