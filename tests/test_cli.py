import json
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import httpx
import pytest

from daystack import cli

TODAY = datetime.now(timezone.utc).date().isoformat()
HABITS = [
    {"id": 1, "name": "Read", "type": "boolean", "target": None, "color": "#3B82F6", "order": 0, "is_active": True},
    {"id": 2, "name": "Water", "type": "quantity", "target": 8, "color": "#10B981", "order": 1, "is_active": True},
]
DAY = {
    "date": TODAY, "mood": 7, "energy": 7, "productivity": 7, "momentum": 7.0, "note": None,
    "habit_logs": [{"habit_id": 1, "completed": True, "value": None}],
}


class FakeApi:
    def __init__(self, status_code=200, tz="UTC"):
        self.status_code = status_code
        self.tz = tz
        self.posted = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"detail": "Not authenticated"})
        assert request.headers["Authorization"] == "Bearer secret"
        path = request.url.path
        if path == "/api/v1/settings":
            return httpx.Response(200, json={"timezone": self.tz, "theme": "system"})
        if path == "/api/v1/habits":
            return httpx.Response(200, json=HABITS)
        if path == "/api/v1/metrics/day":
            return httpx.Response(200, json=DAY)
        if path == "/api/v1/metrics/range":
            return httpx.Response(200, json=[DAY])
        if path == "/api/v1/habits/log":
            body = json.loads(request.content)
            self.posted.append(body)
            return httpx.Response(200, json=body)
        return httpx.Response(404, json={"detail": "Not Found"})


def run(api, *argv):
    return cli.main(["--api-url", "http://api.test/api/v1", "--token", "secret", *argv],
                    transport=httpx.MockTransport(api))


def test_toggle_flips_current_log():
    api = FakeApi()
    assert run(api, "toggle", "1") == 0
    assert api.posted == [{"habit_id": 1, "date": TODAY, "completed": False, "value": None}]


def test_quantity_clamps_and_completes():
    api = FakeApi()
    assert run(api, "quantity", "2", "5000", "--date", "2026-01-02") == 0
    assert api.posted[0]["value"] == 999
    assert api.posted[0]["completed"] is True

    run(api, "quantity", "2", "3", "--date", "2026-01-02")
    assert api.posted[1]["completed"] is False


def test_quantity_rejects_boolean_habit():
    with pytest.raises(SystemExit):
        run(FakeApi(), "quantity", "1", "3")


def test_stats(capsys):
    assert run(FakeApi(), "stats", "--days", "7") == 0
    out = json.loads(capsys.readouterr().out)
    assert out["stats"][0]["current_streak"] == 1
    assert out["overall"]["total_habits"] == 2


def test_export_csv(tmp_path):
    assert run(FakeApi(), "export", "--range", "7d", "--out", str(tmp_path)) == 0
    names = sorted(p.name for p in tmp_path.iterdir())
    assert len(names) == 3
    assert all(n.startswith("daystack-") and n.endswith(".csv") for n in names)


def test_export_json_without_habits(tmp_path):
    assert run(FakeApi(), "export", "--format", "json", "--no-habits", "--out", str(tmp_path)) == 0
    (path,) = tmp_path.iterdir()
    bundle = json.loads(path.read_text(encoding="utf-8"))
    assert "habits" not in bundle
    assert bundle["habit_logs"][0]["habit_id"] == 1


def test_backup(tmp_path):
    assert run(FakeApi(), "backup", "--out", str(tmp_path)) == 0
    (path,) = tmp_path.iterdir()
    backup = json.loads(path.read_text(encoding="utf-8"))
    assert backup["metrics"][0]["habitLogs"] == [{"habitId": 1, "completed": True, "value": None}]


def test_http_error_returns_non_zero(capsys):
    assert run(FakeApi(status_code=401), "stats") == 1
    assert "Not authenticated" in capsys.readouterr().err


def test_default_day_follows_account_timezone():
    api = FakeApi(tz="Pacific/Kiritimati")
    assert run(api, "toggle", "1") == 0
    assert api.posted[0]["date"] == datetime.now(ZoneInfo("Pacific/Kiritimati")).date().isoformat()


def test_export_and_backup_share_a_directory(tmp_path):
    run(FakeApi(), "export", "--format", "json", "--out", str(tmp_path))
    run(FakeApi(), "backup", "--out", str(tmp_path))
    assert sorted(p.name.split("-")[1] for p in tmp_path.iterdir()) == ["data", "export"]
