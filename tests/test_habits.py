from datetime import date

from daystack.models.daily_metric import DailyMetric
from daystack.models.habit_log import HabitLog
from daystack.services.habit_service import HabitService, clamp_quantity, quantity_completed

DAY = "2026-03-14"


def test_create_assigns_increasing_order(make_habit):
    first = make_habit("Read")
    second = make_habit("Run", type="quantity", target=5)
    assert first["order"] == 0
    assert second["order"] == 1
    assert second["type"] == "quantity"
    assert second["target"] == 5
    assert second["is_active"] is True


def test_get_all_lists_active_habits_in_order(client, make_habit):
    a = make_habit("A")
    b = make_habit("B")
    c = make_habit("C")
    client.post("/api/v1/habits/reorder", json={"habit_ids": [c["id"], a["id"], b["id"]]})
    names = [h["name"] for h in client.get("/api/v1/habits").json()]
    assert names == ["C", "A", "B"]


def test_create_validates_input(client):
    resp = client.post("/api/v1/habits", json={"name": "", "type": "sometimes", "color": "blue"})
    assert resp.status_code == 400
    field_errors = resp.json()["errors"]["fieldErrors"]
    assert set(field_errors) == {"name", "type", "color"}


def test_update_changes_only_given_fields(client, make_habit):
    habit = make_habit("Read", color="#112233")
    resp = client.put(f"/api/v1/habits/{habit['id']}", json={"name": "Read 20 pages"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Read 20 pages"
    assert resp.json()["color"] == "#112233"


def test_update_other_users_habit_is_not_found(other_client, make_habit):
    habit = make_habit("Read")
    resp = other_client.put(f"/api/v1/habits/{habit['id']}", json={"name": "Mine now"})
    assert resp.status_code == 404


def test_soft_deleted_habit_hidden_but_logs_remain_joinable(client, make_habit):
    habit = make_habit("Meditate")
    client.post("/api/v1/habits/log", json={"habit_id": habit["id"], "date": DAY, "completed": True})

    resp = client.delete(f"/api/v1/habits/{habit['id']}")
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    assert client.get("/api/v1/habits").json() == []

    day = client.get("/api/v1/metrics/day", params={"date": DAY}).json()
    assert len(day["habit_logs"]) == 1
    assert day["habit_logs"][0]["habit"]["name"] == "Meditate"
    assert day["habit_logs"][0]["habit"]["is_active"] is False


def test_new_habit_order_counts_deleted_habits(client, make_habit):
    make_habit("A")
    b = make_habit("B")
    client.delete(f"/api/v1/habits/{b['id']}")
    assert make_habit("C")["order"] == 2


def test_reorder_is_all_or_nothing(client, other_client, make_habit):
    a = make_habit("A")
    b = make_habit("B")
    foreign = other_client.post("/api/v1/habits", json={"name": "X", "type": "boolean", "color": "#000000"}).json()

    resp = client.post("/api/v1/habits/reorder", json={"habit_ids": [b["id"], foreign["id"], a["id"]]})
    assert resp.status_code == 404

    orders = {h["name"]: h["order"] for h in client.get("/api/v1/habits").json()}
    assert orders == {"A": 0, "B": 1}


def test_update_log_creates_neutral_metric(client, db, user, make_habit):
    habit = make_habit("Read")
    resp = client.post("/api/v1/habits/log", json={"habit_id": habit["id"], "date": DAY, "completed": True})
    assert resp.status_code == 200

    db.expire_all()
    metric = db.query(DailyMetric).filter_by(user_id=user.id, date=date(2026, 3, 14)).one()
    assert (metric.mood, metric.energy, metric.productivity, metric.momentum) == (5, 5, 5, 5.0)


def test_update_log_keeps_existing_scores(client, db, user, make_habit):
    habit = make_habit("Read")
    client.post("/api/v1/metrics", json={"date": DAY, "mood": 9, "energy": 8, "productivity": 7})
    client.post("/api/v1/habits/log", json={"habit_id": habit["id"], "date": DAY, "completed": True})

    db.expire_all()
    metric = db.query(DailyMetric).filter_by(user_id=user.id).one()
    assert metric.mood == 9
    assert metric.momentum == 8.0


def test_toggling_twice_leaves_one_incomplete_log(client, db, make_habit):
    habit = make_habit("Read")
    for completed in (True, False):
        resp = client.post("/api/v1/habits/log", json={"habit_id": habit["id"], "date": DAY, "completed": completed})
        assert resp.status_code == 200

    db.expire_all()
    logs = db.query(HabitLog).filter_by(habit_id=habit["id"]).all()
    assert len(logs) == 1
    assert logs[0].completed is False


def test_second_upsert_keeps_latest_values(client, db, make_habit):
    habit = make_habit("Water", type="quantity", target=8)
    client.post("/api/v1/habits/log", json={"habit_id": habit["id"], "date": DAY, "completed": False, "value": 3})
    resp = client.post("/api/v1/habits/log", json={"habit_id": habit["id"], "date": DAY, "completed": True, "value": 8})
    assert resp.json()["value"] == 8
    assert resp.json()["completed"] is True

    db.expire_all()
    assert db.query(HabitLog).filter_by(habit_id=habit["id"]).count() == 1
    assert db.query(DailyMetric).count() == 1


def test_server_stores_completed_as_given(client, make_habit):
    habit = make_habit("Water", type="quantity", target=8)
    resp = client.post("/api/v1/habits/log", json={"habit_id": habit["id"], "date": DAY, "completed": False, "value": 20})
    assert resp.json()["completed"] is False


def test_update_log_for_foreign_habit_is_not_found(other_client, make_habit):
    habit = make_habit("Read")
    resp = other_client.post("/api/v1/habits/log", json={"habit_id": habit["id"], "date": DAY, "completed": True})
    assert resp.status_code == 404


def test_requires_authentication(anon_client):
    resp = anon_client.get("/api/v1/habits")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


def test_get_today_reports_logs(db, user):
    habit = HabitService.create(db, user.id, {"name": "Read", "type": "boolean", "color": "#123456"})
    HabitService.update_log(db, user.id, habit.id, date(2026, 3, 14), True)
    today = HabitService.get_today(db, user.id, date(2026, 3, 14))
    assert today[0]["completed_today"] is True
    assert HabitService.get_today(db, user.id, date(2026, 3, 15))[0]["log"] is None


def test_quantity_rules():
    assert clamp_quantity(-3) == 0
    assert clamp_quantity(5000) == 999
    assert quantity_completed(8, 8) is True
    assert quantity_completed(8, 7.5) is False
    assert quantity_completed(None, 1) is True
    assert quantity_completed(None, 0) is False


def test_update_log_recovers_from_concurrent_insert(db, user, monkeypatch):
    habit = HabitService.create(db, user.id, {"name": "Read", "type": "boolean", "color": "#123456"})
    HabitService.update_log(db, user.id, habit.id, date(2026, 3, 14), True)

    # the log lookup misses the committed row, so the insert hits the unique constraint
    monkeypatch.setattr(HabitService, "_find_log", staticmethod(lambda db, habit_id, metric_id: None))
    log = HabitService.update_log(db, user.id, habit.id, date(2026, 3, 14), False, 2)

    assert log.completed is False
    assert log.value == 2
    assert db.query(HabitLog).filter_by(habit_id=habit.id).count() == 1
