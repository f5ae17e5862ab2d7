"""
habit_service.py - Habits & daily habit logs
CRUD over a user's habits (soft delete, transactional reordering) and the
upsert of per-day completion logs. Also holds the small completion rules a
client applies before submitting a log.
"""

from datetime import date, datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from daystack.models.habit import Habit
from daystack.models.habit_log import HabitLog
from daystack.services.metric_service import MetricService

MAX_QUANTITY = 999


def clamp_quantity(value: float) -> float:
    return max(0, min(value, MAX_QUANTITY))


def quantity_completed(target: float | None, value: float) -> bool:
    """A quantity habit counts as done once the target is reached (or any amount without a target)."""
    if target:
        return value >= target
    return value > 0


class HabitService:
    @staticmethod
    def get_all(db: Session, user_id: int) -> list[Habit]:
        """Active habits in display order."""
        return db.query(Habit).filter_by(user_id=user_id, is_active=True)\
                 .order_by(Habit.order.asc(), Habit.id.asc()).all()

    @staticmethod
    def get(db: Session, user_id: int, habit_id: int) -> Habit | None:
        return db.query(Habit).filter_by(id=habit_id, user_id=user_id).first()

    @staticmethod
    def create(db: Session, user_id: int, data: dict) -> Habit:
        try:
            max_order = db.query(func.max(Habit.order)).filter(Habit.user_id == user_id).scalar()
            h = Habit(
                user_id=user_id,
                name=data["name"],
                type=data["type"],
                target=data.get("target"),
                color=data["color"],
                order=(max_order if max_order is not None else -1) + 1,
            )
            db.add(h)
            db.commit()
            db.refresh(h)
            return h
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def update(db: Session, user_id: int, habit_id: int, data: dict) -> Habit | None:
        try:
            h = HabitService.get(db, user_id, habit_id)
            if not h:
                return None
            for k in ("name", "type", "target", "color"):
                # target is the only nullable field
                if k in data and (data[k] is not None or k == "target"):
                    setattr(h, k, data[k])
            db.commit()
            db.refresh(h)
            return h
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def delete(db: Session, user_id: int, habit_id: int) -> Habit | None:
        """Soft delete: the habit disappears from get_all but its logs stay."""
        try:
            h = HabitService.get(db, user_id, habit_id)
            if not h:
                return None
            h.is_active = False
            db.commit()
            db.refresh(h)
            return h
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def reorder(db: Session, user_id: int, habit_ids: list[int]) -> list[Habit] | None:
        """
        Give the habit at position i the order i. All-or-nothing: returns None
        and changes nothing if any id is unknown or belongs to someone else.
        """
        try:
            habits = {h.id: h for h in db.query(Habit).filter(
                Habit.user_id == user_id, Habit.id.in_(habit_ids)).all()}
            if any(hid not in habits for hid in habit_ids):
                db.rollback()
                return None
            for index, hid in enumerate(habit_ids):
                habits[hid].order = index
            db.commit()
            return [habits[hid] for hid in habit_ids]
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def _find_log(db: Session, habit_id: int, metric_id: int) -> HabitLog | None:
        return db.query(HabitLog).filter_by(habit_id=habit_id, metric_id=metric_id).first()

    @staticmethod
    def update_log(db: Session, user_id: int, habit_id: int, day: date,
                   completed: bool, value: float | None = None) -> HabitLog | None:
        """
        Upsert the log for (habit, day), creating that day's metric with
        neutral scores when needed. `completed` is stored as given.
        """
        try:
            h = HabitService.get(db, user_id, habit_id)
            if not h:
                return None

            metric = MetricService.ensure(db, user_id, day)
            log = HabitService._find_log(db, habit_id, metric.id)
            if log is None:
                log = HabitLog(habit_id=habit_id, metric_id=metric.id, completed=completed, value=value)
                db.add(log)
                try:
                    db.flush()
                except IntegrityError:
                    db.rollback()
                    metric = MetricService.ensure(db, user_id, day)
                    log = db.query(HabitLog).filter_by(habit_id=habit_id, metric_id=metric.id).one()
            log.completed = completed
            log.value = value
            log.updated_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(log)
            return log
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def get_today(db: Session, user_id: int, today: date) -> list[dict]:
        """Active habits with the log for `today` (None when not logged)."""
        habits = HabitService.get_all(db, user_id)
        metric = MetricService.get_day(db, user_id, today)
        logs = {log.habit_id: log for log in metric.habit_logs} if metric else {}
        result = []
        for h in habits:
            log = logs.get(h.id)
            result.append({
                "habit": h.to_dict(),
                "log": {"completed": log.completed, "value": log.value} if log else None,
                "completed_today": bool(log and log.completed),
            })
        return result
