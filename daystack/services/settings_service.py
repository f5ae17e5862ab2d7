"""
settings_service.py - User preferences and account data management
Preferences live as a JSON document on User.settings, merged over defaults.
"""

import json
from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.orm import Session

from daystack.models.daily_metric import DailyMetric
from daystack.models.habit import Habit
from daystack.models.habit_log import HabitLog
from daystack.models.user import User

THEMES = ("light", "dark", "system")

DEFAULT_SETTINGS = {
    "timezone": "UTC",
    "theme": "system",
    "notifications": {
        "daily_reminder": False,
        "reminder_time": "20:00",
        "weekly_summary": True,
    },
}


def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def _merge(defaults: dict, stored: dict) -> dict:
    merged = dict(defaults)
    for k, v in stored.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k] = _merge(merged[k], v)
        else:
            merged[k] = v
    return merged


class SettingsService:
    @staticmethod
    def get(db: Session, user_id: int) -> dict:
        user = db.get(User, user_id)
        stored = json.loads(user.settings) if user and user.settings else {}
        prefs = _merge(DEFAULT_SETTINGS, stored)
        prefs["name"] = user.name if user else None
        prefs["email"] = user.email if user else None
        return prefs

    @staticmethod
    def update(db: Session, user_id: int, data: dict) -> dict:
        """Merge `data` into the stored preferences; `name` updates the profile."""
        try:
            user = db.get(User, user_id)
            stored = json.loads(user.settings) if user.settings else {}
            if "name" in data:
                user.name = data.pop("name")
            user.settings = json.dumps(_merge(stored, data))
            db.commit()
            return SettingsService.get(db, user_id)
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def today(db: Session, user_id: int) -> date:
        """The current calendar date in the user's timezone."""
        tz = SettingsService.get(db, user_id)["timezone"]
        return datetime.now(ZoneInfo(tz) if is_valid_timezone(tz) else ZoneInfo("UTC")).date()

    @staticmethod
    def data_overview(db: Session, user_id: int) -> dict:
        metric_ids = select(DailyMetric.id).where(DailyMetric.user_id == user_id)
        return {
            "habit_count": db.query(Habit).filter_by(user_id=user_id, is_active=True).count(),
            "metrics_count": db.query(DailyMetric).filter_by(user_id=user_id).count(),
            "total_logs": db.query(HabitLog).filter(HabitLog.metric_id.in_(metric_ids)).count(),
        }

    @staticmethod
    def clear_data(db: Session, user_id: int) -> dict:
        """Delete every habit, metric and habit log the user owns, in one transaction."""
        try:
            metric_ids = select(DailyMetric.id).where(DailyMetric.user_id == user_id)
            habit_ids = select(Habit.id).where(Habit.user_id == user_id)
            logs = db.query(HabitLog).filter(
                HabitLog.metric_id.in_(metric_ids) | HabitLog.habit_id.in_(habit_ids)
            ).delete(synchronize_session=False)
            metrics = db.query(DailyMetric).filter_by(user_id=user_id).delete(synchronize_session=False)
            habits = db.query(Habit).filter_by(user_id=user_id).delete(synchronize_session=False)
            db.commit()
            return {"habit_logs": logs, "metrics": metrics, "habits": habits}
        except Exception:
            db.rollback()
            raise
