"""
metric_service.py - Daily mood / energy / productivity records
One DailyMetric per user per calendar day, written with upsert semantics
(last write wins) and read back together with that day's habit logs.
"""

from datetime import date, datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from daystack.models.daily_metric import DailyMetric
from daystack.models.habit_log import HabitLog

NEUTRAL_SCORE = 5


def compute_momentum(mood: int, energy: int, productivity: int) -> float:
    return (mood + energy + productivity) / 3


def _with_logs(query):
    return query.options(selectinload(DailyMetric.habit_logs).selectinload(HabitLog.habit))


class MetricService:
    @staticmethod
    def _find(db: Session, user_id: int, day: date) -> DailyMetric | None:
        return db.query(DailyMetric).filter_by(user_id=user_id, date=day).first()

    @staticmethod
    def create_or_update(db: Session, user_id: int, day: date, mood: int, energy: int,
                         productivity: int, note: str | None = None) -> DailyMetric:
        """Upsert the metric for (user, day) and recompute momentum."""
        scores = {
            "mood": mood,
            "energy": energy,
            "productivity": productivity,
            "momentum": compute_momentum(mood, energy, productivity),
        }
        try:
            metric = MetricService._find(db, user_id, day)
            if metric is None:
                metric = DailyMetric(user_id=user_id, date=day, note=note, **scores)
                db.add(metric)
                try:
                    db.flush()
                except IntegrityError:
                    # Another request created the row between our read and write
                    db.rollback()
                    metric = db.query(DailyMetric).filter_by(user_id=user_id, date=day).one()

            for field, value in scores.items():
                setattr(metric, field, value)
            if note is not None:
                metric.note = note
            metric.updated_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(metric)
            return metric
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def ensure(db: Session, user_id: int, day: date) -> DailyMetric:
        """
        Return the metric for (user, day), creating it with neutral scores if
        it does not exist yet. Flushes but does not commit; call it before
        any other pending change in the session.
        """
        metric = MetricService._find(db, user_id, day)
        if metric is not None:
            return metric

        metric = DailyMetric(user_id=user_id, date=day, mood=NEUTRAL_SCORE, energy=NEUTRAL_SCORE,
                             productivity=NEUTRAL_SCORE, momentum=float(NEUTRAL_SCORE))
        db.add(metric)
        try:
            db.flush()
        except IntegrityError:
            # Another request created the row between our read and write
            db.rollback()
            metric = db.query(DailyMetric).filter_by(user_id=user_id, date=day).one()
        return metric

    @staticmethod
    def get_day(db: Session, user_id: int, day: date) -> DailyMetric | None:
        return _with_logs(db.query(DailyMetric)).filter_by(user_id=user_id, date=day).first()

    @staticmethod
    def get_range(db: Session, user_id: int, start: date, end: date) -> list[DailyMetric]:
        """Metrics with start <= date <= end, oldest first."""
        return _with_logs(db.query(DailyMetric)).filter(
            DailyMetric.user_id == user_id,
            DailyMetric.date >= start,
            DailyMetric.date <= end,
        ).order_by(DailyMetric.date.asc()).all()
