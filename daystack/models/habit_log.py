from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from daystack.database import Base


class HabitLog(Base):
    __tablename__ = "habit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    habit_id = Column(Integer, ForeignKey("habits.id", ondelete="CASCADE"), nullable=False)
    metric_id = Column(Integer, ForeignKey("daily_metrics.id", ondelete="CASCADE"), nullable=False)
    completed = Column(Boolean, default=False)
    value = Column(Float, nullable=True)  # quantity habits only
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=True)

    habit = relationship("Habit")
    metric = relationship("DailyMetric", back_populates="habit_logs")

    __table_args__ = (
        UniqueConstraint("habit_id", "metric_id", name="uq_habitlog_habit_metric"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "habit_id": self.habit_id,
            "metric_id": self.metric_id,
            "completed": self.completed,
            "value": self.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "habit": self.habit.to_dict() if self.habit else None,
        }
