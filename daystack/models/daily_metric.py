from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, Text, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from daystack.database import Base


class DailyMetric(Base):
    __tablename__ = "daily_metrics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    mood = Column(Integer, nullable=False)  # 1-10
    energy = Column(Integer, nullable=False)  # 1-10
    productivity = Column(Integer, nullable=False)  # 1-10
    momentum = Column(Float, nullable=False)  # mean of the three scores
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=True)

    habit_logs = relationship("HabitLog", back_populates="metric", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_metric_user_date"),
    )

    def to_dict(self, include_logs: bool = True) -> dict:
        data = {
            "id": self.id,
            "date": self.date.isoformat(),
            "mood": self.mood,
            "energy": self.energy,
            "productivity": self.productivity,
            "momentum": self.momentum,
            "note": self.note,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_logs:
            data["habit_logs"] = [log.to_dict() for log in self.habit_logs]
        return data
