from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, ForeignKey
from daystack.database import Base


class Habit(Base):
    __tablename__ = "habits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False, default="boolean")  # boolean/quantity
    target = Column(Float, nullable=True)  # only meaningful for quantity habits
    color = Column(String(7), nullable=False, default="#3B82F6")
    order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)  # soft delete keeps historical logs joinable
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "target": self.target,
            "color": self.color,
            "order": self.order,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
