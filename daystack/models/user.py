from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, DateTime
from daystack.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(100), nullable=True)
    image = Column(String(500), nullable=True)
    email_verified = Column(DateTime, nullable=True)
    settings = Column(Text, nullable=True)  # JSON string - stores all user preferences
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
