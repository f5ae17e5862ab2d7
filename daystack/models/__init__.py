# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from daystack.models.user import User
from daystack.models.account import Account
from daystack.models.session import Session
from daystack.models.verification_token import VerificationToken
from daystack.models.habit import Habit
from daystack.models.daily_metric import DailyMetric
from daystack.models.habit_log import HabitLog

__all__ = [
    "User",
    "Account",
    "Session",
    "VerificationToken",
    "Habit",
    "DailyMetric",
    "HabitLog",
]
