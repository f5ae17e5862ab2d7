"""
Page routes - the data behind each screen of the app, as JSON.
/dashboard, /habits, /insights and /settings sit behind the sign-in
middleware; /, /sign-in and /auth/error are public.
"""
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from daystack.auth import get_current_user
from daystack.config import APP_NAME
from daystack.database import get_db
from daystack.models.user import User
from daystack.routes.analytics_routes import fetch_metrics
from daystack.routes.auth_routes import providers
from daystack.services import analytics_service as analytics
from daystack.services.habit_service import HabitService
from daystack.services.metric_service import MetricService
from daystack.services.settings_service import SettingsService

router = APIRouter(tags=["Pages"])

AUTH_ERROR_MESSAGES = {
    "Configuration": "There is a problem with the server configuration. Please contact support.",
    "AccessDenied": "Access denied. You do not have permission to sign in.",
    "Verification": "The verification token has expired or has already been used.",
}
DEFAULT_AUTH_ERROR = "An error occurred during authentication. Please try again."
INSIGHTS_DAYS = 90


def auth_error_message(error: str | None) -> str:
    return AUTH_ERROR_MESSAGES.get(error or "", DEFAULT_AUTH_ERROR)


@router.get("/")
async def home():
    return {"app": APP_NAME, "signIn": "/sign-in", "dashboard": "/dashboard"}


@router.get("/sign-in")
async def sign_in(callbackUrl: Optional[str] = None):
    return {"providers": await providers(), "callbackUrl": callbackUrl}


@router.get("/auth/error")
async def auth_error(error: Optional[str] = None):
    return {"error": error, "message": auth_error_message(error)}


@router.get("/dashboard")
async def dashboard(user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    today = SettingsService.today(db, user_id)
    metric = MetricService.get_day(db, user_id, today)
    habits = HabitService.get_today(db, user_id, today)
    return {
        "greeting": (user.name or user.email) if user else "there",
        "date": today.isoformat(),
        "metrics": metric.to_dict(include_logs=False) if metric else None,
        "habits": habits,
        "completed_count": sum(1 for h in habits if h["completed_today"]),
        "total_habits": len(habits),
    }


@router.get("/habits")
async def habits_page(user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    today = SettingsService.today(db, user_id)
    return {"date": today.isoformat(), "habits": HabitService.get_today(db, user_id, today)}


@router.get("/insights")
async def insights(user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    today = SettingsService.today(db, user_id)
    habits = [h.to_dict() for h in HabitService.get_all(db, user_id)]
    metrics = fetch_metrics(db, user_id, today - timedelta(days=INSIGHTS_DAYS), today)

    rows = analytics.progress_rows(metrics)
    logs = analytics.flatten_logs(metrics)
    weeks = analytics.group_periods(rows, "week")
    stats = analytics.habit_stats(habits, logs, 30, today)
    return {
        "chart": rows,
        "trends": analytics.metric_trends(rows, "30d", analytics.SCORE_FIELDS + ("momentum",)),
        "weekly_summary": analytics.summarize_period(weeks, 0, "week"),
        "habit_stats": stats,
        "overall": analytics.overall_stats(stats),
        "heatmap": analytics.activity_levels(rows),
    }


@router.get("/settings")
async def settings_page(user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return {
        "preferences": SettingsService.get(db, user_id),
        "data": SettingsService.data_overview(db, user_id),
    }
