from datetime import date, timedelta
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from daystack.auth import get_current_user
from daystack.database import get_db
from daystack.services import analytics_service as analytics
from daystack.services.habit_service import HabitService
from daystack.services.metric_service import MetricService
from daystack.services.settings_service import SettingsService

router = APIRouter(prefix="/api/v1/analytics", tags=["Analytics"])


def fetch_metrics(db: Session, user_id: int, start: date, end: date) -> list[dict]:
    return [m.to_dict() for m in MetricService.get_range(db, user_id, start, end)]


@router.get("/habit-stats")
async def get_habit_stats(time_range: int = Query(30, ge=1, le=365), user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    today = SettingsService.today(db, user_id)
    habits = [h.to_dict() for h in HabitService.get_all(db, user_id)]
    metrics = fetch_metrics(db, user_id, today - timedelta(days=time_range - 1), today)
    stats = analytics.habit_stats(habits, analytics.flatten_logs(metrics), time_range, today)
    return {"stats": stats, "overall": analytics.overall_stats(stats)}


@router.get("/summary")
async def get_summary(
    period: Literal["week", "month", "quarter"] = "week",
    index: int = Query(0, ge=0),
    days: int = Query(90, ge=1, le=730),
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    today = SettingsService.today(db, user_id)
    rows = analytics.progress_rows(fetch_metrics(db, user_id, today - timedelta(days=days), today))
    groups = analytics.group_periods(rows, period)
    return {
        "period_count": len(groups),
        "summary": analytics.summarize_period(groups, index, period),
        "chart": analytics.period_chart(groups[index]) if index < len(groups) else [],
    }


@router.get("/trends")
async def get_trends(
    range_key: Literal["7d", "30d", "90d", "1y"] = Query("30d", alias="range"),
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    today = SettingsService.today(db, user_id)
    rows = analytics.progress_rows(fetch_metrics(db, user_id, today - timedelta(days=365), today))
    return {
        "range": range_key,
        "trends": analytics.metric_trends(rows, range_key, analytics.SCORE_FIELDS + ("momentum",)),
    }


@router.get("/heatmap")
async def get_heatmap(year: int | None = Query(None, ge=1970, le=9999), user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    year = year or SettingsService.today(db, user_id).year
    rows = analytics.progress_rows(fetch_metrics(db, user_id, date(year, 1, 1), date(year, 12, 31)))
    cells = analytics.activity_levels(rows)
    return {"year": year, "days": cells, "weeks": analytics.year_grid(cells, year)}
