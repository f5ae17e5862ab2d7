from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from daystack.auth import get_current_user
from daystack.database import get_db
from daystack.services.metric_service import MetricService

router = APIRouter(prefix="/api/v1/metrics", tags=["Metrics"])


class MetricCreateUpdate(BaseModel):
    date: date
    mood: int = Field(ge=1, le=10)
    energy: int = Field(ge=1, le=10)
    productivity: int = Field(ge=1, le=10)
    note: Optional[str] = None


@router.post("")
async def create_or_update_metric(body: MetricCreateUpdate, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        metric = MetricService.create_or_update(
            db, user_id, body.date, body.mood, body.energy, body.productivity, body.note
        )
        return metric.to_dict()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/day")
async def get_day(day: date = Query(alias="date"), user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    metric = MetricService.get_day(db, user_id, day)
    return metric.to_dict() if metric else None


@router.get("/range")
async def get_range(start_date: date, end_date: date, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    if start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")
    return [m.to_dict() for m in MetricService.get_range(db, user_id, start_date, end_date)]
