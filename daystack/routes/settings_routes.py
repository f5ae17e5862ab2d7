from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from daystack.auth import get_current_user
from daystack.database import get_db
from daystack.services.settings_service import SettingsService, is_valid_timezone

router = APIRouter(prefix="/api/v1/settings", tags=["Settings"])


class NotificationPrefs(BaseModel):
    daily_reminder: Optional[bool] = None
    reminder_time: Optional[str] = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    weekly_summary: Optional[bool] = None


class SettingsUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    timezone: Optional[str] = None
    theme: Optional[Literal["light", "dark", "system"]] = None
    notifications: Optional[NotificationPrefs] = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        if v is not None and not is_valid_timezone(v):
            raise ValueError(f"Unknown timezone: {v}")
        return v


@router.get("")
async def get_settings(user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return SettingsService.get(db, user_id)


@router.put("")
async def update_settings(body: SettingsUpdate, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return SettingsService.update(db, user_id, body.model_dump(exclude_none=True))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/data")
async def data_overview(user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return SettingsService.data_overview(db, user_id)


@router.delete("/data")
async def clear_data(user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return {"status": "success", "deleted": SettingsService.clear_data(db, user_id)}
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
