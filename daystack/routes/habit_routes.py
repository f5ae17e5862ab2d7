from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from daystack.auth import get_current_user
from daystack.database import get_db
from daystack.services.habit_service import HabitService

router = APIRouter(prefix="/api/v1/habits", tags=["Habits"])

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class HabitCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: Literal["boolean", "quantity"]
    target: Optional[float] = None
    color: str = Field(pattern=COLOR_PATTERN)


class HabitUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[Literal["boolean", "quantity"]] = None
    target: Optional[float] = None
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)


class HabitReorder(BaseModel):
    habit_ids: list[int]


class HabitLogUpdate(BaseModel):
    habit_id: int
    date: date
    completed: bool
    value: Optional[float] = None


@router.get("")
async def list_habits(user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return [h.to_dict() for h in HabitService.get_all(db, user_id)]


@router.post("")
async def create_habit(habit_data: HabitCreate, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        habit = HabitService.create(db, user_id, habit_data.model_dump())
        return habit.to_dict()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/reorder")
async def reorder_habits(body: HabitReorder, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        habits = HabitService.reorder(db, user_id, body.habit_ids)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    if habits is None:
        raise HTTPException(status_code=404, detail="Habit not found")
    return [h.to_dict() for h in habits]


@router.post("/log")
async def update_habit_log(body: HabitLogUpdate, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        log = HabitService.update_log(db, user_id, body.habit_id, body.date, body.completed, body.value)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    if log is None:
        raise HTTPException(status_code=404, detail="Habit not found")
    return log.to_dict()


@router.put("/{habit_id}")
async def update_habit(habit_id: int, habit_data: HabitUpdate, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        habit = HabitService.update(db, user_id, habit_id, habit_data.model_dump(exclude_unset=True))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    if habit is None:
        raise HTTPException(status_code=404, detail="Habit not found")
    return habit.to_dict()


@router.delete("/{habit_id}")
async def delete_habit(habit_id: int, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        habit = HabitService.delete(db, user_id, habit_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    if habit is None:
        raise HTTPException(status_code=404, detail="Habit not found")
    return habit.to_dict()
