import logging
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..history import HistoryStore
from .auth import get_current_user, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stats", tags=["stats"])


class StatsOut(BaseModel):
	total_count: int
	weekly_count: int
	unique_persona_count: int
	streak_days: int


@router.get("", response_model=StatsOut)
async def stats(tz: Optional[str] = None, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	zone = None
	if tz:
		try:
			zone = ZoneInfo(tz)
		except (ZoneInfoNotFoundError, ValueError):
			raise HTTPException(status_code=400, detail=f"unknown time zone: {tz}")
	result = HistoryStore(db, user.session_id).usage_statistics(user.id, tz=zone)
	return StatsOut(
		total_count=result.total_count,
		weekly_count=result.weekly_count,
		unique_persona_count=result.unique_persona_count,
		streak_days=result.streak_days,
	)
