from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..history import HistoryStore
from .auth import get_current_user, CurrentUser

router = APIRouter(prefix="/history", tags=["history"])


class TranslationOut(BaseModel):
	id: str
	user_id: str
	input_text: str
	output_text: str
	persona: str
	created_at: datetime


@router.get("", response_model=List[TranslationOut])
async def history(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	records = HistoryStore(db, user.session_id).list_by_owner(user.id)
	return [
		TranslationOut(
			id=r.id,
			user_id=r.owner_id,
			input_text=r.input_text,
			output_text=r.output_text,
			persona=r.persona,
			created_at=r.created_at,
		)
		for r in records
	]
