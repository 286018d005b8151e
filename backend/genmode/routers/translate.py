from __future__ import annotations
import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..history import HistoryStore
from ..llm_client import TransformClient
from ..personas import DEFAULT_PERSONA, is_known
from ..results import Err
from .auth import get_current_user, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/translate", tags=["translate"])

SAVE_WARNING = "Translation completed but couldn't save to history."


class TranslateRequest(BaseModel):
	text: str
	persona: Optional[str] = None
	mode: Optional[Literal["direct", "full"]] = None


class TranslateResponse(BaseModel):
	text: str
	persona: str
	saved: bool
	warning: Optional[str] = None


async def get_transform_client():
	client = TransformClient()
	try:
		yield client
	finally:
		await client.aclose()


def _resolve_persona(req: TranslateRequest) -> str:
	mode = req.mode or ("full" if req.persona else "direct")
	# Direct mode always uses the direct persona
	if mode == "direct":
		return DEFAULT_PERSONA
	if not req.persona:
		raise HTTPException(status_code=400, detail="Please select a role first.")
	if not is_known(req.persona):
		raise HTTPException(status_code=400, detail=f"unknown persona: {req.persona}")
	return req.persona


@router.post("", response_model=TranslateResponse)
async def translate(
	req: TranslateRequest,
	user: CurrentUser = Depends(get_current_user),
	db: Session = Depends(get_db),
	client: TransformClient = Depends(get_transform_client),
):
	if not (req.text or "").strip():
		raise HTTPException(status_code=400, detail="Please enter some text to translate.")
	persona = _resolve_persona(req)
	result = await client.translate(req.text, persona)
	if isinstance(result, Err):
		raise HTTPException(status_code=502, detail=result.message)
	saved = HistoryStore(db, user.session_id).insert(user.id, req.text, result.value, persona)
	if saved is None:
		logger.warning("Translation for %s not saved to history", user.id)
		return TranslateResponse(text=result.value, persona=persona, saved=False, warning=SAVE_WARNING)
	return TranslateResponse(text=result.value, persona=persona, saved=True)
