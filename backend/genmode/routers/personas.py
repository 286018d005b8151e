from fastapi import APIRouter
from pydantic import BaseModel
from typing import List
from ..personas import list_personas

router = APIRouter(prefix="/personas", tags=["personas"])


class PersonaOut(BaseModel):
	id: str
	name: str
	emoji: str
	description: str


@router.get("", response_model=List[PersonaOut])
async def personas():
	return [PersonaOut(id=p.id, name=p.name, emoji=p.emoji, description=p.description) for p in list_personas()]
