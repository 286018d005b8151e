from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel
from typing import Optional
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import Profile
from .auth import get_current_user, CurrentUser

router = APIRouter(prefix="/profiles", tags=["profiles"])


class ProfileOut(BaseModel):
	id: str
	name: Optional[str] = None


class ProfileCreate(BaseModel):
	id: str
	name: str


@router.get("/{user_id}", response_model=ProfileOut)
async def get_profile(user_id: str, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	row = db.get(Profile, user_id)
	if row is None:
		raise HTTPException(status_code=404, detail="profile not found")
	return ProfileOut(id=row.id, name=row.name)


@router.post("", response_model=ProfileOut, status_code=201)
async def create_profile(req: ProfileCreate, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	if req.id != user.id:
		raise HTTPException(status_code=403, detail="cannot create a profile for another user")
	row = db.get(Profile, req.id)
	if row is not None:
		raise HTTPException(status_code=409, detail="profile already exists")
	row = Profile(id=req.id, name=(req.name or "").strip() or None)
	db.add(row)
	db.commit()
	return ProfileOut(id=row.id, name=row.name)
