from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError
from pydantic import BaseModel, Field
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import AuthUser, AuthSession, Profile
from ..security import create_access_token, decode_access_token, hash_password, new_session_id, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class UserMetadata(BaseModel):
	name: Optional[str] = None


class SessionUser(BaseModel):
	id: str
	email: str
	user_metadata: UserMetadata = Field(default_factory=UserMetadata)


class SessionResponse(BaseModel):
	access_token: str
	token_type: str = "bearer"
	user: SessionUser


class CurrentUser(BaseModel):
	id: str
	email: str
	session_id: str


class SignUpRequest(BaseModel):
	email: str
	password: str
	name: str


def _session_user(user: AuthUser, db: Session) -> SessionUser:
	profile = db.get(Profile, user.id)
	return SessionUser(id=user.id, email=user.email, user_metadata=UserMetadata(name=profile.name if profile else None))


def _open_session(db: Session, user: AuthUser) -> SessionResponse:
	session_id = new_session_id()
	access_token = create_access_token({"sub": user.id, "jti": session_id})
	db.add(AuthSession(session_id=session_id, user_id=user.id))
	db.commit()
	return SessionResponse(access_token=access_token, user=_session_user(user, db))


def authenticate_user(db: Session, email: str, password: str) -> Optional[AuthUser]:
	user_row = db.query(AuthUser).filter(AuthUser.email == email.strip().lower()).first()
	if user_row and verify_password(password, user_row.password_hash):
		return user_row
	return None


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> CurrentUser:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = decode_access_token(token)
		user_id: str | None = payload.get("sub")
		jti: str | None = payload.get("jti")
		if user_id is None or jti is None:
			raise credentials_exception
	except JWTError:
		raise credentials_exception
	# The session row must exist and not be revoked
	try:
		row = db.get(AuthSession, jti)
		if not row or row.user_id != user_id or row.revoked_at is not None:
			raise credentials_exception
		user = db.get(AuthUser, user_id)
		if user is None:
			raise credentials_exception
		row.last_activity_at = datetime.utcnow()
		db.add(row)
		db.commit()
	except HTTPException:
		raise
	except SQLAlchemyError as err:
		# On DB errors, fail closed
		logger.error("Session lookup failed: %s", err)
		raise credentials_exception
	return CurrentUser(id=user.id, email=user.email, session_id=jti)


@router.post("/token", response_model=SessionResponse)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		raise HTTPException(status_code=401, detail="Invalid login credentials")
	return _open_session(db, user)


@router.post("/signup", response_model=SessionResponse, status_code=201)
async def signup(req: SignUpRequest, db: Session = Depends(get_db)):
	email = (req.email or "").strip().lower()
	password = req.password or ""
	name = (req.name or "").strip()
	if not email or not password:
		raise HTTPException(status_code=400, detail="email and password are required")
	if "@" not in email:
		raise HTTPException(status_code=400, detail="email is invalid")
	if len(password) < 6:
		raise HTTPException(status_code=400, detail="password must be at least 6 characters")
	existing = db.query(AuthUser).filter(AuthUser.email == email).first()
	if existing:
		raise HTTPException(status_code=409, detail="User already registered")
	user = AuthUser(email=email, password_hash=hash_password(password))
	db.add(user)
	db.flush()
	# Mirrors a signup trigger: the profile carries the name supplied as metadata
	db.add(Profile(id=user.id, name=name or None))
	db.commit()
	logger.info("Registered user %s", user.id)
	return _open_session(db, user)


@router.get("/session", response_model=SessionResponse)
async def current_session(token: str = Depends(oauth2_scheme), user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	row = db.get(AuthUser, user.id)
	return SessionResponse(access_token=token, user=_session_user(row, db))


@router.post("/refresh", response_model=SessionResponse)
async def refresh(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	old = db.get(AuthSession, user.session_id)
	old.revoked_at = datetime.utcnow()
	db.add(old)
	db.commit()
	return _open_session(db, db.get(AuthUser, user.id))


@router.post("/logout", status_code=204)
async def logout(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	row = db.get(AuthSession, user.session_id)
	row.revoked_at = datetime.utcnow()
	db.add(row)
	db.commit()
	return None
