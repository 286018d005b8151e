from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text
from .db import Base


def _new_id() -> str:
	return uuid.uuid4().hex


def _utcnow() -> datetime:
	# Second resolution: records inserted within the same second share a timestamp
	return datetime.utcnow().replace(microsecond=0)


class AuthUser(Base):
	__tablename__ = "auth_users"
	id = Column(String(32), primary_key=True, default=_new_id)
	email = Column(String(256), unique=True, index=True, nullable=False)
	password_hash = Column(String(256), nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(32), index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	revoked_at = Column(DateTime, nullable=True)


class Profile(Base):
	__tablename__ = "profiles"
	# Same id as the owning AuthUser
	id = Column(String(32), primary_key=True)
	name = Column(String(256), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Translation(Base):
	__tablename__ = "translations"
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), index=True, nullable=False)
	input_text = Column(Text, nullable=False)
	output_text = Column(Text, nullable=False)
	persona = Column(String(32), nullable=False)
	created_at = Column(DateTime, default=_utcnow, index=True, nullable=False)
