"""Persistence adapter for translation history.

Every operation requires an active auth session. Failures never cross this
boundary: inserts return None and listings return an empty list, with the
cause logged.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import OperationalError, ProgrammingError, SQLAlchemyError
from sqlalchemy.orm import Session

from .models import AuthSession, Translation
from .results import Err, ErrorKind, Ok, Result
from .stats import UsageStatistics, compute_usage_statistics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformationRecord:
	id: str
	owner_id: str
	input_text: str
	output_text: str
	persona: str
	created_at: datetime

	@classmethod
	def from_row(cls, row: Translation) -> "TransformationRecord":
		return cls(
			id=row.id,
			owner_id=row.user_id,
			input_text=row.input_text,
			output_text=row.output_text,
			persona=row.persona,
			created_at=row.created_at,
		)


def _is_missing_table(err: SQLAlchemyError) -> bool:
	if not isinstance(err, (OperationalError, ProgrammingError)):
		return False
	orig = getattr(err, "orig", None)
	# 42P01 is postgres undefined_table
	if getattr(orig, "pgcode", None) == "42P01":
		return True
	message = str(orig or err).lower()
	return "no such table" in message or ("relation" in message and "does not exist" in message)


class HistoryStore:
	def __init__(self, db: Session, session_id: Optional[str]) -> None:
		self.db = db
		self.session_id = session_id

	def _require_session(self) -> Result[str]:
		if not self.session_id:
			return Err(ErrorKind.PRECONDITION, "Authentication required")
		try:
			row = self.db.get(AuthSession, self.session_id)
		except SQLAlchemyError as err:
			logger.error("Could not verify session %s: %s", self.session_id, err)
			return Err(ErrorKind.TRANSIENT, "Session lookup failed")
		if row is None or row.revoked_at is not None:
			return Err(ErrorKind.PRECONDITION, "Authentication required")
		return Ok(row.user_id)

	def insert(self, owner_id: str, input_text: str, output_text: str, persona: str) -> Optional[TransformationRecord]:
		check = self._require_session()
		if isinstance(check, Err):
			logger.error("No active session while saving translation for %s: %s", owner_id, check.message)
			return None
		row = Translation(user_id=owner_id, input_text=input_text, output_text=output_text, persona=persona)
		try:
			self.db.add(row)
			self.db.commit()
			self.db.refresh(row)
		except SQLAlchemyError as err:
			self.db.rollback()
			if _is_missing_table(err):
				logger.error("The translations table does not exist. Database setup required.")
			else:
				logger.error("Error saving translation for %s: %s", owner_id, err)
			return None
		logger.debug("Saved translation %s for %s", row.id, owner_id)
		return TransformationRecord.from_row(row)

	def list_by_owner(self, owner_id: str) -> List[TransformationRecord]:
		check = self._require_session()
		if isinstance(check, Err):
			logger.error("No active session while fetching translations for %s: %s", owner_id, check.message)
			return []
		stmt = (
			select(Translation)
			.where(Translation.user_id == owner_id)
			.order_by(Translation.created_at.desc())
		)
		try:
			rows = self.db.execute(stmt).scalars().all()
		except SQLAlchemyError as err:
			self.db.rollback()
			if _is_missing_table(err):
				logger.error("The translations table does not exist. Database setup required.")
			else:
				logger.error("Error fetching translations for %s: %s", owner_id, err)
			return []
		return [TransformationRecord.from_row(row) for row in rows]

	def usage_statistics(self, owner_id: str, now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> UsageStatistics:
		records = self.list_by_owner(owner_id)
		return compute_usage_statistics(records, now or datetime.now().astimezone(), tz)
