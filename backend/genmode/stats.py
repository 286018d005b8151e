"""Per-user usage statistics computed from translation records.

Everything here is a pure function of the records and the evaluation
instant; nothing is cached or maintained incrementally.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Iterable, List, Optional

logger = logging.getLogger(__name__)

WEEK = timedelta(days=7)


@dataclass(frozen=True)
class UsageStatistics:
	total_count: int = 0
	weekly_count: int = 0
	unique_persona_count: int = 0
	streak_days: int = 0


ZERO_STATS = UsageStatistics()


def _as_aware(moment: datetime) -> datetime:
	# Naive timestamps come from the store and are UTC
	if moment.tzinfo is None:
		return moment.replace(tzinfo=timezone.utc)
	return moment


def parse_timestamp(value: Any) -> Optional[datetime]:
	"""Coerce a stored ``created_at`` into an aware datetime, or None if malformed."""
	if isinstance(value, datetime):
		return _as_aware(value)
	if isinstance(value, str):
		text = value.strip()
		if text.endswith("Z"):
			text = text[:-1] + "+00:00"
		try:
			return _as_aware(datetime.fromisoformat(text))
		except ValueError:
			return None
	return None


def local_day(moment: datetime, tz: Optional[tzinfo] = None) -> date:
	# astimezone(None) converts to the system local zone
	return moment.astimezone(tz).date()


def streak_length(days: Iterable[date], today: date) -> int:
	"""Count consecutive days ending at ``today`` or the day before.

	``days`` may contain duplicates and be in any order. The walk starts at
	the most recent day and stops at the first gap.
	"""
	distinct = sorted(set(days), reverse=True)
	if not distinct:
		return 0
	if distinct[0] not in (today, today - timedelta(days=1)):
		return 0
	streak = 1
	anchor = distinct[0]
	for day in distinct[1:]:
		if anchor - day != timedelta(days=1):
			break
		streak += 1
		anchor = day
	return streak


def compute_usage_statistics(records: Iterable[Any], now: datetime, tz: Optional[tzinfo] = None) -> UsageStatistics:
	"""Aggregate one user's records into :class:`UsageStatistics`.

	Records need ``persona`` and ``created_at`` attributes. A record whose
	``created_at`` cannot be parsed is dropped from every count and logged.
	``tz`` selects the calendar used for the streak; None means the system
	local zone.
	"""
	now = _as_aware(now)
	valid: List[Any] = []
	stamps: List[datetime] = []
	for record in records:
		stamp = parse_timestamp(getattr(record, "created_at", None))
		if stamp is None:
			logger.warning("Skipping record %s with malformed created_at %r", getattr(record, "id", "?"), getattr(record, "created_at", None))
			continue
		valid.append(record)
		stamps.append(stamp)

	if not valid:
		return ZERO_STATS

	weekly = sum(1 for stamp in stamps if now - stamp < WEEK)
	personas = {record.persona for record in valid}
	streak = streak_length((local_day(stamp, tz) for stamp in stamps), local_day(now, tz))
	return UsageStatistics(
		total_count=len(valid),
		weekly_count=weekly,
		unique_persona_count=len(personas),
		streak_days=streak,
	)
