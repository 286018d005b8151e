from __future__ import annotations
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

USER_DATA_KEY = "genmode-user-data"
SESSION_TIMESTAMP_KEY = "genmode-session-timestamp"
SESSION_DATA_KEY = "genmode-session-data"

SESSION_KEYS = (USER_DATA_KEY, SESSION_TIMESTAMP_KEY, SESSION_DATA_KEY)


class DurableCache:
	"""Key-value slots persisted as one JSON document on disk.

	Every mutation rewrites the whole file through a temp file and
	``os.replace`` so readers never see a half-written document. Other
	processes writing the same file are not coordinated with; the last
	writer wins.
	"""

	def __init__(self, path: str | os.PathLike) -> None:
		self.path = Path(path).expanduser()

	def _load(self) -> Dict[str, Any]:
		try:
			raw = self.path.read_text(encoding="utf-8")
		except FileNotFoundError:
			return {}
		try:
			data = json.loads(raw)
		except json.JSONDecodeError:
			logger.warning("Ignoring corrupt session cache at %s", self.path)
			return {}
		return data if isinstance(data, dict) else {}

	def _store(self, data: Dict[str, Any]) -> None:
		self.path.parent.mkdir(parents=True, exist_ok=True)
		fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".session-", suffix=".json")
		try:
			with os.fdopen(fd, "w", encoding="utf-8") as fh:
				json.dump(data, fh)
			os.replace(tmp, self.path)
		except BaseException:
			Path(tmp).unlink(missing_ok=True)
			raise

	def get(self, key: str) -> Optional[Any]:
		return self._load().get(key)

	def set_many(self, values: Dict[str, Any]) -> None:
		data = self._load()
		data.update(values)
		self._store(data)

	def set(self, key: str, value: Any) -> None:
		self.set_many({key: value})

	def remove_many(self, keys: Iterable[str]) -> None:
		data = self._load()
		for key in keys:
			data.pop(key, None)
		self._store(data)

	def remove(self, key: str) -> None:
		self.remove_many([key])

	def keys(self) -> list[str]:
		return list(self._load().keys())
