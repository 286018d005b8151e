from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..llm_client import TRANSLATE_FAILED_MESSAGE
from ..results import Err, ErrorKind, Ok, Result
from ..stats import ZERO_STATS, UsageStatistics
from .identity import HttpIdentityProvider

logger = logging.getLogger(__name__)


class GenModeClient:
	"""Translate, history and stats calls made with the provider's current token."""

	def __init__(self, base_url: str, provider: HttpIdentityProvider, *, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 90) -> None:
		self._provider = provider
		self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

	def _headers(self) -> Dict[str, str]:
		token = self._provider.access_token
		return {"Authorization": f"Bearer {token}"} if token else {}

	async def translate(self, text: str, persona: Optional[str] = None, mode: Optional[str] = None) -> Result[Dict[str, Any]]:
		payload: Dict[str, Any] = {"text": text}
		if persona:
			payload["persona"] = persona
		if mode:
			payload["mode"] = mode
		try:
			r = await self._client.post("/translate", json=payload, headers=self._headers())
		except httpx.RequestError as err:
			logger.error("Translate request failed: %s", err)
			return Err(ErrorKind.TRANSIENT, TRANSLATE_FAILED_MESSAGE)
		if r.status_code == 401:
			return Err(ErrorKind.PRECONDITION, "Authentication required")
		if r.is_error:
			try:
				detail = r.json().get("detail") or TRANSLATE_FAILED_MESSAGE
			except ValueError:
				detail = TRANSLATE_FAILED_MESSAGE
			return Err(ErrorKind.TRANSIENT, str(detail))
		try:
			return Ok(r.json())
		except ValueError:
			logger.error("Malformed translate response: %r", r.text[:200])
			return Err(ErrorKind.TRANSIENT, TRANSLATE_FAILED_MESSAGE)

	async def history(self) -> List[Dict[str, Any]]:
		try:
			r = await self._client.get("/history", headers=self._headers())
			r.raise_for_status()
			return r.json()
		except (httpx.HTTPError, ValueError) as err:
			logger.error("Error fetching translations: %s", err)
			return []

	async def stats(self, tz: Optional[str] = None) -> UsageStatistics:
		params = {"tz": tz} if tz else None
		try:
			r = await self._client.get("/stats", params=params, headers=self._headers())
			r.raise_for_status()
			data = r.json()
			return UsageStatistics(
				total_count=int(data["total_count"]),
				weekly_count=int(data["weekly_count"]),
				unique_persona_count=int(data["unique_persona_count"]),
				streak_days=int(data["streak_days"]),
			)
		except (httpx.HTTPError, ValueError, KeyError, TypeError) as err:
			logger.error("Error fetching user stats: %s", err)
			return ZERO_STATS

	async def personas(self) -> List[Dict[str, Any]]:
		try:
			r = await self._client.get("/personas")
			r.raise_for_status()
			return r.json()
		except (httpx.HTTPError, ValueError) as err:
			logger.error("Error fetching personas: %s", err)
			return []

	async def aclose(self) -> None:
		await self._client.aclose()
