from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, Optional
from .personas import get_persona
from .results import Err, ErrorKind, Ok, Result
from .settings import settings

logger = logging.getLogger(__name__)

TRANSLATE_FAILED_MESSAGE = "Failed to translate text. Please try again."


def clean_response(text: str) -> str:
	return text.replace("*", "")


def build_user_prompt(text: str) -> str:
	return (
		"Translate this text into Gen-Z style based on the persona above. "
		"Format important points as bullet points (-) while keeping introductions and conclusions as regular text. "
		"Keep the core meaning but make it match the persona's style perfectly. "
		f"DO NOT use asterisks in your response: \"{text}\""
	)


def build_messages(text: str, persona: str) -> list[Dict[str, str]]:
	return [
		{"role": "system", "content": get_persona(persona).instructions},
		{"role": "user", "content": build_user_prompt(text)},
	]


class TransformClient:
	"""Single-shot client for the OpenRouter chat-completions endpoint.

	``translate`` never raises for oracle failures; it returns ``Err`` with a
	user-facing message. No retry is attempted.
	"""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.openrouter_api_key
		self.model = model or settings.openrouter_model
		self.base_url = base_url or settings.openrouter_base_url
		self._headers = {
			"Authorization": f"Bearer {self.api_key}" if self.api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		self._client = httpx.AsyncClient(timeout=settings.openrouter_timeout_seconds, transport=transport)

	async def translate(self, text: str, persona: str) -> Result[str]:
		if not self.api_key:
			logger.error("OPENROUTER_API_KEY is not configured")
			return Err(ErrorKind.TRANSIENT, TRANSLATE_FAILED_MESSAGE)
		headers = {k: v for k, v in self._headers.items() if v}
		payload: Dict[str, Any] = {
			"model": self.model,
			"messages": build_messages(text, persona),
		}
		try:
			r = await self._client.post(self.base_url, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			logger.error("Translation request failed with status %s: %s", http_err.response.status_code, http_err.response.text)
			return Err(ErrorKind.TRANSIENT, TRANSLATE_FAILED_MESSAGE)
		except httpx.RequestError as net_err:
			logger.error("Translation request could not reach %s: %s", self.base_url, net_err)
			return Err(ErrorKind.TRANSIENT, TRANSLATE_FAILED_MESSAGE)
		try:
			data = r.json()
			content = data["choices"][0]["message"]["content"]
		except (ValueError, KeyError, IndexError, TypeError):
			logger.error("Unexpected translation response: %s", r.text)
			return Err(ErrorKind.TRANSIENT, TRANSLATE_FAILED_MESSAGE)
		return Ok(clean_response(str(content).strip()))

	async def aclose(self) -> None:
		await self._client.aclose()
