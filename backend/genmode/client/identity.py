"""HTTP client for the GenMode identity endpoints.

Mirrors the small surface the session reconciler needs: current session,
password sign-in, sign-up with a display name, sign-out, token refresh,
profile lookup/insert, and a push channel of auth events. Every call
returns a :class:`~genmode.results.Result`; transport and HTTP errors are
folded into ``Err`` values.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx

from ..results import Err, ErrorKind, Ok, Result

logger = logging.getLogger(__name__)


class AuthEventKind(str, Enum):
	INITIAL_SESSION = "INITIAL_SESSION"
	SIGNED_IN = "SIGNED_IN"
	SIGNED_OUT = "SIGNED_OUT"
	TOKEN_REFRESHED = "TOKEN_REFRESHED"
	USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class RemoteUser:
	id: str
	email: str = ""
	user_metadata: Dict[str, Any] = field(default_factory=dict)

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "RemoteUser":
		return cls(id=str(data["id"]), email=data.get("email") or "", user_metadata=dict(data.get("user_metadata") or {}))

	def to_dict(self) -> Dict[str, Any]:
		return {"id": self.id, "email": self.email, "user_metadata": dict(self.user_metadata)}


@dataclass(frozen=True)
class RemoteSession:
	access_token: str
	user: RemoteUser
	token_type: str = "bearer"

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "RemoteSession":
		return cls(
			access_token=data["access_token"],
			token_type=data.get("token_type", "bearer"),
			user=RemoteUser.from_dict(data["user"]),
		)

	def to_dict(self) -> Dict[str, Any]:
		return {"access_token": self.access_token, "token_type": self.token_type, "user": self.user.to_dict()}


@dataclass(frozen=True)
class AuthEvent:
	kind: AuthEventKind
	session: Optional[RemoteSession] = None


class AuthSubscription:
	"""One consumer's view of the provider's auth events, in arrival order."""

	def __init__(self, provider: "HttpIdentityProvider") -> None:
		self._provider = provider
		self._queue: asyncio.Queue[Optional[AuthEvent]] = asyncio.Queue()
		self.closed = False

	def _deliver(self, event: AuthEvent) -> None:
		if not self.closed:
			self._queue.put_nowait(event)

	async def get(self) -> Optional[AuthEvent]:
		"""Next event, or None once unsubscribed."""
		if self.closed and self._queue.empty():
			return None
		return await self._queue.get()

	def __aiter__(self):
		return self

	async def __anext__(self) -> AuthEvent:
		event = await self.get()
		if event is None:
			raise StopAsyncIteration
		return event

	def unsubscribe(self) -> None:
		if self.closed:
			return
		self.closed = True
		self._provider._detach(self)
		# Wake a consumer blocked in get()
		self._queue.put_nowait(None)


def _json(response: httpx.Response, what: str) -> Result[Any]:
	try:
		return Ok(response.json())
	except ValueError:
		logger.error("Malformed %s payload from %s: %r", what, response.request.url, response.text[:200])
		return Err(ErrorKind.TRANSIENT, f"Malformed {what} payload")


def _error_message(response: httpx.Response) -> str:
	try:
		detail = response.json().get("detail")
	except (ValueError, AttributeError):
		detail = None
	if isinstance(detail, str) and detail:
		return detail
	return f"request failed with status {response.status_code}"


class HttpIdentityProvider:
	def __init__(
		self,
		base_url: str,
		*,
		session: Optional[RemoteSession] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
		timeout: float = 30,
	) -> None:
		self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
		self._session = session
		self._subscribers: List[AuthSubscription] = []

	@property
	def access_token(self) -> Optional[str]:
		return self._session.access_token if self._session else None

	def subscribe(self) -> AuthSubscription:
		subscription = AuthSubscription(self)
		self._subscribers.append(subscription)
		return subscription

	def _detach(self, subscription: AuthSubscription) -> None:
		if subscription in self._subscribers:
			self._subscribers.remove(subscription)

	def _emit(self, kind: AuthEventKind, session: Optional[RemoteSession]) -> None:
		event = AuthEvent(kind=kind, session=session)
		for subscription in list(self._subscribers):
			subscription._deliver(event)

	def _auth_headers(self) -> Dict[str, str]:
		token = self.access_token
		return {"Authorization": f"Bearer {token}"} if token else {}

	async def _request(self, method: str, url: str, **kwargs: Any) -> Result[httpx.Response]:
		try:
			r = await self._client.request(method, url, **kwargs)
		except httpx.RequestError as err:
			logger.error("Identity provider unreachable (%s %s): %s", method, url, err)
			return Err(ErrorKind.TRANSIENT, "Identity provider is unreachable")
		return Ok(r)

	def _set_session(self, kind: AuthEventKind, response: httpx.Response) -> Result[RemoteSession]:
		body = _json(response, "session")
		if isinstance(body, Err):
			return body
		try:
			session = RemoteSession.from_dict(body.value)
		except (KeyError, TypeError, AttributeError) as err:
			logger.error("Malformed session payload: %s", err)
			return Err(ErrorKind.TRANSIENT, "Malformed session payload")
		self._session = session
		self._emit(kind, session)
		return Ok(session)

	async def get_session(self) -> Result[Optional[RemoteSession]]:
		"""Validate the held token with the server. ``Ok(None)`` means no session."""
		if self._session is None:
			return Ok(None)
		result = await self._request("GET", "/auth/session", headers=self._auth_headers())
		if isinstance(result, Err):
			return result
		r = result.value
		if r.status_code == 401:
			self._session = None
			return Ok(None)
		if r.is_error:
			return Err(ErrorKind.TRANSIENT, _error_message(r))
		body = _json(r, "session")
		if isinstance(body, Err):
			return body
		try:
			session = RemoteSession.from_dict(body.value)
		except (KeyError, TypeError, AttributeError) as err:
			logger.error("Malformed session payload: %s", err)
			return Err(ErrorKind.TRANSIENT, "Malformed session payload")
		self._session = session
		return Ok(session)

	async def sign_in(self, email: str, password: str) -> Result[RemoteSession]:
		result = await self._request("POST", "/auth/token", data={"username": email, "password": password})
		if isinstance(result, Err):
			return result
		r = result.value
		if r.is_error:
			return Err(ErrorKind.PRECONDITION if r.status_code == 401 else ErrorKind.TRANSIENT, _error_message(r))
		return self._set_session(AuthEventKind.SIGNED_IN, r)

	async def sign_up(self, email: str, password: str, name: str) -> Result[RemoteSession]:
		result = await self._request("POST", "/auth/signup", json={"email": email, "password": password, "name": name})
		if isinstance(result, Err):
			return result
		r = result.value
		if r.is_error:
			return Err(ErrorKind.TRANSIENT if r.status_code >= 500 else ErrorKind.PRECONDITION, _error_message(r))
		return self._set_session(AuthEventKind.SIGNED_IN, r)

	async def refresh(self) -> Result[RemoteSession]:
		if self._session is None:
			return Err(ErrorKind.PRECONDITION, "Authentication required")
		result = await self._request("POST", "/auth/refresh", headers=self._auth_headers())
		if isinstance(result, Err):
			return result
		r = result.value
		if r.status_code == 401:
			self._session = None
			self._emit(AuthEventKind.SIGNED_OUT, None)
			return Err(ErrorKind.PRECONDITION, "Authentication required")
		if r.is_error:
			return Err(ErrorKind.TRANSIENT, _error_message(r))
		return self._set_session(AuthEventKind.TOKEN_REFRESHED, r)

	async def sign_out(self) -> Result[None]:
		if self._session is not None:
			result = await self._request("POST", "/auth/logout", headers=self._auth_headers())
			if isinstance(result, Err):
				return result
			r = result.value
			# 401 means the server already forgot the session
			if r.is_error and r.status_code != 401:
				return Err(ErrorKind.TRANSIENT, _error_message(r))
		self._session = None
		self._emit(AuthEventKind.SIGNED_OUT, None)
		return Ok(None)

	async def fetch_profile(self, user_id: str) -> Result[Dict[str, Any]]:
		result = await self._request("GET", f"/profiles/{user_id}", headers=self._auth_headers())
		if isinstance(result, Err):
			return result
		r = result.value
		if r.status_code == 404:
			return Err(ErrorKind.NOT_FOUND, "profile not found")
		if r.status_code == 401:
			return Err(ErrorKind.PRECONDITION, "Authentication required")
		if r.is_error:
			return Err(ErrorKind.TRANSIENT, _error_message(r))
		return self._profile(r)

	async def insert_profile(self, user_id: str, name: str) -> Result[Dict[str, Any]]:
		result = await self._request("POST", "/profiles", headers=self._auth_headers(), json={"id": user_id, "name": name})
		if isinstance(result, Err):
			return result
		r = result.value
		if r.is_error:
			return Err(ErrorKind.TRANSIENT, _error_message(r))
		return self._profile(r)

	def _profile(self, response: httpx.Response) -> Result[Dict[str, Any]]:
		body = _json(response, "profile")
		if isinstance(body, Err):
			return body
		if not isinstance(body.value, dict):
			logger.error("Profile payload is not an object: %r", body.value)
			return Err(ErrorKind.TRANSIENT, "Malformed profile payload")
		return body

	async def aclose(self) -> None:
		for subscription in list(self._subscribers):
			subscription.unsubscribe()
		await self._client.aclose()
