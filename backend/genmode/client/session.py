"""Client-side session state kept in step with the identity provider.

The reconciler owns the one current-user value for a client process. It is
pre-filled from the durable cache, confirmed (or discarded) by an
authoritative session check, and then kept current by the provider's auth
events. Every change of the in-memory identity writes or clears the cache
in the same step.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from ..results import Err
from .cache import DurableCache, SESSION_DATA_KEY, SESSION_KEYS, SESSION_TIMESTAMP_KEY, USER_DATA_KEY
from .identity import AuthEvent, AuthEventKind, AuthSubscription, HttpIdentityProvider, RemoteSession, RemoteUser

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_NAME = "User"


class IdentityError(Exception):
	"""Raised to callers of sign-in, sign-up and sign-out when the provider refuses."""


class SessionState(str, Enum):
	UNINITIALIZED = "uninitialized"
	LOADING = "loading"
	AUTHENTICATED = "authenticated"
	ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class SessionIdentity:
	id: str
	email: str
	display_name: str

	def to_dict(self) -> Dict[str, Any]:
		return {"id": self.id, "email": self.email, "name": self.display_name}

	@classmethod
	def from_dict(cls, data: Any) -> Optional["SessionIdentity"]:
		if not isinstance(data, dict) or not data.get("id"):
			return None
		return cls(id=str(data["id"]), email=data.get("email") or "", display_name=data.get("name") or DEFAULT_DISPLAY_NAME)


def display_name_for(user: RemoteUser, profile_name: Optional[str]) -> str:
	if profile_name:
		return profile_name
	local_part = user.email.split("@")[0] if user.email else ""
	return local_part or DEFAULT_DISPLAY_NAME


class SessionReconciler:
	def __init__(self, provider: HttpIdentityProvider, cache: DurableCache) -> None:
		self._provider = provider
		self._cache = cache
		# Optimistic pre-fill; the authoritative check may overwrite it
		self._identity: Optional[SessionIdentity] = SessionIdentity.from_dict(cache.get(USER_DATA_KEY))
		self._state = SessionState.UNINITIALIZED
		self._loading = True
		self._initialized = False
		self._subscription: Optional[AuthSubscription] = None
		self._pump: Optional[asyncio.Task] = None

	@property
	def identity(self) -> Optional[SessionIdentity]:
		return self._identity

	@property
	def state(self) -> SessionState:
		return self._state

	@property
	def is_loading(self) -> bool:
		return self._loading

	@property
	def is_initialized(self) -> bool:
		return self._initialized

	async def __aenter__(self) -> "SessionReconciler":
		await self.start()
		return self

	async def __aexit__(self, *exc_info) -> None:
		await self.aclose()

	async def start(self) -> None:
		if self._subscription is not None:
			return
		self._subscription = self._provider.subscribe()
		self._pump = asyncio.create_task(self._consume(self._subscription))
		await self._initialize()

	async def aclose(self) -> None:
		if self._subscription is None:
			return
		subscription, self._subscription = self._subscription, None
		subscription.unsubscribe()
		if self._pump is not None:
			await self._pump
			self._pump = None

	async def _initialize(self) -> None:
		self._state = SessionState.LOADING
		self._loading = True
		try:
			result = await self._provider.get_session()
			if isinstance(result, Err):
				logger.error("Error initializing auth: %s", result.message)
				self._settle_anonymous()
			elif result.value is None:
				self._settle_anonymous()
			else:
				await self._resolve(result.value)
		finally:
			self._loading = False
			self._initialized = True

	async def _consume(self, subscription: AuthSubscription) -> None:
		async for event in subscription:
			try:
				await self.handle_event(event)
			except Exception:
				logger.exception("Failed to handle auth event %s", event.kind.value)

	async def handle_event(self, event: AuthEvent) -> None:
		logger.info("Auth state changed: %s %s", event.kind.value, event.session.user.id if event.session else None)
		if event.kind == AuthEventKind.SIGNED_OUT:
			self._settle_anonymous()
			return
		if event.session is not None:
			self._loading = True
			try:
				await self._resolve(event.session)
			finally:
				self._loading = False

	def _settle_anonymous(self) -> None:
		self._identity = None
		self._state = SessionState.ANONYMOUS
		self._cache.remove_many(SESSION_KEYS)

	def _settle_authenticated(self, identity: SessionIdentity, session: RemoteSession) -> None:
		self._identity = identity
		self._state = SessionState.AUTHENTICATED
		self._cache.set_many({
			USER_DATA_KEY: identity.to_dict(),
			SESSION_TIMESTAMP_KEY: datetime.now(timezone.utc).isoformat(),
			SESSION_DATA_KEY: session.to_dict(),
		})

	async def _resolve(self, session: RemoteSession) -> bool:
		"""Turn a provider session into the current identity. Returns False when it settled anonymous."""
		user = session.user
		cached = SessionIdentity.from_dict(self._cache.get(USER_DATA_KEY))
		if cached is not None and cached.id == user.id:
			self._settle_authenticated(cached, session)
			return True

		profile = await self._provider.fetch_profile(user.id)
		if isinstance(profile, Err):
			logger.error("Error fetching profile for %s: %s", user.id, profile.message)
			self._settle_anonymous()
			return False

		identity = SessionIdentity(
			id=user.id,
			email=user.email or "",
			display_name=display_name_for(user, profile.value.get("name") if isinstance(profile.value, dict) else None),
		)
		self._settle_authenticated(identity, session)
		return True

	async def sign_in(self, email: str, password: str) -> SessionIdentity:
		self._loading = True
		try:
			result = await self._provider.sign_in(email, password)
			if isinstance(result, Err):
				self._settle_anonymous()
				raise IdentityError(result.message)
			if not await self._resolve(result.value):
				raise IdentityError("Signed in but the user profile could not be loaded")
			return self._identity
		finally:
			self._loading = False

	async def sign_up(self, email: str, password: str, name: str) -> SessionIdentity:
		self._loading = True
		try:
			result = await self._provider.sign_up(email, password, name)
			if isinstance(result, Err):
				self._settle_anonymous()
				raise IdentityError(result.message)
			user = result.value.user
			profile = await self._provider.fetch_profile(user.id)
			if isinstance(profile, Err):
				# The server normally creates the profile at signup; create it if it did not
				created = await self._provider.insert_profile(user.id, name)
				if isinstance(created, Err):
					logger.error("Error creating profile for %s: %s", user.id, created.message)
			if not await self._resolve(result.value):
				raise IdentityError("Account created but the user profile could not be loaded")
			return self._identity
		finally:
			self._loading = False

	async def sign_out(self) -> None:
		result = await self._provider.sign_out()
		if isinstance(result, Err):
			raise IdentityError(result.message)
		self._settle_anonymous()
