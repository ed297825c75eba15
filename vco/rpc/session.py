"""Authenticated session handling for the VCO client."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from ..core.errors import (
    AuthError,
    ClientTimeout,
    InvalidCredentials,
    TransportFailure,
    Unreachable,
    VcoError,
)
from ..core.models import REDACTED, LoginRequest
from ..security.jwt_handler import JWTHandler
from .config import Config, WireProtocol
from .transport import Transport

logger = logging.getLogger(__name__)

# Cookie carrying the portal session.
SESSION_COOKIE = "velocloud.session"


class CredentialKind(str, Enum):
    PASSWORD = "password"
    TOKEN = "token"


class LoginScope(str, Enum):
    """Which portal login endpoint a password is checked against."""

    OPERATOR = "operator"
    ENTERPRISE = "enterprise"


class AuthScheme(str, Enum):
    """How a session token is attached to requests."""

    COOKIE = "cookie"
    TOKEN = "token"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Credentials:
    """Operator or enterprise credentials: a password or a long-lived API token."""

    kind: CredentialKind
    username: str
    secret: str = field(repr=False)
    scope: LoginScope = LoginScope.OPERATOR

    @classmethod
    def password(
        cls, username: str, password: str, scope: LoginScope = LoginScope.OPERATOR
    ) -> "Credentials":
        return cls(CredentialKind.PASSWORD, username, password, scope)

    @classmethod
    def token(cls, token: str, username: str = "") -> "Credentials":
        return cls(CredentialKind.TOKEN, username or JWTHandler.subject(token) or "", token)

    def __repr__(self) -> str:
        return f"Credentials({self.kind.value}, {self.username!r}, {REDACTED})"


@dataclass(frozen=True)
class Session:
    """An authenticated session. Replaced wholesale, never mutated."""

    token: str = field(repr=False)
    issued_at: datetime
    expires_at: Optional[datetime]
    auth_scheme: AuthScheme
    # None means the token is honoured by both wire protocols.
    protocol_affinity: Optional[WireProtocol] = None

    def is_expired(self, now: Optional[datetime] = None, margin: float = 0.0) -> bool:
        if self.expires_at is None:
            return False
        now = now or _utcnow()
        return now + timedelta(seconds=margin) >= self.expires_at

    def accepts(self, protocol: Optional[WireProtocol]) -> bool:
        return protocol is None or self.protocol_affinity is None or self.protocol_affinity is protocol

    def auth_headers(self) -> Dict[str, str]:
        """Headers that carry this session on a request."""
        if self.auth_scheme is AuthScheme.COOKIE:
            return {"Cookie": f"{SESSION_COOKIE}={self.token}"}
        return {"Authorization": f"Token {self.token}"}


class SessionManager:
    """Owns the credentials and the one live session of a client.

    :meth:`current_token` never hands out an expired session. When a refresh
    is needed it is single-flight: the first caller starts one refresh task
    and every concurrent caller awaits that same task, sharing its session or
    its failure.
    """

    def __init__(
        self,
        config: Config,
        transport: Transport,
        credentials: Optional[Credentials] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config
        self.transport = transport
        self._credentials = credentials
        self._clock = clock
        self._session: Optional[Session] = None
        self._lock = asyncio.Lock()
        self._refresh_task: Optional["asyncio.Task[Session]"] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    async def login(self, credentials: Optional[Credentials] = None) -> Session:
        """Perform one login exchange and hold the resulting session."""
        if credentials is not None:
            self._credentials = credentials
        session = await self._login()
        self._session = session
        return session

    async def current_token(self, protocol: Optional[WireProtocol] = None) -> Session:
        """Return a valid session, refreshing it (once, for all callers) if needed."""
        session = self._session
        if self._usable(session, protocol):
            return session
        async with self._lock:
            session = self._session
            if self._usable(session, protocol):
                return session
            task = self._refresh_task
            if task is None:
                task = asyncio.ensure_future(self._refresh())
                task.add_done_callback(_consume_result)
                self._refresh_task = task
        # A waiter being cancelled must not cancel the shared refresh.
        return await asyncio.shield(task)

    def invalidate(self, session: Optional[Session] = None) -> None:
        """Mark the held session stale.

        When ``session`` is given and has already been replaced, nothing
        happens, so a late failure cannot discard a newer session.
        """
        if session is not None and session is not self._session:
            return
        if self._session is not None:
            logger.debug("Session invalidated")
        self._session = None

    async def logout(self) -> None:
        """Best-effort remote logout; local state is always cleared."""
        session, self._session = self._session, None
        if session is None or session.auth_scheme is not AuthScheme.COOKIE:
            return
        try:
            response = await self.transport.send(
                "POST",
                self.config.portal_url("logout"),
                headers=session.auth_headers(),
                timeout=self.config.login_timeout,
            )
            if not response.ok:
                logger.warning(f"Remote logout returned {response.status_code}")
        except VcoError as e:
            logger.warning(f"Remote logout failed: {e}")

    def _usable(self, session: Optional[Session], protocol: Optional[WireProtocol]) -> bool:
        if session is None or not session.accepts(protocol):
            return False
        # API tokens cannot be renewed early, so they are used up to expiry.
        margin = self.config.refresh_margin if session.auth_scheme is AuthScheme.COOKIE else 0.0
        return not session.is_expired(self._clock(), margin)

    async def _refresh(self) -> Session:
        try:
            logger.debug("Refreshing session")
            session = await self._login()
            self._session = session
            return session
        finally:
            self._refresh_task = None

    async def _login(self) -> Session:
        credentials = self._credentials
        if credentials is None:
            raise AuthError("No credentials supplied")
        try:
            return await asyncio.wait_for(
                self._exchange(credentials), timeout=self.config.login_timeout
            )
        except asyncio.TimeoutError:
            raise ClientTimeout(
                f"Login to {self.config.fqdn} timed out", timeout=self.config.login_timeout
            ) from None

    async def _exchange(self, credentials: Credentials) -> Session:
        now = self._clock()
        if credentials.kind is CredentialKind.TOKEN:
            expires_at = JWTHandler.expiry(credentials.secret)
            if expires_at is not None and expires_at <= now:
                raise InvalidCredentials(f"API token expired at {expires_at.isoformat()}")
            logger.info(f"Using API token for {self.config.fqdn}; expires {expires_at or 'never'}")
            return Session(credentials.secret, now, expires_at, AuthScheme.TOKEN)

        body = LoginRequest(username=credentials.username, password=credentials.secret)
        url = self.config.portal_url(f"login/{credentials.scope.value}Login")
        try:
            response = await self.transport.send(
                "POST",
                url,
                headers={"Content-Type": "application/json"},
                json=body.model_dump(mode="json"),
                timeout=self.config.login_timeout,
            )
        except TransportFailure as e:
            raise Unreachable(f"Could not reach {self.config.fqdn}: {e}") from e

        if response.status_code >= 500:
            raise Unreachable(f"Login to {self.config.fqdn} failed with {response.status_code}")

        token = response.cookies.get(SESSION_COOKIE)
        if not response.ok or not token:
            raise InvalidCredentials(
                f"Could not log into {self.config.fqdn} as {credentials.username} with the given password."
            )

        expires_at = now + timedelta(seconds=self.config.session_lifetime)
        logger.info(f"Logged into {self.config.fqdn} as {credentials.username}; session expires {expires_at.isoformat()}")
        return Session(token, now, expires_at, AuthScheme.COOKIE)


def _consume_result(task: "asyncio.Task[Session]") -> None:
    # Keeps asyncio from reporting a failure nobody awaited.
    if not task.cancelled():
        task.exception()
