"""Main client for the SD-WAN Orchestrator."""

import logging
from datetime import datetime
from typing import Any, Callable, Optional, Union

import httpx

from .config import Config
from .dispatcher import Dispatcher
from .envelope import EnvelopeCodec, OperationDescriptor
from .resources import EdgeAPI, EnterpriseAPI, GatewayAPI, ProfileAPI, PropertyAPI
from .session import Credentials, Session, SessionManager, _utcnow
from .transport import Transport

logger = logging.getLogger(__name__)


class VcoClient:
    """One client surface over both orchestrator APIs.

    Callers use the resource APIs (``enterprises``, ``edges``, ``gateways``,
    ``properties``, ``profiles``) or :meth:`call` with their own descriptor;
    which wire protocol carries a call is decided by its descriptor.
    """

    def __init__(
        self,
        config: Config,
        credentials: Optional[Credentials] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the client with configuration."""
        self.config = config
        self.transport = Transport(config, client=http_client)
        self.sessions = SessionManager(config, self.transport, credentials, clock=clock)
        self.codec = EnvelopeCodec(config)
        self.dispatcher = Dispatcher(config, self.transport, self.sessions, self.codec)

        self.enterprises = EnterpriseAPI(self)
        self.edges = EdgeAPI(self)
        self.gateways = GatewayAPI(self)
        self.properties = PropertyAPI(self)
        self.profiles = ProfileAPI(self)

    @classmethod
    async def operator_login_password(
        cls, config: Union[Config, str], username: str, password: str, **kwargs: Any
    ) -> "VcoClient":
        """Create a client and log in as an operator with a password."""
        return await cls._logged_in(config, Credentials.password(username, password), **kwargs)

    @classmethod
    async def operator_login_token(cls, config: Union[Config, str], token: str, **kwargs: Any) -> "VcoClient":
        """Create a client that authenticates with an API token."""
        return await cls._logged_in(config, Credentials.token(token), **kwargs)

    @classmethod
    async def _logged_in(cls, config: Union[Config, str], credentials: Credentials, **kwargs: Any) -> "VcoClient":
        if isinstance(config, str):
            config = Config(fqdn=config)
        client = cls(config, credentials, **kwargs)
        try:
            await client.login()
        except BaseException:
            await client.transport.aclose()
            raise
        return client

    async def login(self, credentials: Optional[Credentials] = None) -> Session:
        """Log in eagerly. Calls otherwise log in on first use."""
        return await self.sessions.login(credentials)

    async def call(self, descriptor: OperationDescriptor, timeout: Optional[float] = None) -> Any:
        """Execute one logical operation and return its typed result."""
        return await self.dispatcher.call(descriptor, timeout=timeout)

    async def aclose(self) -> None:
        """Log out and close the underlying HTTP client."""
        try:
            await self.sessions.logout()
        finally:
            await self.transport.aclose()

    async def __aenter__(self) -> "VcoClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        del exc_type
        del exc_val
        del exc_tb
        await self.aclose()
