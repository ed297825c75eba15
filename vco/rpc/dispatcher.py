"""Dispatch of logical operations to the orchestrator."""

import asyncio
import logging
from typing import Any, Optional

from ..core.errors import AuthenticationFailed, ClientTimeout, SessionRejected
from .config import Config
from .envelope import EnvelopeCodec, OperationDescriptor
from .session import Session, SessionManager
from .transport import Transport

logger = logging.getLogger(__name__)


class Dispatcher:
    """Runs an :class:`OperationDescriptor` end to end.

    An authentication failure invalidates the session and the call is retried
    exactly once with a refreshed one; a second failure raises
    :class:`SessionRejected`. Every other error is raised as is: create,
    modify and delete calls are not idempotent and must not be replayed.
    """

    def __init__(
        self,
        config: Config,
        transport: Transport,
        sessions: SessionManager,
        codec: EnvelopeCodec,
    ) -> None:
        self.config = config
        self.transport = transport
        self.sessions = sessions
        self.codec = codec

    async def call(self, descriptor: OperationDescriptor, timeout: Optional[float] = None) -> Any:
        """Execute ``descriptor`` within ``timeout`` seconds (default: request timeout)."""
        if timeout is None:
            timeout = self.config.request_timeout
        try:
            return await asyncio.wait_for(self._call(descriptor), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"{descriptor.logical_name} timed out after {timeout}s")
            raise ClientTimeout(
                f"{descriptor.logical_name} timed out after {timeout}s", timeout=timeout
            ) from None

    async def _call(self, descriptor: OperationDescriptor) -> Any:
        session = await self.sessions.current_token(descriptor.wire_protocol)
        try:
            return await self._exchange(descriptor, session)
        except AuthenticationFailed as e:
            logger.info(f"{descriptor.logical_name}: session rejected ({e}), refreshing")
            self.sessions.invalidate(session)

        session = await self.sessions.current_token(descriptor.wire_protocol)
        try:
            return await self._exchange(descriptor, session)
        except AuthenticationFailed as e:
            self.sessions.invalidate(session)
            raise SessionRejected(
                f"{descriptor.logical_name}: authentication failed after refreshing the session: {e}"
            ) from e

    async def _exchange(self, descriptor: OperationDescriptor, session: Session) -> Any:
        envelope = self.codec.encode(descriptor, session)
        logger.debug(
            f"{descriptor.logical_name}: {descriptor.wire_protocol.value} {descriptor.path_or_method}"
        )
        response = await self.transport.send(**envelope.to_request())
        return self.codec.decode(envelope, response, descriptor.expected_result_shape)
