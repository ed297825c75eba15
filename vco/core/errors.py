"""Error hierarchy for the VCO client.

::

    VcoError
    +-- ClientError        (local failures: timeouts, transport, config)
    +-- AuthError          (login, refresh and session rejection)
    +-- ProtocolError      (responses that do not fit an envelope)
    +-- ApiError           (the orchestrator's own rejections)
    +-- SchemaError        (payloads that do not fit the domain models)

Every class carries an ``exit_code`` that the CLI uses verbatim.
"""

from typing import Any, Optional


class VcoError(Exception):
    """Base exception for all VCO client errors."""

    exit_code: int = 1


# Client-side failures


class ClientError(VcoError):
    """A failure on the client side of the exchange."""

    exit_code = 10


class ClientTimeout(ClientError):
    """The call deadline expired before a response arrived."""

    exit_code = 11

    def __init__(self, message: str, timeout: Optional[float] = None) -> None:
        self.timeout = timeout
        super().__init__(message)


class TransportFailure(ClientError):
    """Connection refused, TLS failure or another transport-level error."""

    exit_code = 12


class ConfigError(ClientError):
    """The client configuration is unusable."""

    exit_code = 13


# Authentication


class AuthError(VcoError):
    """Base class for authentication failures."""

    exit_code = 20


class InvalidCredentials(AuthError):
    """The orchestrator rejected the supplied credentials."""

    exit_code = 21


class Unreachable(AuthError):
    """The orchestrator could not be reached during login or refresh."""

    exit_code = 22


class SessionRejected(AuthError):
    """A freshly refreshed session was rejected as well."""

    exit_code = 23


class AuthenticationFailed(VcoError):
    """The orchestrator answered a call with an authentication failure.

    Raised by the envelope codecs and consumed by the dispatcher, which turns
    a repeated failure into :class:`SessionRejected`.
    """

    exit_code = 20

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


# Protocol


class ProtocolError(VcoError):
    """A response that cannot be matched to its request envelope."""

    exit_code = 30


class IdMismatch(ProtocolError):
    """A JSONRPC response id does not correlate to the request id."""

    exit_code = 31

    def __init__(self, expected: Any, received: Any) -> None:
        self.expected = expected
        self.received = received
        super().__init__(f"JSONRPC response id {received!r} does not match request id {expected!r}")


class MalformedResponse(ProtocolError):
    """The response body matches no known envelope shape."""

    exit_code = 32


# Remote rejections


class ApiError(VcoError):
    """The orchestrator rejected the operation (validation, not found, conflict)."""

    exit_code = 40

    def __init__(
        self,
        code: Any,
        message: str,
        data: Optional[Any] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.data = data
        self.status_code = status_code
        super().__init__(f"{message} ({code})")


# Schema


class SchemaError(VcoError):
    """A payload could not be mapped onto the domain model."""

    exit_code = 50


class UnrecognizedShape(SchemaError):
    """A compatibility-tagged field arrived in a shape no adapter accepts."""

    exit_code = 51

    def __init__(self, kind: str, value: Any) -> None:
        self.kind = kind
        self.value = value
        super().__init__(f"Unrecognized wire shape for {kind}: {value!r}")


class SchemaMismatch(SchemaError):
    """A response payload does not fit the expected result shape."""

    exit_code = 52
