"""Request and response envelopes for the two orchestrator wire protocols.

A logical call is described once, as an :class:`OperationDescriptor`. The
codec registered for its :class:`WireProtocol` turns it into a fresh
envelope and maps the raw response back into a payload:

* REST: ``<METHOD> https://<fqdn>/api/sdwan/v2/<path>?<query>`` with a JSON
  body; the response body is the result. Errors come back as non-2xx
  responses with a ``{code, message}`` body, or, on the legacy portal API,
  as a 2xx ``{"error": {code, message}}`` body.
* JSONRPC: ``POST https://<fqdn>/portal/`` with
  ``{"jsonrpc": "2.0", "id", "method", "params"}``; the response is
  ``{id, result}`` or ``{id, error}`` and its id must match the request.
"""

import itertools
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, NoReturn, Optional, Tuple, Union

from ..core.compat import coerce, to_wire_value
from ..core.errors import ApiError, AuthenticationFailed, IdMismatch, MalformedResponse
from .config import Config, HTTPMethod, WireProtocol
from .session import Session
from .transport import RawResponse

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"

# Prefix of the error message the portal API sends for an expired or unknown
# session, e.g. "tokenError [expired session cookie]".
TOKEN_ERROR_PREFIX = "tokenError"


def is_token_error(message: Any) -> bool:
    return str(message or "").lstrip().startswith(TOKEN_ERROR_PREFIX)


@dataclass(frozen=True)
class OperationDescriptor:
    """One logical call, independent of how it travels."""

    logical_name: str
    wire_protocol: WireProtocol
    path_or_method: str
    # REST: query string. JSONRPC: params object, a dict or a WireModel.
    parameters: Any = field(default_factory=dict)
    # REST only.
    http_method: HTTPMethod = HTTPMethod.GET
    body: Any = None
    # Anything pydantic.TypeAdapter accepts; None returns the raw JSON payload.
    expected_result_shape: Any = None

    @classmethod
    def rest(
        cls,
        logical_name: str,
        http_method: HTTPMethod,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        body: Any = None,
        shape: Any = None,
    ) -> "OperationDescriptor":
        return cls(
            logical_name=logical_name,
            wire_protocol=WireProtocol.REST,
            path_or_method=path,
            parameters=dict(query or {}),
            http_method=http_method,
            body=body,
            expected_result_shape=shape,
        )

    @classmethod
    def jsonrpc(
        cls,
        logical_name: str,
        method: str,
        params: Any = None,
        shape: Any = None,
    ) -> "OperationDescriptor":
        return cls(
            logical_name=logical_name,
            wire_protocol=WireProtocol.JSONRPC,
            path_or_method=method,
            parameters={} if params is None else params,
            http_method=HTTPMethod.POST,
            expected_result_shape=shape,
        )


@dataclass(frozen=True)
class RestEnvelope:
    http_method: HTTPMethod
    url: str
    path: str
    query: Dict[str, Any]
    body: Any
    headers: Dict[str, str]

    protocol = WireProtocol.REST

    def to_request(self) -> Dict[str, Any]:
        """Keyword arguments for :meth:`Transport.send`."""
        return {
            "method": str(self.http_method),
            "url": self.url,
            "headers": self.headers,
            "params": self.query or None,
            "json": self.body,
        }


@dataclass(frozen=True)
class JsonRpcEnvelope:
    method: str
    id: Union[int, str]
    params: Any
    url: str
    headers: Dict[str, str]

    protocol = WireProtocol.JSONRPC

    def payload(self) -> Dict[str, Any]:
        return {
            "jsonrpc": JSONRPC_VERSION,
            "id": self.id,
            "method": self.method,
            "params": self.params,
        }

    def to_request(self) -> Dict[str, Any]:
        """Keyword arguments for :meth:`Transport.send`."""
        return {
            "method": "POST",
            "url": self.url,
            "headers": self.headers,
            "json": self.payload(),
        }


Envelope = Union[RestEnvelope, JsonRpcEnvelope]


def _parse_json(response: RawResponse) -> Any:
    if not response.content.strip():
        return None
    try:
        return json.loads(response.content)
    except ValueError as e:
        raise MalformedResponse(f"Response body is not JSON: {response.text[:200]!r}") from e


def _error_object(value: Any) -> Optional[Tuple[Any, str, Any]]:
    """Return ``(code, message, data)`` if ``value`` looks like an API error."""
    if isinstance(value, dict) and "message" in value and "code" in value:
        data = value.get("data")
        if data is None:
            data = {k: v for k, v in value.items() if k not in ("code", "message")} or None
        return value["code"], str(value["message"]), data
    return None


def _raise_api_error(
    code: Any, message: str, data: Any, status_code: int, session_errors: bool = True
) -> NoReturn:
    if session_errors and is_token_error(message):
        raise AuthenticationFailed(message, status_code=status_code)
    raise ApiError(code, message, data=data, status_code=status_code)


class RestCodec:
    """Envelope codec for the REST resource API."""

    protocol = WireProtocol.REST

    def __init__(self, config: Config) -> None:
        self.config = config

    def encode(self, descriptor: OperationDescriptor, session: Session) -> RestEnvelope:
        version = self.config.target_version
        headers = {"Accept": "application/json", **session.auth_headers()}
        body = None
        if descriptor.body is not None:
            body = to_wire_value(descriptor.body, version)
            headers["Content-Type"] = "application/json"
        query = {
            key: to_wire_value(value, version)
            for key, value in descriptor.parameters.items()
            if value is not None
        }
        return RestEnvelope(
            http_method=descriptor.http_method,
            url=self.config.rest_url(descriptor.path_or_method),
            path=descriptor.path_or_method,
            query=query,
            body=body,
            headers=headers,
        )

    def decode(self, envelope: RestEnvelope, response: RawResponse) -> Any:
        if response.status_code == 401:
            raise AuthenticationFailed(f"{envelope.path}: 401 Unauthorized", status_code=401)

        try:
            body = _parse_json(response)
        except MalformedResponse:
            if response.ok:
                raise
            raise ApiError(response.status_code, response.text[:200], status_code=response.status_code) from None

        if not response.ok:
            error = _error_object(body) or (
                _error_object(body.get("error")) if isinstance(body, dict) else None
            )
            if error is None:
                raise ApiError(response.status_code, response.text[:200], status_code=response.status_code)
            # Non-2xx errors other than 401 never signal a stale session.
            _raise_api_error(*error, status_code=response.status_code, session_errors=False)

        # The legacy portal API reports errors inside 2xx responses.
        if isinstance(body, dict):
            error = _error_object(body.get("error"))
            if error is not None:
                _raise_api_error(*error, status_code=response.status_code)

        return body


class JsonRpcCodec:
    """Envelope codec for the JSONRPC method-call API."""

    protocol = WireProtocol.JSONRPC

    def __init__(self, config: Config) -> None:
        self.config = config
        self._ids = itertools.count(1)

    def encode(self, descriptor: OperationDescriptor, session: Session) -> JsonRpcEnvelope:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            **session.auth_headers(),
        }
        return JsonRpcEnvelope(
            method=descriptor.path_or_method,
            id=next(self._ids),
            params=to_wire_value(descriptor.parameters, self.config.target_version),
            url=self.config.jsonrpc_url(),
            headers=headers,
        )

    def decode(self, envelope: JsonRpcEnvelope, response: RawResponse) -> Any:
        if response.status_code == 401:
            raise AuthenticationFailed(f"{envelope.method}: 401 Unauthorized", status_code=401)

        try:
            body = _parse_json(response)
        except MalformedResponse:
            if response.ok:
                raise
            raise ApiError(response.status_code, response.text[:200], status_code=response.status_code) from None

        if not isinstance(body, dict) or "id" not in body or ("result" in body) == ("error" in body):
            if not response.ok:
                raise ApiError(response.status_code, response.text[:200], status_code=response.status_code)
            raise MalformedResponse(f"{envelope.method}: not a JSONRPC response: {response.text[:200]!r}")

        if body["id"] != envelope.id:
            logger.error(f"{envelope.method}: response id {body['id']!r} != request id {envelope.id!r}")
            raise IdMismatch(envelope.id, body["id"])

        if "error" in body:
            error = _error_object(body["error"])
            if error is None:
                raise MalformedResponse(f"{envelope.method}: malformed JSONRPC error: {body['error']!r}")
            _raise_api_error(*error, status_code=response.status_code)

        return body["result"]


class EnvelopeCodec:
    """Routes each descriptor to the codec of its wire protocol."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self._codecs: Dict[WireProtocol, Union[RestCodec, JsonRpcCodec]] = {
            WireProtocol.REST: RestCodec(config),
            WireProtocol.JSONRPC: JsonRpcCodec(config),
        }

    def codec_for(self, protocol: WireProtocol) -> Union[RestCodec, JsonRpcCodec]:
        return self._codecs[protocol]

    def encode(self, descriptor: OperationDescriptor, session: Session) -> Envelope:
        return self.codec_for(descriptor.wire_protocol).encode(descriptor, session)

    def decode(self, envelope: Envelope, response: RawResponse, shape: Any = None) -> Any:
        payload = self.codec_for(envelope.protocol).decode(envelope, response)
        return coerce(shape, payload)
