"""RPC client for the SD-WAN Orchestrator REST and JSONRPC APIs."""

from .client import VcoClient
from .config import Config, HTTPMethod, WireProtocol
from .dispatcher import Dispatcher
from .envelope import EnvelopeCodec, OperationDescriptor
from .pagination import Page, PagedSequence
from .resources import EdgeAPI, EnterpriseAPI, GatewayAPI, ProfileAPI, PropertyAPI
from .session import Credentials, LoginScope, Session, SessionManager
from .transport import RawResponse, Transport

__all__ = [
    "VcoClient",
    "Config",
    "HTTPMethod",
    "WireProtocol",
    "Dispatcher",
    "EnvelopeCodec",
    "OperationDescriptor",
    "Page",
    "PagedSequence",
    "EnterpriseAPI",
    "EdgeAPI",
    "GatewayAPI",
    "PropertyAPI",
    "ProfileAPI",
    "Credentials",
    "LoginScope",
    "Session",
    "SessionManager",
    "RawResponse",
    "Transport",
]
