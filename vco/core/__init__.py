"""Core data models and wire compatibility types for the SD-WAN Orchestrator."""

from .compat import (
    Address,
    DateTime,
    IPv4Addr,
    IPv6Addr,
    MacAddr,
    ServerVersion,
    TinyInt,
    WireModel,
    WireShape,
)
from .models import (
    ConfigurationProfile,
    Edge,
    Enterprise,
    Gateway,
    GatewayMetric,
    GatewayPool,
    RowsResult,
    Site,
    SystemProperty,
    UtilizationDetail,
)

__all__ = [
    "Address",
    "DateTime",
    "IPv4Addr",
    "IPv6Addr",
    "MacAddr",
    "ServerVersion",
    "TinyInt",
    "WireModel",
    "WireShape",
    "Enterprise",
    "Edge",
    "Gateway",
    "GatewayMetric",
    "GatewayPool",
    "Site",
    "UtilizationDetail",
    "SystemProperty",
    "ConfigurationProfile",
    "RowsResult",
]
