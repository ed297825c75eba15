"""Core data models for the SD-WAN Orchestrator."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, SecretStr, field_serializer

from .compat import DateTime, IPv4Addr, IPv6Addr, MacAddr, TinyInt, WireModel, open_enum

REDACTED = "****"


class ServiceState(str, Enum):
    """Service state of an edge or gateway."""

    IN_SERVICE = "IN_SERVICE"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"
    PENDING_SERVICE = "PENDING_SERVICE"
    QUIESCED = "QUIESCED"


class ActivationState(str, Enum):
    """Activation state of an edge or gateway."""

    UNASSIGNED = "UNASSIGNED"
    PENDING = "PENDING"
    ACTIVATED = "ACTIVATED"
    REACTIVATION_PENDING = "REACTIVATION_PENDING"


class BastionState(str, Enum):
    """Bastion staging state of an enterprise, gateway or edge."""

    UNCONFIGURED = "UNCONFIGURED"
    STAGE_REQUESTED = "STAGE_REQUESTED"
    UNSTAGE_REQUESTED = "UNSTAGE_REQUESTED"
    STAGED = "STAGED"
    UNSTAGED = "UNSTAGED"
    PROMOTION_REQUESTED = "PROMOTION_REQUESTED"
    PROMOTION_PENDING = "PROMOTION_PENDING"
    PROMOTED = "PROMOTED"


class EndpointPkiMode(str, Enum):
    CERTIFICATE_DISABLED = "CERTIFICATE_DISABLED"
    CERTIFICATE_OPTIONAL = "CERTIFICATE_OPTIONAL"
    CERTIFICATE_REQUIRED = "CERTIFICATE_REQUIRED"


class EdgeState(str, Enum):
    NEVER_ACTIVATED = "NEVER_ACTIVATED"
    DEGRADED = "DEGRADED"
    OFFLINE = "OFFLINE"
    DISABLED = "DISABLED"
    EXPIRED = "EXPIRED"
    CONNECTED = "CONNECTED"


class HaState(str, Enum):
    UNCONFIGURED = "UNCONFIGURED"
    PENDING_INIT = "PENDING_INIT"
    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    PENDING_CONFIRMED = "PENDING_CONFIRMED"
    PENDING_DISSOCIATION = "PENDING_DISSOCIATION"
    READY = "READY"
    FAILED = "FAILED"


class GatewayState(str, Enum):
    NEVER_ACTIVATED = "NEVER_ACTIVATED"
    DEGRADED = "DEGRADED"
    QUIESCED = "QUIESCED"
    DISABLED = "DISABLED"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"
    CONNECTED = "CONNECTED"
    OFFLINE = "OFFLINE"


class GatewayHandoffType(str, Enum):
    NONE = "NONE"
    ALLOW = "ALLOW"
    ONLY = "ONLY"


class GatewayMetric(str, Enum):
    """Metrics accepted by ``metrics/getGatewayStatusMetrics``."""

    TUNNEL_COUNT = "tunnelCount"
    MEMORY_PCT = "memoryPct"
    FLOW_COUNT = "flowCount"
    CPU_PCT = "cpuPct"
    HANDOFF_QUEUE_DROPS = "handoffQueueDrops"
    CONNECTED_EDGES = "connectedEdges"
    TUNNEL_COUNT_V6 = "tunnelCountV6"


class PropertyDataType(str, Enum):
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    JSON = "JSON"
    DATE = "DATE"
    DATETIME = "DATETIME"


class LoginRequest(BaseModel):
    """Body of ``login/operatorLogin`` and ``login/enterpriseLogin``."""

    username: str
    password: SecretStr

    @field_serializer("password", when_used="json")
    def _reveal_password(self, password: SecretStr) -> str:
        return password.get_secret_value()

    def __repr__(self) -> str:
        return f"LoginRequest({self.username}, {REDACTED})"


class Interval(WireModel):
    """Time window for metric queries."""

    start: DateTime
    end: Optional[DateTime] = None


class GatewayStatusMetricsRequest(WireModel):
    """Parameters of ``metrics/getGatewayStatusMetrics``."""

    gateway_id: int
    interval: Interval
    metrics: List[GatewayMetric]


class RowsResult(WireModel):
    """Result of JSONRPC insert, update and delete methods."""

    id: Optional[int] = None
    rows: int = 0


class Enterprise(WireModel):
    """An enterprise (customer) on the orchestrator."""

    id: Optional[int] = None
    logical_id: Optional[str] = None
    name: str
    created: Optional[DateTime] = None
    modified: Optional[DateTime] = None
    network_id: Optional[int] = None
    gateway_pool_id: Optional[int] = None
    alerts_enabled: Optional[TinyInt] = None
    operator_alerts_enabled: Optional[TinyInt] = None
    endpoint_pki_mode: Optional[open_enum(EndpointPkiMode)] = None
    domain: Optional[str] = None
    prefix: Optional[str] = None
    account_number: Optional[str] = None
    description: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    timezone: Optional[str] = None
    locale: Optional[str] = None
    bastion_state: Optional[open_enum(BastionState)] = None


class Edge(WireModel):
    """An SD-WAN edge (VCE) as returned by the REST resource API."""

    id: Optional[int] = None
    logical_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    enterprise_id: Optional[int] = None
    site_id: Optional[int] = None
    created: Optional[DateTime] = None
    modified: Optional[DateTime] = None
    activation_key: Optional[str] = None
    activation_key_expires: Optional[DateTime] = None
    activation_state: Optional[open_enum(ActivationState)] = None
    activation_time: Optional[DateTime] = None
    alerts_enabled: Optional[TinyInt] = None
    operator_alerts_enabled: Optional[TinyInt] = None
    bastion_state: Optional[open_enum(BastionState)] = None
    edge_state: Optional[open_enum(EdgeState)] = None
    edge_state_time: Optional[DateTime] = None
    endpoint_pki_mode: Optional[open_enum(EndpointPkiMode)] = None
    ha_state: Optional[open_enum(HaState)] = None
    ha_previous_state: Optional[open_enum(HaState)] = None
    ha_serial_number: Optional[str] = None
    service_state: Optional[open_enum(ServiceState)] = None
    service_up_since: Optional[DateTime] = None
    system_up_since: Optional[DateTime] = None
    last_contact: Optional[DateTime] = None
    is_live: Optional[int] = None
    build_number: Optional[str] = None
    software_version: Optional[str] = None
    software_updated: Optional[DateTime] = None
    factory_software_version: Optional[str] = None
    factory_build_number: Optional[str] = None
    device_family: Optional[str] = None
    device_id: Optional[str] = None
    dns_name: Optional[str] = None
    model_number: Optional[str] = None
    serial_number: Optional[str] = None
    self_mac_address: Optional[MacAddr] = None
    custom_info: Optional[str] = None


class UtilizationDetail(WireModel):
    load: Optional[float] = None
    overall: Optional[float] = None
    cpu: Optional[float] = None
    memory: Optional[float] = None


class Site(WireModel):
    """Physical location attached to a gateway or edge."""

    id: Optional[int] = None
    logical_id: Optional[str] = None
    name: Optional[str] = None
    created: Optional[DateTime] = None
    modified: Optional[DateTime] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    timezone: Optional[str] = None
    locale: Optional[str] = None
    shipping_same_as_location: Optional[TinyInt] = None


class GatewayPool(WireModel):
    """A pool gateways are assigned to."""

    id: Optional[int] = None
    logical_id: Optional[str] = None
    network_id: Optional[int] = None
    enterprise_proxy_id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    created: Optional[DateTime] = None
    modified: Optional[DateTime] = None
    is_default: Optional[TinyInt] = None
    ip_v4_enabled: Optional[TinyInt] = None
    ip_v6_enabled: Optional[TinyInt] = None
    hand_off_type: Optional[open_enum(GatewayHandoffType)] = None


class Gateway(WireModel):
    """A network gateway (VCG), as returned by ``network/getNetworkGateways``."""

    id: Optional[int] = None
    logical_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    dns_name: Optional[str] = None
    created: Optional[DateTime] = None
    modified: Optional[DateTime] = None
    network_id: Optional[int] = None
    enterprise_proxy_id: Optional[int] = None
    site_id: Optional[int] = None
    software_version: Optional[str] = None
    build_number: Optional[str] = None
    device_id: Optional[str] = None
    ip_address: Optional[IPv4Addr] = None
    ip_v6_address: Optional[IPv6Addr] = None
    private_ip_address: Optional[IPv4Addr] = None
    last_contact: Optional[DateTime] = None
    service_up_since: Optional[DateTime] = None
    system_up_since: Optional[DateTime] = None
    activation_key: Optional[str] = None
    activation_state: Optional[open_enum(ActivationState)] = None
    activation_time: Optional[DateTime] = None
    gateway_state: Optional[open_enum(GatewayState)] = None
    bastion_state: Optional[open_enum(BastionState)] = None
    service_state: Optional[open_enum(ServiceState)] = None
    endpoint_pki_mode: Optional[open_enum(EndpointPkiMode)] = None
    utilization: Optional[float] = None
    utilization_detail: Optional[UtilizationDetail] = None
    connected_edges: Optional[int] = None
    alerts_enabled: Optional[TinyInt] = None
    is_load_balanced: Optional[TinyInt] = None
    # Only present when requested through the ``with`` parameter.
    site: Optional[Site] = None
    pools: Optional[List[GatewayPool]] = None
    enterprises: Optional[List[Enterprise]] = None
    roles: Optional[List[Dict[str, Any]]] = None


class SystemProperty(WireModel):
    """An orchestrator system property."""

    id: Optional[int] = None
    name: str
    value: Optional[str] = None
    default_value: Optional[str] = None
    is_read_only: Optional[TinyInt] = None
    is_password: Optional[TinyInt] = None
    data_type: Optional[open_enum(PropertyDataType)] = None
    description: Optional[str] = None
    created: Optional[DateTime] = None
    modified: Optional[DateTime] = None

    def display_value(self, show_passwords: bool = False) -> Optional[str]:
        """Return the value, redacted when the property holds a password."""
        if self.is_password and not show_passwords:
            return REDACTED
        return self.value


class ConfigurationProfile(WireModel):
    """An enterprise configuration profile."""

    id: Optional[int] = None
    logical_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    enterprise_id: Optional[int] = None
    configuration_type: Optional[str] = None
    version: Optional[str] = None
    schema_version: Optional[str] = None
    effective: Optional[DateTime] = None
    created: Optional[DateTime] = None
    modified: Optional[DateTime] = None
    is_staging: Optional[TinyInt] = None
    bastion_state: Optional[open_enum(BastionState)] = None
    edge_count: Optional[int] = None
