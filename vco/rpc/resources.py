"""Typed resource APIs of the VCO client."""

import logging
from typing import TYPE_CHECKING, Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar, Union

from ..core.compat import DateTime, WireModel
from ..core.models import (
    ConfigurationProfile,
    Edge,
    Enterprise,
    Gateway,
    GatewayMetric,
    GatewayStatusMetricsRequest,
    Interval,
    RowsResult,
    SystemProperty,
)
from .config import HTTPMethod
from .envelope import OperationDescriptor
from .pagination import Page, PagedSequence, RestPage

if TYPE_CHECKING:
    from .client import VcoClient

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=WireModel)

Update = Union[WireModel, Dict[str, Any]]


def _present(**params: Any) -> Dict[str, Any]:
    """Drop parameters that were not given."""
    return {key: value for key, value in params.items() if value is not None and value != []}


class ResourceAPI:
    """Base for the resource APIs; every call goes through the client dispatcher.

    Every operation takes an optional ``timeout`` in seconds, the deadline of
    each remote call it makes. A list applies it to every page fetch.
    """

    def __init__(self, client: "VcoClient") -> None:
        """Initialize with client reference."""
        self.client = client

    async def _call(self, descriptor: OperationDescriptor, timeout: Optional[float] = None) -> Any:
        return await self.client.call(descriptor, timeout=timeout)


class EnterpriseAPI(ResourceAPI):
    """Enterprises, over the JSONRPC API."""

    def list(
        self, network_id: Optional[int] = None, with_: Sequence[str] = (), timeout: Optional[float] = None
    ) -> PagedSequence[Enterprise]:
        """List the enterprises of a network."""
        descriptor = OperationDescriptor.jsonrpc(
            "enterprises.list",
            "network/getNetworkEnterprises",
            _present(networkId=network_id, **{"with": list(with_)}),
            shape=List[Enterprise],
        )

        async def fetch(cursor: Optional[str]) -> Page:
            return Page(await self._call(descriptor, timeout))

        return PagedSequence(fetch)

    async def get(self, enterprise_id: int, timeout: Optional[float] = None) -> Enterprise:
        """Get an enterprise by ID."""
        return await self._call(
            OperationDescriptor.jsonrpc(
                "enterprises.get",
                "enterprise/getEnterprise",
                {"enterpriseId": enterprise_id},
                shape=Enterprise,
            ),
            timeout,
        )

    async def create(self, enterprise: Enterprise, timeout: Optional[float] = None) -> RowsResult:
        """Create an enterprise."""
        return await self._call(
            OperationDescriptor.jsonrpc(
                "enterprises.create", "enterprise/insertEnterprise", enterprise, shape=RowsResult
            ),
            timeout,
        )

    async def modify(self, enterprise_id: int, update: Update, timeout: Optional[float] = None) -> RowsResult:
        """Update the given fields of an enterprise."""
        return await self._call(
            OperationDescriptor.jsonrpc(
                "enterprises.modify",
                "enterprise/updateEnterprise",
                {"enterpriseId": enterprise_id, "_update": update},
                shape=RowsResult,
            ),
            timeout,
        )

    async def delete(self, enterprise_id: int, timeout: Optional[float] = None) -> RowsResult:
        """Delete an enterprise."""
        return await self._call(
            OperationDescriptor.jsonrpc(
                "enterprises.delete",
                "enterprise/deleteEnterprise",
                {"enterpriseId": enterprise_id},
                shape=RowsResult,
            ),
            timeout,
        )


class GatewayAPI(ResourceAPI):
    """Gateways (VCGs), over the JSONRPC API."""

    def list(
        self, network_id: Optional[int] = None, with_: Sequence[str] = (), timeout: Optional[float] = None
    ) -> PagedSequence[Gateway]:
        """List the gateways of a network.

        ``with_`` names related objects to embed, for example ``site``,
        ``pools``, ``roles`` or ``enterprises``.
        """
        descriptor = OperationDescriptor.jsonrpc(
            "gateways.list",
            "network/getNetworkGateways",
            _present(networkId=network_id, **{"with": list(with_)}),
            shape=List[Gateway],
        )

        async def fetch(cursor: Optional[str]) -> Page:
            return Page(await self._call(descriptor, timeout))

        return PagedSequence(fetch)

    async def get(self, gateway_id: int, with_: Sequence[str] = (), timeout: Optional[float] = None) -> Gateway:
        """Get a gateway by ID."""
        return await self._call(
            OperationDescriptor.jsonrpc(
                "gateways.get",
                "gateway/getGateway",
                _present(gatewayId=gateway_id, **{"with": list(with_)}),
                shape=Gateway,
            ),
            timeout,
        )

    async def create(self, gateway: Gateway, timeout: Optional[float] = None) -> RowsResult:
        """Provision a gateway. The activation key is kept in the result's unknown fields."""
        return await self._call(
            OperationDescriptor.jsonrpc(
                "gateways.create", "gateway/gatewayProvision", gateway, shape=RowsResult
            ),
            timeout,
        )

    async def modify(self, gateway_id: int, update: Update, timeout: Optional[float] = None) -> RowsResult:
        return await self._call(
            OperationDescriptor.jsonrpc(
                "gateways.modify",
                "gateway/updateGatewayAttributes",
                {"id": gateway_id, "_update": update},
                shape=RowsResult,
            ),
            timeout,
        )

    async def delete(self, gateway_id: int, timeout: Optional[float] = None) -> RowsResult:
        return await self._call(
            OperationDescriptor.jsonrpc(
                "gateways.delete", "gateway/deleteGateway", {"id": gateway_id}, shape=RowsResult
            ),
            timeout,
        )

    async def status_metrics(
        self,
        gateway_id: int,
        start: DateTime,
        end: Optional[DateTime] = None,
        metrics: Sequence[GatewayMetric] = (),
        timeout: Optional[float] = None,
    ) -> Any:
        """Get the status metrics of a gateway over an interval, as raw JSON."""
        request = GatewayStatusMetricsRequest(
            gateway_id=gateway_id,
            interval=Interval(start=start, end=end) if end is not None else Interval(start=start),
            metrics=list(metrics or GatewayMetric),
        )
        return await self._call(
            OperationDescriptor.jsonrpc(
                "gateways.status_metrics", "metrics/getGatewayStatusMetrics", request
            ),
            timeout,
        )


class PropertyAPI(ResourceAPI):
    """System properties, over the JSONRPC API.

    Properties are addressed by name, or by numeric ID when an ``int`` is
    given.
    """

    @staticmethod
    def _key(name_or_id: Union[str, int]) -> Dict[str, Any]:
        if isinstance(name_or_id, int):
            return {"id": name_or_id}
        return {"name": name_or_id}

    def list(self, prefix: str = "", timeout: Optional[float] = None) -> PagedSequence[SystemProperty]:
        """List system properties whose names start with ``prefix``."""
        descriptor = OperationDescriptor.jsonrpc(
            "properties.list", "systemProperty/getSystemProperties", shape=List[SystemProperty]
        )

        async def fetch(cursor: Optional[str]) -> Page:
            properties = await self._call(descriptor, timeout)
            return Page([p for p in properties if p.name.startswith(prefix)])

        return PagedSequence(fetch)

    async def as_map(self, prefix: str = "", timeout: Optional[float] = None) -> Dict[str, SystemProperty]:
        """Get the system properties keyed by name."""
        return {p.name: p for p in await self.list(prefix, timeout).collect()}

    async def get(self, name_or_id: Union[str, int], timeout: Optional[float] = None) -> SystemProperty:
        return await self._call(
            OperationDescriptor.jsonrpc(
                "properties.get",
                "systemProperty/getSystemProperty",
                self._key(name_or_id),
                shape=SystemProperty,
            ),
            timeout,
        )

    async def create(self, prop: SystemProperty, timeout: Optional[float] = None) -> RowsResult:
        return await self._call(
            OperationDescriptor.jsonrpc(
                "properties.create", "systemProperty/insertSystemProperty", prop, shape=RowsResult
            ),
            timeout,
        )

    async def modify(self, name_or_id: Union[str, int], update: Update, timeout: Optional[float] = None) -> RowsResult:
        return await self._call(
            OperationDescriptor.jsonrpc(
                "properties.modify",
                "systemProperty/updateSystemProperty",
                {**self._key(name_or_id), "_update": update},
                shape=RowsResult,
            ),
            timeout,
        )

    async def set(self, name_or_id: Union[str, int], value: str, timeout: Optional[float] = None) -> RowsResult:
        """Set the value of a system property."""
        return await self.modify(name_or_id, {"value": value}, timeout)

    async def delete(self, name_or_id: Union[str, int], timeout: Optional[float] = None) -> RowsResult:
        return await self._call(
            OperationDescriptor.jsonrpc(
                "properties.delete",
                "systemProperty/deleteSystemProperty",
                self._key(name_or_id),
                shape=RowsResult,
            ),
            timeout,
        )


class RestResourceAPI(ResourceAPI, Generic[M]):
    """A collection under ``enterprises/{enterprise}/`` of the REST API."""

    collection: str
    model: Type[M]

    def _path(self, enterprise: str, logical_id: Optional[str] = None) -> str:
        path = f"enterprises/{enterprise}/{self.collection}"
        return path if logical_id is None else f"{path}/{logical_id}"

    def _name(self, operation: str) -> str:
        return f"{self.collection}.{operation}"

    def list(self, enterprise: str, timeout: Optional[float] = None, **filters: Any) -> PagedSequence[M]:
        """List the collection, following ``metaData.nextPageLink`` lazily."""
        path = self._path(enterprise)
        shape = RestPage[self.model]

        async def fetch(cursor: Optional[str]) -> Page:
            query = {**filters, "limit": self.client.config.page_size, "nextPageLink": cursor}
            page = await self._call(
                OperationDescriptor.rest(self._name("list"), HTTPMethod.GET, path, query=query, shape=shape),
                timeout,
            )
            return Page.from_rest(page)

        return PagedSequence(fetch)

    async def get(self, enterprise: str, logical_id: str, timeout: Optional[float] = None) -> M:
        return await self._call(
            OperationDescriptor.rest(
                self._name("get"), HTTPMethod.GET, self._path(enterprise, logical_id), shape=self.model
            ),
            timeout,
        )

    async def create(self, enterprise: str, item: M, timeout: Optional[float] = None) -> M:
        return await self._call(
            OperationDescriptor.rest(
                self._name("create"), HTTPMethod.POST, self._path(enterprise), body=item, shape=self.model
            ),
            timeout,
        )

    async def modify(self, enterprise: str, logical_id: str, update: Update, timeout: Optional[float] = None) -> M:
        return await self._call(
            OperationDescriptor.rest(
                self._name("modify"),
                HTTPMethod.PATCH,
                self._path(enterprise, logical_id),
                body=update,
                shape=self.model,
            ),
            timeout,
        )

    async def delete(self, enterprise: str, logical_id: str, timeout: Optional[float] = None) -> None:
        await self._call(
            OperationDescriptor.rest(self._name("delete"), HTTPMethod.DELETE, self._path(enterprise, logical_id)),
            timeout,
        )


class EdgeAPI(RestResourceAPI[Edge]):
    """Edges (VCEs) of an enterprise."""

    collection = "edges"
    model = Edge


class ProfileAPI(RestResourceAPI[ConfigurationProfile]):
    """Configuration profiles of an enterprise."""

    collection = "profiles"
    model = ConfigurationProfile
