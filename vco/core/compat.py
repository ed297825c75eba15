"""Compatibility types for wire formats that drift between server versions.

The orchestrator documents several fields as booleans but, depending on its
version, sends them as ``0``/``1`` integers. Date-times arrive as RFC3339
strings, epoch numbers or a ``0000-00-00 00:00:00`` sentinel. The types here
accept every shape that has been observed, normalize it to one logical value
and, on the way out, emit the shape the configured target server version
expects. Anything else raises :class:`UnrecognizedShape` instead of being
coerced.
"""

import ipaddress
import re
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Annotated, Any, Dict, NamedTuple, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, PlainValidator, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import core_schema

from .errors import SchemaMismatch, UnrecognizedShape

# Key under which the target server version travels in the pydantic
# serialization context.
SERVER_VERSION_CONTEXT = "server_version"

_VERSION_RE = re.compile(r"^\s*[Rr]?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


class ServerVersion(NamedTuple):
    """Orchestrator version, ordered numerically."""

    major: int
    minor: int = 0
    patch: int = 0

    @classmethod
    def parse(cls, value: Union[str, "ServerVersion"]) -> "ServerVersion":
        """Parse ``"4.5.1"``, ``"5.2"`` or ``"R520-20230130-GA"`` style strings."""
        if isinstance(value, ServerVersion):
            return value
        match = _VERSION_RE.match(value)
        if not match:
            raise ValueError(f"Not a server version: {value!r}")
        major, minor, patch = match.groups()
        if minor is None and len(major) == 3 and value.strip()[:1] in "Rr":
            # Release tags spell 5.2.0 as R520.
            major, minor, patch = major[0], major[1], major[2]
        return cls(int(major), int(minor or 0), int(patch or 0))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


# First server version observed to send compatibility booleans as JSON booleans.
NATIVE_BOOLEAN_SINCE = ServerVersion(5, 0, 0)


class WireShape(str, Enum):
    """How a logical boolean is spelled on the wire."""

    BOOL = "bool"
    INT = "int"


def boolean_shape_for(version: Optional[ServerVersion]) -> WireShape:
    """Return the boolean wire shape expected by ``version``.

    Unknown versions get the integer form, the more common legacy behavior.
    """
    if version is None:
        return WireShape.INT
    return WireShape.BOOL if version >= NATIVE_BOOLEAN_SINCE else WireShape.INT


def _target_version(info: Any) -> Optional[ServerVersion]:
    context = getattr(info, "context", None) or {}
    version = context.get(SERVER_VERSION_CONTEXT)
    if version is None:
        return None
    return ServerVersion.parse(version)


class TinyInt:
    """A logical boolean that may travel as ``true``/``false`` or ``1``/``0``.

    The decoded wire shape is remembered in :attr:`wire_shape` for
    diagnostics; equality and encoding only depend on the logical value and
    the target server version.
    """

    __slots__ = ("_value", "_wire_shape")

    def __init__(self, value: bool, wire_shape: Optional[WireShape] = None) -> None:
        self._value = bool(value)
        self._wire_shape = wire_shape

    @property
    def value(self) -> bool:
        return self._value

    @property
    def wire_shape(self) -> Optional[WireShape]:
        return self._wire_shape

    @classmethod
    def decode(cls, raw: Any) -> "TinyInt":
        """Accept a native boolean or the integers 0 and 1."""
        if isinstance(raw, TinyInt):
            return raw
        # bool is a subclass of int, so it must be checked first.
        if isinstance(raw, bool):
            return cls(raw, WireShape.BOOL)
        if isinstance(raw, int) and raw in (0, 1):
            return cls(bool(raw), WireShape.INT)
        raise UnrecognizedShape("TinyInt", raw)

    def encode(self, version: Optional[ServerVersion] = None) -> Union[bool, int]:
        """Spell the value the way ``version`` expects it."""
        if boolean_shape_for(version) is WireShape.BOOL:
            return self._value
        return 1 if self._value else 0

    @classmethod
    def _serialize(cls, value: Any, info: core_schema.SerializationInfo) -> Union[bool, int]:
        return cls.decode(value).encode(_target_version(info))

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.decode,
            serialization=core_schema.plain_serializer_function_ser_schema(
                cls._serialize, info_arg=True
            ),
        )

    def __bool__(self) -> bool:
        return self._value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TinyInt):
            return self._value == other._value
        if isinstance(other, bool):
            return self._value == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return f"TinyInt({self._value!r})"

    def __str__(self) -> str:
        return "true" if self._value else "false"


class DateTime:
    """A point in time, or the orchestrator's "never" sentinel.

    Accepted wire shapes: RFC3339 strings (with ``Z`` or an offset), naive
    ``YYYY-MM-DD HH:MM:SS`` strings taken as UTC, epoch seconds or
    milliseconds, and ``0000-00-00 00:00:00``. Values are normalized to UTC.
    """

    NEVER_WIRE = "0000-00-00 00:00:00"
    NEVER: "DateTime"

    __slots__ = ("_stamp",)

    # Epoch values above this are milliseconds (year 5138 in seconds).
    _MILLIS_THRESHOLD = 10 ** 11

    def __init__(self, stamp: Optional[datetime]) -> None:
        if stamp is not None:
            if stamp.tzinfo is None:
                stamp = stamp.replace(tzinfo=timezone.utc)
            stamp = stamp.astimezone(timezone.utc)
        self._stamp = stamp

    @property
    def stamp(self) -> Optional[datetime]:
        return self._stamp

    @property
    def is_never(self) -> bool:
        return self._stamp is None

    @classmethod
    def from_rfc3339(cls, value: str) -> "DateTime":
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return cls(datetime.fromisoformat(text))
        except ValueError:
            raise UnrecognizedShape("DateTime", value) from None

    @classmethod
    def from_unix_timestamp(cls, value: Union[int, float]) -> "DateTime":
        if abs(value) >= cls._MILLIS_THRESHOLD:
            value = value / 1000
        try:
            return cls(datetime.fromtimestamp(value, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            raise UnrecognizedShape("DateTime", value) from None

    @classmethod
    def decode(cls, raw: Any) -> "DateTime":
        if isinstance(raw, DateTime):
            return raw
        if isinstance(raw, datetime):
            return cls(raw)
        if isinstance(raw, bool):
            raise UnrecognizedShape("DateTime", raw)
        if isinstance(raw, (int, float)):
            return cls.from_unix_timestamp(raw)
        if isinstance(raw, str):
            if raw.strip() == cls.NEVER_WIRE:
                return cls.NEVER
            return cls.from_rfc3339(raw)
        raise UnrecognizedShape("DateTime", raw)

    def encode(self) -> str:
        if self._stamp is None:
            return self.NEVER_WIRE
        return self._stamp.isoformat().replace("+00:00", "Z")

    @classmethod
    def _serialize(cls, value: Any) -> str:
        return cls.decode(value).encode()

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.decode,
            serialization=core_schema.plain_serializer_function_ser_schema(cls._serialize),
        )

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DateTime):
            return self._stamp == other._stamp
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._stamp)

    def __repr__(self) -> str:
        return "DateTime.NEVER" if self._stamp is None else f"DateTime({self.encode()!r})"

    def __str__(self) -> str:
        return "never" if self._stamp is None else self.encode()


DateTime.NEVER = DateTime(None)


class Address:
    """A network address field, possibly unset or unknown to the orchestrator.

    ``""`` decodes to :attr:`UNDEFINED` and ``"UNKNOWN"`` to :attr:`UNKNOWN`;
    anything else must parse as the address family of the subclass. The text
    that was read is kept, so a decoded address is written back unchanged.
    """

    UNDEFINED_WIRE = ""
    UNKNOWN_WIRE = "UNKNOWN"

    __slots__ = ("_address", "_wire")

    def __init__(self, address: Any = None, wire: Optional[str] = None) -> None:
        self._address = address
        self._wire = wire if wire is not None else self._format(address)

    @classmethod
    def undefined(cls) -> "Address":
        return cls(None, cls.UNDEFINED_WIRE)

    @classmethod
    def unknown(cls) -> "Address":
        return cls(None, cls.UNKNOWN_WIRE)

    @property
    def address(self) -> Any:
        """The parsed address, or ``None`` when undefined or unknown."""
        return self._address

    @property
    def is_undefined(self) -> bool:
        return self._address is None and self._wire == self.UNDEFINED_WIRE

    @property
    def is_unknown(self) -> bool:
        return self._address is None and self._wire == self.UNKNOWN_WIRE

    @classmethod
    def _parse(cls, text: str) -> Any:
        raise NotImplementedError

    @classmethod
    def _format(cls, address: Any) -> str:
        return "" if address is None else str(address)

    @classmethod
    def decode(cls, raw: Any) -> "Address":
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            raise UnrecognizedShape(cls.__name__, raw)
        if raw == cls.UNDEFINED_WIRE:
            return cls.undefined()
        if raw == cls.UNKNOWN_WIRE:
            return cls.unknown()
        try:
            return cls(cls._parse(raw), raw)
        except ValueError:
            raise UnrecognizedShape(cls.__name__, raw) from None

    def encode(self) -> str:
        return self._wire

    @classmethod
    def _serialize(cls, value: Any) -> str:
        return cls.decode(value).encode()

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.decode,
            serialization=core_schema.plain_serializer_function_ser_schema(cls._serialize),
        )

    def __eq__(self, other: object) -> bool:
        if type(other) is type(self):
            if self._address is None:
                return other._address is None and self._wire == other._wire
            return self._address == other._address
        return NotImplemented

    def __hash__(self) -> int:
        return hash((type(self), self._address if self._address is not None else self._wire))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._wire!r})"

    def __str__(self) -> str:
        if self.is_undefined:
            return "unset"
        return self._wire


class IPv4Addr(Address):
    __slots__ = ()

    @classmethod
    def _parse(cls, text: str) -> ipaddress.IPv4Address:
        return ipaddress.IPv4Address(text)


class IPv6Addr(Address):
    __slots__ = ()

    @classmethod
    def _parse(cls, text: str) -> ipaddress.IPv6Address:
        return ipaddress.IPv6Address(text)


class MacAddr(Address):
    """A MAC address, compared case-insensitively and separator-agnostic."""

    __slots__ = ()

    _MAC_RE = re.compile(r"^[0-9A-Fa-f]{2}([:-])(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}$")

    @classmethod
    def _parse(cls, text: str) -> str:
        if not cls._MAC_RE.match(text):
            raise ValueError(f"Not a MAC address: {text!r}")
        return text.lower().replace("-", ":")


def open_enum(enum_cls: Type[Enum]) -> Any:
    """Annotate an enum field so values unknown to this client survive as strings."""

    def _validate(value: Any) -> Any:
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(value)
        except ValueError:
            if isinstance(value, str):
                return value
            raise UnrecognizedShape(enum_cls.__name__, value) from None

    return Annotated[Union[enum_cls, str], PlainValidator(_validate)]


class WireModel(BaseModel):
    """Base for every domain object exchanged with the orchestrator.

    Fields are camelCase on the wire. Fields this client does not know are
    kept in ``model_extra`` and written back unchanged by :meth:`to_wire`, so
    a read-modify-write cycle against a newer server does not drop data.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        validate_assignment=True,
        protected_namespaces=(),
    )

    @property
    def unknown_fields(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})

    def to_wire(self, server_version: Optional[Union[str, ServerVersion]] = None) -> Dict[str, Any]:
        """Dump for the wire, targeting ``server_version``.

        Only fields that were read from the wire or set by the caller are
        emitted.
        """
        if server_version is not None:
            server_version = ServerVersion.parse(server_version)
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude_unset=True,
            context={SERVER_VERSION_CONTEXT: server_version},
        )


@lru_cache(maxsize=None)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


def coerce(shape: Any, payload: Any) -> Any:
    """Validate a decoded JSON payload into ``shape``.

    ``None`` as the shape returns the payload untouched.
    """
    if shape is None:
        return payload
    try:
        return _adapter(shape).validate_python(payload)
    except ValidationError as e:
        raise SchemaMismatch(f"Response does not match {getattr(shape, '__name__', shape)}: {e}") from e


def to_wire_value(value: Any, server_version: Optional[ServerVersion] = None) -> Any:
    """Serialize a parameter value (model, list of models, scalar) for the wire."""
    if isinstance(value, WireModel):
        return value.to_wire(server_version)
    if isinstance(value, TinyInt):
        return value.encode(server_version)
    if isinstance(value, (DateTime, Address)):
        return value.encode()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: to_wire_value(v, server_version) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_wire_value(v, server_version) for v in value]
    return value
