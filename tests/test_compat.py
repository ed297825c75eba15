"""Tests for the schema compatibility layer.

Covers:

1. **TinyInt** -- both wire shapes decode to one logical value; encoding
   follows the target server version; unknown shapes are rejected.
2. **DateTime** -- RFC3339, epoch and "never" sentinel inputs. **Addresses**
   -- "", "UNKNOWN" or a valid address, re-encoded as read.
3. **Round-trip stability** -- a model re-serializes identically whatever
   shape it was read from.
4. **Unknown fields** -- fields this client does not model survive a
   read-modify-write cycle.
5. **Open enums and coercion errors.**
"""

import ipaddress
from datetime import datetime, timezone
from typing import List

import pytest

from vco.core.compat import (
    NATIVE_BOOLEAN_SINCE,
    DateTime,
    IPv4Addr,
    IPv6Addr,
    MacAddr,
    ServerVersion,
    TinyInt,
    WireShape,
    boolean_shape_for,
    coerce,
    to_wire_value,
)
from vco.core.errors import SchemaMismatch, UnrecognizedShape
from vco.core.models import BastionState, Enterprise, Gateway, SystemProperty

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _property(**overrides):
    payload = {
        "id": 7,
        "name": "vco.system.hostname",
        "value": "vco.example.net",
        "isReadOnly": 0,
        "isPassword": 0,
        "dataType": "STRING",
        "created": "2023-06-18T12:00:00Z",
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# ServerVersion
# ---------------------------------------------------------------------------


class TestServerVersion:
    def test_parses_dotted_versions(self):
        assert ServerVersion.parse("4.5.1") == ServerVersion(4, 5, 1)
        assert ServerVersion.parse("5.2") == ServerVersion(5, 2, 0)

    def test_parses_release_tags(self):
        assert ServerVersion.parse("R520-20230130-GA") == ServerVersion(5, 2, 0)

    def test_orders_numerically(self):
        assert ServerVersion.parse("4.10.0") > ServerVersion.parse("4.9.3")

    def test_rejects_garbage(self):
        with pytest.raises(ValueError):
            ServerVersion.parse("latest")

    def test_boolean_shape_follows_version(self):
        assert boolean_shape_for(None) is WireShape.INT
        assert boolean_shape_for(ServerVersion(4, 5, 1)) is WireShape.INT
        assert boolean_shape_for(NATIVE_BOOLEAN_SINCE) is WireShape.BOOL


# ---------------------------------------------------------------------------
# TinyInt
# ---------------------------------------------------------------------------


class TestTinyInt:
    @pytest.mark.parametrize("raw,expected,shape", [
        (True, True, WireShape.BOOL),
        (False, False, WireShape.BOOL),
        (1, True, WireShape.INT),
        (0, False, WireShape.INT),
    ])
    def test_decodes_both_shapes(self, raw, expected, shape):
        value = TinyInt.decode(raw)
        assert value.value is expected
        assert value.wire_shape is shape

    @pytest.mark.parametrize("raw", [2, -1, "1", "true", None, 1.0, [1]])
    def test_rejects_other_shapes(self, raw):
        with pytest.raises(UnrecognizedShape) as exc_info:
            TinyInt.decode(raw)
        assert exc_info.value.kind == "TinyInt"

    def test_equality_ignores_wire_shape(self):
        assert TinyInt.decode(1) == TinyInt.decode(True)
        assert TinyInt.decode(0) == False  # noqa: E712
        assert hash(TinyInt.decode(1)) == hash(TinyInt.decode(True))

    def test_encodes_for_target_version(self):
        value = TinyInt.decode(True)
        assert value.encode(ServerVersion(4, 5, 1)) == 1
        assert value.encode(ServerVersion(5, 2, 0)) is True
        assert value.encode(None) == 1

    def test_model_field_rejects_unknown_shape(self):
        with pytest.raises(UnrecognizedShape):
            SystemProperty.model_validate(_property(isPassword=2))


# ---------------------------------------------------------------------------
# DateTime
# ---------------------------------------------------------------------------


class TestDateTime:
    def test_rfc3339_with_zulu(self):
        value = DateTime.decode("2023-06-18T12:00:00Z")
        assert value.stamp == datetime(2023, 6, 18, 12, 0, tzinfo=timezone.utc)

    def test_rfc3339_offset_is_normalized_to_utc(self):
        value = DateTime.decode("2023-06-18T14:00:00+02:00")
        assert value == DateTime.decode("2023-06-18T12:00:00Z")
        assert value.encode() == "2023-06-18T12:00:00Z"

    def test_epoch_seconds_and_milliseconds(self):
        seconds = DateTime.decode(1687089600)
        millis = DateTime.decode(1687089600000)
        assert seconds == millis == DateTime.decode("2023-06-18T12:00:00Z")

    def test_never_sentinel(self):
        value = DateTime.decode("0000-00-00 00:00:00")
        assert value.is_never
        assert value is DateTime.NEVER
        assert value.encode() == "0000-00-00 00:00:00"

    def test_naive_string_is_utc(self):
        assert DateTime.decode("2023-06-18 12:00:00") == DateTime.decode("2023-06-18T12:00:00Z")

    @pytest.mark.parametrize("raw", ["yesterday", True, {"t": 1}])
    def test_rejects_other_shapes(self, raw):
        with pytest.raises(UnrecognizedShape):
            DateTime.decode(raw)


# ---------------------------------------------------------------------------
# Network addresses
# ---------------------------------------------------------------------------


class TestAddress:
    def test_ipv4(self):
        value = IPv4Addr.decode("192.0.2.10")
        assert value.address == ipaddress.IPv4Address("192.0.2.10")
        assert value.encode() == "192.0.2.10"

    def test_ipv6_keeps_wire_text(self):
        value = IPv6Addr.decode("2001:DB8:0:0::1")
        assert value == IPv6Addr.decode("2001:db8::1")
        assert value.encode() == "2001:DB8:0:0::1"

    def test_mac(self):
        value = MacAddr.decode("00-1A-2B-3C-4D-5E")
        assert value == MacAddr.decode("00:1a:2b:3c:4d:5e")
        assert value.encode() == "00-1A-2B-3C-4D-5E"

    @pytest.mark.parametrize("kind", [IPv4Addr, IPv6Addr, MacAddr])
    def test_undefined_and_unknown(self, kind):
        undefined = kind.decode("")
        unknown = kind.decode("UNKNOWN")
        assert undefined.is_undefined and undefined.address is None
        assert unknown.is_unknown and unknown.address is None
        assert undefined != unknown
        assert (undefined.encode(), unknown.encode()) == ("", "UNKNOWN")

    @pytest.mark.parametrize("kind, raw", [
        (IPv4Addr, "300.1.1.1"),
        (IPv4Addr, "2001:db8::1"),
        (IPv6Addr, "192.0.2.10"),
        (MacAddr, "00:1a:2b:3c:4d"),
        (MacAddr, "00:1a-2b:3c:4d:5e"),
        (IPv4Addr, 3232235777),
        (IPv4Addr, "unknown"),
    ])
    def test_rejects_other_shapes(self, kind, raw):
        with pytest.raises(UnrecognizedShape):
            kind.decode(raw)

    def test_gateway_fields_round_trip(self):
        payload = {
            "id": 80,
            "name": "vcg-1",
            "ipAddress": "192.0.2.10",
            "ipV6Address": "",
            "privateIpAddress": "UNKNOWN",
        }
        gateway = Gateway.model_validate(payload)

        assert gateway.ip_address.address == ipaddress.IPv4Address("192.0.2.10")
        assert gateway.ip_v6_address.is_undefined
        assert gateway.private_ip_address.is_unknown
        assert gateway.to_wire("4.5.1") == payload

    def test_gateway_rejects_bad_address(self):
        with pytest.raises(UnrecognizedShape):
            Gateway.model_validate({"id": 80, "name": "vcg-1", "ipAddress": "vcg-1.example.net"})


# ---------------------------------------------------------------------------
# Round-trip stability
# ---------------------------------------------------------------------------


class TestRoundTrip:
    @pytest.mark.parametrize("version", ["4.5.1", "5.2.0"])
    def test_wire_shape_does_not_leak_into_output(self, version):
        as_ints = SystemProperty.model_validate(_property(isReadOnly=1, isPassword=0))
        as_bools = SystemProperty.model_validate(_property(isReadOnly=True, isPassword=False))
        assert as_ints.to_wire(version) == as_bools.to_wire(version)

    def test_legacy_target_gets_integers(self):
        prop = SystemProperty.model_validate(_property(isReadOnly=True))
        wire = prop.to_wire("4.5.1")
        assert wire["isReadOnly"] == 1 and wire["isReadOnly"] is not True
        assert wire["isPassword"] == 0

    def test_modern_target_gets_booleans(self):
        prop = SystemProperty.model_validate(_property(isReadOnly=1))
        wire = prop.to_wire("5.2.0")
        assert wire["isReadOnly"] is True
        assert wire["isPassword"] is False

    def test_reencoding_is_stable(self):
        prop = SystemProperty.model_validate(_property())
        once = prop.to_wire("4.5.1")
        twice = SystemProperty.model_validate(once).to_wire("4.5.1")
        assert once == twice

    def test_only_set_fields_are_emitted(self):
        prop = SystemProperty(name="a.b", value="1")
        assert prop.to_wire() == {"name": "a.b", "value": "1"}

    def test_nested_models_follow_target_version(self):
        gateway = Gateway.model_validate({
            "name": "gw-1",
            "isLoadBalanced": 0,
            "pools": [{"id": 1, "isDefault": 1, "ipV4Enabled": True}],
        })
        wire = gateway.to_wire("5.0.0")
        assert wire["isLoadBalanced"] is False
        assert wire["pools"][0]["isDefault"] is True
        assert wire["pools"][0]["ipV4Enabled"] is True

    def test_to_wire_value_handles_containers(self):
        value = {"_update": {"alertsEnabled": TinyInt(True)}, "items": [DateTime.NEVER]}
        assert to_wire_value(value, ServerVersion(4, 0, 0)) == {
            "_update": {"alertsEnabled": 1},
            "items": ["0000-00-00 00:00:00"],
        }


# ---------------------------------------------------------------------------
# Unknown fields and enums
# ---------------------------------------------------------------------------


class TestUnknownFields:
    def test_unknown_fields_survive_read_modify_write(self):
        enterprise = Enterprise.model_validate({
            "id": 3,
            "name": "Acme",
            "alertsEnabled": 1,
            "futureFeatureFlag": {"nested": [1, 2]},
        })
        enterprise.description = "updated"
        wire = enterprise.to_wire("4.5.1")
        assert wire["futureFeatureFlag"] == {"nested": [1, 2]}
        assert wire["description"] == "updated"
        assert enterprise.unknown_fields == {"futureFeatureFlag": {"nested": [1, 2]}}

    def test_unknown_enum_values_are_kept(self):
        enterprise = Enterprise.model_validate({"name": "Acme", "bastionState": "SOME_NEW_STATE"})
        assert enterprise.bastion_state == "SOME_NEW_STATE"
        assert enterprise.to_wire()["bastionState"] == "SOME_NEW_STATE"

    def test_known_enum_values_are_typed(self):
        enterprise = Enterprise.model_validate({"name": "Acme", "bastionState": "STAGED"})
        assert enterprise.bastion_state is BastionState.STAGED


class TestCoerce:
    def test_none_shape_returns_payload(self):
        payload = {"anything": [1, 2]}
        assert coerce(None, payload) is payload

    def test_list_shape(self):
        props = coerce(List[SystemProperty], [_property(), _property(name="other")])
        assert [p.name for p in props] == ["vco.system.hostname", "other"]

    def test_mismatch_raises_schema_mismatch(self):
        with pytest.raises(SchemaMismatch):
            coerce(SystemProperty, {"value": "no name"})
