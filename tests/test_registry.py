"""Tests for the device registry."""

import pytest

from gree_udp_protocol import DeviceRegistry, NotFound, ScanResponsePack

MAC_A = "f4911e000001"
MAC_B = "f4911e000002"


def scan_pack(mac, name=""):
    return ScanResponsePack({"t": "dev", "mac": mac, "name": name})


def test_record_scan_replaces_devices():
    registry = DeviceRegistry()
    registry.record_scan([("10.0.0.1", scan_pack(MAC_A)), ("10.0.0.2", scan_pack(MAC_B))])
    assert len(registry) == 2
    registry.record_scan([("10.0.0.3", scan_pack(MAC_B))])
    assert MAC_A not in registry
    assert registry.get(MAC_B).ip == "10.0.0.3"


def test_lookup_resolves_aliases():
    registry = DeviceRegistry(aliases={"bedroom": MAC_A})
    registry.record_scan([("10.0.0.1", scan_pack(MAC_A, "bedroom ac"))])
    assert registry.lookup("bedroom").mac == MAC_A
    assert registry.lookup(MAC_A).ip == "10.0.0.1"


def test_lookup_reports_original_target():
    registry = DeviceRegistry(aliases={"bedroom": MAC_A})
    with pytest.raises(NotFound) as exc_info:
        registry.lookup("bedroom")
    assert exc_info.value.target == "bedroom"


def test_unknown_alias_is_treated_as_mac():
    registry = DeviceRegistry()
    assert registry.resolve("kitchen") == "kitchen"


def test_rescan_discards_session_keys():
    registry = DeviceRegistry()
    registry.record_scan([("10.0.0.1", scan_pack(MAC_A))])
    registry.record_bind(MAC_A, "0123456789abcdef")
    assert registry.get(MAC_A).is_bound
    registry.record_scan([("10.0.0.1", scan_pack(MAC_A))])
    assert registry.get(MAC_A).key is None


def test_rescan_preserves_session_keys_when_configured():
    registry = DeviceRegistry(preserve_session_keys=True)
    registry.record_scan([("10.0.0.1", scan_pack(MAC_A))])
    registry.record_bind(MAC_A, "0123456789abcdef")
    registry.record_scan([("10.0.0.9", scan_pack(MAC_A)), ("10.0.0.2", scan_pack(MAC_B))])
    assert registry.get(MAC_A).key == "0123456789abcdef"
    assert registry.get(MAC_A).ip == "10.0.0.9"
    assert registry.get(MAC_B).key is None


def test_record_bind_for_missing_device():
    registry = DeviceRegistry()
    with pytest.raises(NotFound):
        registry.record_bind(MAC_A, "0123456789abcdef")


def test_device_json_omits_key():
    registry = DeviceRegistry()
    registry.record_scan([("10.0.0.1", scan_pack(MAC_A, "bedroom ac"))])
    registry.record_bind(MAC_A, "0123456789abcdef")
    data = registry.get(MAC_A).to_json_data()
    assert data["mac"] == MAC_A
    assert data["bound"] is True
    assert data["scan_result"]["name"] == "bedroom ac"
    assert "key" not in data
