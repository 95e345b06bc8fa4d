# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
The in-memory device registry: the devices found by the most recent scan, keyed by MAC
address, plus an alias table that maps friendly names to MAC addresses.
"""

from __future__ import annotations

from .internal_types import *
from .pkg_logging import logger
from .exceptions import NotFound
from .messages import ScanResponsePack

class Device:
    """A device found by a scan."""

    mac: MacAddr
    """The device's MAC address; its identity"""

    ip: str
    """The IP address the device replied from in the most recent scan"""

    scan_result: ScanResponsePack
    """Vendor metadata from the most recent scan"""

    key: Optional[str]
    """The session key issued by the bind handshake, or None if not bound"""

    def __init__(self, mac: MacAddr, ip: str, scan_result: ScanResponsePack, key: Optional[str]=None):
        self.mac = mac
        self.ip = ip
        self.scan_result = scan_result
        self.key = key

    @property
    def is_bound(self) -> bool:
        return self.key is not None

    def __str__(self) -> str:
        return f"Device({self.mac}@{self.ip}, bound={self.is_bound})"

    def __repr__(self) -> str:
        return str(self)

    def to_json_data(self) -> JsonableDict:
        """A summary for reporting. The session key is not included."""
        return {
            "mac": self.mac,
            "ip": self.ip,
            "bound": self.is_bound,
            "scan_result": dict(self.scan_result.json_data),
        }

class DeviceRegistry:
    """Maps MAC addresses to Devices. Mutated only by scan and bind results."""

    devices: Dict[MacAddr, Device]
    aliases: Dict[str, MacAddr]
    preserve_session_keys: bool
    """If True, a device that reappears in a rescan keeps its session key."""

    def __init__(self, aliases: Optional[Mapping[str, MacAddr]]=None, preserve_session_keys: bool=False):
        self.devices = {}
        self.aliases = {} if aliases is None else dict(aliases)
        self.preserve_session_keys = preserve_session_keys

    def __len__(self) -> int:
        return len(self.devices)

    def __contains__(self, mac: object) -> bool:
        return mac in self.devices

    def record_scan(self, results: Iterable[Tuple[str, ScanResponsePack]]) -> None:
        """Replaces the entire device map with the devices in `results` ((ip, scan_pack) pairs).

        Session keys are discarded unless preserve_session_keys is set, in which case a device
        whose MAC was already registered keeps its key.
        """
        old_devices = self.devices
        devices: Dict[MacAddr, Device] = {}
        for ip, scan_result in results:
            mac = scan_result.mac
            key: Optional[str] = None
            if self.preserve_session_keys and mac in old_devices:
                key = old_devices[mac].key
            devices[mac] = Device(mac, ip, scan_result, key)
        self.devices = devices
        logger.debug(f"Registry updated from scan: {list(devices.values())}")

    def resolve(self, target: str) -> MacAddr:
        """Rewrites an alias to its MAC address. Anything that is not an alias is taken to be a MAC."""
        return self.aliases.get(target, target)

    def get(self, mac: MacAddr) -> Device:
        result = self.devices.get(mac)
        if result is None:
            raise NotFound(mac)
        return result

    def lookup(self, target: str) -> Device:
        """Resolves `target` and returns its Device. Raises NotFound with the original target."""
        result = self.devices.get(self.resolve(target))
        if result is None:
            raise NotFound(target)
        return result

    def record_bind(self, mac: MacAddr, key: str) -> None:
        """Stores the session key for a registered device. Raises NotFound if the device has
           disappeared from the registry."""
        self.get(mac).key = key
