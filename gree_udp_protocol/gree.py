# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Gree -- A high-level Gree client that keeps a consistent view of the devices on the network.

Devices are addressed by MAC address or by alias. Before each operation the network is
rescanned if the last scan is older than max_scan_age. Devices are bound on first use.
If an operation fails, the network is rescanned (unless the last scan is younger than
min_scan_age) and the operation is retried exactly once; a device that changed its IP
address or was never scanned is found again this way.

A Gree instance is not safe for concurrent use by multiple tasks. Callers that share one
must serialize access, e.g., with `async with gree.lock:`.

Usage:
    async with Gree(GreeConfig(aliases={"bedroom": "f4911e000000"})) as gree:
        bag = VariableBag.from_names(["Pow", "SetTem"])
        await gree.net_read("bedroom", bag)
        bag = VariableBag.from_name_value_pairs([("Pow", "1"), ("SetTem", "24")])
        await gree.net_write("bedroom", bag)
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum

from .internal_types import *
from .pkg_logging import logger
from .config import GreeConfig
from .exceptions import GreeError, NotBound, NotFound
from .registry import Device, DeviceRegistry
from .var_bag import VariableBag
from .variables import name_of
from .client import GreeClient

_R = TypeVar('_R')

class OpKind(Enum):
    BIND = "bind"
    NET_READ = "net_read"
    NET_WRITE = "net_write"

class Operation:
    """An operation to apply to a single device. NET_READ and NET_WRITE carry the caller's bag."""

    kind: OpKind
    bag: Optional[VariableBag]

    def __init__(self, kind: OpKind, bag: Optional[VariableBag]=None):
        if (bag is None) != (kind == OpKind.BIND):
            raise ValueError(f"Operation {kind.value} {'requires' if bag is None else 'does not take'} a VariableBag")
        self.kind = kind
        self.bag = bag

    def __str__(self) -> str:
        return f"Operation({self.kind.value})"

    @classmethod
    def bind(cls) -> Operation:
        return cls(OpKind.BIND)

    @classmethod
    def net_read(cls, bag: VariableBag) -> Operation:
        return cls(OpKind.NET_READ, bag)

    @classmethod
    def net_write(cls, bag: VariableBag) -> Operation:
        return cls(OpKind.NET_WRITE, bag)

class Gree(AsyncContextManager['Gree']):
    config: GreeConfig
    client: GreeClient
    registry: DeviceRegistry

    scan_time: Optional[float] = None
    """The clock() time of the last successful scan, or None if there has been none."""

    clock: Callable[[], float]
    """The time source for scan freshness, in seconds."""

    lock: asyncio.Lock
    """A lock for callers that share this instance between tasks. Not used internally."""

    _owns_client: bool

    def __init__(
            self,
            config: Optional[GreeConfig]=None,
            client: Optional[GreeClient]=None,
            clock: Callable[[], float]=time.monotonic,
          ) -> None:
        """Create a high-level client.

        Parameters:
            config:   The configuration. Defaults to GreeConfig().
            client:   The low-level client to use. If None, one is created from config.client_config
                        and started/stopped with this object; otherwise the caller manages its lifetime.
            clock:    The time source used for scan freshness. Defaults to time.monotonic.
        """
        self.config = GreeConfig() if config is None else config
        self._owns_client = client is None
        self.client = GreeClient(self.config.client_config) if client is None else client
        self.registry = DeviceRegistry(self.config.aliases, preserve_session_keys=self.config.preserve_session_keys)
        self.clock = clock
        self.lock = asyncio.Lock()

    async def __aenter__(self) -> Gree:
        if self._owns_client:
            await self.client.start()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        if self._owns_client:
            return await self.client.__aexit__(exc_type, exc, tb)
        return False

    async def _scan_now(self) -> None:
        results = await self.client.scan()
        self.scan_time = self.clock()
        self.registry.record_scan((info.src_addr, info.pack) for info in results)
        logger.info(f"Scan complete: {len(self.registry)} device(s)")

    async def maybe_scan(self, force: bool) -> bool:
        """Scans if the registry is stale.

        A scan happens if there has never been one, if the last one is at least max_scan_age old,
        or if `force` is set and the last one is at least min_scan_age old. Returns True if a scan
        happened.
        """
        if self.scan_time is not None:
            age = self.clock() - self.scan_time
            if age < self.config.max_scan_age and not (force and age >= self.config.min_scan_age):
                logger.debug(f"Skipping scan: age={age:.1f}s, force={force}")
                return False
        await self._scan_now()
        return True

    async def ensure_bound(self, device: Device) -> None:
        """Binds the device if it has no session key. Bound devices are left untouched."""
        if device.key is None:
            pack = await self.client.bind(device.ip, device.mac)
            self.registry.record_bind(device.mac, pack.key)

    async def _net_read(self, device: Device, bag: VariableBag) -> None:
        if device.key is None:
            raise NotBound(device.mac)
        names = bag.pending_reads()
        if len(names) == 0:
            return
        pack = await self.client.get_vars(device.ip, device.mac, device.key, names)
        for name, value in pack.items():
            var_name = name_of(name)
            if var_name is not None:
                bag.apply_read_result(var_name, value)

    async def _net_write(self, device: Device, bag: VariableBag) -> None:
        if device.key is None:
            raise NotBound(device.mac)
        pending = bag.pending_writes()
        if len(pending) == 0:
            return
        names = [ name for name, _ in pending ]
        values = [ value for _, value in pending ]
        pack = await self.client.set_vars(device.ip, device.mac, device.key, names, values)
        # The device's echo of the request is authoritative for what was applied
        for name, value in pack.items():
            var_name = name_of(name)
            if var_name is not None:
                bag.apply_write_result(var_name, value)

    async def apply(self, target: str, op: Operation) -> None:
        """Applies an operation to a device, binding it first if necessary. No retry."""
        device = self.registry.lookup(target)
        await self.ensure_bound(device)
        if op.kind == OpKind.BIND:
            return
        assert op.bag is not None
        if op.kind == OpKind.NET_READ:
            await self._net_read(device, op.bag)
        else:
            await self._net_write(device, op.bag)

    async def apply_with_retry(self, target: str, op: Operation) -> None:
        """Applies an operation to a device; on failure rescans and tries exactly once more.
           The second failure is raised unchanged."""
        await self.maybe_scan(False)
        try:
            await self.apply(target, op)
            return
        except GreeError as e:
            logger.info(f"{op} on {target} failed ({type(e).__name__}: {e}); rescanning and retrying")
        await self.maybe_scan(True)
        await self.apply(target, op)

    async def scan(self) -> None:
        """Performs an explicit scan, regardless of the age of the last one."""
        await self._scan_now()

    async def bind(self, target: str) -> None:
        """Binds a device. Rarely needed, since binding happens automatically on first use."""
        await self.apply_with_retry(target, Operation.bind())

    async def net_read(self, target: str, bag: VariableBag) -> None:
        """Reads the read-pending variables in `bag` from a device."""
        await self.apply_with_retry(target, Operation.net_read(bag))

    async def net_write(self, target: str, bag: VariableBag) -> None:
        """Writes the write-pending variables in `bag` to a device, and fills the bag with the
           values the device reports as applied."""
        await self.apply_with_retry(target, Operation.net_write(bag))

    async def execute(self, target: str, op: Operation) -> None:
        """Applies any Operation, with retry."""
        await self.apply_with_retry(target, op)

    async def with_state(self, projector: Callable[[DeviceRegistry], _R]) -> _R:
        """Calls `projector` with the registry, after a rate-limited rescan."""
        await self.maybe_scan(False)
        return projector(self.registry)

    async def with_device(self, target: str, projector: Callable[[Device], _R]) -> _R:
        """Calls `projector` with the device named by `target`. If it is not found, rescans and
           looks once more."""
        await self.maybe_scan(False)
        try:
            return projector(self.registry.lookup(target))
        except NotFound as e:
            logger.info(f"Lookup of {target} failed ({e}); rescanning")
        await self.maybe_scan(True)
        return projector(self.registry.lookup(target))
