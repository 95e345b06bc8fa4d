# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
GreeClient -- A low-level Gree client that can:

  1. Broadcast a scan request and collect the replies of devices on the local network
  2. Bind to a device, obtaining its per-device session key
  3. Read (status) and write (cmd) device variables using a session key

  GreeClient keeps no device state; see Gree for the high-level client.
"""

from __future__ import annotations


import time
import datetime

from .internal_types import *
from .pkg_logging import logger
from .constants import GENERIC_KEY
from .config import GreeClientConfig
from .exceptions import GreeError, GreeIoError, ResponseTimeout
from .messages import (
    GreeMessage,
    ScanResponsePack,
    BindResponsePack,
    StatusResponsePack,
    CommandResponsePack,
    scan_request,
    bind_request,
    status_request,
    command_request,
    handle_response,
  )
from .gree_socket import GreeSocket

class ScanResultInfo:
    src_addr: str
    """The IP address of the device that replied"""

    message: GreeMessage
    """The reply envelope"""

    pack: ScanResponsePack
    """The decoded reply; identifies the device"""

    monotonic_time: float
    """The local time (in seconds) since an arbitrary point in the past at which
       the reply was received, as returned by time.monotonic()."""

    utc_time: datetime.datetime
    """The UTC time at which the reply was received."""

    def __init__(self, src_addr: str, message: GreeMessage, pack: ScanResponsePack) -> None:
        self.src_addr = src_addr
        self.message = message
        self.pack = pack
        self.monotonic_time = time.monotonic()
        self.utc_time = datetime.datetime.now(datetime.timezone.utc)

    @property
    def mac(self) -> MacAddr:
        return self.pack.mac

    def __str__(self) -> str:
        return f"ScanResultInfo({self.src_addr}, mac={self.mac}, {self.pack})"

    def __repr__(self) -> str:
        return str(self)


class GreeClient(GreeSocket, AsyncContextManager['GreeClient']):
    """
    A low-level Gree client.

    Usage:
        async with GreeClient(GreeClientConfig(broadcast_address="192.168.0.255")) as client:
            for info in await client.scan():
                bind_pack = await client.bind(info.src_addr, info.mac)
                status = await client.get_vars(info.src_addr, info.mac, bind_pack.key, ["Pow", "SetTem"])
    """

    config: GreeClientConfig

    def __init__(self, config: Optional[GreeClientConfig]=None) -> None:
        if config is None:
            config = GreeClientConfig()
        super().__init__(
            bind_address=config.bind_address,
            bind_port=config.bind_port,
            device_port=config.device_port,
            recv_timeout=config.recv_timeout,
            buffer_size=config.buffer_size,
          )
        self.config = config

    async def scan(
            self,
            broadcast_address: Optional[str]=None,
            max_count: Optional[int]=None,
          ) -> List[ScanResultInfo]:
        """Broadcasts a scan request and collects replies.

        Collection ends when `max_count` distinct devices have replied, or when no reply
        arrives within recv_timeout. A receive timeout is the normal end of a scan, not an error;
        a socket error also ends the scan with the replies collected so far.
        Replies that cannot be decoded are logged and skipped. At most one result is returned per MAC.
        """
        broadcast_address = self.config.broadcast_address if broadcast_address is None else broadcast_address
        max_count = self.config.max_count if max_count is None else max_count
        self.drain()
        self.send_broadcast(scan_request(), broadcast_address)
        end_time = time.monotonic() + max_count * self.recv_timeout
        results: Dict[MacAddr, ScanResultInfo] = {}
        while len(results) < max_count:
            remaining_time = min(self.recv_timeout, end_time - time.monotonic())
            if remaining_time <= 0.0:
                break
            try:
                addr, message = await self.receive(remaining_time)
            except ResponseTimeout:
                break
            except GreeIoError as e:
                logger.warning(f"Scan ended early after {len(results)} device(s): {e}")
                break
            try:
                pack = handle_response(addr, message, GENERIC_KEY, ScanResponsePack)
            except GreeError as e:
                logger.warning(f"Ignoring undecodable scan reply from {addr}: {e}")
                continue
            if pack.mac == "":
                logger.warning(f"Ignoring scan reply without a MAC address from {addr}: {pack}")
                continue
            if pack.mac in results:
                logger.debug(f"Ignoring duplicate scan reply from {addr} for {pack.mac}")
                continue
            info = ScanResultInfo(addr, message, pack)
            logger.info(f"Scan found {pack.mac} at {addr}: name={pack.name!r}, model={pack.model!r}, ver={pack.ver!r}")
            results[pack.mac] = info
        return list(results.values())

    async def bind(self, addr: str, mac: MacAddr) -> BindResponsePack:
        """Performs the bind handshake with a device and returns its reply, which carries the session key."""
        response = await self.exchange(addr, bind_request(mac, GENERIC_KEY))
        pack = handle_response(addr, response, GENERIC_KEY, BindResponsePack)
        logger.info(f"Bound to {mac} at {addr}")
        return pack

    async def get_vars(self, addr: str, mac: MacAddr, key: str, names: Sequence[str]) -> StatusResponsePack:
        """Reads the named variables from a device."""
        response = await self.exchange(addr, status_request(mac, key, names))
        return handle_response(addr, response, key, StatusResponsePack)

    async def set_vars(
            self,
            addr: str,
            mac: MacAddr,
            key: str,
            names: Sequence[str],
            values: Sequence[Jsonable],
          ) -> CommandResponsePack:
        """Writes the named variables to a device."""
        response = await self.exchange(addr, command_request(mac, key, names, values))
        return handle_response(addr, response, key, CommandResponsePack)

    async def __aenter__(self) -> GreeClient:
        await super().__aenter__()
        return self
