#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
GreeSocket -- An async UDP socket that can:

  1. Send raw datagrams or GreeMessages to a broadcast or unicast address
  2. Receive and decode GreeMessages from devices, queueing them tagged with the sender's IP address
  3. Perform a request/response exchange with a single device, ignoring datagrams from other senders

  Inbound datagrams are delivered by the asyncio protocol callback into a queue, so
  datagrams that arrive while no one is waiting are not lost. Before each exchange the
  queue is drained, so that a late reply to an earlier (already timed out) request is never
  taken as the reply to a new one.
"""

from __future__ import annotations


import asyncio
from asyncio import Future
import socket
import time

from .internal_types import *
from .pkg_logging import logger
from .constants import GREE_PORT, DEFAULT_RECV_TIMEOUT, DEFAULT_BUFFER_SIZE
from .exceptions import GreeError, GreeIoError, ResponseTimeout
from .messages import GreeMessage

MAX_QUEUE_SIZE = 1000

QueueEntry = Union[Tuple[str, GreeMessage], Exception, None]
"""An (ip_address, message) pair, a transport error to surface to the next receiver,
   or None to mark end of stream."""

class _GreeSocketProtocol(asyncio.DatagramProtocol):
    """An adapter between the asyncio transport and GreeSocket."""

    gree_socket: GreeSocket

    def __init__(self, gree_socket: GreeSocket):
        self.gree_socket = gree_socket

    def connection_made(self, transport: asyncio.BaseTransport):
        """Called when a connection is made."""
        try:
            self.gree_socket.connection_made(transport) # type: ignore[arg-type]
        except BaseException as e:
            self.gree_socket.set_final_exception(e)
            raise

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        """Called when some datagram is received."""
        try:
            self.gree_socket.datagram_received(addr, data)
        except BaseException as e:
            self.gree_socket.set_final_exception(e)
            raise

    def error_received(self, exc: Exception):
        """Called when a send or receive operation raises an OSError.

        (Other than BlockingIOError or InterruptedError.)
        """
        self.gree_socket.error_received(exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        """Called when the connection is lost or closed."""
        self.gree_socket.connection_lost(exc)


class GreeSocket(AsyncContextManager['GreeSocket']):
    """
    An async UDP socket for talking to Gree devices.

    Usage:
        async with GreeSocket() as gs:
            gs.send_broadcast(scan_request(), "192.168.0.255")
            addr, message = await gs.receive()
    """

    bind_address: str
    """The local IP address to bind to. "0.0.0.0" binds to all interfaces."""

    bind_port: int
    """The local port to bind to. 0 selects an ephemeral port."""

    device_port: int
    """The port that devices listen on; the default destination port."""

    recv_timeout: float
    """The default time (in seconds) to wait for a response."""

    buffer_size: int
    """Datagrams larger than this are dropped."""

    sock: Optional[socket.socket] = None
    transport: Optional[asyncio.DatagramTransport] = None
    queue: Optional[asyncio.Queue[QueueEntry]] = None

    final_result: Optional[Future[None]] = None
    """A future that is set when the socket is stopped."""

    def __init__(
            self,
            bind_address: str="0.0.0.0",
            bind_port: int=0,
            device_port: int=GREE_PORT,
            recv_timeout: float=DEFAULT_RECV_TIMEOUT,
            buffer_size: int=DEFAULT_BUFFER_SIZE,
          ) -> None:
        self.bind_address = bind_address
        self.bind_port = bind_port
        self.device_port = device_port
        self.recv_timeout = recv_timeout
        self.buffer_size = buffer_size

    def __str__(self) -> str:
        return f"GreeSocket({self.bind_address}:{self.bind_port})"

    def __repr__(self) -> str:
        return str(self)

    def create_socket(self) -> socket.socket:
        """Creates and binds the low-level socket. Subclasses can override to customize socket options."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind((self.bind_address, self.bind_port))
        except BaseException:
            sock.close()
            raise
        return sock

    async def finish_start(self) -> None:
        """Called after the socket is up and running.  Subclasses can override to do additional
           initialization."""
        pass

    async def start(self) -> None:
        if self.final_result is not None:
            raise GreeError(f"Attempt to restart {self}")
        loop = asyncio.get_running_loop()
        self.final_result = loop.create_future()
        self.queue = asyncio.Queue(MAX_QUEUE_SIZE)
        try:
            try:
                self.sock = self.create_socket()
            except OSError as e:
                raise GreeIoError(f"Unable to bind UDP socket to {self.bind_address}:{self.bind_port}: {e}") from e
            # Note: asyncio datagram transports do not inherit from asyncio.DatagramTransport, although
            # they implement the same interface.
            untyped_transport, _ = await loop.create_datagram_endpoint(
                lambda: _GreeSocketProtocol(self),
                sock=self.sock
              )
            self.transport = untyped_transport # type: ignore[assignment]
            logger.debug(f"Bound to {self.local_address}")
            await self.finish_start()
        except BaseException as e:
            self.set_final_exception(e)
            try:
                await self.wait_for_done()
            except BaseException:
                pass
            raise

    @property
    def local_address(self) -> HostAndPort:
        if self.sock is None:
            raise GreeIoError(f"{self} is not started")
        result = self.sock.getsockname()
        return (result[0], result[1])

    async def stop(self) -> None:
        """Stops the GreeSocket."""
        self._close_transport()

    async def wait_for_done(self) -> None:
        assert self.final_result is not None
        await self.final_result

    async def stop_and_wait(self) -> None:
        await self.stop()
        await self.wait_for_done()

    def connection_made(self, transport: asyncio.DatagramTransport) -> None:
        """Called when a connection is made."""
        logger.debug(f"Connection made: {self}")
        self.transport = transport

    def datagram_received(self, addr: HostAndPort, data: bytes) -> None:
        """Called when some datagram is received."""
        logger.debug(f"[{addr[0]}] raw: {data!r}")
        if len(data) > self.buffer_size:
            logger.warning(f"Dropping oversized datagram ({len(data)} bytes) from {addr}")
            return
        try:
            message = GreeMessage(raw_data=data)
        except GreeError as e:
            logger.warning(f"Error parsing datagram from {addr}, raw=[{data!r}]: {e}")
            return
        logger.debug(f"[{addr[0]}]: {message}")
        self._put((addr[0], message))

    def error_received(self, exc: Exception) -> None:
        """Called when a send or receive operation raises an OSError.

        The error is surfaced to the next receiver; the socket stays open.
        """
        logger.info(f"Error received from transport {self}: {exc}")
        self._put(exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        """Called when the connection is lost or closed."""
        logger.debug(f"Connection to transport lost on {self}, exc={exc}")
        self.transport = None
        self._put(None)
        if exc is None:
            self.set_final_result()
        else:
            self.set_final_exception(exc)

    def _put(self, entry: QueueEntry) -> None:
        if self.queue is None:
            return
        try:
            self.queue.put_nowait(entry)
        except asyncio.QueueFull:
            logger.warning(f"Queue full, dropping {entry}")

    def drain(self) -> int:
        """Discards all queued datagrams and errors. Returns the number discarded."""
        n = 0
        if self.queue is not None:
            while not self.queue.empty():
                entry = self.queue.get_nowait()
                if entry is None:
                    # keep the end-of-stream marker for the next receiver
                    self.queue.put_nowait(None)
                    break
                logger.debug(f"Discarding stale entry: {entry}")
                n += 1
        return n

    def _sendto(self, data: bytes, addr: HostAndPort) -> None:
        if self.transport is None:
            raise GreeIoError(f"{self} is not open")
        try:
            self.transport.sendto(data, addr)
        except OSError as e:
            raise GreeIoError(f"Unable to send to {addr}: {e}") from e

    def send_broadcast(self, payload: bytes, address: str, port: Optional[int]=None) -> None:
        """Sends a raw payload to a broadcast address."""
        port = self.device_port if port is None else port
        logger.debug(f"Broadcasting to {address}:{port}: {payload!r}")
        self._sendto(payload, (address, port))

    def send_unicast(self, datagram: Union[GreeMessage, bytes], address: str, port: Optional[int]=None) -> None:
        """Sends a GreeMessage (or raw bytes) to a single device."""
        port = self.device_port if port is None else port
        logger.debug(f"Sending to {address}:{port}: {datagram}")
        data = datagram.raw_data if isinstance(datagram, GreeMessage) else datagram
        self._sendto(data, (address, port))

    async def receive(self, timeout: Optional[float]=None) -> Tuple[str, GreeMessage]:
        """Waits for the next decoded datagram from any sender.

        Returns (sender_ip_address, message).
        Raises ResponseTimeout if nothing arrives within `timeout` seconds (default recv_timeout),
        or GreeIoError if the transport reported an error or was closed.
        """
        if self.queue is None:
            raise GreeIoError(f"{self} is not started")
        timeout = self.recv_timeout if timeout is None else timeout
        try:
            entry = await asyncio.wait_for(self.queue.get(), max(timeout, 0.0))
        except asyncio.TimeoutError:
            raise ResponseTimeout(f"No response within {timeout} seconds") from None
        if entry is None:
            self.queue.put_nowait(None)
            raise GreeIoError(f"{self} is closed")
        if isinstance(entry, Exception):
            raise GreeIoError(f"Socket error: {entry}") from entry
        return entry

    async def exchange(
            self,
            address: str,
            request: GreeMessage,
            timeout: Optional[float]=None,
            port: Optional[int]=None,
          ) -> GreeMessage:
        """Sends a request to one device and returns its response.

        Datagrams from other senders are discarded. Raises ResponseTimeout if no datagram
        from `address` arrives within `timeout` seconds of sending.
        """
        timeout = self.recv_timeout if timeout is None else timeout
        self.drain()
        self.send_unicast(request, address, port)
        end_time = time.monotonic() + timeout
        while True:
            remaining_time = end_time - time.monotonic()
            if remaining_time <= 0.0:
                raise ResponseTimeout(f"No response from {address} within {timeout} seconds")
            sender, message = await self.receive(remaining_time)
            if sender == address:
                return message
            logger.debug(f"Ignoring datagram from {sender} while waiting for {address}: {message}")

    def _close_transport(self) -> None:
        if self.transport is not None:
            try:
                self.transport.close()
            except Exception as e:
                logger.error(f"Error closing transport on {self}: {e}")
            self.transport = None

    def _close_sock(self) -> None:
        if self.sock is not None:
            try:
                self.sock.close()
            except OSError as e:
                logger.error(f"Error closing socket on {self}: {e}")
            self.sock = None

    def set_final_exception(self, exc: BaseException) -> None:
        assert not exc is None
        if self.final_result is not None and not self.final_result.done():
            logger.debug(f"GreeSocket: Setting final exception: {exc}")
            self.final_result.set_exception(exc)
            self._close_transport()
            self._close_sock()

    def set_final_result(self) -> None:
        if self.final_result is not None and not self.final_result.done():
            logger.debug(f"GreeSocket: Setting final result to success")
            self.final_result.set_result(None)
            self._close_transport()
            self._close_sock()

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        if exc is None:
            self.set_final_result()
        else:
            self.set_final_exception(exc)
        try:
            # ensure that final_result has been awaited
            await self.wait_for_done()
        except BaseException:
            pass
        return False
