# netprobe/transport/udp.py
import asyncio
import logging
import socket
from typing import Optional

from netprobe.errors import PacketSendError, TransportConnectError
from netprobe.transport.base import Transport, TransportCallbacks

logger = logging.getLogger(__name__)


class _EchoDatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, callbacks: TransportCallbacks):
        self.callbacks = callbacks

    def datagram_received(self, data, addr):
        self.callbacks.on_datagram(data)

    def error_received(self, exc):
        # ICMP unreachable and friends land here; the packet will simply time out
        self.callbacks.on_log(f"UDP socket error: {exc}")


class UdpTransport(Transport):
    """
    One unconnected datagram socket on an ephemeral local port, used for both
    sending probes and receiving the echoes.

    Receiving goes through an asyncio datagram endpoint. Sending calls sendto on the
    socket itself, so a local send failure (oversized datagram, no route) raises
    right away instead of only reaching error_received.
    """

    def __init__(self, host: str, port: int, local_host: Optional[str] = None):
        self.host = host
        self.port = port
        self.local_host = local_host
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._sock: Optional[socket.socket] = None
        self._remote = None

    @property
    def local_address(self):
        if self._sock is None:
            return None
        return self._sock.getsockname()

    async def start(self, callbacks: TransportCallbacks) -> None:
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(self.host, self.port, type=socket.SOCK_DGRAM)
        except OSError as e:
            raise TransportConnectError(f"cannot resolve {self.host}:{self.port}: {e}") from e
        family, _, _, _, sockaddr = infos[0]
        self._remote = sockaddr

        local_host = self.local_host
        if local_host is None:
            local_host = "::" if family == socket.AF_INET6 else "0.0.0.0"
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.setblocking(False)
            # bound before the first send, early echoes must not be missed
            sock.bind((local_host, 0))
            self._transport, _ = await loop.create_datagram_endpoint(
                lambda: _EchoDatagramProtocol(callbacks), sock=sock)
        except OSError as e:
            sock.close()
            raise TransportConnectError(f"cannot bind UDP socket: {e}") from e
        self._sock = sock
        logger.debug(f"UDP socket bound to {self.local_address}, target {self._remote}")

    async def send_packet(self, seq: int, payload: bytes) -> None:
        if self._transport is None or self._transport.is_closing():
            raise PacketSendError(seq, "UDP socket is not open")
        try:
            self._sock.sendto(payload, self._remote)
        except OSError as e:
            raise PacketSendError(seq, str(e)) from e

    async def stop(self) -> None:
        if self._transport is not None:
            # closes the socket too
            self._transport.close()
            self._transport = None
            self._sock = None
