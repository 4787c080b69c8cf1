# netprobe/transport/tcp.py
import asyncio
import logging
import socket
from typing import Optional

from netprobe.codec import StreamFramer
from netprobe.errors import PacketSendError, TransportConnectError
from netprobe.transport.base import Transport, TransportCallbacks

logger = logging.getLogger(__name__)

READ_CHUNK = 65536


class TcpTransport(Transport):
    """
    One connection for the whole run. Inbound bytes are re-framed on header
    newlines, so echoes that arrive coalesced or split are still matched.
    """

    def __init__(self, host: str, port: int, connect_timeout_s: float = 5.0):
        self.host = host
        self.port = port
        self.connect_timeout_s = connect_timeout_s
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task] = None
        self._framer = StreamFramer()

    async def start(self, callbacks: TransportCallbacks) -> None:
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise TransportConnectError(
                f"connect to {self.host}:{self.port} timed out after {self.connect_timeout_s}s") from e
        except OSError as e:
            raise TransportConnectError(f"connect to {self.host}:{self.port} failed: {e}") from e

        sock = self._writer.get_extra_info("socket")
        if sock is not None:
            # no Nagle coalescing, pacing must reach the wire as configured
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self._read_task = asyncio.create_task(self._read_loop(callbacks))
        logger.debug(f"TCP connected to {self.host}:{self.port}")

    async def _read_loop(self, callbacks: TransportCallbacks) -> None:
        while True:
            try:
                data = await self._reader.read(READ_CHUNK)
            except (ConnectionError, OSError) as e:
                callbacks.on_log(f"TCP socket error: {e}")
                return
            if not data:
                callbacks.on_log("TCP connection closed by remote")
                return
            for frame in self._framer.feed(data):
                callbacks.on_datagram(frame)

    async def send_packet(self, seq: int, payload: bytes) -> None:
        if self._writer is None or self._writer.is_closing():
            raise PacketSendError(seq, "TCP connection is not open")
        try:
            self._writer.write(payload)
            await self._writer.drain()
        except (ConnectionError, OSError) as e:
            raise PacketSendError(seq, str(e)) from e

    async def stop(self) -> None:
        if self._read_task is not None:
            self._read_task.cancel()
            try:
                await self._read_task
            except asyncio.CancelledError:
                pass
            self._read_task = None
        if self._writer is not None:
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except (ConnectionError, OSError) as e:
                logger.debug(f"error while closing TCP connection: {e}")
            self._writer = None
