# netprobe/agent.py
"""
Echo agent: returns every UDP datagram to its sender and every TCP byte to the
same connection, unmodified. Runs on the remote end of a probe test.
"""
import asyncio
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


class _UdpEcho(asyncio.DatagramProtocol):
    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        self.transport.sendto(data, addr)

    def error_received(self, exc):
        logger.warning(f"UDP echo socket error: {exc}")


class EchoAgent:
    def __init__(self, host: str = "0.0.0.0", udp_port: int = 40000, tcp_port: int = 5050):
        self.host = host
        self.udp_port = udp_port
        self.tcp_port = tcp_port
        self._udp: Optional[asyncio.DatagramTransport] = None
        self._tcp: Optional[asyncio.AbstractServer] = None

    @classmethod
    def from_env(cls, environ=None) -> "EchoAgent":
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("AGENT_HOST", "0.0.0.0"),
            udp_port=int(env.get("UDP_PORT", 40000)),
            tcp_port=int(env.get("TCP_PORT", 5050)),
        )

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._udp, _ = await loop.create_datagram_endpoint(
            _UdpEcho, local_addr=(self.host, self.udp_port))
        self._tcp = await asyncio.start_server(self._handle_tcp, self.host, self.tcp_port)
        # port 0 means "pick one"; report what we actually got
        self.udp_port = self._udp.get_extra_info("sockname")[1]
        self.tcp_port = self._tcp.sockets[0].getsockname()[1]
        logger.info(f"echo agent listening on UDP {self.host}:{self.udp_port}, TCP {self.host}:{self.tcp_port}")

    async def _handle_tcp(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        logger.debug(f"TCP echo connection from {peer}")
        try:
            while True:
                data = await reader.read(65536)
                if not data:
                    break
                writer.write(data)
                await writer.drain()
        except ConnectionError as e:
            logger.debug(f"TCP echo connection {peer} dropped: {e}")
        finally:
            writer.close()

    async def stop(self) -> None:
        if self._udp is not None:
            self._udp.close()
            self._udp = None
        if self._tcp is not None:
            self._tcp.close()
            await self._tcp.wait_closed()
            self._tcp = None

    async def serve_forever(self) -> None:
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()
