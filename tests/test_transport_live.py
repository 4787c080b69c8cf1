# tests/test_transport_live.py
"""Real sockets against the echo agent on localhost."""
import asyncio
import socket
from datetime import datetime, timezone

import pytest

from netprobe.agent import EchoAgent
from netprobe.brain.controller import ProbeController
from netprobe.codec import ProbeEnvelope, encode
from netprobe.config import ProbeConfig, Settings
from netprobe.errors import PacketSendError, RunFailedError, TransportConnectError
from netprobe.transport.base import TransportCallbacks
from netprobe.transport.udp import UdpTransport

FAST = Settings(min_timeout_ms=500, drain_grace_ms=0, connect_timeout_s=2.0)


def _free_tcp_port():
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


async def _probe_agent(protocol, count=5, size=128, interval_ms=5):
    agent = EchoAgent(host="127.0.0.1", udp_port=0, tcp_port=0)
    await agent.start()
    try:
        port = agent.udp_port if protocol == "UDP" else agent.tcp_port
        cfg = ProbeConfig(protocol=protocol, target_host="127.0.0.1", target_port=port,
                          packet_size=size, packet_count=count, interval_ms=interval_ms)
        return await ProbeController(cfg, settings=FAST).run(f"live-{protocol.lower()}")
    finally:
        await agent.stop()


@pytest.mark.parametrize("protocol", ["UDP", "TCP"])
def test_probe_against_local_agent(protocol):
    """Every packet comes back over loopback and the summary is populated."""
    res = asyncio.run(_probe_agent(protocol))
    assert len(res.packets) == 5
    assert [p["status"] for p in res.packets] == ["received"] * 5
    assert res.summary.packet_loss_percent == 0.0
    assert res.summary.max_latency_ms < 500
    assert res.summary.throughput_mbps > 0


def test_tcp_back_to_back_packets_are_reframed():
    """No pacing: echoes may coalesce on the stream and must still all match."""
    res = asyncio.run(_probe_agent("TCP", count=20, size=256, interval_ms=0))
    assert [p["status"] for p in res.packets] == ["received"] * 20


def test_tcp_connect_refused_fails_run():
    cfg = ProbeConfig(protocol="TCP", target_host="127.0.0.1", target_port=_free_tcp_port(),
                      packet_count=3, interval_ms=0)
    with pytest.raises(RunFailedError) as exc:
        asyncio.run(ProbeController(cfg, settings=FAST).run("refused"))
    assert isinstance(exc.value.__cause__, TransportConnectError)


def test_udp_socket_listens_before_sending():
    """The ephemeral socket is bound when start() returns and sees the echo."""
    async def scenario():
        agent = EchoAgent(host="127.0.0.1", udp_port=0, tcp_port=0)
        await agent.start()
        got = asyncio.get_running_loop().create_future()
        udp = UdpTransport("127.0.0.1", agent.udp_port)
        try:
            await udp.start(TransportCallbacks(on_datagram=lambda d: got.done() or got.set_result(d)))
            assert udp.local_address[1] != 0
            payload = encode(ProbeEnvelope(seq=1, test_id="x", sent_at=datetime.now(timezone.utc)), 64)
            await udp.send_packet(1, payload)
            echoed = await asyncio.wait_for(got, timeout=2.0)
            return payload, echoed
        finally:
            await udp.stop()
            await agent.stop()

    payload, echoed = asyncio.run(scenario())
    assert echoed == payload


def test_send_after_stop_raises():
    async def scenario():
        udp = UdpTransport("127.0.0.1", 9)
        await udp.start(TransportCallbacks(on_datagram=lambda d: None))
        await udp.stop()
        with pytest.raises(PacketSendError):
            await udp.send_packet(1, b"x")

    asyncio.run(scenario())


def test_udp_send_fault_fails_run():
    """A datagram the OS refuses to send aborts the run instead of timing out."""
    async def scenario():
        agent = EchoAgent(host="127.0.0.1", udp_port=0, tcp_port=0)
        await agent.start()
        try:
            cfg = ProbeConfig(protocol="UDP", target_host="127.0.0.1", target_port=agent.udp_port,
                              packet_size=70000, packet_count=2, interval_ms=0)
            return await ProbeController(cfg, settings=FAST).run("too-big")
        finally:
            await agent.stop()

    with pytest.raises(RunFailedError) as exc:
        asyncio.run(scenario())
    assert isinstance(exc.value.__cause__, PacketSendError)
    assert exc.value.__cause__.seq == 1
