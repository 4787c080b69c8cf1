# netprobe/brain/controller.py

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from netprobe.brain.rules import (
    completion_progress,
    packet_timeout_ms,
    run_complete,
    send_progress,
)
from netprobe.brain.state import RunPhase, RunState
from netprobe.brain.stats import summarize
from netprobe.brain.tracker import PendingPacket, PendingTracker
from netprobe.codec import ProbeEnvelope, decode, encode, format_timestamp
from netprobe.config import ProbeConfig, Settings
from netprobe.errors import ProbeError, RunFailedError
from netprobe.reporter import ResultReporter
from netprobe.schemas import PacketOutcome, RunResult
from netprobe.transport.base import Transport, TransportCallbacks

logger = logging.getLogger(__name__)


def build_transport(config: ProbeConfig, settings: Settings) -> Transport:
    port = config.resolved_port(settings)
    if config.protocol == "UDP":
        from netprobe.transport.udp import UdpTransport
        return UdpTransport(config.target_host, port)
    from netprobe.transport.tcp import TcpTransport
    return TcpTransport(config.target_host, port, connect_timeout_s=settings.connect_timeout_s)


class ProbeController:
    """
    Runs one probe test: IDLE -> RUNNING -> COMPLETED | FAILED.

    A controller instance is single use. Sending, echo handling and loss timers all
    run on the caller's event loop.
    """

    def __init__(self, config: ProbeConfig, reporter: Optional[ResultReporter] = None,
                 settings: Optional[Settings] = None, transport: Optional[Transport] = None):
        self.config = config
        self.reporter = reporter or ResultReporter()
        self.s = settings or Settings()
        self.transport = transport or build_transport(config, self.s)
        self.timeout_ms = packet_timeout_ms(
            config.interval_ms, self.s.timeout_multiplier, self.s.min_timeout_ms)
        self.state: Optional[RunState] = None
        self.tracker: Optional[PendingTracker] = None
        self._all_done: Optional[asyncio.Future] = None

    @property
    def phase(self) -> RunPhase:
        return self.state.phase if self.state else RunPhase.IDLE

    async def run(self, test_id: str) -> RunResult:
        if self.state is not None:
            raise ProbeError("a ProbeController can only run once")
        loop = asyncio.get_running_loop()
        run = RunState(test_id=test_id, packet_count=self.config.packet_count)
        self.state = run
        self.tracker = PendingTracker(loop)
        self._all_done = loop.create_future()
        prefix = f"[{test_id}]"

        run.phase = RunPhase.RUNNING
        run.started_mono = time.monotonic()
        logger.info(f"{prefix} starting {self.config.protocol} probe to "
                    f"{self.config.target_host}:{self.config.resolved_port(self.s)} "
                    f"({self.config.packet_count} x {self.config.packet_size}B every {self.config.interval_ms}ms)")
        try:
            await self.transport.start(TransportCallbacks(
                on_datagram=self._on_datagram, on_log=self._on_transport_log))
            await self._send_loop()
            await self._all_done
            # late echoes arriving now are rejected by the tracker
            await asyncio.sleep((self.timeout_ms + self.s.drain_grace_ms) / 1000.0)
        except asyncio.CancelledError:
            dropped = self.tracker.cancel_all()
            run.phase = RunPhase.FAILED
            run.error = "cancelled"
            logger.info(f"{prefix} cancelled with {dropped} packets outstanding")
            raise
        except Exception as e:
            self.tracker.cancel_all()
            run.phase = RunPhase.FAILED
            run.error = str(e)
            logger.error(f"{prefix} run failed: {e}")
            self.reporter.on_log(f"Error while running test: {e}")
            raise RunFailedError(test_id, str(e)) from e
        finally:
            await self.transport.stop()

        summary = summarize(run.rtts, run.lost, self.config.packet_count,
                            self.config.packet_size, run.elapsed_ms())
        logger.info(f"{prefix} completed: avg={summary.average_latency_ms:.2f}ms "
                    f"jitter={summary.jitter_ms:.2f}ms loss={summary.packet_loss_percent:.2f}%")
        return RunResult(test_id=test_id, summary=summary, packets=list(run.packets))

    async def _send_loop(self) -> None:
        for seq in range(1, self.config.packet_count + 1):
            if seq > 1:
                await asyncio.sleep(self.config.interval_ms / 1000.0)
            await self._send_one(seq)

    async def _send_one(self, seq: int) -> None:
        run = self.state
        sent_at = datetime.now(timezone.utc)
        payload = encode(ProbeEnvelope(seq=seq, test_id=run.test_id, sent_at=sent_at),
                         self.config.packet_size)
        self.tracker.register(seq, sent_at, time.monotonic(), self.timeout_ms, self._on_timeout)
        await self.transport.send_packet(seq, payload)
        self.reporter.on_packet_event(
            {"seq": seq, "status": "sent", "sent_at": format_timestamp(sent_at)},
            send_progress(seq, self.config.packet_count),
        )

    def _on_datagram(self, data: bytes) -> None:
        run = self.state
        if run.phase is not RunPhase.RUNNING:
            return
        env = decode(data)
        if env is None:
            logger.debug(f"[{run.test_id}] dropped undecodable buffer ({len(data)} bytes)")
            return
        if env.test_id != run.test_id:
            logger.debug(f"[{run.test_id}] dropped echo from other run {env.test_id!r} seq={env.seq}")
            return
        entry = self.tracker.resolve(env.seq)
        if entry is None:
            # duplicate, late after timeout, or never sent
            return
        # local clock only, the echoed sentAt comes from whoever built the packet
        rtt_ms = (time.monotonic() - entry.sent_mono) * 1000.0
        self._record(entry, "received", rtt_ms)

    def _on_timeout(self, seq: int) -> None:
        entry = self.tracker.resolve(seq)
        if entry is not None:
            self._record(entry, "lost")

    def _on_transport_log(self, message: str) -> None:
        logger.warning(f"[{self.state.test_id}] {message}")
        self.reporter.on_log(message)

    def _record(self, entry: PendingPacket, status: str, rtt_ms: Optional[float] = None) -> None:
        run = self.state
        outcome: PacketOutcome = {
            "seq": entry.seq,
            "status": status,
            "sent_at": format_timestamp(entry.sent_at),
        }
        if status == "received":
            outcome["rtt_ms"] = rtt_ms
            outcome["received_at"] = format_timestamp(entry.sent_at + timedelta(milliseconds=rtt_ms))
            run.rtts.append(rtt_ms)
        else:
            run.lost += 1
        run.packets[entry.seq - 1] = outcome
        run.completed += 1
        progress = completion_progress(run.completed, run.packet_count)

        # completion is recorded before the reporter sees the event
        if run_complete(run.completed, run.packet_count) and not self._all_done.done():
            run.finished_mono = time.monotonic()
            run.phase = RunPhase.COMPLETED
            self._all_done.set_result(None)

        try:
            self.reporter.on_packet_event(outcome, progress)
        except Exception:
            logger.exception(f"[{run.test_id}] reporter failed on seq={entry.seq} {status}")


async def run_probe(test_id: str, config: ProbeConfig, reporter: Optional[ResultReporter] = None,
                    settings: Optional[Settings] = None) -> RunResult:
    return await ProbeController(config, reporter=reporter, settings=settings).run(test_id)
