# netprobe/transport/fake.py
import asyncio
from collections import deque

from netprobe.codec import ProbeEnvelope, decode, encode
from netprobe.errors import PacketSendError, TransportConnectError
from netprobe.transport.base import Transport, TransportCallbacks


class FakeTransport(Transport):
    """
    Scripted echo endpoint for tests.

    script: dict[seq] -> list of reply dicts delivered for that seq, each one of
        {"delay_s": float}                      echo the payload after delay_s
        {"delay_s": float, "test_id": "other"}  echo re-stamped with another test id
        {"delay_s": float, "raw": b"..."}       deliver these bytes instead
        {"delay_s": float, "log": "text"}       raise a transport warning, no echo
    An empty list means the packet is never answered. A seq missing from the script
    is echoed once after default_delay_s.
    fail_start / fail_on_seq inject transport faults.
    """

    def __init__(self, script=None, default_delay_s: float = 0.001,
                 fail_start: bool = False, fail_on_seq=None):
        self.script = {}
        if script:
            for k, v in script.items():
                self.script[k] = deque(v)
        self.default_delay_s = default_delay_s
        self.fail_start = fail_start
        self.fail_on_seq = fail_on_seq
        self.sent = []          # (seq, payload) in send order
        self.started = False
        self.stopped = False
        self._callbacks = None
        self._timers = []

    async def start(self, callbacks: TransportCallbacks) -> None:
        if self.fail_start:
            raise TransportConnectError("scripted connect failure")
        self._callbacks = callbacks
        self.started = True

    async def send_packet(self, seq: int, payload: bytes) -> None:
        if self.stopped or not self.started:
            raise PacketSendError(seq, "fake transport is not open")
        if self.fail_on_seq is not None and seq == self.fail_on_seq:
            raise PacketSendError(seq, "scripted send failure")
        self.sent.append((seq, payload))

        replies = self.script.get(seq)
        if replies is None:
            replies = deque([{"delay_s": self.default_delay_s}])
        loop = asyncio.get_running_loop()
        while replies:
            step = replies.popleft()
            delay = step.get("delay_s", 0.0)
            if "log" in step:
                self._timers.append(loop.call_later(delay, self._callbacks.on_log, step["log"]))
                continue
            data = self._reply_bytes(payload, step)
            self._timers.append(loop.call_later(delay, self._deliver, data))

    def _reply_bytes(self, payload: bytes, step: dict) -> bytes:
        if "raw" in step:
            return step["raw"]
        if "test_id" in step:
            env = decode(payload)
            other = ProbeEnvelope(seq=env.seq, test_id=step["test_id"], sent_at=env.sent_at)
            return encode(other, len(payload))
        return payload

    def _deliver(self, data: bytes) -> None:
        if not self.stopped:
            self._callbacks.on_datagram(data)

    async def stop(self) -> None:
        self.stopped = True
        for t in self._timers:
            t.cancel()
        self._timers.clear()
