# netprobe/brain/tracker.py
import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional


@dataclass
class PendingPacket:
    seq: int
    sent_at: datetime          # wall clock, for reporting
    sent_mono: float           # time.monotonic() at send, for RTT
    timeout: Optional[asyncio.TimerHandle] = None


class PendingTracker:
    """
    Owns the seq -> PendingPacket map for one run.

    All callers (send loop, receive handler, timer callbacks) run on the same event
    loop, so register/resolve never interleave mid-update. resolve() is the only way
    an entry leaves the map, and it hands the entry out exactly once.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._pending: Dict[int, PendingPacket] = {}

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def register(self, seq: int, sent_at: datetime, sent_mono: float,
                 timeout_ms: float, on_timeout: Callable[[int], None]) -> PendingPacket:
        if seq in self._pending:
            raise ValueError(f"seq {seq} is already pending")
        entry = PendingPacket(seq=seq, sent_at=sent_at, sent_mono=sent_mono)
        entry.timeout = self._get_loop().call_later(timeout_ms / 1000.0, on_timeout, seq)
        self._pending[seq] = entry
        return entry

    def resolve(self, seq: int) -> Optional[PendingPacket]:
        """Remove seq and cancel its timer. None if it was not pending."""
        entry = self._pending.pop(seq, None)
        if entry is None:
            return None
        if entry.timeout is not None:
            entry.timeout.cancel()
        return entry

    def is_pending(self, seq: int) -> bool:
        return seq in self._pending

    def cancel_all(self) -> int:
        """Drop every entry without resolving it. Returns how many were dropped."""
        dropped = list(self._pending.values())
        self._pending.clear()
        for entry in dropped:
            if entry.timeout is not None:
                entry.timeout.cancel()
        return len(dropped)

    def __len__(self) -> int:
        return len(self._pending)
