# netprobe/codec.py
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

HEADER_TERMINATOR = b"\n"


@dataclass(frozen=True)
class ProbeEnvelope:
    seq: int
    test_id: str
    sent_at: datetime

    def header(self) -> bytes:
        # compact separators keep the header identical to what the echo side expects
        body = json.dumps(
            {"seq": self.seq, "testId": self.test_id, "sentAt": format_timestamp(self.sent_at)},
            separators=(",", ":"),
        )
        return body.encode("utf-8") + HEADER_TERMINATOR


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a trailing Z."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def parse_timestamp(raw: str) -> datetime:
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    ts = datetime.fromisoformat(raw)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def encode(envelope: ProbeEnvelope, packet_size: int) -> bytes:
    """
    Header line followed by zero padding up to packet_size.
    The header is never truncated, so the result may be longer than packet_size.
    """
    header = envelope.header()
    total = max(packet_size, len(header))
    return header + bytes(total - len(header))


def decode(data: bytes) -> Optional[ProbeEnvelope]:
    """
    Parse the envelope from the first line of a received buffer.
    Returns None for anything that is not one of our probes.
    """
    idx = data.find(HEADER_TERMINATOR)
    chunk = data[:idx] if idx >= 0 else data
    try:
        obj = json.loads(chunk.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(obj, dict):
        return None

    seq = obj.get("seq")
    test_id = obj.get("testId")
    sent_at = obj.get("sentAt")
    # bool is an int subclass; {"seq": true} is not a sequence number
    if not isinstance(seq, int) or isinstance(seq, bool) or seq < 1:
        return None
    if not isinstance(test_id, str) or not isinstance(sent_at, str):
        return None
    try:
        ts = parse_timestamp(sent_at)
    except ValueError:
        return None
    return ProbeEnvelope(seq=seq, test_id=test_id, sent_at=ts)


class StreamFramer:
    """
    Splits a byte stream of echoed probes back into one buffer per header line.

    Each probe is `header\\n` plus zero padding, so zeros in front of a header are
    padding from the previous probe. Chunk boundaries from the socket do not matter:
    a header split over two reads is held until its newline arrives.
    """

    def __init__(self, max_header: int = 4096):
        self.max_header = max_header
        self._buf = bytearray()

    def feed(self, data: bytes) -> List[bytes]:
        self._buf.extend(data)
        frames = []
        while True:
            # drop padding
            start = 0
            while start < len(self._buf) and self._buf[start] == 0:
                start += 1
            if start:
                del self._buf[:start]
            idx = self._buf.find(HEADER_TERMINATOR)
            if idx < 0:
                break
            frames.append(bytes(self._buf[:idx + 1]))
            del self._buf[:idx + 1]
        if len(self._buf) > self.max_header:
            # no newline in sight, this is not our traffic
            self._buf.clear()
        return frames

    def pending_bytes(self) -> int:
        return len(self._buf)
