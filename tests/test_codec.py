# tests/test_codec.py
from datetime import datetime, timezone

import pytest

from netprobe.codec import ProbeEnvelope, StreamFramer, decode, encode, format_timestamp


SENT_AT = datetime(2024, 5, 17, 12, 30, 45, 123000, tzinfo=timezone.utc)


def test_encode_then_decode_keeps_envelope():
    """Encoding and decoding returns the same seq, test id and instant."""
    env = ProbeEnvelope(seq=7, test_id="run-abc", sent_at=SENT_AT)
    out = decode(encode(env, 256))
    assert out is not None
    assert out.seq == 7
    assert out.test_id == "run-abc"
    assert out.sent_at == SENT_AT


def test_wire_header_format():
    """The header is the compact JSON line the echo side reflects."""
    env = ProbeEnvelope(seq=1, test_id="t1", sent_at=SENT_AT)
    buf = encode(env, 128)
    header, _, padding = buf.partition(b"\n")
    assert header == b'{"seq":1,"testId":"t1","sentAt":"2024-05-17T12:30:45.123Z"}'
    assert len(buf) == 128
    assert padding == bytes(128 - len(header) - 1)


def test_header_never_truncated():
    """A packet size smaller than the header still carries the whole header."""
    env = ProbeEnvelope(seq=1, test_id="t1", sent_at=SENT_AT)
    header_len = len(env.header())
    assert header_len > 10
    buf = encode(env, 10)
    assert len(buf) == header_len
    assert decode(buf).seq == 1


@pytest.mark.parametrize("data", [
    b"",
    bytes(64),
    b"not json at all\n",
    b"\xff\xfe\xfd\n",
    b"[1, 2, 3]\n",
    b'{"seq": 1}\n',
    b'{"seq": "1", "testId": "t", "sentAt": "2024-05-17T12:30:45.123Z"}\n',
    b'{"seq": 0, "testId": "t", "sentAt": "2024-05-17T12:30:45.123Z"}\n',
    b'{"seq": true, "testId": "t", "sentAt": "2024-05-17T12:30:45.123Z"}\n',
    b'{"seq": 1, "testId": "t", "sentAt": "yesterday"}\n',
    b'{"seq":1,"testId":"t","sentAt":"2024-05-1',
])
def test_decode_rejects_malformed(data):
    """Foreign or broken buffers decode to None instead of raising."""
    assert decode(data) is None


def test_decode_without_newline_uses_whole_buffer():
    data = b'{"seq":3,"testId":"x","sentAt":"2024-05-17T12:30:45.123Z"}'
    env = decode(data)
    assert env.seq == 3
    assert env.test_id == "x"


def test_format_timestamp_naive_is_utc():
    naive = datetime(2024, 1, 2, 3, 4, 5, 6000)
    assert format_timestamp(naive) == "2024-01-02T03:04:05.006Z"


def test_stream_framer_reassembles_coalesced_and_split_chunks():
    """Two padded probes arriving in arbitrary chunks come out as two frames."""
    a = encode(ProbeEnvelope(seq=1, test_id="t", sent_at=SENT_AT), 100)
    b = encode(ProbeEnvelope(seq=2, test_id="t", sent_at=SENT_AT), 100)
    stream = a + b
    framer = StreamFramer()
    frames = []
    frames += framer.feed(stream[:30])
    frames += framer.feed(stream[30:95])
    frames += framer.feed(stream[95:150])
    frames += framer.feed(stream[150:])
    assert [decode(f).seq for f in frames] == [1, 2]
    assert framer.pending_bytes() == 0


def test_stream_framer_drops_oversized_garbage():
    framer = StreamFramer(max_header=16)
    assert framer.feed(b"x" * 40) == []
    assert framer.pending_bytes() == 0
