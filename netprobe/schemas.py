from dataclasses import asdict, dataclass
from typing import List, Literal, TypedDict

PacketStatus = Literal["sent", "received", "lost"]


class PacketOutcome(TypedDict, total=False):
    seq: int
    status: PacketStatus
    rtt_ms: float                 # only when received
    sent_at: str
    received_at: str              # only when received


@dataclass(frozen=True)
class RunSummary:
    average_latency_ms: float
    max_latency_ms: float
    min_latency_ms: float
    jitter_ms: float
    throughput_mbps: float
    packet_loss_percent: float
    total_duration_seconds: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RunResult:
    test_id: str
    summary: RunSummary
    packets: List[PacketOutcome]   # index i holds seq i + 1
