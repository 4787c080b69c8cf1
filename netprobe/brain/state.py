# netprobe/brain/state.py
import enum
from dataclasses import dataclass, field
from typing import List, Optional

from netprobe.schemas import PacketOutcome


class RunPhase(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunState:
    test_id: str
    packet_count: int
    phase: RunPhase = RunPhase.IDLE
    completed: int = 0
    lost: int = 0
    # RTTs in the order they were recorded (jitter depends on this order)
    rtts: List[float] = field(default_factory=list)
    # terminal outcome per seq, index seq - 1
    packets: List[Optional[PacketOutcome]] = field(default_factory=list)
    started_mono: Optional[float] = None
    finished_mono: Optional[float] = None
    error: Optional[str] = None

    def __post_init__(self):
        self.packets = [None] * self.packet_count

    def elapsed_ms(self) -> float:
        if self.started_mono is None or self.finished_mono is None:
            return 0.0
        return (self.finished_mono - self.started_mono) * 1000.0
