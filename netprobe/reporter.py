# netprobe/reporter.py
import logging
from typing import Callable, Optional

from netprobe.schemas import PacketOutcome

logger = logging.getLogger(__name__)


class ResultReporter:
    """
    Sink for run events. The controller calls on_packet_event once per `sent` event
    and exactly once per terminal (received/lost) packet; on_log carries transport
    warnings and the failure message of a failed run.

    Default methods do nothing, subclass and override what you need.
    """

    def on_packet_event(self, outcome: PacketOutcome, progress: float) -> None:
        pass

    def on_log(self, message: str) -> None:
        pass


class CallbackReporter(ResultReporter):
    """Adapts plain functions to the reporter interface."""

    def __init__(self,
                 on_packet: Callable[[PacketOutcome, float], None],
                 on_log: Optional[Callable[[str], None]] = None):
        self._on_packet = on_packet
        self._on_log = on_log

    def on_packet_event(self, outcome: PacketOutcome, progress: float) -> None:
        self._on_packet(outcome, progress)

    def on_log(self, message: str) -> None:
        if self._on_log is not None:
            self._on_log(message)


class LoggingReporter(ResultReporter):
    def __init__(self, test_id: str, log_sent: bool = False):
        self.prefix = f"[{test_id}]"
        self.log_sent = log_sent

    def on_packet_event(self, outcome: PacketOutcome, progress: float) -> None:
        status = outcome.get("status")
        if status == "sent":
            if self.log_sent:
                logger.debug(f"{self.prefix} seq={outcome['seq']} sent ({progress:.0%})")
            return
        if status == "received":
            logger.info(f"{self.prefix} seq={outcome['seq']} received rtt={outcome['rtt_ms']:.2f}ms ({progress:.0%})")
        else:
            logger.info(f"{self.prefix} seq={outcome['seq']} lost ({progress:.0%})")

    def on_log(self, message: str) -> None:
        logger.warning(f"{self.prefix} {message}")
