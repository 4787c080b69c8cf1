# netprobe/transport/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable


def _ignore_log(message: str) -> None:
    pass


@dataclass
class TransportCallbacks:
    on_datagram: Callable[[bytes], None]      # one (possibly foreign) envelope buffer
    on_log: Callable[[str], None] = _ignore_log


class Transport(ABC):
    """
    Moves probe buffers to the echo endpoint and hands back whatever comes in.
    Filtering by test id and sequence is the caller's job.
    """

    @abstractmethod
    async def start(self, callbacks: TransportCallbacks) -> None:
        """Be ready to receive before returning. Raise TransportConnectError on failure."""
        raise NotImplementedError

    @abstractmethod
    async def send_packet(self, seq: int, payload: bytes) -> None:
        """Send one probe. Raise PacketSendError if it could not be handed to the OS."""
        raise NotImplementedError

    @abstractmethod
    async def stop(self) -> None:
        raise NotImplementedError
