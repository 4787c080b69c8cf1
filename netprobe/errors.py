# netprobe/errors.py


class ProbeError(Exception):
    """Base class for everything the probe engine raises."""


class ConfigError(ProbeError, ValueError):
    pass


class TransportError(ProbeError):
    pass


class TransportConnectError(TransportError):
    """Could not establish the transport; the run never started sending."""


class PacketSendError(TransportError):
    def __init__(self, seq: int, message: str):
        super().__init__(f"send failed for seq {seq}: {message}")
        self.seq = seq


class RunFailedError(ProbeError):
    """A run ended in the FAILED state. The original exception is in __cause__."""

    def __init__(self, test_id: str, message: str):
        super().__init__(f"[{test_id}] run failed: {message}")
        self.test_id = test_id
