# netprobe/config.py
import os
from dataclasses import dataclass
from typing import Literal, Optional

from netprobe.errors import ConfigError

Protocol = Literal["UDP", "TCP"]
PROTOCOLS = ("UDP", "TCP")


@dataclass
class Settings:
    udp_port: int = 40000
    tcp_port: int = 5050

    # per-packet loss window is max(interval * multiplier, floor)
    timeout_multiplier: int = 4
    min_timeout_ms: int = 2000
    # keep the socket open this long past the packet timeout after the last packet settles
    drain_grace_ms: int = 500

    connect_timeout_s: float = 5.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        s = cls()
        try:
            s.udp_port = int(env.get("UDP_PROBE_PORT", s.udp_port))
            s.tcp_port = int(env.get("TCP_PROBE_PORT", s.tcp_port))
            s.connect_timeout_s = float(env.get("PROBE_CONNECT_TIMEOUT_S", s.connect_timeout_s))
        except ValueError as e:
            raise ConfigError(f"invalid probe setting in environment: {e}") from e
        s.log_level = env.get("PROBE_LOG_LEVEL", s.log_level).upper()
        return s


@dataclass(frozen=True)
class ProbeConfig:
    protocol: Protocol
    target_host: str
    target_port: Optional[int] = None   # None -> Settings default for the protocol
    packet_size: int = 64
    packet_count: int = 10
    interval_ms: int = 100

    def __post_init__(self):
        if self.protocol not in PROTOCOLS:
            raise ConfigError(f"protocol must be one of {PROTOCOLS}, got {self.protocol!r}")
        if not self.target_host:
            raise ConfigError("target_host is required")
        if self.target_port is not None and not (0 < self.target_port < 65536):
            raise ConfigError(f"target_port out of range: {self.target_port}")
        if self.packet_size < 1:
            raise ConfigError(f"packet_size must be >= 1, got {self.packet_size}")
        if self.packet_count < 1:
            raise ConfigError(f"packet_count must be >= 1, got {self.packet_count}")
        if self.interval_ms < 0:
            raise ConfigError(f"interval_ms must be >= 0, got {self.interval_ms}")

    def resolved_port(self, settings: Settings) -> int:
        if self.target_port:
            return self.target_port
        return settings.udp_port if self.protocol == "UDP" else settings.tcp_port
