# tests/test_config.py
from dataclasses import FrozenInstanceError

import pytest

from netprobe.config import ProbeConfig, Settings
from netprobe.errors import ConfigError


def test_default_ports_per_protocol():
    s = Settings()
    assert ProbeConfig(protocol="UDP", target_host="10.0.0.2").resolved_port(s) == 40000
    assert ProbeConfig(protocol="TCP", target_host="10.0.0.2").resolved_port(s) == 5050
    assert ProbeConfig(protocol="TCP", target_host="10.0.0.2", target_port=7000).resolved_port(s) == 7000


@pytest.mark.parametrize("kwargs", [
    {"protocol": "ICMP"},
    {"target_host": ""},
    {"packet_count": 0},
    {"packet_size": 0},
    {"interval_ms": -1},
    {"target_port": 70000},
])
def test_invalid_config_rejected(kwargs):
    base = {"protocol": "UDP", "target_host": "10.0.0.2"}
    base.update(kwargs)
    with pytest.raises(ConfigError):
        ProbeConfig(**base)


def test_config_error_is_value_error():
    with pytest.raises(ValueError):
        ProbeConfig(protocol="UDP", target_host="h", packet_count=-5)


def test_probe_config_is_frozen():
    cfg = ProbeConfig(protocol="UDP", target_host="h")
    with pytest.raises(FrozenInstanceError):
        cfg.packet_count = 99


def test_settings_from_env():
    s = Settings.from_env({"UDP_PROBE_PORT": "41000", "TCP_PROBE_PORT": "6060",
                           "PROBE_CONNECT_TIMEOUT_S": "1.5", "PROBE_LOG_LEVEL": "debug"})
    assert s.udp_port == 41000
    assert s.tcp_port == 6060
    assert s.connect_timeout_s == 1.5
    assert s.log_level == "DEBUG"


def test_settings_from_env_bad_value():
    with pytest.raises(ConfigError):
        Settings.from_env({"UDP_PROBE_PORT": "forty"})
