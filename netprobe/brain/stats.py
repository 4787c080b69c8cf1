# netprobe/brain/stats.py
from typing import Sequence

from netprobe.schemas import RunSummary


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def jitter(rtts: Sequence[float]) -> float:
    """
    Mean absolute difference between consecutive RTTs, in the order they were recorded.
    Not RFC 3550 jitter.
    """
    if len(rtts) < 2:
        return 0.0
    diffs = [abs(b - a) for a, b in zip(rtts, rtts[1:])]
    return sum(diffs) / len(diffs)


def throughput_mbps(received: int, packet_size: int, elapsed_s: float) -> float:
    if elapsed_s <= 0:
        return 0.0
    return (received * packet_size * 8) / elapsed_s / 1_000_000


def loss_percent(lost: int, packet_count: int) -> float:
    return (lost / packet_count) * 100


def summarize(rtts: Sequence[float], lost: int, packet_count: int,
              packet_size: int, elapsed_ms: float) -> RunSummary:
    """
    Build the run summary from the received RTTs (receipt order) and the lost count.
    elapsed_ms is wall time from run start to the last packet settling.
    """
    duration_ms = max(elapsed_ms, 1.0)
    return RunSummary(
        average_latency_ms=mean(rtts),
        max_latency_ms=max(rtts) if rtts else 0.0,
        min_latency_ms=min(rtts) if rtts else 0.0,
        jitter_ms=jitter(rtts),
        throughput_mbps=throughput_mbps(len(rtts), packet_size, duration_ms / 1000.0),
        packet_loss_percent=loss_percent(lost, packet_count),
        total_duration_seconds=duration_ms / 1000.0,
    )


def rounded(summary: RunSummary) -> RunSummary:
    """Two decimals everywhere except throughput (three), as results are stored."""
    return RunSummary(
        average_latency_ms=round(summary.average_latency_ms, 2),
        max_latency_ms=round(summary.max_latency_ms, 2),
        min_latency_ms=round(summary.min_latency_ms, 2),
        jitter_ms=round(summary.jitter_ms, 2),
        throughput_mbps=round(summary.throughput_mbps, 3),
        packet_loss_percent=round(summary.packet_loss_percent, 2),
        total_duration_seconds=round(summary.total_duration_seconds, 2),
    )


def failed_summary() -> RunSummary:
    # what gets recorded for a run that never produced statistics
    return RunSummary(
        average_latency_ms=0.0,
        max_latency_ms=0.0,
        min_latency_ms=0.0,
        jitter_ms=0.0,
        throughput_mbps=0.0,
        packet_loss_percent=100.0,
        total_duration_seconds=0.0,
    )
