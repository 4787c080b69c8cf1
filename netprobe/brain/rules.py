# netprobe/brain/rules.py


def packet_timeout_ms(interval_ms: int, multiplier: int = 4, floor_ms: int = 2000) -> int:
    """
    Loss window for one packet. Fast send intervals still get at least floor_ms.
    """
    return max(interval_ms * multiplier, floor_ms)


def send_progress(seq: int, packet_count: int) -> float:
    return seq / packet_count


def completion_progress(completed: int, packet_count: int) -> float:
    return completed / packet_count


def run_complete(completed: int, packet_count: int) -> bool:
    return completed >= packet_count
