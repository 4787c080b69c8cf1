# tools/run_probe.py
# Usage examples:
#   python3 -m tools.run_probe 192.168.1.50
#   python3 -m tools.run_probe 192.168.1.50 --protocol TCP --count 100 --size 512 --interval-ms 50
#   python3 -m tools.run_probe fake

import argparse
import asyncio
import json
import logging
import uuid

from netprobe.brain.controller import ProbeController
from netprobe.brain.stats import failed_summary, rounded
from netprobe.config import ProbeConfig, Settings
from netprobe.errors import ProbeError
from netprobe.reporter import LoggingReporter


def build_config(args, target: str) -> ProbeConfig:
    return ProbeConfig(
        protocol=args.protocol,
        target_host=target,
        target_port=args.port,
        packet_size=args.size,
        packet_count=args.count,
        interval_ms=args.interval_ms,
    )


def build_transport(args):
    if args.target != "fake":
        return None
    from netprobe.transport.fake import FakeTransport
    # every third packet goes unanswered so the loss path shows up in the output
    script = {seq: [] for seq in range(3, args.count + 1, 3)}
    return FakeTransport(script=script, default_delay_s=0.005)


async def run(args, settings: Settings) -> dict:
    test_id = args.test_id or str(uuid.uuid4())
    target = "127.0.0.1" if args.target == "fake" else args.target
    config = build_config(args, target)
    ctrl = ProbeController(config, reporter=LoggingReporter(test_id), settings=settings,
                           transport=build_transport(args))
    try:
        res = await ctrl.run(test_id)
    except ProbeError as e:
        return {
            "testId": test_id,
            "status": "failed",
            "error": str(e.__cause__ or e),
            "summary": failed_summary().to_dict(),
            "packets": [],
        }
    return {
        "testId": test_id,
        "status": "completed",
        "summary": rounded(res.summary).to_dict(),
        "packets": res.packets,
    }


def build_argparser():
    ap = argparse.ArgumentParser(description="Round-trip probe against an echo agent")
    ap.add_argument("target", help="Echo agent host/IP (or 'fake' for a scripted run)")
    ap.add_argument("--protocol", default="UDP", choices=["UDP", "TCP"], help="Probe transport")
    ap.add_argument("--port", type=int, default=None,
                    help="Agent port (default: UDP_PROBE_PORT/TCP_PROBE_PORT or 40000/5050)")
    ap.add_argument("--count", type=int, default=10, help="Number of probe packets")
    ap.add_argument("--size", type=int, default=64, help="Packet size in bytes (header is never cut)")
    ap.add_argument("--interval-ms", type=int, default=100, help="Delay between packets (milliseconds)")
    ap.add_argument("--test-id", default=None, help="Run identifier (default: random UUID)")
    ap.add_argument("--summary-only", action="store_true", help="Leave per-packet results out of the output")
    return ap


def main():
    ap = build_argparser()
    args = ap.parse_args()
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format='%(asctime)s %(levelname)s: %(message)s')

    try:
        res = asyncio.run(run(args, settings))
    except ValueError as e:
        ap.error(str(e))
    if args.summary_only:
        res.pop("packets", None)
    print(json.dumps(res, indent=2))


if __name__ == "__main__":
    main()
