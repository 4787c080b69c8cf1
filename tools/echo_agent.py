# tools/echo_agent.py
# Usage: UDP_PORT=40000 TCP_PORT=5050 python3 -m tools.echo_agent
import asyncio
import logging

from netprobe.agent import EchoAgent


def main():
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s')
    agent = EchoAgent.from_env()
    try:
        asyncio.run(agent.serve_forever())
    except KeyboardInterrupt:
        logging.info("echo agent stopped")


if __name__ == "__main__":
    main()
