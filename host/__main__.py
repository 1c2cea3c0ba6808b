import argparse
import asyncio
import logging

from holdem.models import TableConfig

from .server import TableHost


def main() -> None:
    parser = argparse.ArgumentParser(description="Texas Hold'em table host")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--small-blind", type=int, default=10)
    parser.add_argument("--big-blind", type=int, default=20)
    parser.add_argument("--starting-chips", type=int, default=1_000)
    parser.add_argument("--log-level", default="INFO", help="Root logging level (DEBUG shows engine hand logs)")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        config = TableConfig(
            small_blind=args.small_blind,
            big_blind=args.big_blind,
            starting_chips=args.starting_chips,
        )
    except ValueError as exc:
        parser.error(str(exc))

    server = TableHost(config)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
