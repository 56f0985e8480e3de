"""Protean Engine runner for the delivery domain.

Starts the Engine that processes events asynchronously when the domain is
configured with `event_processing = "async"` (the production overlay):
projectors and the ledger and credit event handlers run here.

Usage:
    PROTEAN_ENV=production python src/server.py
"""

import argparse
import asyncio

from protean.server.engine import Engine


async def run(test_mode: bool = False):
    from delivery.domain import delivery

    delivery.init()
    engine = Engine(delivery, test_mode=test_mode)
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="Delivery Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending messages once and exit",
    )
    args = parser.parse_args()

    asyncio.run(run(test_mode=args.test_mode))


if __name__ == "__main__":
    main()
