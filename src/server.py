"""Protean Engine runner for the medstock domain.

Starts the Engine that processes events asynchronously:
- OutboxProcessor: polls the outbox table, publishes events to the broker
- StreamSubscriptions: reads ``ordering::order``, ``catalogue::medicine``,
  ``shops::shop`` and the lot stream, invoking event handlers and projectors

Usage:
    python src/server.py
    python src/server.py --broker-egress   # publish inventory.* to the broker
"""

import argparse
import asyncio
import os

from protean.server.engine import Engine


def _get_domain():
    from medstock.domain import medstock

    medstock.init()
    return medstock


async def run():
    engine = Engine(_get_domain())
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="MedStock Engine runner")
    parser.add_argument(
        "--broker-egress",
        action="store_true",
        help="Publish inventory.* messages to the default broker instead of the in-memory transport",
    )
    args = parser.parse_args()

    if args.broker_egress:
        os.environ["MEDSTOCK_EVENT_TRANSPORT"] = "broker"

    asyncio.run(run())


if __name__ == "__main__":
    main()
