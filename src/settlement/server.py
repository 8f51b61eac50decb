"""Protean Engine runner for the settlement domain.

Starts the Engine worker that delivers settlement events:
- OutboxProcessor: polls the outbox, publishes events to the configured broker
  and retries failed deliveries per ``[outbox.retry]`` in domain.toml

The worker reads the same database as the API, so outside a single process
``databases.default`` must point at a shared store.

Usage:
    python -m settlement.server
    python -m settlement.server --debug
"""

import argparse

from protean.server.engine import Engine

from settlement.domain import settlement
from settlement.utils.logging import configure_logging


def build_engine(debug: bool = False) -> Engine:
    settlement.init()
    return Engine(settlement, debug=debug)


def main():
    parser = argparse.ArgumentParser(description="Settlement Engine runner")
    parser.add_argument("--debug", action="store_true", help="Log engine internals")
    args = parser.parse_args()

    configure_logging()
    build_engine(debug=args.debug).run()


if __name__ == "__main__":
    main()
