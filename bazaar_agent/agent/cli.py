"""
Bazaar agent entry point. Wires config, fetcher, store and poll loop.

    bazaar-agent [--config config.yaml] [--cycles N] [--log-level INFO]
    python -m bazaar_agent ...
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

from ..hypixel.bazaar import BazaarClient
from .config import AgentConfig, load_config
from .database import BazaarStore
from .poller import BazaarPoller

logger = logging.getLogger(__name__)


def _build_poller(config: AgentConfig) -> BazaarPoller:
    """Construct a BazaarPoller from config."""
    up = config.upstream
    fetcher = BazaarClient(
        url=up.endpoint_url,
        timeout=up.timeout_seconds,
        require_success=up.require_success,
    )
    store = BazaarStore.from_config(config.store)
    return BazaarPoller(fetcher, store, config.polling)


async def run(config_path: Optional[str] = None, max_cycles: Optional[int] = None) -> None:
    """High-level entry: load config, connect, run loop."""
    config = load_config(config_path)
    poller = _build_poller(config)

    logger.info(
        "Polling %s every %.1fs into %s.%s",
        config.upstream.endpoint_url,
        config.polling.poll_interval_seconds,
        config.store.database,
        config.store.records_collection,
    )
    try:
        await poller.store.ping()
        await poller.run(max_cycles=max_cycles)
    finally:
        await poller.fetcher.aclose()
        await poller.store.close()


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Hypixel bazaar ingestion agent")
    parser.add_argument(
        "--config", default=None, help="Config file path (default: config.yaml if present)"
    )
    parser.add_argument(
        "--cycles", type=int, default=None, help="Stop after N cycles (default: run forever)"
    )
    parser.add_argument(
        "--log-level", default="INFO", help="Logging level (default: INFO)"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        asyncio.run(run(config_path=args.config, max_cycles=args.cycles))
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")


if __name__ == "__main__":
    main()
