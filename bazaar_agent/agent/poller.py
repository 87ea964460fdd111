"""
Bazaar poll loop.

Defines the ingestion cycle:
  fetch -> detect change -> project -> persist -> bump counter -> sleep

Each cycle returns a ``CycleResult``; fetch and store errors are logged and
the loop carries on, backing off exponentially while failures repeat.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from ..errors import DecodeError, StoreError, TransportError
from ..hypixel.bazaar import BazaarClient
from .config import PollingConfig
from .database import BazaarStore
from .detector import has_changed
from .projector import project

logger = logging.getLogger(__name__)


class CycleOutcome(str, Enum):
    PERSISTED = "persisted"
    UP_TO_DATE = "up_to_date"
    FAILED = "failed"


@dataclass
class CycleResult:
    """Outcome of one poll cycle."""
    outcome: CycleOutcome
    version_token: Optional[int] = None
    records_written: int = 0
    observed_at: Optional[datetime] = None
    error: Optional[Exception] = None


class BazaarPoller:
    """
    Drives the fetch / diff / persist loop for one upstream endpoint.

    ``last_seen_token`` only advances after a cycle's records and counter bump
    succeed, so a failed cycle is retried against the same version.
    """

    def __init__(
        self,
        fetcher: BazaarClient,
        store: BazaarStore,
        polling: Optional[PollingConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.fetcher = fetcher
        self.store = store
        self.polling = polling or PollingConfig()
        self._sleep = sleep
        self._clock = clock

        self.last_seen_token: Optional[int] = None
        self.cycles = 0
        self.persisted_cycles = 0
        self.consecutive_failures = 0

    # ── One cycle ────────────────────────────────────────────────────

    async def run_cycle(self) -> CycleResult:
        self.cycles += 1
        try:
            snapshot = await self.fetcher.fetch()
        except (TransportError, DecodeError) as e:
            return self._failed(e)

        if not has_changed(snapshot.version_token, self.last_seen_token):
            logger.info("Data is up to date (lastUpdated=%s)", snapshot.version_token)
            self.consecutive_failures = 0
            return CycleResult(CycleOutcome.UP_TO_DATE, version_token=snapshot.version_token)

        observed_at = self._clock()
        records = project(snapshot.items, observed_at)
        try:
            written = await self.store.persist_cycle(records)
        except StoreError as e:
            return self._failed(e, snapshot.version_token)

        self.last_seen_token = snapshot.version_token
        self.persisted_cycles += 1
        self.consecutive_failures = 0
        logger.info(
            "New data saved at %s (%d products, lastUpdated=%s)",
            observed_at.isoformat(), written, snapshot.version_token,
        )
        return CycleResult(
            CycleOutcome.PERSISTED,
            version_token=snapshot.version_token,
            records_written=written,
            observed_at=observed_at,
        )

    def _failed(self, error: Exception, version_token: Optional[int] = None) -> CycleResult:
        self.consecutive_failures += 1
        retry = ""
        if isinstance(error, StoreError):
            retry = f" ({error.written} records committed, lastUpdated={version_token} will be retried)"
        logger.error(
            "Cycle #%d failed (%d in a row): %s: %s%s",
            self.cycles, self.consecutive_failures, type(error).__name__, error, retry,
        )
        return CycleResult(CycleOutcome.FAILED, version_token=version_token, error=error)

    # ── Scheduling ───────────────────────────────────────────────────

    def next_delay(self, result: CycleResult) -> float:
        """Seconds to wait before the next cycle."""
        p = self.polling
        if result.outcome is not CycleOutcome.FAILED:
            return p.poll_interval_seconds
        backoff = p.backoff_initial_seconds * 2 ** min(self.consecutive_failures - 1, 32)
        return min(backoff, p.backoff_max_seconds)

    async def run(self, max_cycles: Optional[int] = None) -> None:
        """Poll forever, or for ``max_cycles`` cycles."""
        while max_cycles is None or self.cycles < max_cycles:
            result = await self.run_cycle()
            if max_cycles is not None and self.cycles >= max_cycles:
                break
            delay = self.next_delay(result)
            if result.outcome is CycleOutcome.FAILED:
                logger.info("Retrying in %.1fs", delay)
            await self._sleep(delay)
