"""MongoDB persistence for projected bazaar records and the freshness counter."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Optional

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from ..errors import StoreError
from ..hypixel.models import PersistedRecord
from .config import StoreConfig

logger = logging.getLogger(__name__)


class BazaarStore:
    """
    Writes one document per record into the records collection and bumps the
    counter document in the config collection.

    Inserts are independent: a failure partway through a batch leaves the
    earlier documents committed. Set ``transactional`` to make a whole cycle
    (records + counter) a single multi-document transaction instead.
    """

    def __init__(
        self,
        database: Any,
        records_collection: str = "bazaar",
        config_collection: str = "config",
        counter_field: str = "bazaarupdated",
        bootstrap_counter: bool = True,
        transactional: bool = False,
    ):
        self.database = database
        self.records = database[records_collection]
        self.config = database[config_collection]
        self.counter_field = counter_field
        self.bootstrap_counter = bootstrap_counter
        self.transactional = transactional

    @classmethod
    def from_config(cls, cfg: StoreConfig) -> BazaarStore:
        """Connect a new client using the store section of the agent config."""
        client = AsyncMongoClient(cfg.connection_string, appname=cfg.app_name)
        return cls(
            client[cfg.database],
            records_collection=cfg.records_collection,
            config_collection=cfg.config_collection,
            counter_field=cfg.counter_field,
            bootstrap_counter=cfg.bootstrap_counter,
            transactional=cfg.transactional,
        )

    async def ping(self) -> None:
        try:
            await self.database.command("ping")
        except PyMongoError as e:
            raise StoreError(f"MongoDB unreachable: {e}") from e

    async def close(self) -> None:
        await self.database.client.close()

    # ── Writes ───────────────────────────────────────────────────────

    async def persist(
        self, records: Sequence[PersistedRecord], session: Optional[Any] = None
    ) -> int:
        """Insert each record in order. Returns the number written."""
        written = 0
        for record in records:
            try:
                await self.records.insert_one(record.to_document(), session=session)
            except PyMongoError as e:
                raise StoreError(
                    f"Insert of {record.item_id} failed after {written}/{len(records)} records: {e}",
                    written=written,
                ) from e
            written += 1
        return written

    async def bump_freshness_counter(self, session: Optional[Any] = None) -> None:
        """Increment the counter document by exactly one."""
        try:
            await self._increment_counter(session)
        except PyMongoError as e:
            raise StoreError(f"Freshness counter update failed: {e}") from e

    async def _increment_counter(self, session: Optional[Any]) -> None:
        result = await self.config.update_one(
            {self.counter_field: {"$exists": True}},
            {"$inc": {self.counter_field: 1}},
            upsert=self.bootstrap_counter,
            session=session,
        )
        if result.upserted_id is not None:
            logger.info("Created %s counter document", self.counter_field)
        elif result.matched_count == 0:
            logger.warning(
                "No document with %r in %s, counter not incremented",
                self.counter_field, self.config.name,
            )

    async def persist_cycle(self, records: Sequence[PersistedRecord]) -> int:
        """Persist a cycle's records, then bump the counter."""
        if not self.transactional:
            written = await self.persist(records)
            await self.bump_freshness_counter()
            return written

        # with_transaction only retries raw PyMongoError carrying a transient label
        async def _cycle(session: Any) -> int:
            for record in records:
                await self.records.insert_one(record.to_document(), session=session)
            await self._increment_counter(session)
            return len(records)

        try:
            async with self.database.client.start_session() as session:
                return await session.with_transaction(_cycle)
        except PyMongoError as e:
            # Aborted transaction: nothing from this cycle is committed
            raise StoreError(f"Transaction failed: {e}", written=0) from e
