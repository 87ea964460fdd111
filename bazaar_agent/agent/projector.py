"""
Projection of a bazaar snapshot into storage-ready records.

Only the top of each order book summary is kept; products with no orders on
either side are dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime

from ..hypixel.models import Item, PersistedRecord

logger = logging.getLogger(__name__)

SUMMARY_DEPTH = 3


def project_item(
    key: str, item: Item, observed_at: datetime, depth: int = SUMMARY_DEPTH
) -> PersistedRecord | None:
    """Project a single item, or return None when both histories are empty."""
    if not item.sell_history and not item.buy_history:
        return None

    if item.id != key:
        logger.warning("Product id %r does not match its key %r, keeping key", item.id, key)

    return PersistedRecord(
        item_id=key,
        sell_summary=item.sell_history[:depth],
        buy_summary=item.buy_history[:depth],
        status=item.status,
        observed_at=observed_at,
    )


def project(
    items: Mapping[str, Item], observed_at: datetime, depth: int = SUMMARY_DEPTH
) -> list[PersistedRecord]:
    """Project every item in snapshot order, all stamped with ``observed_at``."""
    records = []
    for key, item in items.items():
        record = project_item(key, item, observed_at, depth)
        if record is not None:
            records.append(record)
    logger.debug("Projected %d of %d products", len(records), len(items))
    return records
