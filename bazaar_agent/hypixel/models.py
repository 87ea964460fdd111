"""
Pydantic models for Hypixel bazaar data.

Upstream payloads are decoded straight into these models; attribute names are
snake_case while the aliases carry the upstream JSON names. Unknown upstream
fields are ignored; missing fields, wrongly typed values and integers outside
their 64/32-bit range fail validation.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

# Upstream integers are JSON integers within the signed 64/32-bit ranges BSON stores
Int64 = Annotated[int, Field(strict=True, ge=-(2**63), le=2**63 - 1)]
Int32 = Annotated[int, Field(strict=True, ge=-(2**31), le=2**31 - 1)]
StrictBool = Annotated[bool, Field(strict=True)]


class _UpstreamModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class PricePoint(_UpstreamModel):
    """One aggregated order bucket in a product's order book summary."""
    quantity: Int64 = Field(alias="amount")
    unit_price: float = Field(alias="pricePerUnit")
    order_count: Int32 = Field(alias="orders")


class QuickStatus(_UpstreamModel):
    """Current-instant market summary for a product."""
    item_id: str = Field(alias="productId")
    sell_price: float = Field(alias="sellPrice")
    sell_volume: Int64 = Field(alias="sellVolume")
    sell_weekly_moved: Int64 = Field(alias="sellMovingWeek")
    sell_order_count: Int32 = Field(alias="sellOrders")
    buy_price: float = Field(alias="buyPrice")
    buy_volume: Int64 = Field(alias="buyVolume")
    buy_weekly_moved: Int64 = Field(alias="buyMovingWeek")
    buy_order_count: Int32 = Field(alias="buyOrders")


class Item(_UpstreamModel):
    """A single bazaar product. Histories are most-recent-first."""
    id: str = Field(alias="product_id")
    sell_history: list[PricePoint] = Field(alias="sell_summary")
    buy_history: list[PricePoint] = Field(alias="buy_summary")
    status: QuickStatus = Field(alias="quick_status")


class MarketSnapshot(_UpstreamModel):
    """
    Full point-in-time response of the bazaar endpoint.

    ``version_token`` is upstream's ``lastUpdated``; the agent only ever
    compares it for equality.
    """
    is_valid: StrictBool = Field(alias="success")
    version_token: Int64 = Field(alias="lastUpdated")
    items: dict[str, Item] = Field(alias="products")


class PersistedRecord(BaseModel):
    """Bounded projection of an Item, as written to the ``bazaar`` collection."""
    model_config = ConfigDict(frozen=True)

    item_id: str
    sell_summary: list[PricePoint] = Field(default_factory=list)
    buy_summary: list[PricePoint] = Field(default_factory=list)
    status: QuickStatus
    observed_at: datetime

    def to_document(self) -> dict[str, Any]:
        """Render the stored document using the upstream field names."""
        return {
            "product_id": self.item_id,
            "sell_summary": [p.model_dump(by_alias=True) for p in self.sell_summary],
            "buy_summary": [p.model_dump(by_alias=True) for p in self.buy_summary],
            "quick_status": self.status.model_dump(by_alias=True),
            "timestamp": self.observed_at,
        }
