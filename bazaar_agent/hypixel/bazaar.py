"""
Hypixel SkyBlock bazaar API client.

Endpoint used (public, no auth):
  GET /skyblock/bazaar          -- every product's order summaries + quick status

A fetch is a single request with no retries; retry cadence belongs to the
poll loop.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..errors import DecodeError, TransportError, UnsuccessfulResponseError
from .models import MarketSnapshot

logger = logging.getLogger(__name__)

BAZAAR_URL = "https://api.hypixel.net/skyblock/bazaar"
TIMEOUT = 30.0


class BazaarClient:
    """Fetches and decodes bazaar snapshots over one shared HTTP client."""

    def __init__(
        self,
        url: str = BAZAAR_URL,
        timeout: float = TIMEOUT,
        require_success: bool = False,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.require_success = require_success
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> BazaarClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _get(self) -> Any:
        """Issue the GET and return parsed JSON."""
        logger.debug("GET %s", self.url)
        try:
            resp = await self._client.get(self.url)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"{self.url} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"request to {self.url} failed: {e!r}") from e

        try:
            return resp.json()
        except ValueError as e:
            raise DecodeError(f"{self.url} returned a non-JSON body") from e

    async def fetch(self) -> MarketSnapshot:
        """
        Fetch the current bazaar snapshot.

        Raises:
            TransportError: network failure, timeout or non-2xx status.
            DecodeError: body is not JSON or misses required fields.
            UnsuccessfulResponseError: ``success`` is false and
                ``require_success`` is enabled.
        """
        payload = await self._get()
        try:
            snapshot = MarketSnapshot.model_validate(payload)
        except ValidationError as e:
            raise DecodeError(
                f"bazaar payload does not match schema ({e.error_count()} errors)"
            ) from e

        if not snapshot.is_valid:
            if self.require_success:
                raise UnsuccessfulResponseError(
                    f"bazaar reported success=false (lastUpdated={snapshot.version_token})"
                )
            logger.warning(
                "Bazaar reported success=false for lastUpdated=%s, processing anyway",
                snapshot.version_token,
            )

        logger.debug(
            "Fetched snapshot lastUpdated=%s with %d products",
            snapshot.version_token, len(snapshot.items),
        )
        return snapshot
