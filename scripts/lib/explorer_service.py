"""
Async aggregation service over the Ergo explorer.

ExplorerService fans per-address requests out in bounded chunks and
merges the results into normalized balances, used-address lists and
token rate tables. It holds no state besides the injected client.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .aggregators import (
    build_price_rates,
    filter_used_addresses,
    parse_addresses_balance,
    token_rates_window,
)
from .batching import DEFAULT_CHUNK_BY, gather_chunk, gather_in_chunks
from .explorer_client import ExplorerClient
from .models import AddressResponse, AssetBalance, MarketQuote, PriceRates


class ExplorerService:
    """
    Public entry point for explorer aggregation.

    Single lookups run on the default executor via asyncio.to_thread.
    Fan-outs run each chunk on a dedicated pool with one thread per key.
    Results are always merged back on the event loop.
    """

    def __init__(self, client: ExplorerClient):
        self.client = client

    def _fetch_tx_history(self, address: str, **params: Any) -> AddressResponse[Dict[str, Any]]:
        return AddressResponse(address=address, data=self.client.get_tx_history(address, **params))

    def _fetch_usage(self, address: str) -> AddressResponse[Dict[str, Any]]:
        return self._fetch_tx_history(address, limit=1, concise=True)

    def _fetch_balance(self, address: str) -> AddressResponse[Dict[str, Any]]:
        return AddressResponse(address=address, data=self.client.get_address_balance(address))

    def _fetch_unspent_boxes(self, address: str) -> AddressResponse[List[Dict[str, Any]]]:
        return AddressResponse(address=address, data=self.client.get_unspent_boxes(address))

    async def get_tx_history(
        self,
        address: str,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        concise: Optional[bool] = None,
    ) -> AddressResponse[Dict[str, Any]]:
        """Get one page of transaction history, tagged with its address."""
        return await asyncio.to_thread(
            self._fetch_tx_history, address, offset=offset, limit=limit, concise=concise
        )

    async def get_address_balance(self, address: str) -> AddressResponse[Dict[str, Any]]:
        """Get the raw balance of one address, tagged with its address."""
        return await asyncio.to_thread(self._fetch_balance, address)

    async def get_addresses_balance(
        self,
        addresses: Sequence[str],
        chunk_by: int = DEFAULT_CHUNK_BY,
    ) -> List[AssetBalance]:
        """
        Get the flattened token and ERG balances of many addresses.

        Args:
            addresses: Addresses to query
            chunk_by: Maximum concurrent requests; <= 0 or >= len(addresses)
                sends them all at once

        Returns:
            AssetBalance records, tokens before ERG for each address

        Raises:
            ExplorerAPIError: If any single balance request fails
        """
        raw = await gather_in_chunks(addresses, self._fetch_balance, chunk_by)
        return parse_addresses_balance(raw)

    async def get_used_addresses(
        self,
        addresses: Sequence[str],
        chunk_by: int = DEFAULT_CHUNK_BY,
    ) -> List[str]:
        """
        Get the addresses that have at least one transaction, in input order.

        Raises:
            ExplorerAPIError: If any single history request fails
        """
        raw = await gather_in_chunks(addresses, self._fetch_usage, chunk_by)
        return filter_used_addresses(addresses, raw)

    async def get_box(self, box_id: str) -> Dict[str, Any]:
        """Get a single box by id."""
        return await asyncio.to_thread(self.client.get_box, box_id)

    async def get_boxes(self, box_ids: Sequence[str]) -> List[Dict[str, Any]]:
        """Get several boxes at once, in the order of box_ids."""
        return await gather_chunk(box_ids, self.client.get_box)

    async def get_minting_box(self, token_id: str) -> Optional[Dict[str, Any]]:
        """Get the box that issued a token, or None if the explorer knows none."""
        boxes = await asyncio.to_thread(self.client.get_issuing_boxes, token_id)
        return boxes[0] if boxes else None

    async def get_unspent_boxes(
        self, addresses: Sequence[str]
    ) -> List[AddressResponse[List[Dict[str, Any]]]]:
        """Get the unspent boxes of every address at once, each list tagged with its address."""
        return await gather_chunk(addresses, self._fetch_unspent_boxes)

    async def get_token_rates(self, now: Optional[datetime] = None) -> PriceRates:
        """
        Get ERG-denominated prices of DEX-traded tokens over the last 30 days.

        Args:
            now: End of the window, defaults to the current UTC time

        Returns:
            {token_id: {"erg": price}}
        """
        from_ms, to_ms = token_rates_window(now)
        raw = await asyncio.to_thread(self.client.get_markets, from_ms, to_ms)
        return build_price_rates(MarketQuote.from_api(entry) for entry in raw or [])
