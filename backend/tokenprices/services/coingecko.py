"""CoinGecko market-data client.

Wraps the four CoinGecko queries the refresher needs:
- token prices by contract address on a platform
- free-text coin search
- coin price by id
- the full coin list (availability check at the start of a cycle)

Price queries never raise: failures are logged and reported as "no price".
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from .upstream import UpstreamError, fetch_json

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-cg-pro-api-key"


class CoinGeckoClient:
    """Client for the CoinGecko (pro) REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        vs_currency: str = "usd",
        timeout_seconds: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.vs_currency = vs_currency
        self.timeout_seconds = timeout_seconds

    async def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        return await fetch_json(
            "GET",
            f"{self.base_url}{path}",
            timeout_seconds=self.timeout_seconds,
            params=params,
            headers={API_KEY_HEADER: self.api_key},
        )

    async def get_token_prices(self, platform: str, addresses: Sequence[str]) -> Dict[str, float]:
        """Get prices for contract addresses on a platform.

        Returns:
            Mapping of lower-cased contract address to price. Addresses
            CoinGecko has no usable price for are absent.
        """
        if not addresses:
            return {}

        try:
            data = await self._get(
                f"/simple/token_price/{platform}",
                {
                    "contract_addresses": ",".join(addresses),
                    "vs_currencies": self.vs_currency,
                },
            )
        except UpstreamError as e:
            logger.error(f"Error fetching prices for tokens on {platform}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.error(f"Unexpected token price response for {platform}: {data!r:.200}")
            return {}

        prices = {}
        for address, quote in data.items():
            price = self._extract_price(quote)
            if price is not None:
                prices[address.lower()] = price
        return prices

    async def search_coin_id(self, symbol: str) -> Optional[str]:
        """Search for the coin id of a symbol.

        Picks the first result whose symbol matches case-insensitively and
        which carries a market cap rank.
        """
        try:
            data = await self._get("/search", {"query": symbol})
        except UpstreamError as e:
            logger.error(f"Error searching for coin {symbol}: {e}")
            return None

        coins = data.get("coins") if isinstance(data, dict) else None
        for coin in coins if isinstance(coins, list) else []:
            if not isinstance(coin, dict):
                continue
            coin_symbol = coin.get("symbol")
            if not isinstance(coin_symbol, str) or not isinstance(coin.get("id"), str):
                continue
            if coin_symbol.lower() == symbol.lower() and coin.get("market_cap_rank"):
                return coin["id"]

        logger.warning(f"No ranked CoinGecko coin found for symbol {symbol}")
        return None

    async def get_coin_price(self, coin_id: str) -> Optional[float]:
        """Get the price of a coin by CoinGecko id."""
        try:
            data = await self._get(
                "/simple/price",
                {"ids": coin_id, "vs_currencies": self.vs_currency},
            )
        except UpstreamError as e:
            logger.error(f"Error fetching price for coin {coin_id}: {e}")
            return None

        if not isinstance(data, dict):
            return None
        return self._extract_price(data.get(coin_id))

    async def get_coin_list(self) -> List[Dict[str, Any]]:
        """Get the full coin list including platform addresses.

        Raises:
            UpstreamError: If the list cannot be fetched.
        """
        url = f"{self.base_url}/coins/list"
        data = await self._get("/coins/list", {"include_platform": "true"})
        if not isinstance(data, list):
            raise UpstreamError(url, f"expected a JSON array, got {type(data).__name__}")
        return data

    def _extract_price(self, quote: Any) -> Optional[float]:
        """Pull a positive price in the reference currency out of a quote."""
        if not isinstance(quote, dict):
            return None
        value = quote.get(self.vs_currency)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if value <= 0:
            return None
        return float(value)
