"""Price resolution for listed SuperTokens."""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Sequence

from ..models import ListedToken, Network, ZERO_ADDRESS
from .coingecko import CoinGeckoClient
from .price_cache import PriceCache

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PriceResolver:
    """Resolves prices for each token category and writes them to the cache.

    Every resolve method returns the number of tokens priced and never
    raises for upstream failures.
    """

    def __init__(
        self,
        client: CoinGeckoClient,
        cache: PriceCache,
        symbol_overrides: Optional[Dict[str, str]] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.client = client
        self.cache = cache
        self.symbol_overrides = dict(symbol_overrides or {})
        self.clock = clock

    def search_symbol(self, symbol: str) -> str:
        """Symbol to search CoinGecko for, after overrides."""
        return self.symbol_overrides.get(symbol, symbol)

    async def resolve_native(self, network: Network) -> int:
        """Price the native coin under the wrapper address and the zero address."""
        wrapper = network.native_token_wrapper
        symbol = network.native_token_symbol
        if not wrapper or not symbol:
            return 0

        query = self.search_symbol(symbol)
        coin_id = await self.client.search_coin_id(query)
        if not coin_id:
            logger.info(f"{network.name}: no CoinGecko id for native token {symbol} (searched {query})")
            return 0

        price = await self.client.get_coin_price(coin_id)
        if price is None:
            logger.info(f"{network.name}: no price for native coin {coin_id}")
            return 0

        now = self.clock()
        self.cache.put(network.name, wrapper, price, now)
        self.cache.put(network.name, ZERO_ADDRESS, price, now)
        logger.debug(f"  Native token wrapper {wrapper} ({symbol}x) price: {price}")
        return 1

    async def resolve_pure(self, network: Network, tokens: Sequence[ListedToken]) -> int:
        """Price pure SuperTokens by their own contract address."""
        return await self._resolve_batch(
            network, tokens, lambda token: token.id, "Pure super token"
        )

    async def resolve_wrappers(self, network: Network, tokens: Sequence[ListedToken]) -> int:
        """Price ERC20 wrapper SuperTokens by their underlying address."""
        return await self._resolve_batch(
            network, tokens, lambda token: token.underlying_address, "Wrapper super token"
        )

    async def _resolve_batch(
        self,
        network: Network,
        tokens: Sequence[ListedToken],
        price_address: Callable[[ListedToken], str],
        label: str,
    ) -> int:
        if not tokens or not network.coingecko_id:
            return 0

        addresses = [price_address(token) for token in tokens]
        prices = await self.client.get_token_prices(network.coingecko_id, addresses)
        if not prices:
            return 0

        now = self.clock()
        priced = 0
        for token in tokens:
            price = prices.get(price_address(token).lower())
            if price is None:
                continue
            # Always stored under the SuperToken address
            self.cache.put(network.name, token.id, price, now)
            priced += 1
            logger.debug(f"  {label} {token.id} ({token.symbol}) price: {price}")
        return priced
