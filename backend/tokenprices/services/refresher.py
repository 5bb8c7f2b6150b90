"""Periodic price refresh.

Runs one refresh cycle at startup and then again after a fixed delay
measured from the end of the previous cycle, so cycles never overlap.

A cycle:
1. fetches the network directory and the CoinGecko coin list
   (either failing aborts the cycle and leaves the cache untouched)
2. for each mainnet network with a CoinGecko platform id, lists its
   SuperTokens and prices the native wrapper, pure and ERC20 wrapper tokens
3. writes a JSON snapshot of the cache

Networks are processed one after another; a failure on one network never
affects the others.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from fastapi import Request

from ..models import Network
from .classifier import partition_tokens
from .coingecko import CoinGeckoClient
from .config import Settings
from .networks import NetworkDirectory
from .price_cache import PriceCache
from .pricing import PriceResolver
from .snapshot import SnapshotWriter
from .subgraph import SubgraphTokenLister
from .upstream import UpstreamError

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    """Where the refresher currently is in its cycle."""
    IDLE = "idle"
    FETCHING_DIRECTORY = "fetching_directory"
    PROCESSING_NETWORK = "processing_network"
    PERSISTING = "persisting"


@dataclass
class CycleResult:
    """Outcome of one refresh cycle."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    networks_processed: int = 0
    networks_skipped: int = 0
    tokens_processed: int = 0
    tokens_priced: int = 0
    aborted: bool = False
    error: Optional[str] = None


class PriceRefresher:
    """Keeps a PriceCache filled from the subgraphs and CoinGecko."""

    def __init__(
        self,
        cache: PriceCache,
        directory: NetworkDirectory,
        lister: SubgraphTokenLister,
        client: CoinGeckoClient,
        resolver: PriceResolver,
        snapshot_writer: Optional[SnapshotWriter] = None,
        interval_seconds: float = 3600,
    ):
        self.cache = cache
        self.directory = directory
        self.lister = lister
        self.client = client
        self.resolver = resolver
        self.snapshot_writer = snapshot_writer
        self.interval_seconds = interval_seconds

        self.state = RefreshState.IDLE
        self.current_network: Optional[str] = None
        self.cycles_completed = 0
        self.last_result: Optional[CycleResult] = None

        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def start(self) -> None:
        """Start the background refresh loop."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._refresh_loop())
        logger.info(f"PriceRefresher started (interval {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the background refresh loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("PriceRefresher stopped")

    async def _refresh_loop(self) -> None:
        """Run a cycle, sleep, repeat."""
        while self._running:
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Unexpected error in refresh cycle: {e}")
                self.state = RefreshState.IDLE

            try:
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                break

    async def run_cycle(self) -> CycleResult:
        """Run one full refresh cycle."""
        result = CycleResult(started_at=datetime.now(timezone.utc))
        logger.info(f"Starting token price update at {result.started_at.isoformat()}")

        self.state = RefreshState.FETCHING_DIRECTORY
        try:
            networks = await self.directory.fetch_networks()
            coins = await self.client.get_coin_list()
            logger.info(f"CoinGecko coin list has {len(coins)} coins")
        except UpstreamError as e:
            logger.error(f"Error updating token prices, cycle aborted: {e}")
            result.aborted = True
            result.error = str(e)
            return self._finish(result)

        self.state = RefreshState.PROCESSING_NETWORK
        for network in networks:
            if not network.coingecko_id:
                logger.info(f"Skipping network {network.name} - no Coingecko ID found")
                result.networks_skipped += 1
                continue

            self.current_network = network.name
            try:
                processed, priced = await self.refresh_network(network)
            except UpstreamError as e:
                logger.error(f"Error fetching tokens for {network.name}: {e}")
                result.networks_skipped += 1
                continue
            except Exception as e:
                logger.exception(f"Unexpected error processing network {network.name}: {e}")
                result.networks_skipped += 1
                continue
            finally:
                self.current_network = None

            result.networks_processed += 1
            result.tokens_processed += processed
            result.tokens_priced += priced

        self.state = RefreshState.PERSISTING
        if self.snapshot_writer is not None:
            self.snapshot_writer.write(self.cache)

        self.cycles_completed += 1
        result = self._finish(result)
        logger.info(
            f"Token price update completed at {result.finished_at.isoformat()}: "
            f"{result.tokens_priced}/{result.tokens_processed} tokens updated"
        )
        return result

    async def refresh_network(self, network: Network) -> Tuple[int, int]:
        """List and price the tokens of one network.

        Returns:
            (tokens listed, tokens priced)

        Raises:
            UpstreamError: If the network's subgraph cannot be queried.
        """
        logger.info(f"Processing network {network.name} (Coingecko platform: {network.coingecko_id})")
        tokens = await self.lister.fetch_listed_tokens(network)
        self.cache.ensure_network(network.name)

        pure, wrappers = partition_tokens(tokens, network)

        priced = await self.resolver.resolve_native(network)
        priced += await self.resolver.resolve_pure(network, pure)
        priced += await self.resolver.resolve_wrappers(network, wrappers)

        logger.debug(
            f"{network.name}: {len(pure)} pure, {len(wrappers)} wrapper tokens, {priced} priced"
        )
        return len(tokens), priced

    def _finish(self, result: CycleResult) -> CycleResult:
        result.finished_at = datetime.now(timezone.utc)
        self.last_result = result
        self.state = RefreshState.IDLE
        return result

    def get_status(self) -> Dict[str, Any]:
        """Refresher status for the health endpoint."""
        last = self.last_result
        return {
            "state": self.state.value,
            "current_network": self.current_network,
            "interval_seconds": self.interval_seconds,
            "cycles_completed": self.cycles_completed,
            "last_cycle": None if last is None else {
                "started_at": last.started_at.isoformat(),
                "finished_at": last.finished_at.isoformat() if last.finished_at else None,
                "networks_processed": last.networks_processed,
                "networks_skipped": last.networks_skipped,
                "tokens_processed": last.tokens_processed,
                "tokens_priced": last.tokens_priced,
                "aborted": last.aborted,
                "error": last.error,
            },
            "cached_networks": self.cache.network_count(),
            "cached_entries": self.cache.entry_count(),
        }


def get_refresher(request: Request) -> Optional[PriceRefresher]:
    """FastAPI dependency returning the running refresher, if any."""
    return getattr(request.app.state, "refresher", None)


def build_refresher(settings: Settings, cache: PriceCache) -> PriceRefresher:
    """Wire a PriceRefresher and its upstream clients from settings."""
    timeout = settings.request_timeout_seconds
    client = CoinGeckoClient(
        base_url=settings.coingecko_base_url,
        api_key=settings.coingecko_api_key,
        vs_currency=settings.vs_currency,
        timeout_seconds=timeout,
    )
    return PriceRefresher(
        cache=cache,
        directory=NetworkDirectory(settings.networks_url, timeout_seconds=timeout),
        lister=SubgraphTokenLister(settings.subgraph_url_template, timeout_seconds=timeout),
        client=client,
        resolver=PriceResolver(client, cache, symbol_overrides=settings.symbol_overrides),
        snapshot_writer=SnapshotWriter(settings.snapshot_path),
        interval_seconds=settings.update_interval_seconds,
    )
