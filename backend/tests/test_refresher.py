"""Tests for the refresh cycle orchestration.

Directory, subgraph and CoinGecko are mocked; classification, resolution
and caching are real.
"""

import asyncio
import json
from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from tokenprices.models import ListedToken, Network, ZERO_ADDRESS
from tokenprices.services.networks import NetworkDirectory
from tokenprices.services.pricing import PriceResolver
from tokenprices.services.refresher import PriceRefresher, RefreshState
from tokenprices.services.snapshot import SnapshotWriter
from tokenprices.services.subgraph import SubgraphTokenLister
from tokenprices.services.upstream import UpstreamError
from conftest import FIXED_TIME


XDAI = Network(
    name="xdai-mainnet",
    coingecko_id="xdai",
    native_token_wrapper="0xAAA",
    native_token_symbol="xDAI",
)
POLYGON = Network(
    name="polygon-mainnet",
    coingecko_id="polygon-pos",
    native_token_wrapper="0xEEE",
    native_token_symbol="MATIC",
)
NO_PLATFORM = Network(name="degenchain")

LISTINGS = {
    "xdai-mainnet": [
        ListedToken(id="0xBBB", underlying_address=ZERO_ADDRESS, symbol="PURE"),
        ListedToken(id="0xCCC", underlying_address="0xDDD", symbol="USDCx"),
    ],
    "polygon-mainnet": [
        ListedToken(id="0xFFF", underlying_address="0x111", symbol="DAIx"),
    ],
}

TOKEN_PRICES = {
    "xdai": {"0xbbb": 2.5, "0xddd": 1.0},
    "polygon-pos": {"0x111": 0.99},
}
COIN_IDS = {"DAI": "dai", "POL": "polygon-ecosystem-token"}
COIN_PRICES = {"dai": 1.0, "polygon-ecosystem-token": 0.4}


class Clock:
    """Deterministic clock advancing one second per call."""

    def __init__(self):
        self.now = FIXED_TIME

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def directory():
    mock_directory = Mock(spec=NetworkDirectory)
    mock_directory.fetch_networks = AsyncMock(return_value=[XDAI, POLYGON, NO_PLATFORM])
    return mock_directory


@pytest.fixture
def lister():
    async def list_tokens(network):
        return LISTINGS[network.name]

    mock_lister = Mock(spec=SubgraphTokenLister)
    mock_lister.fetch_listed_tokens = AsyncMock(side_effect=list_tokens)
    return mock_lister


@pytest.fixture
def upstream_coingecko(mock_coingecko):
    """CoinGecko mock answering from the fixed tables above."""

    async def token_prices(platform, addresses):
        table = TOKEN_PRICES.get(platform, {})
        return {a.lower(): table[a.lower()] for a in addresses if a.lower() in table}

    async def search(symbol):
        return COIN_IDS.get(symbol)

    async def coin_price(coin_id):
        return COIN_PRICES.get(coin_id)

    mock_coingecko.get_token_prices.side_effect = token_prices
    mock_coingecko.search_coin_id.side_effect = search
    mock_coingecko.get_coin_price.side_effect = coin_price
    mock_coingecko.get_coin_list.return_value = [{"id": "dai"}]
    return mock_coingecko


@pytest.fixture
def snapshot_path(tmp_path):
    return tmp_path / "data" / "token_prices.json"


@pytest.fixture
def refresher(price_cache, directory, lister, upstream_coingecko, snapshot_path):
    resolver = PriceResolver(
        upstream_coingecko,
        price_cache,
        symbol_overrides={"xDAI": "DAI", "MATIC": "POL"},
        clock=Clock(),
    )
    return PriceRefresher(
        cache=price_cache,
        directory=directory,
        lister=lister,
        client=upstream_coingecko,
        resolver=resolver,
        snapshot_writer=SnapshotWriter(snapshot_path),
        interval_seconds=3600,
    )


class TestRefreshCycle:
    """A full refresh cycle."""

    @pytest.mark.asyncio
    async def test_cycle_populates_cache(self, refresher, price_cache):
        result = await refresher.run_cycle()

        assert not result.aborted
        assert result.networks_processed == 2
        assert result.networks_skipped == 1
        assert result.tokens_processed == 3
        # 2 natives + pure + 2 wrappers
        assert result.tokens_priced == 5

        assert price_cache.get("xdai-mainnet", "0xaaa").price == 1.0
        assert price_cache.get("xdai-mainnet", ZERO_ADDRESS).price == 1.0
        assert price_cache.get("xdai-mainnet", "0xbbb").price == 2.5
        assert price_cache.get("xdai-mainnet", "0xccc").price == 1.0
        assert price_cache.get("polygon-mainnet", "0xeee").price == 0.4
        assert price_cache.get("polygon-mainnet", "0xfff").price == 0.99
        assert refresher.state == RefreshState.IDLE
        assert refresher.cycles_completed == 1

    @pytest.mark.asyncio
    async def test_network_without_platform_is_skipped(self, refresher, lister, price_cache):
        await refresher.run_cycle()

        listed = [call.args[0].name for call in lister.fetch_listed_tokens.await_args_list]
        assert "degenchain" not in listed
        assert not price_cache.has_network("degenchain")

    @pytest.mark.asyncio
    async def test_snapshot_written(self, refresher, snapshot_path):
        await refresher.run_cycle()

        data = json.loads(snapshot_path.read_text())
        assert data["xdai-mainnet"]["0xBBB"]["price"] == 2.5
        assert "last_updated" in data["xdai-mainnet"]["0xBBB"]


class TestRefreshFailures:
    """Failure isolation and cycle aborts."""

    @pytest.mark.asyncio
    async def test_subgraph_failure_isolated_to_network(self, refresher, lister, price_cache):
        async def list_tokens(network):
            if network.name == "xdai-mainnet":
                raise UpstreamError("https://xdai-mainnet.subgraph", "returned HTTP 502", status=502)
            return LISTINGS[network.name]

        lister.fetch_listed_tokens.side_effect = list_tokens

        result = await refresher.run_cycle()

        assert not result.aborted
        assert result.networks_processed == 1
        assert result.networks_skipped == 2
        assert not price_cache.has_network("xdai-mainnet")
        assert price_cache.get("polygon-mainnet", "0xfff").price == 0.99

    @pytest.mark.asyncio
    async def test_price_failure_isolated_to_network(
        self, refresher, upstream_coingecko, price_cache
    ):
        async def token_prices(platform, addresses):
            # Client turns upstream errors into empty results
            if platform == "xdai":
                return {}
            return {"0x111": 0.99}

        upstream_coingecko.get_token_prices.side_effect = token_prices

        await refresher.run_cycle()

        assert price_cache.get("xdai-mainnet", "0xbbb") is None
        assert price_cache.get("xdai-mainnet", "0xaaa").price == 1.0
        assert price_cache.get("polygon-mainnet", "0xfff").price == 0.99

    @pytest.mark.asyncio
    async def test_unexpected_error_isolated_to_network(self, refresher, lister, price_cache):
        async def list_tokens(network):
            if network.name == "xdai-mainnet":
                raise RuntimeError("boom")
            return LISTINGS[network.name]

        lister.fetch_listed_tokens.side_effect = list_tokens

        result = await refresher.run_cycle()

        assert result.networks_processed == 1
        assert price_cache.get("polygon-mainnet", "0xfff").price == 0.99

    @pytest.mark.asyncio
    async def test_directory_failure_aborts_cycle(
        self, refresher, directory, lister, price_cache, snapshot_path
    ):
        price_cache.put("xdai-mainnet", "0xBBB", 2.0, FIXED_TIME)
        directory.fetch_networks.side_effect = UpstreamError("networks.json", "timed out")

        result = await refresher.run_cycle()

        assert result.aborted
        assert "timed out" in result.error
        lister.fetch_listed_tokens.assert_not_awaited()
        assert price_cache.get("xdai-mainnet", "0xbbb").price == 2.0
        assert not snapshot_path.exists()
        assert refresher.cycles_completed == 0
        assert refresher.state == RefreshState.IDLE

    @pytest.mark.asyncio
    async def test_coin_list_failure_aborts_cycle(
        self, refresher, upstream_coingecko, lister, snapshot_path
    ):
        upstream_coingecko.get_coin_list.side_effect = UpstreamError("coins/list", "returned HTTP 429", status=429)

        result = await refresher.run_cycle()

        assert result.aborted
        lister.fetch_listed_tokens.assert_not_awaited()
        assert not snapshot_path.exists()


class TestRepeatedCycles:
    """Behaviour across cycles."""

    @pytest.mark.asyncio
    async def test_identical_cycles_are_idempotent(self, refresher, price_cache):
        await refresher.run_cycle()
        first = price_cache.snapshot()
        await refresher.run_cycle()
        second = price_cache.snapshot()

        assert first.keys() == second.keys()
        for network, entries in first.items():
            assert entries.keys() == second[network].keys()
            for address, entry in entries.items():
                assert second[network][address].price == entry.price
                assert second[network][address].last_updated >= entry.last_updated

    @pytest.mark.asyncio
    async def test_delisted_tokens_are_kept(self, refresher, lister, price_cache):
        await refresher.run_cycle()

        async def list_tokens(network):
            return []

        lister.fetch_listed_tokens.side_effect = list_tokens
        await refresher.run_cycle()

        assert price_cache.get("xdai-mainnet", "0xbbb").price == 2.5
        assert price_cache.get("polygon-mainnet", "0xfff").price == 0.99


class TestRefreshLoop:
    """Background task lifecycle."""

    @pytest.mark.asyncio
    async def test_start_runs_first_cycle_then_waits(self, refresher):
        refresher.run_cycle = AsyncMock()

        await refresher.start()
        await asyncio.sleep(0.05)
        await refresher.stop()

        refresher.run_cycle.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_loop_survives_cycle_error(self, refresher):
        refresher.interval_seconds = 0.01
        calls = []

        async def flaky_cycle():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")

        refresher.run_cycle = AsyncMock(side_effect=flaky_cycle)

        await refresher.start()
        await asyncio.sleep(0.1)
        await refresher.stop()

        assert refresher.run_cycle.await_count >= 2

    @pytest.mark.asyncio
    async def test_status(self, refresher):
        await refresher.run_cycle()

        status = refresher.get_status()
        assert status["state"] == "idle"
        assert status["cycles_completed"] == 1
        assert status["last_cycle"]["tokens_priced"] == 5
        assert status["cached_networks"] == 2
        # natives are stored twice: wrapper and zero address
        assert status["cached_entries"] == 7
