"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest
from httpx import AsyncClient, ASGITransport

from tokenprices.main import app
from tokenprices.models import ListedToken, Network, ZERO_ADDRESS
from tokenprices.services.coingecko import CoinGeckoClient
from tokenprices.services.price_cache import PriceCache, get_price_cache


FIXED_TIME = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def price_cache():
    """A fresh, empty price cache."""
    return PriceCache()


@pytest.fixture(scope="function")
async def client(price_cache):
    """Create test client reading from the test cache."""

    app.dependency_overrides[get_price_cache] = lambda: price_cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def xdai_network():
    """Gnosis chain as described by the network directory."""
    return Network(
        name="xdai",
        coingecko_id="xdai",
        native_token_wrapper="0xAAA0000000000000000000000000000000000001",
        native_token_symbol="xDAI",
    )


@pytest.fixture
def pure_token():
    return ListedToken(
        id="0xBBB0000000000000000000000000000000000002",
        underlying_address=ZERO_ADDRESS,
        name="Pure Token",
        symbol="PURE",
    )


@pytest.fixture
def wrapper_token():
    return ListedToken(
        id="0xCCC0000000000000000000000000000000000003",
        underlying_address="0xDDD0000000000000000000000000000000000004",
        name="Super USDC",
        symbol="USDCx",
    )


@pytest.fixture
def mock_coingecko():
    """CoinGecko client with every query mocked out."""
    mock_client = Mock(spec=CoinGeckoClient)
    mock_client.get_token_prices = AsyncMock(return_value={})
    mock_client.search_coin_id = AsyncMock(return_value=None)
    mock_client.get_coin_price = AsyncMock(return_value=None)
    mock_client.get_coin_list = AsyncMock(return_value=[])
    return mock_client
