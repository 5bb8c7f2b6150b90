# Business Logic Services

from .config import (
    ConfigService,
    ConfigValidationException,
    ConfigValidationError,
    Settings,
)
from .upstream import UpstreamError, fetch_json
from .networks import NetworkDirectory
from .subgraph import SubgraphTokenLister
from .coingecko import CoinGeckoClient
from .classifier import classify_token, partition_tokens
from .price_cache import PriceCache, get_price_cache
from .pricing import PriceResolver
from .snapshot import SnapshotWriter
from .refresher import (
    PriceRefresher,
    RefreshState,
    CycleResult,
    build_refresher,
    get_refresher,
)

__all__ = [
    # Config
    "ConfigService",
    "ConfigValidationException",
    "ConfigValidationError",
    "Settings",
    # Upstreams
    "UpstreamError",
    "fetch_json",
    "NetworkDirectory",
    "SubgraphTokenLister",
    "CoinGeckoClient",
    # Pricing
    "classify_token",
    "partition_tokens",
    "PriceCache",
    "get_price_cache",
    "PriceResolver",
    "SnapshotWriter",
    # Refresh
    "PriceRefresher",
    "RefreshState",
    "CycleResult",
    "build_refresher",
    "get_refresher",
]
