"""In-memory token price store.

Shared by the refresh task (writer) and the HTTP handlers (readers).
Entries are only ever replaced wholesale and never evicted.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Optional

from fastapi import Request

from ..models import PriceEntry

logger = logging.getLogger(__name__)


class PriceCache:
    """Prices keyed by network name and token address.

    Network names match exactly. Addresses match case-insensitively but
    keep the casing they were first written with.
    """

    def __init__(self):
        self._lock = threading.RLock()
        # network -> original-case address -> entry
        self._prices: Dict[str, Dict[str, PriceEntry]] = {}
        # network -> lower-case address -> original-case address
        self._keys: Dict[str, Dict[str, str]] = {}

    def ensure_network(self, network: str) -> None:
        """Make a network known even before any of its tokens are priced."""
        with self._lock:
            self._prices.setdefault(network, {})
            self._keys.setdefault(network, {})

    def has_network(self, network: str) -> bool:
        with self._lock:
            return network in self._prices

    def put(self, network: str, address: str, price: float, last_updated: datetime) -> PriceEntry:
        """Store a price, replacing any previous entry for the address."""
        entry = PriceEntry(price=price, last_updated=last_updated)
        with self._lock:
            self.ensure_network(network)
            key = self._keys[network].setdefault(address.lower(), address)
            self._prices[network][key] = entry
        return entry

    def get(self, network: str, address: str) -> Optional[PriceEntry]:
        """Look up a price, or None if the network or token is unknown."""
        with self._lock:
            keys = self._keys.get(network)
            if keys is None:
                return None
            key = keys.get(address.lower())
            if key is None:
                return None
            return self._prices[network][key]

    def network_count(self) -> int:
        with self._lock:
            return len(self._prices)

    def entry_count(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._prices.values())

    def snapshot(self) -> Dict[str, Dict[str, PriceEntry]]:
        """Copy of the whole cache for persistence."""
        with self._lock:
            return {network: dict(entries) for network, entries in self._prices.items()}


def get_price_cache(request: Request) -> PriceCache:
    """FastAPI dependency returning the application's shared cache."""
    return request.app.state.price_cache
