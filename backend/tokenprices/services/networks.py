"""Network directory fetcher."""

import logging
from typing import List

from ..models import Network
from .upstream import UpstreamError, fetch_json

logger = logging.getLogger(__name__)


class NetworkDirectory:
    """Fetches the list of known networks from the metadata repository."""

    def __init__(self, url: str, timeout_seconds: float = 30.0):
        self.url = url
        self.timeout_seconds = timeout_seconds

    async def fetch_networks(self) -> List[Network]:
        """Fetch all mainnet networks.

        Raises:
            UpstreamError: If the directory cannot be fetched or parsed.
        """
        data = await fetch_json("GET", self.url, timeout_seconds=self.timeout_seconds)
        if not isinstance(data, list):
            raise UpstreamError(self.url, f"expected a JSON array, got {type(data).__name__}")

        networks = []
        for entry in data:
            if not isinstance(entry, dict) or not entry.get("name"):
                logger.warning(f"Ignoring malformed network entry: {entry!r:.100}")
                continue
            network = Network.from_directory_entry(entry)
            if network.is_testnet:
                continue
            networks.append(network)

        logger.info(f"Fetched {len(networks)} mainnet networks from directory")
        return networks
