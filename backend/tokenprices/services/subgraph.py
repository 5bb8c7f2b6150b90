"""SuperToken listing via the per-network subgraph."""

import logging
from typing import List

from ..models import ListedToken, Network
from .upstream import UpstreamError, fetch_json

logger = logging.getLogger(__name__)

LISTED_TOKENS_QUERY = """
query {
  tokens(first: 1000, where: { isSuperToken: true, isListed: true, isNativeAssetSuperToken: false }) {
    id
    underlyingAddress
    name
    symbol
  }
}
"""


class SubgraphTokenLister:
    """Lists the SuperTokens of a network from its subgraph."""

    def __init__(self, url_template: str, timeout_seconds: float = 30.0):
        self.url_template = url_template
        self.timeout_seconds = timeout_seconds

    def subgraph_url(self, network: Network) -> str:
        return self.url_template.format(network=network.name)

    async def fetch_listed_tokens(self, network: Network) -> List[ListedToken]:
        """Fetch listed SuperTokens for a network.

        Raises:
            UpstreamError: If the subgraph is unreachable or returns an unexpected body.
        """
        url = self.subgraph_url(network)
        data = await fetch_json(
            "POST",
            url,
            timeout_seconds=self.timeout_seconds,
            json_body={"query": LISTED_TOKENS_QUERY},
        )

        try:
            raw_tokens = data["data"]["tokens"]
        except (KeyError, TypeError):
            raw_tokens = None
        if not isinstance(raw_tokens, list):
            errors = data.get("errors") if isinstance(data, dict) else None
            raise UpstreamError(url, f"no token list in response (errors: {errors})")

        tokens = []
        for raw in raw_tokens:
            try:
                tokens.append(ListedToken.from_subgraph(raw))
            except (KeyError, TypeError):
                logger.warning(f"{network.name}: ignoring malformed token entry {raw!r:.100}")

        logger.debug(f"{network.name}: {len(tokens)} listed SuperTokens")
        return tokens
