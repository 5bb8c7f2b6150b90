"""Network directory model."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Network:
    """A blockchain network as described by the network directory."""
    name: str
    coingecko_id: Optional[str] = None  # market-data platform id
    native_token_wrapper: Optional[str] = None
    native_token_symbol: Optional[str] = None
    is_testnet: bool = False

    @classmethod
    def from_directory_entry(cls, entry: Dict[str, Any]) -> "Network":
        """Build a Network from a networks.json entry."""
        return cls(
            name=entry["name"],
            coingecko_id=entry.get("coinGeckoId") or None,
            native_token_wrapper=entry.get("nativeTokenWrapper") or None,
            native_token_symbol=entry.get("nativeTokenSymbol") or None,
            is_testnet=bool(entry.get("isTestnet", False)),
        )

    def __repr__(self):
        return f"<Network(name={self.name}, platform={self.coingecko_id})>"
