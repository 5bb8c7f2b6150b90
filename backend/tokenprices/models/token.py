"""Listed SuperToken model."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def is_zero_address(address: str) -> bool:
    """Check whether an address is the zero-address sentinel."""
    return address.lower() == ZERO_ADDRESS


class TokenCategory(str, Enum):
    """How a listed token gets priced."""
    NATIVE_WRAPPER = "native_wrapper"
    PURE = "pure"
    ERC20_WRAPPER = "erc20_wrapper"


@dataclass(frozen=True)
class ListedToken:
    """A SuperToken listed in a network subgraph."""
    id: str  # SuperToken contract address
    underlying_address: str
    name: str = ""
    symbol: str = ""

    @classmethod
    def from_subgraph(cls, data: Dict[str, Any]) -> "ListedToken":
        token_id = data["id"]
        underlying = data.get("underlyingAddress") or ZERO_ADDRESS
        if not isinstance(token_id, str) or not isinstance(underlying, str):
            raise TypeError(f"token addresses must be strings: {token_id!r}, {underlying!r}")
        return cls(
            id=token_id,
            underlying_address=underlying,
            name=data.get("name") or "",
            symbol=data.get("symbol") or "",
        )
