# Data Models

from .network import Network
from .token import ListedToken, TokenCategory, ZERO_ADDRESS, is_zero_address
from .price import PriceEntry

__all__ = [
    "Network",
    "ListedToken",
    "TokenCategory",
    "ZERO_ADDRESS",
    "is_zero_address",
    "PriceEntry",
]
