"""Cached price model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class PriceEntry:
    """A token price and when it was fetched."""
    price: float
    last_updated: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "price": self.price,
            "last_updated": self.last_updated.isoformat(),
        }
