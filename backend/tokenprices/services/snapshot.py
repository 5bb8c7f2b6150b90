"""JSON snapshot of the price cache, written after each refresh cycle.

The file is a debugging aid and is never read back by the service.
"""

import json
import logging
import os
from pathlib import Path
from typing import Union

from .price_cache import PriceCache

logger = logging.getLogger(__name__)


class SnapshotWriter:
    """Dumps the whole price cache to a JSON file, overwriting it each time."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def write(self, cache: PriceCache) -> bool:
        """Write the snapshot. Returns False if the file could not be written."""
        data = {
            network: {address: entry.to_dict() for address, entry in entries.items()}
            for network, entries in cache.snapshot().items()
        }
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write price snapshot to {self.path}: {e}")
            return False

        logger.debug(f"Wrote price snapshot to {self.path}")
        return True
