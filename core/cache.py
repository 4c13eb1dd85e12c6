# =============================================================================
# core/cache.py - Read-through snapshot cache
# =============================================================================

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, TypeVar

from core.models import CacheHit, CacheMiss, CacheResult

T = TypeVar('T')


class SnapshotCache:
    """
    JSON snapshot of a full user list, stored under the report directory.

    There is no TTL: a present, non-empty snapshot is trusted until someone
    deletes it.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)

    def load(self, decode: Callable[[Dict[str, Any]], T]) -> CacheResult:
        """Return CacheHit with decoded entries, or CacheMiss"""
        if not self.path.exists():
            return CacheMiss("absent")

        try:
            with open(self.path, 'r', encoding='utf-8') as file:
                payload = json.load(file)
            data = [decode(item) for item in payload]
        except Exception as e:
            self.logger.error(f"Failed to read cache {self.path}: {e}")
            return CacheMiss("unreadable")

        if not data:
            return CacheMiss("empty")

        self.logger.info(f"Found {len(data)} entries in cache {self.path.name}")
        return CacheHit(data)

    def store(self, items: List[T], encode: Callable[[T], Dict[str, Any]]) -> bool:
        """Write the snapshot; failures are logged and reported as False"""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as file:
                json.dump([encode(item) for item in items], file)
        except Exception as e:
            self.logger.error(f"Failed to write cache {self.path}: {e}")
            return False

        self.logger.info(f"Cached {len(items)} entries to {self.path.name}")
        return True

    def clear(self) -> bool:
        """Delete the snapshot; returns True if a file was removed"""
        if self.path.exists():
            self.path.unlink()
            self.logger.info(f"Removed cache {self.path}")
            return True
        return False
