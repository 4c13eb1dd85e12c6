# =============================================================================
# readers/local_reader.py - APP_USER rows by id with read-through cache
# =============================================================================

import logging
from typing import Callable, Collection, Iterable, Iterator, List

from core.cache import SnapshotCache
from core.models import AppUser, CacheHit

BATCH_SIZE = 1000

LocalFetcher = Callable[[Collection[int]], List[AppUser]]


def partition(items: Iterable[int], size: int) -> Iterator[List[int]]:
    """Yield consecutive chunks of at most `size` items"""
    if size < 1:
        raise ValueError("Batch size must be positive")
    batch: List[int] = []
    for item in items:
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


class LocalDirectoryReader:
    """Resolves APP_USER rows in bounded IN-clause batches"""

    def __init__(self, fetch_by_ids: LocalFetcher, cache: SnapshotCache,
                 batch_size: int = BATCH_SIZE):
        self.fetch_local_by_ids = fetch_by_ids
        self.cache = cache
        self.batch_size = batch_size
        self.logger = logging.getLogger(self.__class__.__name__)

    def fetch_by_ids(self, ids: Collection[int]) -> List[AppUser]:
        cached = self.cache.load(AppUser.from_dict)
        if isinstance(cached, CacheHit):
            self.logger.info(f"Found {len(cached.data)} Foresee users in cache")
            return list(cached.data)

        users: List[AppUser] = []
        for batch in partition(sorted(ids), self.batch_size):
            users.extend(self.fetch_local_by_ids(batch))

        self.logger.info(f"Read {len(users)} users from app_user")

        self.cache.store(users, AppUser.to_dict)
        return users
