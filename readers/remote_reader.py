# =============================================================================
# readers/remote_reader.py - Full Okta user set with read-through cache
# =============================================================================

import logging
from typing import Callable, List, Optional, Tuple

from core.cache import SnapshotCache
from core.models import CacheHit, OktaUser

OKTA_PAGE_SIZE = 200

PageFetcher = Callable[[Optional[str], int], Tuple[List[OktaUser], Optional[str]]]


class RemoteDirectoryReader:
    """Pages through the Okta users API, or replays the cached snapshot"""

    def __init__(self, fetch_page: PageFetcher, cache: SnapshotCache,
                 page_size: int = OKTA_PAGE_SIZE):
        self.fetch_page = fetch_page
        self.cache = cache
        self.page_size = page_size
        self.logger = logging.getLogger(self.__class__.__name__)

    def fetch_all(self) -> List[OktaUser]:
        cached = self.cache.load(OktaUser.from_api)
        if isinstance(cached, CacheHit):
            self.logger.info(f"Found {len(cached.data)} Okta users in cache")
            return list(cached.data)

        all_users: List[OktaUser] = []
        after: Optional[str] = None
        num_pages = 0

        while True:
            users, after = self.fetch_page(after, self.page_size)
            if not users:
                break

            num_pages += 1
            all_users.extend(users)
            self.logger.info(f"Read page {num_pages} of Okta users.")

            if after is None:
                break

        self.logger.info(f"Found {num_pages} pages of Okta users. {len(all_users)} total Okta users")

        self.cache.store(all_users, OktaUser.to_api)
        return all_users
