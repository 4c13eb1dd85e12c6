# =============================================================================
# core/service.py - One reconciliation run
# =============================================================================

import logging
from typing import Optional

from core.cache import SnapshotCache
from core.models import ReconciliationResult
from core.reconciler import OrphanHandler, Reconciler
from readers.local_reader import LocalDirectoryReader, LocalFetcher
from readers.remote_reader import OKTA_PAGE_SIZE, PageFetcher, RemoteDirectoryReader
from utils.report_sink import ReportChannel, ReportSink


class UserReconciliationService:
    """Wires readers, reconciler and report sink into a single run"""

    def __init__(self, sink: ReportSink, fetch_page: PageFetcher, fetch_by_ids: LocalFetcher,
                 page_size: int = OKTA_PAGE_SIZE, orphan_handler: Optional[OrphanHandler] = None):
        self.sink = sink
        self.remote_reader = RemoteDirectoryReader(
            fetch_page, self.okta_cache(sink), page_size=page_size
        )
        self.local_reader = LocalDirectoryReader(fetch_by_ids, self.app_user_cache(sink))
        self.reconciler = Reconciler(sink, orphan_handler=orphan_handler)
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def okta_cache(sink: ReportSink) -> SnapshotCache:
        return SnapshotCache(sink.path_for(ReportChannel.OKTA_USER_CACHE))

    @staticmethod
    def app_user_cache(sink: ReportSink) -> SnapshotCache:
        return SnapshotCache(sink.path_for(ReportChannel.APP_USER_CACHE))

    def execute(self) -> ReconciliationResult:
        """Recreate the reports and run the full reconciliation"""
        self.logger.info("Starting Okta user reconciliation")
        self.sink.open()

        okta_users = self.remote_reader.fetch_all()
        result = self.reconciler.run(okta_users, self.local_reader.fetch_by_ids)

        self.log_summary(result)
        return result

    def log_summary(self, result: ReconciliationResult) -> None:
        counts = {status.value: count for status, count in result.status_counts.counts.items()}
        self.logger.info(f"Status counts: {counts} (unrecognized: {result.status_counts.unrecognized})")
        self.logger.info(f"Rule hits: {result.phase_b.rule_hits}")
        if result.duplicate_foreign_ids:
            self.logger.warning(f"{len(result.duplicate_foreign_ids)} Foresee ids map to multiple Okta users")
        self.logger.info(f"Reports written to {self.sink.report_dir}")
