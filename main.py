# =============================================================================
# main.py - CLI entry point
# =============================================================================

import argparse
import logging
import sys
from pathlib import Path

from core.okta_client import OktaUsersClient
from core.service import UserReconciliationService
from core.user_repository import SpreadsheetAppUserRepository, SqlAppUserRepository
from utils.config import Config
from utils.report_sink import ReportSink


def setup_logging(level: str = "INFO") -> str:
    """Setup logging configuration with both console and file output"""
    from datetime import datetime

    # Create logs directory if it doesn't exist
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    # Generate date-stamped filename
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = log_dir / f"okta_user_reconciliation_{timestamp}.log"

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_handler = logging.FileHandler(log_filename, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)  # Always log DEBUG to file
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Console: {level.upper()}, File: DEBUG")
    logger.info(f"Log file: {log_filename}")

    return str(log_filename)


def build_repository(args, config):
    """Pick the APP_USER source: spreadsheet export if given, else the database"""
    app_user_file = args.app_user_file or config.app_user_file
    if app_user_file:
        return SpreadsheetAppUserRepository(app_user_file, args.sheet_name)
    return SqlAppUserRepository(config.database_url)


def clear_caches(report_dir: Path) -> None:
    """Delete both cached user snapshots"""
    logger = logging.getLogger(__name__)
    sink = ReportSink(report_dir)
    removed = [
        cache.path.name
        for cache in (UserReconciliationService.okta_cache(sink),
                      UserReconciliationService.app_user_cache(sink))
        if cache.clear()
    ]
    logger.info(f"Cleared caches: {removed or 'none present'}")


def handle_reconcile(args, config):
    """Run the Okta vs APP_USER reconciliation"""
    logger = logging.getLogger(__name__)
    report_dir = Path(args.report_dir or config.report_dir)

    if args.clear_cache:
        clear_caches(report_dir)

    with OktaUsersClient(config.okta_url, config.okta_api_token) as okta_client, \
            build_repository(args, config) as repository:
        service = UserReconciliationService(
            ReportSink(report_dir),
            okta_client.fetch_page,
            repository.find_by_id_in,
            page_size=config.okta_page_size
        )
        result = service.execute()

    logger.info("Reconciliation completed successfully!")
    logger.info(f"Matched {result.phase_b.matched} users, {len(result.orphans)} orphan Okta users")


def main():
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(description="Okta / APP_USER Reconciliation")
    subparsers = parser.add_subparsers(dest='command', help='Command')

    reconcile_parser = subparsers.add_parser('reconcile', help='Compare Okta users with APP_USER')
    reconcile_parser.add_argument('--report-dir', help='Directory for report and cache files')
    reconcile_parser.add_argument('--app-user-file',
                                  help='CSV or Excel export of APP_USER to use instead of the database')
    reconcile_parser.add_argument('--sheet-name', help='Excel sheet name (optional)')
    reconcile_parser.add_argument('--clear-cache', action='store_true',
                                  help='Discard cached user snapshots before running')

    clear_parser = subparsers.add_parser('clear-cache', help='Delete cached user snapshots')
    clear_parser.add_argument('--report-dir', help='Directory holding the cache files')

    # Global arguments
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    # Load configuration
    config = Config()

    if args.command == 'clear-cache':
        clear_caches(Path(args.report_dir or config.report_dir))
        return

    if not config.validate_okta_config():
        logger.error(f"Missing required environment variables: {config.get_missing_okta_vars()}")
        sys.exit(1)

    if not config.validate_local_config(args.app_user_file):
        logger.error(f"Missing required environment variables: {config.get_missing_local_vars()}")
        sys.exit(1)

    if args.app_user_file and not Path(args.app_user_file).exists():
        logger.error(f"Input file not found: {args.app_user_file}")
        sys.exit(1)

    try:
        handle_reconcile(args, config)
    except Exception as e:
        logger.error(f"Processing failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
