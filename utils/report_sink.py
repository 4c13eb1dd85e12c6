# =============================================================================
# utils/report_sink.py - Named report channels on disk
# =============================================================================

import csv
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List

COMPARISON_HEADER = [
    "CLIENT_ID",
    "USER_ID",
    "ACCOUNT_ENABLED",
    "LAST_LOGON_DATE",
    "USERNAME",
    "PASSWORD_MIGRATED",
    "OKTA_STATUS",
    "AUTHENTICATION_PROVIDER",
    "OKTA_ID",
    "STATUS_IN_OKTA",
    "LAST_OKTA_LOGIN",
    "LAST_PASSWORD_CHANGE",
]


class ReportChannel(Enum):
    """Report files written by a reconciliation run, plus the two cache artifacts"""
    MISSING_OKTA_ID = ("ForeseeUsersMissingOktaId.csv", False)
    INVALID_OKTA_ID = ("ForeseeUsersWithInvalidOktaId.csv", False)
    MISSING_FORESEE_ID = ("OktaUsersMissingForeseeId.csv", False)
    ORPHAN_OKTA_USERS = ("OrphanOktaUsersToDelete.csv", False)
    MISMATCHED_STATUS = ("MismatchedStatus.csv", False)
    PASSWORD_MIGRATED_BUT_NOT_ACTIVE = ("PasswordsMigratedButNotActive.csv", False)
    PASSWORDS_PROBABLY_MIGRATED = ("PasswordsProbablyMigrated.csv", False)
    PASSWORDS_MIGHT_NOT_BE_MIGRATED = ("PasswordsMightNotBeMigrated.csv", False)
    STATUS_COUNTS = ("StatusCounts.csv", False)
    PASSWORDS_NOT_MIGRATED = ("PasswordsNotMigrated.csv", False)
    OKTA_USER_CACHE = ("OktaUserCache", True)
    APP_USER_CACHE = ("AppUserCache", True)
    FULL_USER_LIST = ("FullUserList.csv", False)

    def __init__(self, filename: str, is_cache: bool):
        self.filename = filename
        self.is_cache = is_cache


COMPARISON_CHANNELS = frozenset({
    ReportChannel.FULL_USER_LIST,
    ReportChannel.MISMATCHED_STATUS,
    ReportChannel.PASSWORDS_MIGHT_NOT_BE_MIGRATED,
    ReportChannel.PASSWORDS_PROBABLY_MIGRATED,
    ReportChannel.PASSWORDS_NOT_MIGRATED,
    ReportChannel.PASSWORD_MIGRATED_BUT_NOT_ACTIVE,
})


def format_field(value: Any) -> str:
    """Render one report field; None becomes an empty field"""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class ReportSink:
    """Append-only, header-bearing report files in one directory"""

    def __init__(self, report_dir: Path):
        self.report_dir = Path(report_dir)
        self.logger = logging.getLogger(__name__)

    def path_for(self, channel: ReportChannel) -> Path:
        return self.report_dir / channel.filename

    def open(self) -> None:
        """Recreate every report channel and write comparison headers"""
        try:
            self.report_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Failed to create report directory {self.report_dir}: {e}")

        for channel in ReportChannel:
            if channel.is_cache:
                continue
            path = self.path_for(channel)
            try:
                with open(path, 'w', newline='', encoding='utf-8'):
                    pass
            except OSError as e:
                self.logger.error(f"Failed to recreate report file {path}: {e}")
                continue
            if channel in COMPARISON_CHANNELS:
                self.append(channel, COMPARISON_HEADER)

        self.logger.info(f"Initialized report files in {self.report_dir}")

    def append(self, channel: ReportChannel, row: Iterable[Any]) -> bool:
        """Append one comma separated line; failures are logged, never raised"""
        fields: List[str] = [format_field(value) for value in row]
        path = self.path_for(channel)
        try:
            with open(path, 'a', newline='', encoding='utf-8') as file:
                writer = csv.writer(file, lineterminator='\n')
                writer.writerow(fields)
        except Exception as e:
            self.logger.error(f"Failed to write message to file {path}. Message: {','.join(fields)}: {e}")
            return False
        return True

    def read_rows(self, channel: ReportChannel) -> List[List[str]]:
        """Read a channel back as parsed rows"""
        with open(self.path_for(channel), 'r', newline='', encoding='utf-8') as file:
            return list(csv.reader(file))
