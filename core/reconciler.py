# =============================================================================
# core/reconciler.py - Okta vs APP_USER matching and classification
# =============================================================================

import logging
from datetime import datetime, timezone
from typing import Callable, Collection, List, Optional, Set

from core.models import (
    AppUser, OktaUser, PhaseAResult, PhaseBResult, ReconciliationResult,
    UserStatus, COUNTED_STATUSES
)
from core.username import normalize_login as default_normalize_login
from utils.report_sink import ReportChannel, ReportSink

PASSWORD_MIGRATED = "PASSWORD_MIGRATED"
FORESEE_PROVIDER = "FORESEE"

# Last release before the password migration cutover
LAST_RELEASE = datetime(2017, 12, 11)

OrphanHandler = Callable[[OktaUser], None]
LoginNormalizer = Callable[[Optional[str], Optional[str], Optional[str]], str]


def equals_ignore_case(value: Optional[str], expected: str) -> bool:
    """Case-insensitive equality; None never matches"""
    return value is not None and value.lower() == expected.lower()


def is_after(value: Optional[datetime], reference: datetime) -> bool:
    """Strictly-after comparison that tolerates aware and naive timestamps"""
    if value is None:
        return False
    if value.tzinfo is not None and reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    elif value.tzinfo is None and reference.tzinfo is not None:
        value = value.replace(tzinfo=timezone.utc)
    return value > reference


# -----------------------------------------------------------------------------
# Classification rules. Each takes a validly matched pair and is independent.
# -----------------------------------------------------------------------------

def is_mismatched_status(app_user: AppUser, okta_user: OktaUser) -> bool:
    """Account enabled flag disagrees with the Okta lifecycle status"""
    if equals_ignore_case(app_user.account_enabled, "Y"):
        return okta_user.status is UserStatus.SUSPENDED
    if equals_ignore_case(app_user.account_enabled, "N"):
        return okta_user.status not in (UserStatus.SUSPENDED, UserStatus.PROVISIONED)
    return False


def password_might_not_be_migrated(app_user: AppUser, okta_user: OktaUser) -> bool:
    """Marked migrated on APP_USER but still PROVISIONED in Okta"""
    return (equals_ignore_case(app_user.okta_status, PASSWORD_MIGRATED)
            and okta_user.status is UserStatus.PROVISIONED)


def password_probably_migrated(app_user: AppUser, okta_user: OktaUser) -> bool:
    """Not marked migrated, but a FORESEE-authenticated user is ACTIVE in Okta"""
    return (app_user.okta_status != PASSWORD_MIGRATED
            and equals_ignore_case(app_user.authentication_provider, FORESEE_PROVIDER)
            and okta_user.status is UserStatus.ACTIVE)


def password_not_migrated(app_user: AppUser, okta_user: OktaUser,
                          reference: datetime = LAST_RELEASE) -> bool:
    """Recently active local password that never made it to Okta"""
    return (app_user.okta_status != PASSWORD_MIGRATED
            and equals_ignore_case(app_user.password_migrated, "N")
            and okta_user.status is not UserStatus.ACTIVE
            and is_after(app_user.last_logon_date, reference)
            and app_user.has_password)


def migrated_but_not_active(app_user: AppUser, okta_user: OktaUser) -> bool:
    """Password migrated by either marker, yet the Okta user is not ACTIVE"""
    return ((app_user.okta_status == PASSWORD_MIGRATED
             or equals_ignore_case(app_user.password_migrated, "Y"))
            and okta_user.status is not UserStatus.ACTIVE)


# -----------------------------------------------------------------------------
# Report rows
# -----------------------------------------------------------------------------

def okta_user_row(okta_user: OktaUser) -> list:
    return [
        okta_user.id,
        okta_user.client_id,
        okta_user.foreign_id,
        okta_user.login,
        okta_user.status_label,
    ]


def app_user_row(app_user: AppUser) -> list:
    return [
        app_user.client_id,
        app_user.account_enabled,
        app_user.user_name,
        app_user.okta_status,
        app_user.okta_id,
        app_user.authentication_provider,
    ]


def comparison_row(app_user: AppUser, okta_user: Optional[OktaUser]) -> list:
    return [
        app_user.client_id,
        app_user.id,
        app_user.account_enabled,
        app_user.last_logon_date,
        app_user.user_name,
        app_user.password_migrated,
        app_user.okta_status,
        app_user.authentication_provider,
        app_user.okta_id,
        okta_user.status_label if okta_user else "n/a",
        okta_user.last_login if okta_user else "n/a",
        okta_user.password_changed if okta_user else "n/a",
    ]


class Reconciler:
    """
    Three sequential passes over one run's user sets.

    Phase A indexes the Okta users and tallies statuses, Phase B matches APP_USER
    rows against the index and classifies each match, Phase C reports the Okta
    users nothing matched.
    """

    def __init__(self, sink: ReportSink,
                 normalize_login: LoginNormalizer = default_normalize_login,
                 orphan_handler: Optional[OrphanHandler] = None,
                 reference_date: datetime = LAST_RELEASE):
        self.sink = sink
        self.normalize_login = normalize_login
        self.orphan_handler = orphan_handler
        self.reference_date = reference_date
        self.logger = logging.getLogger(__name__)
        self.rules = [
            ("mismatched_status", ReportChannel.MISMATCHED_STATUS, is_mismatched_status),
            ("might_not_be_migrated", ReportChannel.PASSWORDS_MIGHT_NOT_BE_MIGRATED,
             password_might_not_be_migrated),
            ("probably_migrated", ReportChannel.PASSWORDS_PROBABLY_MIGRATED,
             password_probably_migrated),
            ("not_migrated", ReportChannel.PASSWORDS_NOT_MIGRATED,
             lambda app, okta: password_not_migrated(app, okta, self.reference_date)),
            ("migrated_but_not_active", ReportChannel.PASSWORD_MIGRATED_BUT_NOT_ACTIVE,
             migrated_but_not_active),
        ]

    def run(self, okta_users: List[OktaUser],
            load_app_users: Callable[[Set[int]], List[AppUser]]) -> ReconciliationResult:
        """Run all phases; APP_USER rows are loaded for the indexed foreign ids"""
        phase_a = self.build_indices(okta_users)
        app_users = load_app_users(set(phase_a.foreign_id_index))
        phase_b = self.match_users(app_users, phase_a)
        orphans = self.report_orphans(phase_a)
        return ReconciliationResult(phase_a=phase_a, phase_b=phase_b, orphans=orphans)

    def build_indices(self, okta_users: List[OktaUser]) -> PhaseAResult:
        """Phase A: index Okta users by foreign id and Okta id, count statuses"""
        result = PhaseAResult()

        for okta_user in okta_users:
            if okta_user.foreign_id is None:
                result.missing_foreign_id.append(okta_user)
                self.sink.append(ReportChannel.MISSING_FORESEE_ID, okta_user_row(okta_user))
                continue

            result.foreign_id_index.setdefault(okta_user.foreign_id, []).append(okta_user)
            result.remote_by_id[okta_user.id] = okta_user

            if not result.status_counts.add(okta_user.status):
                self.logger.warning(
                    f"Okta user {okta_user.login} has unexpected status {okta_user.status_label}"
                )

        for foreign_id, users in result.duplicate_foreign_ids.items():
            self.logger.warning(
                f"Foresee id {foreign_id} is shared by {len(users)} Okta users: "
                f"{', '.join(user.id for user in users)}"
            )

        self.sink.append(ReportChannel.STATUS_COUNTS, [status.value for status in COUNTED_STATUSES])
        self.sink.append(ReportChannel.STATUS_COUNTS, result.status_counts.as_row())

        self.logger.info(
            f"Indexed {len(result.remote_by_id)} Okta users; "
            f"{len(result.missing_foreign_id)} missing a Foresee id"
        )
        return result

    def expected_login(self, app_user: AppUser) -> Optional[str]:
        """Okta login the APP_USER row should map to, or None if it cannot be derived"""
        try:
            return self.normalize_login(app_user.user_name, app_user.user_name_suffix, app_user.email)
        except Exception as e:
            self.logger.error(f"Invalid username: {app_user.user_name}: {e}")
            return None

    def find_match(self, app_user: AppUser, phase_a: PhaseAResult) -> Optional[OktaUser]:
        """Okta user matching by both Okta id and login, or None"""
        matched = phase_a.remote_by_id.get(app_user.okta_id)
        if matched is None:
            return None

        expected = self.expected_login(app_user)
        if expected is not None and not equals_ignore_case(matched.login, expected):
            return None
        return matched

    def match_users(self, app_users: Collection[AppUser], phase_a: PhaseAResult) -> PhaseBResult:
        """Phase B: match and classify APP_USER rows; consumes matched index entries"""
        result = PhaseBResult()
        seen: Set[int] = set()

        for app_user in app_users:
            if app_user.id in seen:
                self.logger.warning(f"Skipping repeated APP_USER row {app_user.id}")
                continue
            seen.add(app_user.id)

            if app_user.okta_id is None:
                result.missing_okta_id.append(app_user)
                self.sink.append(ReportChannel.MISSING_OKTA_ID, app_user_row(app_user))
                continue

            okta_user = self.find_match(app_user, phase_a)
            if okta_user is None:
                result.invalid_okta_id.append(app_user)
                self.sink.append(ReportChannel.INVALID_OKTA_ID, app_user_row(app_user))
                continue

            row = comparison_row(app_user, okta_user)
            self.sink.append(ReportChannel.FULL_USER_LIST, row)

            for rule_name, channel, applies in self.rules:
                if applies(app_user, okta_user):
                    result.record_hit(rule_name)
                    self.sink.append(channel, row)

            del phase_a.remote_by_id[app_user.okta_id]
            result.matched += 1

        self.logger.info(
            f"Matched {result.matched} users; {len(result.missing_okta_id)} missing an Okta id, "
            f"{len(result.invalid_okta_id)} with an invalid Okta id"
        )
        return result

    def report_orphans(self, phase_a: PhaseAResult) -> List[OktaUser]:
        """Phase C: every Okta user left in the index has no APP_USER match"""
        orphans = list(phase_a.remote_by_id.values())

        for okta_user in orphans:
            self.sink.append(ReportChannel.ORPHAN_OKTA_USERS, okta_user_row(okta_user))
            if self.orphan_handler is not None and okta_user.status is not UserStatus.DEPROVISIONED:
                try:
                    self.orphan_handler(okta_user)
                except Exception as e:
                    self.logger.error(f"Orphan handler failed for Okta user {okta_user.id}: {e}")

        self.logger.info(f"Found {len(orphans)} orphan Okta users")
        return orphans
