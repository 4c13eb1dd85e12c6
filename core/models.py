# =============================================================================
# core/models.py - Okta and APP_USER data models
# =============================================================================

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, List, Optional, Generic, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar('T')


class UserStatus(Enum):
    """Okta user lifecycle status"""
    ACTIVE = "ACTIVE"
    PROVISIONED = "PROVISIONED"
    SUSPENDED = "SUSPENDED"
    DEPROVISIONED = "DEPROVISIONED"
    RECOVERY = "RECOVERY"
    STAGED = "STAGED"
    UNRECOGNIZED = "UNRECOGNIZED"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'UserStatus':
        """Map a raw Okta status string to a known status or UNRECOGNIZED"""
        if value is None:
            return cls.UNRECOGNIZED
        try:
            status = cls(value.strip().upper())
        except ValueError:
            return cls.UNRECOGNIZED
        return status


# Fixed column order of the status counts report
COUNTED_STATUSES = [
    UserStatus.ACTIVE,
    UserStatus.SUSPENDED,
    UserStatus.PROVISIONED,
    UserStatus.DEPROVISIONED,
    UserStatus.STAGED,
    UserStatus.RECOVERY,
]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (Okta or cache format) into a datetime"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return datetime.fromisoformat(text)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _optional_int(value: Any, label: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric {label}: {value!r}")
        return None


@dataclass(frozen=True)
class OktaUser:
    """Snapshot of one user in the Okta directory"""
    id: str
    status: UserStatus
    foreign_id: Optional[int] = None
    client_id: Optional[int] = None
    login: Optional[str] = None
    last_login: Optional[datetime] = None
    password_changed: Optional[datetime] = None
    raw_status: Optional[str] = None

    @property
    def status_label(self) -> str:
        """Status as written to reports; unrecognized values keep their raw text"""
        if self.status is UserStatus.UNRECOGNIZED:
            return self.raw_status or ""
        return self.status.value

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'OktaUser':
        """Build from an Okta /api/v1/users JSON object"""
        profile = payload.get('profile') or {}
        raw_status = payload.get('status')
        return cls(
            id=payload['id'],
            status=UserStatus.parse(raw_status),
            foreign_id=_optional_int(profile.get('foreseeId'), 'foreseeId'),
            client_id=_optional_int(profile.get('clientId'), 'clientId'),
            login=profile.get('login'),
            last_login=parse_timestamp(payload.get('lastLogin')),
            password_changed=parse_timestamp(payload.get('passwordChanged')),
            raw_status=raw_status,
        )

    def _known_status(self) -> Optional[str]:
        if self.status is UserStatus.UNRECOGNIZED:
            return None
        return self.status.value

    def to_api(self) -> Dict[str, Any]:
        """Serialize back to the Okta JSON shape (used by the cache)"""
        return {
            'id': self.id,
            'status': self.raw_status if self.raw_status is not None else self._known_status(),
            'lastLogin': format_timestamp(self.last_login),
            'passwordChanged': format_timestamp(self.password_changed),
            'profile': {
                'foreseeId': self.foreign_id,
                'clientId': self.client_id,
                'login': self.login,
            },
        }


@dataclass(frozen=True)
class AppUser:
    """One row of the local APP_USER table"""
    id: int
    client_id: Optional[int] = None
    okta_id: Optional[str] = None
    user_name: Optional[str] = None
    user_name_suffix: Optional[str] = None
    email: Optional[str] = None
    account_enabled: Optional[str] = None
    account_expired: Optional[str] = None
    account_locked: Optional[str] = None
    authentication_provider: Optional[str] = None
    okta_status: Optional[str] = None
    password_migrated: Optional[str] = None
    last_logon_date: Optional[datetime] = None
    has_password: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppUser':
        """Build from a cache entry or a repository row mapping"""
        return cls(
            id=int(data['id']),
            client_id=_optional_int(data.get('client_id'), 'client_id'),
            okta_id=data.get('okta_id'),
            user_name=data.get('user_name'),
            user_name_suffix=data.get('user_name_suffix'),
            email=data.get('email'),
            account_enabled=data.get('account_enabled'),
            account_expired=data.get('account_expired'),
            account_locked=data.get('account_locked'),
            authentication_provider=data.get('authentication_provider'),
            okta_status=data.get('okta_status'),
            password_migrated=data.get('password_migrated'),
            last_logon_date=parse_timestamp(data.get('last_logon_date')),
            has_password=bool(data.get('has_password', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'client_id': self.client_id,
            'okta_id': self.okta_id,
            'user_name': self.user_name,
            'user_name_suffix': self.user_name_suffix,
            'email': self.email,
            'account_enabled': self.account_enabled,
            'account_expired': self.account_expired,
            'account_locked': self.account_locked,
            'authentication_provider': self.authentication_provider,
            'okta_status': self.okta_status,
            'password_migrated': self.password_migrated,
            'last_logon_date': format_timestamp(self.last_logon_date),
            'has_password': self.has_password,
        }


@dataclass
class StatusCounts:
    """Tally of Okta users per known lifecycle status"""
    counts: Dict[UserStatus, int] = field(
        default_factory=lambda: {status: 0 for status in COUNTED_STATUSES}
    )
    unrecognized: int = 0

    def add(self, status: UserStatus) -> bool:
        """Count a status; returns False when it is not one of the tallied statuses"""
        if status not in self.counts:
            self.unrecognized += 1
            return False
        self.counts[status] += 1
        return True

    def as_row(self) -> List[int]:
        return [self.counts[status] for status in COUNTED_STATUSES]

    @property
    def total(self) -> int:
        return sum(self.counts.values())


@dataclass
class PhaseAResult:
    """Indices built from the Okta users"""
    foreign_id_index: Dict[int, List[OktaUser]] = field(default_factory=dict)
    remote_by_id: Dict[str, OktaUser] = field(default_factory=dict)
    status_counts: StatusCounts = field(default_factory=StatusCounts)
    missing_foreign_id: List[OktaUser] = field(default_factory=list)

    @property
    def duplicate_foreign_ids(self) -> Dict[int, List[OktaUser]]:
        return {key: users for key, users in self.foreign_id_index.items() if len(users) > 1}


@dataclass
class PhaseBResult:
    """Outcome of matching APP_USER rows against Okta users"""
    matched: int = 0
    missing_okta_id: List[AppUser] = field(default_factory=list)
    invalid_okta_id: List[AppUser] = field(default_factory=list)
    rule_hits: Dict[str, int] = field(default_factory=dict)

    def record_hit(self, rule: str) -> None:
        self.rule_hits[rule] = self.rule_hits.get(rule, 0) + 1


@dataclass
class ReconciliationResult:
    """Summary of a full reconciliation pass"""
    phase_a: PhaseAResult
    phase_b: PhaseBResult
    orphans: List[OktaUser] = field(default_factory=list)

    @property
    def status_counts(self) -> StatusCounts:
        return self.phase_a.status_counts

    @property
    def duplicate_foreign_ids(self) -> Dict[int, List[OktaUser]]:
        return self.phase_a.duplicate_foreign_ids


@dataclass(frozen=True)
class CacheHit(Generic[T]):
    """Cached snapshot was found and decoded"""
    data: List[T]


@dataclass(frozen=True)
class CacheMiss:
    """No usable cached snapshot"""
    reason: str = "absent"


CacheResult = Union[CacheHit, CacheMiss]
