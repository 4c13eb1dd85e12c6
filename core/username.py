# =============================================================================
# core/username.py - Expected Okta login derivation
# =============================================================================

import re
from typing import Optional


class InvalidUsernameError(ValueError):
    """Raised when an APP_USER username cannot be turned into an Okta login"""


_WHITESPACE = re.compile(r"\s")


def _clean(value: Optional[str]) -> str:
    return value.strip() if value else ''


def normalize_login(user_name: Optional[str], suffix: Optional[str],
                    email: Optional[str]) -> str:
    """
    Derive the Okta login an APP_USER row should have.

    A username that already looks like an address is used as-is. Otherwise the
    username suffix supplies the domain, falling back to the email's domain.

    Raises:
        InvalidUsernameError: username is empty, contains whitespace, or no
            domain can be derived.
    """
    name = _clean(user_name)
    if not name:
        raise InvalidUsernameError("Username is empty")
    if _WHITESPACE.search(name):
        raise InvalidUsernameError(f"Username contains whitespace: {name!r}")

    if '@' in name:
        local_part, _, domain = name.partition('@')
        if not local_part or not domain or '@' in domain:
            raise InvalidUsernameError(f"Malformed username: {name!r}")
        return name.lower()

    domain = _clean(suffix).lstrip('@')
    if not domain:
        email_value = _clean(email)
        if '@' in email_value:
            domain = email_value.rsplit('@', 1)[1]

    if not domain:
        raise InvalidUsernameError(f"No domain available for username: {name!r}")

    return f"{name}@{domain}".lower()
