# =============================================================================
# core/okta_client.py - Okta Users API client
# =============================================================================

import logging
from typing import List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from core.models import OktaUser
from utils.pagination import extract_next_cursor

OKTA_TOKEN_PREFIX = "SSWS "
OKTA_USERS_PATH = "/api/v1/users"
MEDIA_TYPE_JSON = "application/json"
DEFAULT_PAGE_SIZE = 200


class OktaUsersClient:
    """Read-mostly client for the Okta Users API"""

    def __init__(self, base_url: str, api_token: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip('/')
        self.api_token = api_token
        self.timeout = timeout
        self.session: Optional[requests.Session] = None
        self.logger = logging.getLogger(__name__)

    def __enter__(self):
        """Context manager entry"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.disconnect()

    def connect(self) -> None:
        """Create the HTTP session with auth headers and retry on rate limits"""
        session = requests.Session()
        session.headers.update({
            'Authorization': OKTA_TOKEN_PREFIX + self.api_token,
            'Accept': MEDIA_TYPE_JSON,
            'Content-Type': MEDIA_TYPE_JSON,
        })
        retry = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        self.session = session
        self.logger.info(f"Opened Okta session for {self.base_url}")

    def disconnect(self) -> None:
        """Close the HTTP session"""
        if self.session:
            self.session.close()
            self.session = None
            self.logger.info("Closed Okta session")

    def _require_session(self) -> requests.Session:
        if not self.session:
            raise ConnectionError("Not connected to Okta")
        return self.session

    def fetch_page(self, cursor: Optional[str],
                   page_size: int = DEFAULT_PAGE_SIZE) -> Tuple[List[OktaUser], Optional[str]]:
        """Fetch one page of users; returns the users and the next cursor"""
        session = self._require_session()

        params = {'limit': page_size}
        if cursor:
            params['after'] = cursor

        response = session.get(
            f"{self.base_url}{OKTA_USERS_PATH}",
            params=params,
            timeout=self.timeout
        )
        response.raise_for_status()

        body = response.json() or []
        users = [OktaUser.from_api(item) for item in body]
        next_cursor = extract_next_cursor(response.headers.get('link'))

        self.logger.debug(f"Fetched {len(users)} Okta users (after={cursor}, next={next_cursor})")
        return users, next_cursor

    def deactivate_user(self, okta_id: str) -> None:
        """Deactivate a user in Okta. Not called by the default reconciliation run."""
        session = self._require_session()
        response = session.post(
            f"{self.base_url}{OKTA_USERS_PATH}/{okta_id}/lifecycle/deactivate",
            timeout=self.timeout
        )
        response.raise_for_status()
        self.logger.info(f"Deactivated Okta user {okta_id}")
