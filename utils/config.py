# =============================================================================
# utils/config.py - Configuration management
# =============================================================================

import os
from typing import Optional, List
from dotenv import load_dotenv


class Config:
    """Configuration management"""

    def __init__(self):
        load_dotenv()

    @property
    def okta_url(self) -> Optional[str]:
        return os.getenv("OKTA_URL")

    @property
    def okta_api_token(self) -> Optional[str]:
        return os.getenv("OKTA_API_TOKEN")

    @property
    def okta_page_size(self) -> int:
        return int(os.getenv("OKTA_PAGE_SIZE", "200"))

    @property
    def database_url(self) -> Optional[str]:
        return os.getenv("DATABASE_URL")

    @property
    def app_user_file(self) -> Optional[str]:
        return os.getenv("APP_USER_FILE")

    @property
    def report_dir(self) -> str:
        return os.getenv("REPORT_DIR", "logs")

    def validate_okta_config(self) -> bool:
        """Validate that all required Okta configuration is present"""
        return all([self.okta_url, self.okta_api_token])

    def get_missing_okta_vars(self) -> List[str]:
        """Get list of missing Okta configuration variables"""
        vars_and_names = [
            (self.okta_url, "OKTA_URL"),
            (self.okta_api_token, "OKTA_API_TOKEN")
        ]
        return [name for var, name in vars_and_names if not var]

    def validate_local_config(self, app_user_file: Optional[str] = None) -> bool:
        """APP_USER needs either a database URL or a spreadsheet export"""
        return bool(app_user_file or self.app_user_file or self.database_url)

    def get_missing_local_vars(self) -> List[str]:
        """Get list of missing APP_USER source variables"""
        if self.validate_local_config():
            return []
        return ["DATABASE_URL or APP_USER_FILE"]
