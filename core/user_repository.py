# =============================================================================
# core/user_repository.py - APP_USER lookups (database or spreadsheet export)
# =============================================================================

import logging
from abc import ABC, abstractmethod
from typing import Any, Collection, Dict, List, Optional

import pandas as pd
from sqlalchemy import (
    Column, DateTime, Integer, MetaData, String, Table, create_engine, select
)
from sqlalchemy.engine import Engine

from core.models import AppUser

metadata = MetaData()

app_user_table = Table(
    "APP_USER",
    metadata,
    Column("ID", Integer, primary_key=True),
    Column("CLIENT_ID", Integer, nullable=False),
    Column("OKTA_ID", String),
    Column("USERNAME", String, nullable=False),
    Column("USERNAME_SUFFIX", String),
    Column("EMAIL", String),
    Column("PASSWORD", String),
    Column("ACCOUNT_ENABLED", String(1)),
    Column("ACCOUNT_EXPIRED", String(1)),
    Column("ACCOUNT_LOCKED", String(1)),
    Column("AUTHENTICATION_PROVIDER", String),
    Column("OKTA_STATUS", String),
    Column("PASSWORD_MIGRATED", String(1)),
    Column("LAST_LOGON_DATE", DateTime),
)

# APP_USER column -> AppUser field
COLUMN_MAP = {
    'ID': 'id',
    'CLIENT_ID': 'client_id',
    'OKTA_ID': 'okta_id',
    'USERNAME': 'user_name',
    'USERNAME_SUFFIX': 'user_name_suffix',
    'EMAIL': 'email',
    'ACCOUNT_ENABLED': 'account_enabled',
    'ACCOUNT_EXPIRED': 'account_expired',
    'ACCOUNT_LOCKED': 'account_locked',
    'AUTHENTICATION_PROVIDER': 'authentication_provider',
    'OKTA_STATUS': 'okta_status',
    'PASSWORD_MIGRATED': 'password_migrated',
    'LAST_LOGON_DATE': 'last_logon_date',
}


def row_to_app_user(row: Dict[str, Any]) -> AppUser:
    """Map an APP_USER row (column name keys) to an AppUser"""
    data = {field: row.get(column) for column, field in COLUMN_MAP.items()}
    data['has_password'] = bool(row.get('HAS_PASSWORD'))
    return AppUser.from_dict(data)


class AppUserRepository(ABC):
    """Source of APP_USER rows"""

    @abstractmethod
    def find_by_id_in(self, user_ids: Collection[int]) -> List[AppUser]:
        """Return the users whose ID is in user_ids"""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        pass


class SqlAppUserRepository(AppUserRepository):
    """APP_USER lookups through SQLAlchemy"""

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None):
        if engine is None and not database_url:
            raise ValueError("Either database_url or engine is required")
        self.engine = engine if engine is not None else create_engine(database_url)
        self._owns_engine = engine is None
        self.logger = logging.getLogger(__name__)

    def find_by_id_in(self, user_ids: Collection[int]) -> List[AppUser]:
        if not user_ids:
            return []

        query = (
            select(
                *[app_user_table.c[column] for column in COLUMN_MAP],
                app_user_table.c.PASSWORD.isnot(None).label('HAS_PASSWORD')
            )
            .where(app_user_table.c.ID.in_(list(user_ids)))
            .order_by(app_user_table.c.ID)
        )
        with self.engine.connect() as connection:
            rows = connection.execute(query).mappings().all()

        self.logger.debug(f"Read {len(rows)} APP_USER rows for {len(user_ids)} ids")
        return [row_to_app_user(dict(row)) for row in rows]

    def close(self) -> None:
        if self._owns_engine:
            self.engine.dispose()


class SpreadsheetAppUserRepository(AppUserRepository):
    """APP_USER lookups against a CSV or Excel export of the table"""

    def __init__(self, file_path: str, sheet_name: Optional[str] = None):
        self.file_path = file_path
        self.sheet_name = sheet_name
        self.data: Optional[pd.DataFrame] = None
        self.logger = logging.getLogger(self.__class__.__name__)

    def load_data(self) -> pd.DataFrame:
        """Load the export and normalize column names"""
        if self.file_path.lower().endswith(('.xlsx', '.xls')):
            if self.sheet_name:
                df = pd.read_excel(self.file_path, sheet_name=self.sheet_name, dtype=object)
            else:
                df = pd.read_excel(self.file_path, dtype=object)
        else:
            df = pd.read_csv(self.file_path, dtype=str, keep_default_na=False, na_values=[''])

        df.columns = df.columns.str.strip().str.upper()

        missing = [column for column in ('ID', 'USERNAME') if column not in df.columns]
        if missing:
            raise ValueError(f"Missing required columns in {self.file_path}: {missing}")

        df = df.dropna(how='all')

        # Keep only whether a password is set, never the hash itself
        if 'PASSWORD' in df.columns:
            df['HAS_PASSWORD'] = df['PASSWORD'].notna()
            df = df.drop(columns=['PASSWORD'])
        else:
            df['HAS_PASSWORD'] = False

        df['ID'] = pd.to_numeric(df['ID'], errors='raise').astype('int64')
        if 'LAST_LOGON_DATE' in df.columns:
            df['LAST_LOGON_DATE'] = pd.to_datetime(df['LAST_LOGON_DATE'], errors='coerce')

        self.data = df
        self.logger.info(f"Loaded {len(df)} APP_USER rows from {self.file_path}")
        return df

    def find_by_id_in(self, user_ids: Collection[int]) -> List[AppUser]:
        if self.data is None:
            self.load_data()

        subset = self.data[self.data['ID'].isin(list(user_ids))].sort_values('ID')
        return [row_to_app_user(self._clean_row(record)) for record in subset.to_dict('records')]

    @staticmethod
    def _clean_row(record: Dict[str, Any]) -> Dict[str, Any]:
        """Replace pandas missing markers with None and Timestamps with datetimes"""
        cleaned = {}
        for key, value in record.items():
            if value is None or (not isinstance(value, str) and pd.isna(value)):
                cleaned[key] = None
            elif isinstance(value, pd.Timestamp):
                cleaned[key] = value.to_pydatetime()
            else:
                cleaned[key] = value
        return cleaned
