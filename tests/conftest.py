from datetime import datetime

import pytest

from core.models import AppUser, OktaUser, UserStatus
from utils.report_sink import ReportSink


def make_okta_user(okta_id: str, foreign_id=None, login=None, status=UserStatus.ACTIVE,
                   client_id=7, raw_status=None) -> OktaUser:
    return OktaUser(
        id=okta_id,
        status=status,
        foreign_id=foreign_id,
        client_id=client_id,
        login=login,
        last_login=datetime(2018, 3, 1, 9, 30),
        password_changed=datetime(2018, 1, 15, 12, 0),
        raw_status=raw_status if raw_status is not None else status.value,
    )


def make_app_user(user_id: int, okta_id=None, user_name=None, **overrides) -> AppUser:
    values = dict(
        id=user_id,
        client_id=7,
        okta_id=okta_id,
        user_name=user_name,
        user_name_suffix="example.com",
        email=f"{user_name}@example.com" if user_name else None,
        account_enabled="Y",
        authentication_provider="OKTA",
        okta_status=None,
        password_migrated="N",
        last_logon_date=None,
        has_password=False,
    )
    values.update(overrides)
    return AppUser(**values)


@pytest.fixture
def sink(tmp_path):
    report_sink = ReportSink(tmp_path / "reports")
    report_sink.open()
    return report_sink
