from datetime import datetime

from core.models import UserStatus
from core.service import UserReconciliationService
from utils.report_sink import ReportChannel, ReportSink

from conftest import make_app_user, make_okta_user

OKTA_PAGES = {
    None: ([
        make_okta_user("R1", 100, "alice@example.com", status=UserStatus.ACTIVE),
        make_okta_user("R2", None, "nobody@example.com", status=UserStatus.STAGED),
    ], "c1"),
    "c1": ([
        make_okta_user("R3", 101, "bob@example.com", status=UserStatus.PROVISIONED),
        make_okta_user("R4", 102, "orphan@example.com", status=UserStatus.SUSPENDED),
    ], None),
}

APP_USERS = {
    100: make_app_user(100, "R1", "alice", account_enabled="N"),
    101: make_app_user(101, "R3", "bob", password_migrated="N", has_password=True,
                       last_logon_date=datetime(2018, 4, 1)),
    102: make_app_user(102, None, "carol"),
}


def fetch_page(cursor, page_size):
    return OKTA_PAGES[cursor]


def fetch_by_ids(ids):
    return [APP_USERS[user_id] for user_id in sorted(ids) if user_id in APP_USERS]


def report_snapshot(sink):
    return {
        channel: sink.path_for(channel).read_bytes()
        for channel in ReportChannel if not channel.is_cache
    }


def test_execute_writes_every_report(tmp_path):
    sink = ReportSink(tmp_path / "logs")
    result = UserReconciliationService(sink, fetch_page, fetch_by_ids).execute()

    assert result.phase_b.matched == 2
    assert [user.id for user in result.orphans] == ["R4"]
    assert [user.id for user in result.phase_a.missing_foreign_id] == ["R2"]
    assert [user.id for user in result.phase_b.missing_okta_id] == [102]

    assert len(sink.read_rows(ReportChannel.FULL_USER_LIST)) == 3
    assert len(sink.read_rows(ReportChannel.MISMATCHED_STATUS)) == 2
    assert len(sink.read_rows(ReportChannel.PASSWORDS_NOT_MIGRATED)) == 2
    assert sink.read_rows(ReportChannel.STATUS_COUNTS)[1] == ["1", "1", "1", "0", "0", "0"]
    assert sink.path_for(ReportChannel.OKTA_USER_CACHE).exists()
    assert sink.path_for(ReportChannel.APP_USER_CACHE).exists()


def test_rerun_uses_caches(tmp_path):
    sink = ReportSink(tmp_path / "logs")
    UserReconciliationService(sink, fetch_page, fetch_by_ids).execute()
    first = report_snapshot(sink)

    def unreachable(*args):
        raise AssertionError("cache should have been used")

    UserReconciliationService(sink, unreachable, unreachable).execute()

    assert report_snapshot(sink) == first


def test_runs_with_cleared_cache_are_byte_identical(tmp_path):
    first_sink = ReportSink(tmp_path / "first")
    second_sink = ReportSink(tmp_path / "second")

    UserReconciliationService(first_sink, fetch_page, fetch_by_ids).execute()
    UserReconciliationService(second_sink, fetch_page, fetch_by_ids).execute()

    assert report_snapshot(first_sink) == report_snapshot(second_sink)
