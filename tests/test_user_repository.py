from datetime import datetime

import pytest
from sqlalchemy import create_engine, insert

from core.user_repository import (
    SpreadsheetAppUserRepository, SqlAppUserRepository, app_user_table, metadata
)


def app_user_row(**values):
    row = {column.name: None for column in app_user_table.columns}
    row.update(values)
    return row


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'app_user.db'}")
    metadata.create_all(engine)
    with engine.begin() as connection:
        connection.execute(insert(app_user_table), [
            app_user_row(ID=1, CLIENT_ID=7, OKTA_ID="00u1", USERNAME="alice",
                         USERNAME_SUFFIX="example.com", EMAIL="alice@example.com",
                         PASSWORD="hash", ACCOUNT_ENABLED="Y", AUTHENTICATION_PROVIDER="FORESEE",
                         OKTA_STATUS="PASSWORD_MIGRATED", PASSWORD_MIGRATED="Y",
                         LAST_LOGON_DATE=datetime(2018, 2, 3, 4, 5, 6)),
            app_user_row(ID=2, CLIENT_ID=7, USERNAME="bob", EMAIL="bob@example.com",
                         ACCOUNT_ENABLED="N", PASSWORD_MIGRATED="N"),
            app_user_row(ID=3, CLIENT_ID=8, OKTA_ID="00u3", USERNAME="carol",
                         EMAIL="carol@example.com", ACCOUNT_ENABLED="Y"),
        ])
    yield engine
    engine.dispose()


def test_sql_repository_fetches_only_requested_ids(engine):
    users = SqlAppUserRepository(engine=engine).find_by_id_in([1, 2, 99])

    assert [user.id for user in users] == [1, 2]
    alice, bob = users
    assert alice.okta_id == "00u1"
    assert alice.has_password is True
    assert alice.last_logon_date == datetime(2018, 2, 3, 4, 5, 6)
    assert bob.okta_id is None
    assert bob.has_password is False
    assert bob.last_logon_date is None


def test_sql_repository_empty_id_set(engine):
    assert SqlAppUserRepository(engine=engine).find_by_id_in([]) == []


def test_sql_repository_requires_a_source():
    with pytest.raises(ValueError):
        SqlAppUserRepository()


def test_spreadsheet_repository_reads_csv_export(tmp_path):
    export = tmp_path / "app_user.csv"
    export.write_text(
        "id,client_id,okta_id,username,username_suffix,email,password,account_enabled,"
        "authentication_provider,okta_status,password_migrated,last_logon_date\n"
        "1,7,00u1,alice,example.com,alice@example.com,hash,Y,FORESEE,PASSWORD_MIGRATED,Y,2018-02-03 04:05:06\n"
        "2,7,,bob,,bob@example.com,,N,,,N,\n"
        "3,8,00u3,carol,,carol@example.com,,Y,,,N,\n",
        encoding="utf-8",
    )

    repository = SpreadsheetAppUserRepository(str(export))
    users = repository.find_by_id_in({2, 1})

    assert [user.id for user in users] == [1, 2]
    alice, bob = users
    assert alice.client_id == 7
    assert alice.has_password is True
    assert alice.last_logon_date == datetime(2018, 2, 3, 4, 5, 6)
    assert alice.okta_status == "PASSWORD_MIGRATED"
    assert bob.okta_id is None
    assert bob.user_name_suffix is None
    assert bob.has_password is False
    assert bob.last_logon_date is None


def test_spreadsheet_repository_rejects_missing_columns(tmp_path):
    export = tmp_path / "bad.csv"
    export.write_text("client_id,email\n7,x@example.com\n", encoding="utf-8")

    with pytest.raises(ValueError):
        SpreadsheetAppUserRepository(str(export)).load_data()


def test_sql_repository_never_loads_password_hash(engine, monkeypatch):
    import core.user_repository as repository_module

    seen_rows = []
    original = repository_module.row_to_app_user

    def recording(row):
        seen_rows.append(row)
        return original(row)

    monkeypatch.setattr(repository_module, "row_to_app_user", recording)

    users = SqlAppUserRepository(engine=engine).find_by_id_in([1, 2])

    assert [user.has_password for user in users] == [True, False]
    assert seen_rows
    assert all("PASSWORD" not in row for row in seen_rows)
    assert all("hash" not in row.values() for row in seen_rows)


def test_spreadsheet_repository_drops_password_column(tmp_path):
    export = tmp_path / "app_user.csv"
    export.write_text(
        "id,username,password\n"
        "1,alice,hash\n"
        "2,bob,\n",
        encoding="utf-8",
    )

    repository = SpreadsheetAppUserRepository(str(export))
    data = repository.load_data()

    assert "PASSWORD" not in data.columns
    assert [user.has_password for user in repository.find_by_id_in({1, 2})] == [True, False]
