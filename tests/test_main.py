"""Tests for the command-line entry point and connection handling."""

import pytest
from pymongo.errors import ServerSelectionTimeoutError

import database
import main
from errors import ConnectionFailure
from schemas import COLLECTION_NAMES


@pytest.fixture
def patched_client(client, monkeypatch):
    monkeypatch.setattr(database, "get_client", lambda url=None, timeout_ms=None: client)
    return client


def test_init_then_check(patched_client):
    assert main.main(["--db", "cli_test", "init"]) == 0
    db = patched_client["cli_test"]
    assert sorted(db.list_collection_names()) == sorted(COLLECTION_NAMES)
    assert main.main(["--db", "cli_test", "check"]) == 0


def test_init_twice_succeeds(patched_client):
    assert main.main(["--db", "cli_test", "init"]) == 0
    assert main.main(["--db", "cli_test", "init"]) == 0
    assert patched_client["cli_test"]["users"].count_documents({}) == 1


def test_init_no_seed(patched_client):
    assert main.main(["--db", "cli_test", "init", "--no-seed"]) == 0
    assert patched_client["cli_test"]["feed_cache"].count_documents({}) == 0


def test_check_reports_drift(patched_client):
    assert main.main(["--db", "cli_test", "check"]) == 1


def test_index_conflict_exit_code(patched_client):
    db = patched_client["cli_test"]
    db.create_collection("users")
    db["users"].create_index("email", name="email_1")
    assert main.main(["--db", "cli_test", "init"]) == 3


def test_unseed(patched_client):
    main.main(["--db", "cli_test", "init"])
    assert main.main(["--db", "cli_test", "unseed"]) == 0
    assert patched_client["cli_test"]["users"].count_documents({}) == 0


def test_purge(patched_client):
    main.main(["--db", "cli_test", "init"])
    assert main.main(["--db", "cli_test", "purge", "--days", "30"]) == 0
    assert patched_client["cli_test"]["users"].count_documents({}) == 1


def test_unreachable_database_exits_non_zero(monkeypatch):
    def refuse(*args, **kwargs):
        raise ServerSelectionTimeoutError("connection refused")

    monkeypatch.setattr(database, "MongoClient", refuse)
    assert main.main(["--uri", "mongodb://nowhere:1", "init"]) == 2


def test_get_client_wraps_driver_errors(monkeypatch):
    def refuse(*args, **kwargs):
        raise ServerSelectionTimeoutError("connection refused")

    monkeypatch.setattr(database, "MongoClient", refuse)
    with pytest.raises(ConnectionFailure):
        database.get_client("mongodb://nowhere:1", timeout_ms=10)


def test_get_database_default_name(client):
    assert database.get_database(client).name == database.DATABASE_NAME
    assert database.get_database(client, "other").name == "other"


def test_command_required():
    with pytest.raises(SystemExit):
        main.main([])


@pytest.mark.parametrize("days", ["0", "-3"])
def test_purge_rejects_non_positive_days(patched_client, days):
    main.main(["--db", "cli_test", "init"])
    with pytest.raises(SystemExit) as exc:
        main.main(["--db", "cli_test", "purge", "--days", days])
    assert exc.value.code == 2
    assert patched_client["cli_test"]["users"].count_documents({}) == 1
