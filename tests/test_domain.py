import sqlite3
from datetime import datetime

import pytest

from walletpay.database import Database
from walletpay.domain import DisbursementBalance, Domain, init_domain
from walletpay.entities import History, HistoryType, Wallet
from walletpay.errors import ErrorCode, Errs, is_not_found, new

sqlite3.register_adapter(datetime, datetime.isoformat)

SCHEMA = """
CREATE TABLE wallets (
    wallet_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    amount REAL NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT
);
CREATE TABLE histories (
    transaction_id TEXT PRIMARY KEY,
    wallet_id TEXT NOT NULL,
    unique_id TEXT NOT NULL UNIQUE,
    type INTEGER NOT NULL,
    amount REAL NOT NULL,
    notes TEXT,
    metadata TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT
);
"""


@pytest.fixture
def connection():
    conn = sqlite3.connect(":memory:")
    conn.executescript(SCHEMA)
    conn.executemany(
        "INSERT INTO wallets (wallet_id, user_id, amount, created_at) VALUES (?, ?, ?, ?)",
        [("w-1", "u-1", 100.0, "2024-01-01 00:00:00"), ("w-2", "u-2", 50.0, "2024-01-01 00:00:00")],
    )
    conn.commit()
    yield conn
    conn.close()


@pytest.fixture
def domain(connection):
    return init_domain(Database(connection))


def balance(connection, wallet_id):
    return connection.execute(
        "SELECT amount FROM wallets WHERE wallet_id = ?", (wallet_id,)
    ).fetchone()[0]


def history_count(connection):
    return connection.execute("SELECT COUNT(*) FROM histories").fetchone()[0]


def transfer(source, target, amount, key="k"):
    return (
        DisbursementBalance(
            wallet=Wallet(wallet_id=source, amount=amount),
            history=History(
                transaction_id=f"{key}-out",
                wallet_id=source,
                unique_id=f"{key}-{int(HistoryType.NEGATIVE)}",
                type=HistoryType.NEGATIVE,
                amount=amount,
            ),
        ),
        DisbursementBalance(
            wallet=Wallet(wallet_id=target, amount=amount),
            history=History(
                transaction_id=f"{key}-in",
                wallet_id=target,
                unique_id=f"{key}-{int(HistoryType.POSITIVE)}",
                type=HistoryType.POSITIVE,
                amount=amount,
            ),
        ),
    )


def test_init_domain_builds_both_services(domain):
    assert isinstance(domain, Domain)
    assert domain.wallet.get_wallet_by_wallet_id("w-2").user_id == "u-2"


def test_disbursement_moves_money_and_records_histories(domain, connection):
    total_before = balance(connection, "w-1") + balance(connection, "w-2")
    domain.wallet.disbursement_balance(*transfer("w-1", "w-2", 30.0))

    assert balance(connection, "w-1") == 100.0 - 30.0
    assert balance(connection, "w-2") == 50.0 + 30.0
    assert balance(connection, "w-1") + balance(connection, "w-2") == total_before
    assert history_count(connection) == 2

    out = domain.history.get_history_by_unique_id(f"k-{int(HistoryType.NEGATIVE)}")
    assert out.wallet_id == "w-1"
    assert out.type == HistoryType.NEGATIVE
    incoming = domain.history.get_history_by_unique_id(f"k-{int(HistoryType.POSITIVE)}")
    assert incoming.wallet_id == "w-2"
    assert incoming.amount == 30.0


def test_failed_grant_rolls_back_deduction(domain, connection):
    with pytest.raises(Errs) as exc_info:
        domain.wallet.disbursement_balance(*transfer("w-1", "missing", 10.0))
    assert exc_info.value.reason == new(ErrorCode.FAILED_UPDATE_DB).reason
    assert balance(connection, "w-1") == 100.0
    assert history_count(connection) == 0


def test_insufficient_balance_changes_nothing(domain, connection):
    with pytest.raises(Errs) as exc_info:
        domain.wallet.disbursement_balance(*transfer("w-2", "w-1", 75.0))
    assert exc_info.value.code == "500"
    assert balance(connection, "w-2") == 50.0
    assert balance(connection, "w-1") == 100.0
    assert history_count(connection) == 0


def test_duplicate_history_rolls_back_whole_transfer(domain, connection):
    domain.wallet.disbursement_balance(*transfer("w-1", "w-2", 10.0, key="a"))
    after_first = (balance(connection, "w-1"), balance(connection, "w-2"))
    with pytest.raises(Errs):
        domain.wallet.disbursement_balance(*transfer("w-1", "w-2", 10.0, key="a"))
    assert (balance(connection, "w-1"), balance(connection, "w-2")) == after_first
    assert history_count(connection) == 2


def test_missing_wallet_error_keeps_not_found_and_gains_trace(domain):
    with pytest.raises(Errs) as exc_info:
        domain.wallet.get_wallet_by_wallet_id("nope")
    assert is_not_found(exc_info.value)
    assert len(exc_info.value.traces) >= 2


def test_missing_history_is_not_found(domain):
    with pytest.raises(Errs) as exc_info:
        domain.history.get_history_by_unique_id("nothing-1")
    assert is_not_found(exc_info.value)