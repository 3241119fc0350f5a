"""Database access for wallets and transaction histories."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from walletpay.database import Database, Transaction
from walletpay.entities import History, Wallet
from walletpay.errors import ErrorCode, add_trace

_QUERY_GET_HISTORY_BY_UNIQUE_ID = """
    SELECT
        transaction_id,
        wallet_id,
        unique_id,
        type,
        amount,
        notes,
        COALESCE(metadata, '{}') as metadata,
        created_at,
        COALESCE(updated_at, created_at) as updated_at
    FROM
        histories
    WHERE
        unique_id = $1
"""

_QUERY_INSERT_HISTORY = """
    INSERT INTO histories (
        transaction_id,
        wallet_id,
        unique_id,
        type,
        amount,
        notes,
        metadata,
        created_at
    ) VALUES (
        $1,
        $2,
        $3,
        $4,
        $5,
        $6,
        $7,
        $8
    )
"""

_QUERY_GET_WALLET_BY_WALLET_ID = """
    SELECT
        wallet_id,
        user_id,
        amount,
        created_at,
        COALESCE(updated_at, created_at) as updated_at
    FROM
        wallets
    WHERE
        wallet_id = $1
"""

_QUERY_GRANT_WALLET_BY_WALLET_ID = """
    UPDATE wallets SET
        amount = amount + $1,
        updated_at = $2
    WHERE
        wallet_id = $3
"""

_QUERY_DEDUCT_WALLET_BY_WALLET_ID = """
    UPDATE wallets SET
        amount = amount - $1,
        updated_at = $2
    WHERE
        wallet_id = $3
    AND
        amount - $1 >= 0
"""


def _timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise TypeError(f"cannot read a timestamp from {value!r}")


def _history_from_row(row: dict[str, Any]) -> History:
    return History(
        transaction_id=row["transaction_id"] or "",
        wallet_id=row["wallet_id"] or "",
        unique_id=row["unique_id"] or "",
        type=int(row["type"]),
        amount=float(row["amount"]),
        notes=row["notes"] or "",
        metadata=row["metadata"] or "",
        created_at=_timestamp(row["created_at"]),
        updated_at=_timestamp(row["updated_at"]),
    )


def _wallet_from_row(row: dict[str, Any]) -> Wallet:
    return Wallet(
        wallet_id=row["wallet_id"] or "",
        user_id=row["user_id"] or "",
        amount=float(row["amount"]),
        created_at=_timestamp(row["created_at"]),
        updated_at=_timestamp(row["updated_at"]),
    )


class HistoryResource:
    """Reads and writes rows of the histories table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def get_history_by_unique_id(self, unique_id: str) -> History:
        """Return the history with ``unique_id``; the error is not-found when absent."""
        try:
            row = self._db.get(_QUERY_GET_HISTORY_BY_UNIQUE_ID, unique_id)
        except Exception as exc:
            raise add_trace(exc) from exc
        return _history_from_row(row)

    def insert_history(self, tx: Transaction, data: History) -> None:
        """Insert ``data`` inside ``tx``; empty metadata is stored as an empty object."""
        metadata = data.metadata or "{}"
        try:
            affected = self._db.exec_tx(
                tx,
                _QUERY_INSERT_HISTORY,
                data.transaction_id,
                data.wallet_id,
                data.unique_id,
                int(data.type),
                data.amount,
                data.notes,
                metadata,
                datetime.now(),
            )
        except Exception as exc:
            raise add_trace(exc) from exc
        if affected <= 0:
            raise add_trace(ErrorCode.FAILED_INSERT_DB)


class WalletResource:
    """Reads and updates rows of the wallets table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def begin(self) -> Transaction:
        return self._db.begin()

    def get_wallet_by_wallet_id(self, wallet_id: str) -> Wallet:
        """Return the wallet with ``wallet_id``; the error is not-found when absent."""
        try:
            row = self._db.get(_QUERY_GET_WALLET_BY_WALLET_ID, wallet_id)
        except Exception as exc:
            raise add_trace(exc) from exc
        return _wallet_from_row(row)

    def _update(self, tx: Transaction, query: str, wallet_id: str, amount: float) -> None:
        try:
            affected = self._db.exec_tx(tx, query, amount, datetime.now(), wallet_id)
        except Exception as exc:
            raise add_trace(exc) from exc
        if affected <= 0:
            raise add_trace(ErrorCode.FAILED_UPDATE_DB)

    def grant_wallet_by_wallet_id(self, tx: Transaction, wallet_id: str, amount: float) -> None:
        """Add ``amount`` to the wallet's balance."""
        self._update(tx, _QUERY_GRANT_WALLET_BY_WALLET_ID, wallet_id, amount)

    def deduct_wallet_by_wallet_id(self, tx: Transaction, wallet_id: str, amount: float) -> None:
        """Take ``amount`` from the wallet; fails when the balance would go negative."""
        self._update(tx, _QUERY_DEDUCT_WALLET_BY_WALLET_ID, wallet_id, amount)