"""Thin access layer over a DB-API connection with numbered placeholders."""

from __future__ import annotations

import re
from typing import Any, Callable

from walletpay.errors import NoRowsError

_PLACEHOLDER = re.compile(r"\$(\d+)")
_MARKERS = {"qmark": "?", "format": "%s", "pyformat": "%s"}
_TX_DONE = "sql: transaction has already been committed or rolled back"


def _bind(query: str, args: tuple[Any, ...], paramstyle: str) -> tuple[str, list[Any]]:
    """Rewrite ``$n`` placeholders into the driver's style and order the arguments."""
    marker = _MARKERS[paramstyle]
    if marker == "%s":
        query = query.replace("%", "%%")
    params: list[Any] = []

    def substitute(match: re.Match[str]) -> str:
        index = int(match.group(1))
        if not 1 <= index <= len(args):
            raise IndexError(f"no argument for placeholder ${index}")
        params.append(args[index - 1])
        return marker

    return _PLACEHOLDER.sub(substitute, query), params


def _check_paramstyle(paramstyle: str) -> str:
    if paramstyle not in _MARKERS:
        raise ValueError(f"unsupported paramstyle: {paramstyle!r}")
    return paramstyle


class Transaction:
    """A unit of work on a connection, ended by commit or rollback."""

    def __init__(self, connection: Any, paramstyle: str = "qmark") -> None:
        self._connection = connection
        self._paramstyle = _check_paramstyle(paramstyle)
        self._done = False

    def _ensure_open(self) -> None:
        if self._done:
            raise RuntimeError(_TX_DONE)

    def execute(self, query: str, *args: Any) -> int:
        """Run a statement inside the transaction and return the rows affected."""
        self._ensure_open()
        sql, params = _bind(query, args, self._paramstyle)
        cursor = self._connection.cursor()
        try:
            cursor.execute(sql, params)
            return cursor.rowcount
        finally:
            cursor.close()

    def commit(self) -> None:
        self._ensure_open()
        self._done = True
        self._connection.commit()

    def rollback(self) -> None:
        self._ensure_open()
        self._done = True
        self._connection.rollback()

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._done:
            return
        if exc_type is None:
            self.commit()
        else:
            self.rollback()


class Database:
    """Queries and statements over a DB-API connection."""

    def __init__(self, connection: Any, paramstyle: str = "qmark") -> None:
        self._connection = connection
        self._paramstyle = _check_paramstyle(paramstyle)

    def _query(self, query: str, args: tuple[Any, ...]) -> tuple[list[str], list[tuple]]:
        sql, params = _bind(query, args, self._paramstyle)
        cursor = self._connection.cursor()
        try:
            cursor.execute(sql, params)
            columns = [column[0] for column in cursor.description or ()]
            return columns, cursor.fetchall()
        finally:
            cursor.close()

    def get(self, query: str, *args: Any) -> dict[str, Any]:
        """Return the first row as a mapping; raise NoRowsError when there is none."""
        columns, rows = self._query(query, args)
        if not rows:
            raise NoRowsError()
        return dict(zip(columns, rows[0]))

    def select(self, query: str, *args: Any) -> list[dict[str, Any]]:
        """Return every row as a mapping."""
        columns, rows = self._query(query, args)
        return [dict(zip(columns, row)) for row in rows]

    def begin(self) -> Transaction:
        return Transaction(self._connection, self._paramstyle)

    def exec(self, query: str, *args: Any) -> int:
        """Run and commit a statement; return the rows affected."""
        sql, params = _bind(query, args, self._paramstyle)
        cursor = self._connection.cursor()
        try:
            cursor.execute(sql, params)
            affected = cursor.rowcount
        finally:
            cursor.close()
        self._connection.commit()
        return affected

    def exec_tx(self, tx: Transaction, query: str, *args: Any) -> int:
        return tx.execute(query, *args)


def execute_tx(tx: Transaction, func: Callable[[], Any]) -> None:
    """Run ``func``; roll back and re-raise on failure, otherwise commit."""
    try:
        func()
    except BaseException:
        tx.rollback()
        raise
    tx.commit()