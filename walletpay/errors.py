"""Application errors carrying a response code, reason, messages and call-site traces."""

from __future__ import annotations

import os
import sys
from enum import Enum
from http import HTTPStatus

NO_ROWS_MESSAGE = "sql: no rows in result set"
UNKNOWN_ERROR = "unknown error"


class NoRowsError(LookupError):
    """Raised when a query that must return a row returns none."""

    def __init__(self, message: str = NO_ROWS_MESSAGE) -> None:
        super().__init__(message)


class ErrorCode(Enum):
    """Known failures with their response code, reason and HTTP status."""

    BAD_REQUEST = ("400", "Bad Request", HTTPStatus.BAD_REQUEST)
    MISSING_PARAMETER = ("400", "Missing Required Fields", HTTPStatus.BAD_REQUEST)
    CAN_NOT_SEND_MONEY_SAME_WALLET = (
        "403",
        "Can not send money to same wallet",
        HTTPStatus.FORBIDDEN,
    )
    WALLET_NOT_FOUND = ("403", "User wallet not found", HTTPStatus.FORBIDDEN)
    WALLET_NOT_BELONG_TO_USER = (
        "403",
        "Wallet not belong to current user",
        HTTPStatus.FORBIDDEN,
    )
    BALANCE_IS_NOT_ENOUGH = ("403", "Balance is not enough", HTTPStatus.FORBIDDEN)
    TARGET_WALLET_NOT_FOUND = (
        "403",
        "Target user wallet not found",
        HTTPStatus.FORBIDDEN,
    )
    UNIQUE_ID_ALREADY_USED = ("409", "Unique id already used", HTTPStatus.CONFLICT)
    INTERNAL_SERVER_ERROR = (
        "500",
        "Internal Server Error",
        HTTPStatus.INTERNAL_SERVER_ERROR,
    )
    FAILED_INSERT_DB = ("500", "Failed Insert DB", HTTPStatus.INTERNAL_SERVER_ERROR)
    FAILED_UPDATE_DB = ("500", "Failed Update DB", HTTPStatus.INTERNAL_SERVER_ERROR)

    def __init__(self, code: str, reason: str, http_code: HTTPStatus) -> None:
        self.code = code
        self.reason = reason
        self.http_code = int(http_code)


class Errs(Exception):
    """An error with a response code, reason, detail messages and traces."""

    def __init__(
        self,
        err: BaseException | None = None,
        code: str = "",
        reason: str = "",
        messages: list[str] | None = None,
        http_code: int = 0,
        traces: list[str] | None = None,
    ) -> None:
        super().__init__()
        self.err = err
        self.code = code
        self.reason = reason
        self.messages = list(messages) if messages else []
        self.http_code = http_code
        self.traces = list(traces) if traces else []

    def __str__(self) -> str:
        return "" if self.err is None else str(self.err)

    def __repr__(self) -> str:
        return (
            f"Errs(code={self.code!r}, reason={self.reason!r}, "
            f"err={str(self)!r}, messages={self.messages!r})"
        )


def new(*args: object) -> Errs:
    """Build an Errs from error codes, Errs, strings or exceptions; later arguments win."""
    errs = Errs()
    for arg in args:
        if isinstance(arg, ErrorCode):
            errs = Errs(code=arg.code, reason=arg.reason, http_code=arg.http_code)
        elif isinstance(arg, Errs):
            errs = arg
        elif isinstance(arg, str):
            errs.err = Exception(arg)
        elif isinstance(arg, BaseException):
            errs.err = arg
        else:
            errs.err = Exception(UNKNOWN_ERROR)

    if errs.err is None:
        errs.err = Exception(errs.reason or UNKNOWN_ERROR)
    return errs


def _line_of_code(depth: int) -> str:
    frame = sys._getframe(depth + 1)
    parts = frame.f_code.co_filename.replace(os.sep, "/").split("/")
    file = frame.f_code.co_filename
    if len(parts) > 4:
        file = "/" + "/".join(parts[-4:])
    return f"{file}[{frame.f_lineno}]"


def add_trace(err: object) -> Errs:
    """Wrap ``err`` as Errs and record the caller's file and line."""
    errs = new(err)
    errs.traces.append(_line_of_code(1))
    return errs


def is_match_by_code(err1: object, err2: object) -> bool:
    """True when both are Errs with the same code."""
    if not isinstance(err1, Errs) or not isinstance(err2, Errs):
        return False
    return err1.code == err2.code


def is_not_found(err: object) -> bool:
    """True when the error's message is the no-rows message."""
    return err is not None and str(err) == NO_ROWS_MESSAGE