"""JSON response envelope shared by every endpoint."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from datetime import datetime
from http import HTTPStatus
from typing import Any

from walletpay.errors import ErrorCode, Errs, new

JSON_CONTENT_TYPE = "application/json"

_HTML_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026"}


@dataclass(frozen=True)
class Response:
    """A finished HTTP response: status, body and content type."""

    status_code: int
    body: bytes
    content_type: str = JSON_CONTENT_TYPE

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body)


def _default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"object of type {type(value).__name__} is not JSON serializable")


def _encode(payload: dict[str, Any]) -> bytes:
    text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=_default)
    # Those characters only ever occur inside JSON strings, so escaping them is safe.
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text.encode("utf-8")


def _describe(err: BaseException) -> Errs:
    if isinstance(err, Errs) and err.code:
        return err
    internal = new(ErrorCode.INTERNAL_SERVER_ERROR)
    internal.messages = [str(err)]
    return internal


def write_response(data: Any, err: BaseException | None) -> Response:
    """Wrap ``data`` and the outcome described by ``err`` in the result envelope.

    An error that is not an Errs with a code is reported as an internal
    server error carrying the error's message.
    """
    status: dict[str, Any] = {"code": "200", "reason": "Success"}
    http_status = int(HTTPStatus.OK)

    if err is not None:
        errs = _describe(err)
        status = {
            "code": errs.code,
            "reason": errs.reason,
            "messages": list(errs.messages),
        }
        http_status = errs.http_code

    payload: dict[str, Any] = {
        "result_status": {key: value for key, value in status.items() if value}
    }
    if data is not None:
        payload["data"] = data

    return Response(status_code=http_status, body=_encode(payload))