"""HTTP endpoints and the routing table that exposes them."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from walletpay.errors import Errs
from walletpay.response import Response, write_response
from walletpay.usecase import (
    DisbursementBalanceRequest,
    DisbursementBalanceResponse,
    Usecase,
)

_log = logging.getLogger(__name__)

Endpoint = Callable[[bytes], Response]


@dataclass(frozen=True)
class Route:
    """An endpoint bound to a path and an HTTP method."""

    path: str
    method: str
    func: Endpoint


class DisbursementHandler:
    """Endpoint that sends money between wallets."""

    def __init__(self, logger: logging.Logger | None, disbursement: Any) -> None:
        self._logger = logger or _log
        self._disbursement = disbursement

    def disbursement_balance(self, body: bytes) -> Response:
        """Decode a JSON request body, run the disbursement and build the response."""
        req = DisbursementBalanceRequest()
        resp = DisbursementBalanceResponse()
        err: Exception | None = None
        try:
            decoded = json.loads(body)
            if decoded is not None:
                req = DisbursementBalanceRequest.from_dict(decoded)
            resp = self._disbursement.disbursement_balance(req)
        except Exception as exc:
            err = exc
            traces = exc.traces if isinstance(exc, Errs) else []
            self._logger.error(
                "%s [Delivery][DisbursementBalance][Request:%r] traces=%s",
                exc,
                req,
                traces,
            )
        return write_response(resp, err)


class Handler:
    """The application's routing table."""

    def __init__(self, routes: list[Route]) -> None:
        self._routes = list(routes)

    def get_handlers(self) -> list[Route]:
        return list(self._routes)


def init_handler(logger: logging.Logger | None, usecase: Usecase) -> Handler:
    """Build the routes over the application's use cases."""
    disbursement = DisbursementHandler(logger, usecase.disbursement)
    return Handler(
        [
            Route(
                path="/disbursement",
                method="POST",
                func=disbursement.disbursement_balance,
            )
        ]
    )