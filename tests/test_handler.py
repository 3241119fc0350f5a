import json
import logging

from walletpay.errors import ErrorCode, NoRowsError, add_trace
from walletpay.handler import DisbursementHandler, Handler, Route, init_handler
from walletpay.usecase import (
    DisbursementBalanceRequest,
    DisbursementBalanceResponse,
    DisbursementUsecase,
    Usecase,
)

_LOGGER = logging.getLogger("walletpay.tests.handler")

_REQUEST = {
    "user_id": "u-1",
    "unique_id": "order-1",
    "wallet_id": "w-1",
    "amount": 25,
    "notes": "lunch",
    "target_wallet_id": "w-2",
}


class _FakeDisbursement:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.requests = []

    def disbursement_balance(self, req):
        self.requests.append(req)
        if self.error is not None:
            raise self.error
        return self.result


class _MissingWallets:
    def get_wallet_by_wallet_id(self, wallet_id):
        raise add_trace(NoRowsError())

    def disbursement_balance(self, current, target):
        raise AssertionError("must not transfer")


class _NoHistory:
    def get_history_by_unique_id(self, unique_id):
        raise add_trace(NoRowsError())


def _body(data):
    return json.dumps(data).encode()


def test_success_returns_transaction_id_and_forwards_request():
    fake = _FakeDisbursement(result=DisbursementBalanceResponse(transaction_id="tx-42"))
    resp = DisbursementHandler(_LOGGER, fake).disbursement_balance(_body(_REQUEST))
    assert resp.status_code == 200
    assert resp.json() == {
        "result_status": {"code": "200", "reason": "Success"},
        "data": {"transaction_id": "tx-42"},
    }
    assert fake.requests == [DisbursementBalanceRequest.from_dict(_REQUEST)]


def test_usecase_error_is_reported_with_empty_data():
    fake = _FakeDisbursement(error=add_trace(ErrorCode.BALANCE_IS_NOT_ENOUGH))
    resp = DisbursementHandler(_LOGGER, fake).disbursement_balance(_body(_REQUEST))
    body = resp.json()
    assert resp.status_code == ErrorCode.BALANCE_IS_NOT_ENOUGH.http_code
    assert body["result_status"]["reason"] == ErrorCode.BALANCE_IS_NOT_ENOUGH.reason
    assert body["data"] == {"transaction_id": ""}


def test_invalid_json_is_internal_error_and_usecase_not_called():
    fake = _FakeDisbursement(result=DisbursementBalanceResponse("tx"))
    resp = DisbursementHandler(_LOGGER, fake).disbursement_balance(b"{not json")
    status = resp.json()["result_status"]
    assert resp.status_code == ErrorCode.INTERNAL_SERVER_ERROR.http_code
    assert status["code"] == "500"
    assert len(status["messages"]) == 1
    assert fake.requests == []


def test_wrongly_typed_field_is_rejected():
    fake = _FakeDisbursement(result=DisbursementBalanceResponse("tx"))
    bad = dict(_REQUEST, amount="lots")
    resp = DisbursementHandler(_LOGGER, fake).disbursement_balance(_body(bad))
    assert resp.status_code == ErrorCode.INTERNAL_SERVER_ERROR.http_code
    assert fake.requests == []


def test_null_body_forwards_empty_request():
    fake = _FakeDisbursement(result=DisbursementBalanceResponse("tx"))
    DisbursementHandler(_LOGGER, fake).disbursement_balance(b"null")
    assert fake.requests == [DisbursementBalanceRequest()]


def test_errors_are_logged(caplog):
    fake = _FakeDisbursement(error=add_trace(ErrorCode.WALLET_NOT_FOUND))
    with caplog.at_level(logging.ERROR, logger=_LOGGER.name):
        DisbursementHandler(_LOGGER, fake).disbursement_balance(_body(_REQUEST))
    assert "[Delivery][DisbursementBalance]" in caplog.text


def test_real_usecase_reports_missing_wallet():
    usecase = DisbursementUsecase(_LOGGER, _MissingWallets(), _NoHistory())
    resp = DisbursementHandler(_LOGGER, usecase).disbursement_balance(_body(_REQUEST))
    assert resp.status_code == ErrorCode.WALLET_NOT_FOUND.http_code
    assert resp.json()["result_status"]["reason"] == ErrorCode.WALLET_NOT_FOUND.reason


def test_init_handler_exposes_disbursement_route():
    fake = _FakeDisbursement(result=DisbursementBalanceResponse("tx-7"))
    routes = init_handler(_LOGGER, Usecase(disbursement=fake)).get_handlers()
    assert [(r.path, r.method) for r in routes] == [("/disbursement", "POST")]
    resp = routes[0].func(_body(_REQUEST))
    assert resp.json()["data"] == {"transaction_id": "tx-7"}


def test_get_handlers_returns_a_copy():
    route = Route(path="/x", method="GET", func=lambda body: None)
    handler = Handler([route])
    handler.get_handlers().clear()
    assert handler.get_handlers() == [route]