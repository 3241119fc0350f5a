"""The disbursement use case: validate a request and move the balance."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, fields
from typing import Any, Callable, TypeVar

from walletpay.domain import DisbursementBalance, Domain
from walletpay.entities import History, HistoryType, Wallet
from walletpay.errors import ErrorCode, add_trace, is_not_found

_T = TypeVar("_T")


def _find(lookup: Callable[[str], _T], key: str, missing: _T) -> _T:
    """Call ``lookup``; return ``missing`` when the record does not exist."""
    try:
        return lookup(key)
    except Exception as exc:
        if is_not_found(exc):
            return missing
        errs = add_trace(exc)
        if errs is exc:
            raise
        raise errs from exc


def _json_number(value: float) -> float | int:
    if value == value and abs(value) < 1e21 and float(value).is_integer():
        return int(value)
    return value


@dataclass
class DisbursementBalanceRequest:
    """A request to send money from one wallet to another."""

    user_id: str = ""
    unique_id: str = ""
    wallet_id: str = ""
    amount: float = 0.0
    notes: str = ""
    target_wallet_id: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> DisbursementBalanceRequest:
        """Build a request from decoded JSON; unknown keys are ignored."""
        if not isinstance(data, dict):
            raise ValueError("request body must be a JSON object")
        values: dict[str, Any] = {}
        for item in fields(cls):
            value = data.get(item.name)
            if value is None:
                continue
            if item.name == "amount":
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ValueError("amount must be a number")
                values[item.name] = float(value)
            else:
                if not isinstance(value, str):
                    raise ValueError(f"{item.name} must be a string")
                values[item.name] = value
        return cls(**values)

    def to_json(self) -> str:
        """Encode the request as compact JSON in field order."""
        return json.dumps(
            {
                "user_id": self.user_id,
                "unique_id": self.unique_id,
                "wallet_id": self.wallet_id,
                "amount": _json_number(self.amount),
                "notes": self.notes,
                "target_wallet_id": self.target_wallet_id,
            },
            separators=(",", ":"),
            ensure_ascii=False,
        )

    def validate(self, wallet: Any, history: Any) -> None:
        """Raise Errs when the request is incomplete or cannot be carried out."""
        messages = []
        if not self.wallet_id:
            messages.append("WallerID is required")
        if not self.user_id:
            messages.append("UserID is required")
        if not self.unique_id:
            messages.append("UniqueID is required")
        if not self.target_wallet_id:
            messages.append("TargetWalletID is required")
        if self.amount <= 0:
            messages.append("Amount is required")
        if messages:
            errs = add_trace(ErrorCode.MISSING_PARAMETER)
            errs.messages = messages
            raise errs

        if self.wallet_id == self.target_wallet_id:
            raise add_trace(ErrorCode.CAN_NOT_SEND_MONEY_SAME_WALLET)

        user_wallet = _find(wallet.get_wallet_by_wallet_id, self.wallet_id, Wallet())
        if not user_wallet.user_id:
            raise add_trace(ErrorCode.WALLET_NOT_FOUND)
        if user_wallet.user_id != self.user_id:
            raise add_trace(ErrorCode.WALLET_NOT_BELONG_TO_USER)
        if user_wallet.amount < self.amount:
            raise add_trace(ErrorCode.BALANCE_IS_NOT_ENOUGH)

        target_wallet = _find(
            wallet.get_wallet_by_wallet_id, self.target_wallet_id, Wallet()
        )
        if not target_wallet.user_id:
            raise add_trace(ErrorCode.TARGET_WALLET_NOT_FOUND)

        used = _find(
            history.get_history_by_unique_id,
            f"{self.unique_id}-{int(HistoryType.NEGATIVE)}",
            History(),
        )
        if used.transaction_id:
            raise add_trace(ErrorCode.UNIQUE_ID_ALREADY_USED)


@dataclass
class DisbursementBalanceResponse:
    """The outcome of a disbursement."""

    transaction_id: str = ""


class DisbursementUsecase:
    """Sends money between wallets."""

    def __init__(self, logger: Any, wallet: Any, history: Any) -> None:
        self._logger = logger
        self._wallet = wallet
        self._history = history

    def disbursement_balance(
        self, req: DisbursementBalanceRequest
    ) -> DisbursementBalanceResponse:
        """Validate ``req`` and transfer its amount; return the sender's transaction id."""
        try:
            req.validate(self._wallet, self._history)
        except Exception as exc:
            errs = add_trace(exc)
            if errs is exc:
                raise
            raise errs from exc

        transaction_id = str(uuid.uuid4())
        metadata = req.to_json()

        current = DisbursementBalance(
            wallet=Wallet(wallet_id=req.wallet_id, amount=req.amount),
            history=History(
                transaction_id=transaction_id,
                wallet_id=req.wallet_id,
                unique_id=f"{req.unique_id}-{int(HistoryType.NEGATIVE)}",
                type=HistoryType.NEGATIVE,
                amount=req.amount,
                notes=req.notes,
                metadata=metadata,
            ),
        )
        target = DisbursementBalance(
            wallet=Wallet(wallet_id=req.target_wallet_id, amount=req.amount),
            history=History(
                transaction_id=str(uuid.uuid4()),
                wallet_id=req.target_wallet_id,
                unique_id=f"{req.unique_id}-{int(HistoryType.POSITIVE)}",
                type=HistoryType.POSITIVE,
                amount=req.amount,
                notes=f"Receive money from {req.wallet_id}",
                metadata=metadata,
            ),
        )

        try:
            self._wallet.disbursement_balance(current, target)
        except Exception as exc:
            errs = add_trace(exc)
            if errs is exc:
                raise
            raise errs from exc

        return DisbursementBalanceResponse(transaction_id=transaction_id)


@dataclass
class Usecase:
    """The use cases the application exposes."""

    disbursement: DisbursementUsecase


def init_usecase(logger: Any, domain: Domain) -> Usecase:
    """Build the use cases over the domain services."""
    return Usecase(
        disbursement=DisbursementUsecase(logger, domain.wallet, domain.history)
    )