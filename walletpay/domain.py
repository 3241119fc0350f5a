"""Domain services for wallets and histories."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from walletpay.database import Database, execute_tx
from walletpay.entities import History, Wallet
from walletpay.errors import add_trace
from walletpay.resources import HistoryResource, WalletResource


@dataclass
class DisbursementBalance:
    """A wallet movement with the history entry that records it."""

    wallet: Wallet = field(default_factory=Wallet)
    history: History = field(default_factory=History)


class HistoryDomain:
    """Lookups of transaction histories."""

    def __init__(self, db: Any) -> None:
        self._db = db

    def get_history_by_unique_id(self, unique_id: str) -> History:
        try:
            return self._db.get_history_by_unique_id(unique_id)
        except Exception as exc:
            errs = add_trace(exc)
            if errs is exc:
                raise
            raise errs from exc


class WalletDomain:
    """Wallet lookups and balance transfers."""

    def __init__(self, db: Any, history_db: Any) -> None:
        self._db = db
        self._history_db = history_db

    def get_wallet_by_wallet_id(self, wallet_id: str) -> Wallet:
        try:
            return self._db.get_wallet_by_wallet_id(wallet_id)
        except Exception as exc:
            errs = add_trace(exc)
            if errs is exc:
                raise
            raise errs from exc

    def disbursement_balance(
        self, current: DisbursementBalance, target: DisbursementBalance
    ) -> None:
        """Deduct from ``current`` and grant to ``target`` in one transaction."""
        try:
            tx = self._db.begin()
        except Exception as exc:
            raise add_trace(exc) from exc

        def transfer() -> None:
            self._db.deduct_wallet_by_wallet_id(
                tx, current.wallet.wallet_id, current.wallet.amount
            )
            self._history_db.insert_history(tx, current.history)
            self._db.grant_wallet_by_wallet_id(
                tx, target.wallet.wallet_id, target.wallet.amount
            )
            self._history_db.insert_history(tx, target.history)

        try:
            execute_tx(tx, transfer)
        except Exception as exc:
            errs = add_trace(exc)
            if errs is exc:
                raise
            raise errs from exc


@dataclass
class Domain:
    """The domain services the application uses."""

    wallet: WalletDomain
    history: HistoryDomain


def init_domain(db: Database) -> Domain:
    """Build the domain services over ``db``."""
    return Domain(
        wallet=WalletDomain(WalletResource(db), HistoryResource(db)),
        history=HistoryDomain(HistoryResource(db)),
    )