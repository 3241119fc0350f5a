"""Wallet and transaction history records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum


class HistoryType(IntEnum):
    """Direction of a history entry."""

    POSITIVE = 0
    NEGATIVE = 1


@dataclass
class History:
    """One balance movement recorded against a wallet."""

    transaction_id: str = ""
    wallet_id: str = ""
    unique_id: str = ""
    type: int = HistoryType.POSITIVE
    amount: float = 0.0
    notes: str = ""
    metadata: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Wallet:
    """A user's wallet and its balance."""

    wallet_id: str = ""
    user_id: str = ""
    amount: float = 0.0
    created_at: datetime | None = None
    updated_at: datetime | None = None