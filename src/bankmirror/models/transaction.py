from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class Transaction:
    """A booked transaction as reported by the bank.

    ``amount`` is signed: negative for money leaving the account.
    """

    id: str
    booked_at: datetime
    amount: Decimal
    currency: str
    description: str
    counterparty: str | None = None


@dataclass(frozen=True, slots=True)
class Balance:
    """Account balance as reported by the bank at ``as_of``."""

    amount: Decimal
    currency: str
    as_of: datetime

    def __str__(self) -> str:
        return str(self.amount)


@dataclass(frozen=True, slots=True)
class Binding:
    """Proof that a source transaction was mirrored to the destination."""

    source_id: str
    destination_id: str
