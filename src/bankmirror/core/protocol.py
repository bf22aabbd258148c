"""Contracts the engine and exporter depend on."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from bankmirror.models.transaction import Balance, Transaction


class SourceClient(Protocol):
    def fetch_transactions(self) -> Sequence[Transaction]: ...

    def fetch_balance(self) -> Balance: ...


class DestinationClient(Protocol):
    def create_transaction(self, txn: Transaction) -> str: ...


class BindingLedger(Protocol):
    def contains(self, source_id: str) -> bool: ...

    def put(self, source_id: str, destination_id: str) -> None: ...
