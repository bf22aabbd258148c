"""Point-in-time JSON backups of the full source transaction history."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import json
from typing import Any

import loguru
from loguru import logger
from pydantic import BaseModel, TypeAdapter

from bankmirror.core.protocol import SourceClient
from bankmirror.models.transaction import Transaction

BACKUP_NAME_FORMAT = "%Y-%m-%dT%H-%M-%S"
BACKUP_FORMAT_VERSION = 1


class BackupEntry(BaseModel):
    """Serialized form of one transaction inside a backup document."""

    id: str
    booked_at: datetime
    amount: Decimal
    currency: str
    description: str
    counterparty: str | None = None

    @classmethod
    def from_domain(cls, txn: Transaction) -> BackupEntry:
        return cls(
            id=txn.id,
            booked_at=txn.booked_at,
            amount=txn.amount,
            currency=txn.currency,
            description=txn.description,
            counterparty=txn.counterparty,
        )

    def to_domain(self) -> Transaction:
        return Transaction(
            id=self.id,
            booked_at=self.booked_at,
            amount=self.amount,
            currency=self.currency,
            description=self.description,
            counterparty=self.counterparty,
        )


_ENTRIES = TypeAdapter(list[BackupEntry])


@dataclass(frozen=True, slots=True)
class BackupDocument:
    """A serialized snapshot of every source transaction at ``created_at``."""

    name: str
    created_at: datetime
    transactions: tuple[Transaction, ...]
    content: str


def backup_name(created_at: datetime) -> str:
    """File name for a backup taken at ``created_at``: ``2026-01-31T00-02-00.json``."""
    return created_at.strftime(BACKUP_NAME_FORMAT) + ".json"


def serialize_transactions(
    transactions: Sequence[Transaction], *, created_at: datetime
) -> str:
    entries = [BackupEntry.from_domain(txn) for txn in transactions]
    document: dict[str, Any] = {
        "version": BACKUP_FORMAT_VERSION,
        "exported_at": created_at.isoformat(),
        "count": len(entries),
        # Amounts are strings in JSON mode, so no precision is lost.
        "transactions": _ENTRIES.dump_python(entries, mode="json"),
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def parse_backup(content: str) -> list[Transaction]:
    """Rebuild the transaction sequence from a backup document.

    Raises:
        ValueError: If ``content`` is not a backup document.
    """
    document = json.loads(content)
    if not isinstance(document, dict) or "transactions" not in document:
        raise ValueError("Not a bankmirror backup document")
    entries = _ENTRIES.validate_python(document["transactions"])
    return [entry.to_domain() for entry in entries]


class BackupLogger:
    def __init__(self, logger_instance: loguru.Logger = logger) -> None:
        self._logger = logger_instance

    def exported(self, name: str, count: int) -> None:
        self._logger.bind(backup=name, count=count).info(
            "Exported {} transactions to backup {}", count, name
        )


class BackupExporter:
    """Serializes everything the source currently reports.

    Independent of the binding store: this is disaster-recovery archival,
    not reconciliation state.
    """

    def __init__(
        self,
        source: SourceClient,
        *,
        clock: Callable[[], datetime] = datetime.now,
        logger_instance: loguru.Logger = logger,
    ) -> None:
        self._source = source
        self._clock = clock
        self._logger = BackupLogger(logger_instance)

    def export_all(self) -> BackupDocument:
        """Fetch all transactions once and serialize them.

        Raises:
            SourceUnavailable: The fetch failed; nothing is produced.
        """
        transactions = tuple(self._source.fetch_transactions())
        created_at = self._clock()
        name = backup_name(created_at)
        content = serialize_transactions(transactions, created_at=created_at)
        self._logger.exported(name, len(transactions))
        return BackupDocument(
            name=name,
            created_at=created_at,
            transactions=transactions,
            content=content,
        )
