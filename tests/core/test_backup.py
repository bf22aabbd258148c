from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
import json

import pytest

from bankmirror.core.backup import (
    BackupExporter,
    backup_name,
    parse_backup,
)
from bankmirror.errors import SourceUnavailable
from bankmirror.models.transaction import Balance, Transaction

EXPORTED_AT = datetime(2026, 3, 1, 0, 2, 0)


def create_test_transactions() -> list[Transaction]:
    return [
        Transaction(
            id="b7e1c1d0-0000-4000-8000-000000000001",
            booked_at=datetime(2026, 2, 27, 9, 30, tzinfo=UTC),
            amount=Decimal("-12.50"),
            currency="EUR",
            description="Groceries",
            counterparty="REWE",
        ),
        Transaction(
            id="b7e1c1d0-0000-4000-8000-000000000002",
            booked_at=datetime(2026, 2, 28, 18, 0, tzinfo=UTC),
            amount=Decimal("2500.00"),
            currency="EUR",
            description="Gehalt Februar Überweisung",
            counterparty=None,
        ),
    ]


class MockSource:
    def __init__(self, transactions: list[Transaction], *, fail: bool = False) -> None:
        self._transactions = transactions
        self._fail = fail
        self.fetch_count = 0

    def fetch_transactions(self) -> list[Transaction]:
        self.fetch_count += 1
        if self._fail:
            raise SourceUnavailable("bank down")
        return list(self._transactions)

    def fetch_balance(self) -> Balance:
        raise AssertionError("exporter must not fetch the balance")


class TestBackupName:
    def test_name_derived_from_timestamp(self) -> None:
        assert backup_name(EXPORTED_AT) == "2026-03-01T00-02-00.json"


class TestBackupExporter:
    def test_export_contains_exactly_the_fetched_transactions(self) -> None:
        transactions = create_test_transactions()
        source = MockSource(transactions)
        exporter = BackupExporter(source, clock=lambda: EXPORTED_AT)

        document = exporter.export_all()

        assert source.fetch_count == 1
        assert document.name == "2026-03-01T00-02-00.json"
        assert document.created_at == EXPORTED_AT
        assert list(document.transactions) == transactions
        assert parse_backup(document.content) == transactions

    def test_amounts_keep_their_precision(self) -> None:
        exporter = BackupExporter(
            MockSource(create_test_transactions()), clock=lambda: EXPORTED_AT
        )

        document = exporter.export_all()
        raw = json.loads(document.content)

        assert raw["count"] == 2
        assert raw["transactions"][0]["amount"] == "-12.50"
        assert parse_backup(document.content)[0].amount == Decimal("-12.50")

    def test_empty_history_exports_empty_document(self) -> None:
        exporter = BackupExporter(MockSource([]), clock=lambda: EXPORTED_AT)

        document = exporter.export_all()

        assert document.transactions == ()
        assert parse_backup(document.content) == []

    def test_source_failure_propagates(self) -> None:
        exporter = BackupExporter(MockSource([], fail=True), clock=lambda: EXPORTED_AT)

        with pytest.raises(SourceUnavailable):
            exporter.export_all()


class TestParseBackup:
    def test_rejects_non_backup_json(self) -> None:
        with pytest.raises(ValueError, match="Not a bankmirror backup"):
            parse_backup('{"hello": "world"}')
