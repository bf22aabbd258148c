from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from bankmirror.adapters.storage.r2 import ObjectExistsError, StoredObject
from bankmirror.core.backup import BackupExporter, parse_backup
from bankmirror.errors import SourceUnavailable
from bankmirror.jobs.backup import run_backup
from bankmirror.models.transaction import Balance, Transaction

EXPORTED_AT = datetime(2026, 3, 1, 0, 2, 0)

TXN = Transaction(
    id="t1",
    booked_at=datetime(2026, 2, 27, 9, 30, tzinfo=UTC),
    amount=Decimal("-12.50"),
    currency="EUR",
    description="Groceries",
    counterparty="REWE",
)


class MockSource:
    def __init__(self, *, fail: bool = False) -> None:
        self._fail = fail

    def fetch_transactions(self) -> list[Transaction]:
        if self._fail:
            raise SourceUnavailable("bank down")
        return [TXN]

    def fetch_balance(self) -> Balance:
        raise AssertionError("not used")


class WriteOnceStore:
    def __init__(self) -> None:
        self.objects: dict[str, str] = {}
        self.content_types: dict[str, str] = {}

    def put_text(
        self,
        key: str,
        text: str,
        *,
        content_type: str = "text/plain; charset=utf-8",
        overwrite: bool = True,
    ) -> StoredObject:
        if not overwrite and key in self.objects:
            raise ObjectExistsError(key)
        self.objects[key] = text
        self.content_types[key] = content_type
        return StoredObject(key=key, bucket="test", content_type=content_type)

    def get_text(self, key: str) -> str:
        return self.objects[key]


class TestRunBackup:
    def test_stores_document_under_timestamped_key(self) -> None:
        store = WriteOnceStore()
        exporter = BackupExporter(MockSource(), clock=lambda: EXPORTED_AT)

        result = run_backup(exporter, store)

        assert result.success
        assert result.key == "backups/2026-03-01T00-02-00.json"
        assert result.transaction_count == 1
        assert parse_backup(store.objects[result.key]) == [TXN]
        assert store.content_types[result.key].startswith("application/json")

    def test_never_overwrites_prior_backup(self) -> None:
        store = WriteOnceStore()
        store.objects["backups/2026-03-01T00-02-00.json"] = "previous"
        exporter = BackupExporter(MockSource(), clock=lambda: EXPORTED_AT)

        result = run_backup(exporter, store)

        assert not result.success
        assert result.error_kind == "ObjectExistsError"
        assert store.objects["backups/2026-03-01T00-02-00.json"] == "previous"

    def test_source_failure_writes_nothing(self) -> None:
        store = WriteOnceStore()
        exporter = BackupExporter(MockSource(fail=True), clock=lambda: EXPORTED_AT)

        result = run_backup(exporter, store)

        assert not result.success
        assert result.error_kind == "SourceUnavailable"
        assert store.objects == {}
