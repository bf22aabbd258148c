"""Backup job: export all source transactions and archive the document."""

from __future__ import annotations

from dataclasses import dataclass
import time

from loguru import logger

from bankmirror.adapters.storage.r2 import ObjectStore, StorageError, backup_key
from bankmirror.core.backup import BackupExporter
from bankmirror.errors import BankMirrorError


@dataclass
class BackupResult:
    success: bool
    key: str | None
    transaction_count: int
    error: str | None
    duration_seconds: float
    error_kind: str | None = None


def run_backup(exporter: BackupExporter, store: ObjectStore) -> BackupResult:
    """Export once and store the document under ``backups/<timestamp>.json``.

    Backups are never overwritten: an existing key fails the invocation.
    """
    start = time.time()
    try:
        document = exporter.export_all()
        key = backup_key(document.name)
        store.put_text(
            key,
            document.content,
            content_type="application/json; charset=utf-8",
            overwrite=False,
        )
    except (BankMirrorError, StorageError) as e:
        logger.error("Backup failed: {}", e)
        return BackupResult(
            success=False,
            key=None,
            transaction_count=0,
            error=str(e),
            error_kind=type(e).__name__,
            duration_seconds=time.time() - start,
        )

    logger.bind(key=key).info("Backed up budget source data to {}", key)
    return BackupResult(
        success=True,
        key=key,
        transaction_count=len(document.transactions),
        error=None,
        duration_seconds=time.time() - start,
    )
