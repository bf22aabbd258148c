"""Reconciliation engine, backup exporter and run serialization."""

from bankmirror.core.backup import BackupDocument, BackupExporter, parse_backup
from bankmirror.core.engine import ItemFailure, ReconciliationEngine, RunReport
from bankmirror.core.lock import RunLock

__all__ = [
    "BackupDocument",
    "BackupExporter",
    "ItemFailure",
    "ReconciliationEngine",
    "RunLock",
    "RunReport",
    "parse_backup",
]
