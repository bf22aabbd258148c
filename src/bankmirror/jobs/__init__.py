"""Entry points invoked by an external scheduler or a manual trigger."""

from bankmirror.jobs.backup import BackupResult, run_backup
from bankmirror.jobs.update import UpdateResult, read_balance, run_update

__all__ = [
    "BackupResult",
    "UpdateResult",
    "read_balance",
    "run_backup",
    "run_update",
]
