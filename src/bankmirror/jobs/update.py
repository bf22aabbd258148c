"""Update job: run the engine and publish the balance snapshot."""

from __future__ import annotations

from dataclasses import dataclass
import time

from loguru import logger

from bankmirror.adapters.storage.r2 import BALANCE_KEY, ObjectStore, StorageError
from bankmirror.core.engine import ReconciliationEngine, RunReport
from bankmirror.errors import BankMirrorError


@dataclass
class UpdateResult:
    """Result of one update invocation."""

    success: bool
    balance_text: str | None
    error: str | None
    duration_seconds: float
    error_kind: str | None = None
    report: RunReport | None = None


def run_update(
    engine: ReconciliationEngine,
    store: ObjectStore,
    *,
    trigger: str = "scheduled",
) -> UpdateResult:
    """Reconcile once, then overwrite the published balance.

    The balance is only published after a successful run; on failure the
    previously published value stays in place.
    """
    start = time.time()
    try:
        report = engine.reconcile()
    except BankMirrorError as e:
        logger.bind(trigger=trigger).error("Update failed ({}): {}", trigger, e)
        return UpdateResult(
            success=False,
            balance_text=None,
            error=str(e),
            error_kind=type(e).__name__,
            duration_seconds=time.time() - start,
        )

    balance_text = str(report.balance.amount)
    try:
        store.put_text(BALANCE_KEY, balance_text)
    except StorageError as e:
        logger.bind(trigger=trigger).error("Failed to publish balance: {}", e)
        return UpdateResult(
            success=False,
            balance_text=balance_text,
            error=str(e),
            error_kind=type(e).__name__,
            duration_seconds=time.time() - start,
            report=report,
        )

    logger.bind(trigger=trigger, balance=balance_text).info(
        "Updated budget ({}), balance {}", trigger, balance_text
    )
    return UpdateResult(
        success=True,
        balance_text=balance_text,
        error=None,
        duration_seconds=time.time() - start,
        report=report,
    )


def read_balance(store: ObjectStore) -> str:
    """Return the last published balance amount as plain text.

    Raises:
        DownloadError: Nothing has been published yet, or storage failed.
    """
    return store.get_text(BALANCE_KEY).strip()
