from __future__ import annotations

from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field

import loguru
from loguru import logger

from bankmirror.core.lock import RunLock
from bankmirror.core.protocol import BindingLedger, DestinationClient, SourceClient
from bankmirror.errors import (
    DestinationRejected,
    DestinationUnavailable,
    StoreWriteFailed,
)
from bankmirror.models.transaction import Balance, Binding


@dataclass(frozen=True, slots=True)
class ItemFailure:
    source_id: str
    error: str


@dataclass
class RunReport:
    """Per-item accounting of one completed run."""

    balance: Balance
    created: list[Binding] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    rejected: list[ItemFailure] = field(default_factory=list)
    # Created at the destination but the binding write failed.
    unbound: list[ItemFailure] = field(default_factory=list)

    @property
    def mirrored_count(self) -> int:
        return len(self.created) + len(self.unbound)


class EngineLogger:
    """Handles all logging for ReconciliationEngine."""

    def __init__(self, logger_instance: loguru.Logger = logger) -> None:
        self._logger = logger_instance

    def run_start(self) -> None:
        self._logger.info("Reconciliation run started")

    def fetched(self, count: int) -> None:
        self._logger.bind(count=count).info(
            "Fetched {} transactions from source", count
        )

    def created(self, source_id: str, destination_id: str) -> None:
        self._logger.bind(source_id=source_id, destination_id=destination_id).info(
            "Mirrored {} as {}", source_id, destination_id
        )

    def rejected(self, source_id: str, error: Exception) -> None:
        self._logger.bind(source_id=source_id).error(
            "Destination rejected {}, skipping: {}", source_id, error
        )

    def store_write_failed(
        self, source_id: str, destination_id: str, error: Exception
    ) -> None:
        self._logger.bind(source_id=source_id, destination_id=destination_id).error(
            "Mirrored {} as {} but the binding write failed: {}",
            source_id,
            destination_id,
            error,
        )

    def destination_unavailable(
        self, source_id: str, remaining: int, error: Exception
    ) -> None:
        self._logger.bind(source_id=source_id, remaining=remaining).warning(
            "Destination unavailable at {}, aborting {} remaining: {}",
            source_id,
            remaining,
            error,
        )

    def run_complete(self, report: RunReport) -> None:
        self._logger.bind(
            created=len(report.created),
            skipped=len(report.skipped),
            rejected=len(report.rejected),
            unbound=len(report.unbound),
        ).info(
            "Reconciliation complete: {} created, {} already mirrored, "
            "{} rejected, {} unbound",
            len(report.created),
            len(report.skipped),
            len(report.rejected),
            len(report.unbound),
        )


class ReconciliationEngine:
    """Mirrors unmirrored source transactions to the destination.

    Constructed once per process and reused across runs. Every run is safe to
    replay after any failure: the destination dedups on the source id, so the
    binding store only short-circuits work, it is not the sole proof of import.
    """

    def __init__(
        self,
        source: SourceClient,
        destination: DestinationClient,
        bindings: BindingLedger,
        *,
        lock: RunLock | None = None,
        logger_instance: loguru.Logger = logger,
    ) -> None:
        """
        Args:
            source: Banking service client
            destination: Budgeting service client
            bindings: Idempotency ledger of mirrored transactions
            lock: Serializes runs sharing ``bindings``. Without one, callers
                must guarantee runs never overlap.
        """
        self._source = source
        self._destination = destination
        self._bindings = bindings
        self._lock = lock
        self._logger = EngineLogger(logger_instance)

    def run(self) -> Balance:
        """Run one reconciliation and return the source's current balance."""
        return self.reconcile().balance

    def reconcile(self) -> RunReport:
        """Run one reconciliation and return its full report.

        Raises:
            SourceUnavailable: Fetching transactions or the balance failed.
            DestinationUnavailable: The destination went away mid-batch;
                items bound before it stay bound.
            RunInProgress: Another run holds the lock, or took it over
                mid-run; nothing further is pushed.
            StoreUnavailable: The binding database could not be read.
        """
        guard: AbstractContextManager[None] = (
            self._lock.hold() if self._lock is not None else nullcontext()
        )
        with guard:
            return self._reconcile()

    def _reconcile(self) -> RunReport:
        self._logger.run_start()
        created: list[Binding] = []
        skipped: list[str] = []
        rejected: list[ItemFailure] = []
        unbound: list[ItemFailure] = []

        transactions = list(self._source.fetch_transactions())
        self._logger.fetched(len(transactions))

        for index, txn in enumerate(transactions):
            if self._bindings.contains(txn.id):
                skipped.append(txn.id)
                continue

            if self._lock is not None:
                self._lock.renew()

            try:
                destination_id = self._destination.create_transaction(txn)
            except DestinationRejected as e:
                self._logger.rejected(txn.id, e)
                rejected.append(ItemFailure(source_id=txn.id, error=str(e)))
                continue
            except DestinationUnavailable as e:
                self._logger.destination_unavailable(
                    txn.id, len(transactions) - index, e
                )
                raise

            try:
                self._bindings.put(txn.id, destination_id)
            except StoreWriteFailed as e:
                self._logger.store_write_failed(txn.id, destination_id, e)
                unbound.append(ItemFailure(source_id=txn.id, error=str(e)))
                continue

            self._logger.created(txn.id, destination_id)
            created.append(Binding(source_id=txn.id, destination_id=destination_id))

        report = RunReport(
            balance=self._source.fetch_balance(),
            created=created,
            skipped=skipped,
            rejected=rejected,
            unbound=unbound,
        )
        self._logger.run_complete(report)
        return report
