"""Database lease that serializes reconciliation runs.

A scheduled run and a manual trigger may overlap. Both read-then-write the
binding store, so only one may run at a time. The lease row lives in the same
database as the bindings; an expired lease (crashed holder) can be taken over.
A live run calls :meth:`RunLock.renew` before every destination write, so it
either keeps the lease or stops pushing.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
import uuid

from loguru import logger
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from bankmirror.adapters.db.facade import DB
from bankmirror.adapters.db.models import RunLease
from bankmirror.errors import RunInProgress, StoreUnavailable

DEFAULT_LEASE_TTL = timedelta(minutes=15)


def _utcnow() -> datetime:
    # Stored naive: SQLite TIMESTAMP columns drop tzinfo.
    return datetime.now(UTC).replace(tzinfo=None)


class RunLock:
    def __init__(
        self,
        db: DB,
        name: str,
        *,
        ttl: timedelta = DEFAULT_LEASE_TTL,
        holder: str | None = None,
    ) -> None:
        self._db = db
        self._name = name
        self._ttl = ttl
        self._holder = holder or uuid.uuid4().hex

    @property
    def holder(self) -> str:
        return self._holder

    def acquire(self) -> None:
        """Take the lease or raise :class:`RunInProgress`.

        Raises:
            RunInProgress: A live lease is held by someone else.
            StoreUnavailable: The lease table could not be read or written.
        """
        now = _utcnow()
        lease = RunLease(
            name=self._name,
            holder=self._holder,
            acquired_at=now,
            expires_at=now + self._ttl,
        )
        try:
            with self._db.session() as session:
                session.add(lease)
            return
        except IntegrityError:
            pass
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to take {self._name!r} lease: {e}") from e

        try:
            with self._db.session() as session:
                result = session.execute(
                    update(RunLease)
                    .where(RunLease.name == self._name, RunLease.expires_at < now)
                    .values(
                        holder=self._holder,
                        acquired_at=now,
                        expires_at=now + self._ttl,
                    )
                )
                taken_over = result.rowcount == 1  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to take {self._name!r} lease: {e}") from e

        if not taken_over:
            raise RunInProgress(f"Another run holds the {self._name!r} lock")
        logger.bind(lock=self._name, holder=self._holder).warning(
            "Took over expired run lease {}", self._name
        )

    def renew(self) -> None:
        """Push the expiry out by one TTL, provided this holder still owns it.

        Raises:
            RunInProgress: The lease was taken over or released.
            StoreUnavailable: The lease table could not be written.
        """
        try:
            with self._db.session() as session:
                result = session.execute(
                    update(RunLease)
                    .where(
                        RunLease.name == self._name,
                        RunLease.holder == self._holder,
                    )
                    .values(expires_at=_utcnow() + self._ttl)
                )
                renewed = result.rowcount == 1  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise StoreUnavailable(
                f"Failed to renew {self._name!r} lease: {e}"
            ) from e

        if not renewed:
            logger.bind(lock=self._name, holder=self._holder).error(
                "Lost run lease {}", self._name
            )
            raise RunInProgress(f"Lost the {self._name!r} lock to another run")

    def release(self) -> None:
        try:
            with self._db.session() as session:
                session.execute(
                    delete(RunLease).where(
                        RunLease.name == self._name, RunLease.holder == self._holder
                    )
                )
        except SQLAlchemyError as e:
            raise StoreUnavailable(
                f"Failed to release {self._name!r} lease: {e}"
            ) from e

    @contextmanager
    def hold(self) -> Iterator[None]:
        self.acquire()
        try:
            yield
        finally:
            self.release()
