from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from bankmirror.adapters.db.models import Base, BindingRow
from bankmirror.errors import StoreUnavailable, StoreWriteFailed
from bankmirror.models.transaction import Binding


class DB:
    """Database connection shared by the binding store and the run lock."""

    def __init__(self, url: str) -> None:
        """Initialize database connection.

        Args:
            url: Database URL (e.g., "sqlite:///bankmirror.db")
        """
        self._url = url
        self._engine = create_engine(url, echo=False)
        self._session_factory = sessionmaker(bind=self._engine, class_=Session)

    @property
    def url(self) -> str:
        return self._url

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context manager for database sessions."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_schema(self) -> None:
        """Create all tables that do not exist yet.

        Raises:
            StoreUnavailable: If the database cannot be reached.
        """
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to create schema: {e}") from e


class BindingStore:
    """Durable idempotency ledger: which source transactions were mirrored.

    Bindings are written once and never updated or deleted.
    """

    def __init__(self, db: DB) -> None:
        self._db = db

    @property
    def db(self) -> DB:
        return self._db

    @property
    def identity(self) -> str:
        """Name keying the run lock; leases live in the same database."""
        return BindingRow.__tablename__

    def contains(self, source_id: str) -> bool:
        return self.get(source_id) is not None

    def get(self, source_id: str) -> str | None:
        """Return the destination id bound to ``source_id``, if any.

        Raises:
            StoreUnavailable: If the database could not be read.
        """
        try:
            with self._db.session() as session:  # type: Session
                row = session.get(BindingRow, source_id)
                return row.destination_id if row else None
        except SQLAlchemyError as e:
            msg = f"Failed to read binding {source_id!r}: {e}"
            raise StoreUnavailable(msg) from e

    def put(self, source_id: str, destination_id: str) -> None:
        """Record that ``source_id`` was mirrored as ``destination_id``.

        Re-recording the same pair is a no-op.

        Raises:
            StoreWriteFailed: If the row could not be written, or ``source_id``
                is already bound to a different destination id.
        """
        try:
            with self._db.session() as session:  # type: Session
                session.add(
                    BindingRow(source_id=source_id, destination_id=destination_id)
                )
        except IntegrityError as e:
            try:
                existing = self.get(source_id)
            except StoreUnavailable as read_error:
                raise StoreWriteFailed(str(read_error)) from read_error
            if existing == destination_id:
                logger.bind(source_id=source_id).debug(
                    "Binding for {} already recorded", source_id
                )
                return
            raise StoreWriteFailed(
                f"Source id {source_id!r} is already bound to {existing!r}, "
                f"refusing to rebind to {destination_id!r}"
            ) from e
        except SQLAlchemyError as e:
            raise StoreWriteFailed(
                f"Failed to write binding {source_id!r} -> {destination_id!r}: {e}"
            ) from e

    def count(self) -> int:
        try:
            with self._db.session() as session:  # type: Session
                stmt = select(func.count()).select_from(BindingRow)
                return session.scalar(stmt) or 0
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to count bindings: {e}") from e

    def list_bindings(self) -> list[Binding]:
        try:
            with self._db.session() as session:  # type: Session
                rows = session.scalars(
                    select(BindingRow).order_by(BindingRow.created_at)
                ).all()
                return [
                    Binding(
                        source_id=row.source_id, destination_id=row.destination_id
                    )
                    for row in rows
                ]
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to list bindings: {e}") from e
