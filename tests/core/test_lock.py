from __future__ import annotations

from datetime import timedelta

import pytest

from bankmirror.adapters.db.facade import DB
from bankmirror.core.lock import RunLock
from bankmirror.errors import RunInProgress, StoreUnavailable


class TestRunLock:
    def test_second_holder_is_refused(self, db: DB) -> None:
        first = RunLock(db, "bindings", holder="first")
        second = RunLock(db, "bindings", holder="second")

        first.acquire()

        with pytest.raises(RunInProgress, match="bindings"):
            second.acquire()

    def test_release_lets_next_holder_in(self, db: DB) -> None:
        first = RunLock(db, "bindings", holder="first")
        second = RunLock(db, "bindings", holder="second")

        first.acquire()
        first.release()
        second.acquire()

    def test_release_by_other_holder_is_ignored(self, db: DB) -> None:
        first = RunLock(db, "bindings", holder="first")
        second = RunLock(db, "bindings", holder="second")

        first.acquire()
        second.release()

        with pytest.raises(RunInProgress):
            second.acquire()

    def test_expired_lease_is_taken_over(self, db: DB) -> None:
        crashed = RunLock(db, "bindings", holder="crashed", ttl=timedelta(seconds=-1))
        crashed.acquire()

        RunLock(db, "bindings", holder="next").acquire()

    def test_locks_with_different_names_are_independent(self, db: DB) -> None:
        RunLock(db, "bindings").acquire()
        RunLock(db, "other").acquire()

    def test_hold_releases_on_exception(self, db: DB) -> None:
        lock = RunLock(db, "bindings")

        with pytest.raises(ValueError), lock.hold():
            raise ValueError("boom")

        RunLock(db, "bindings").acquire()

    def test_renew_extends_own_lease(self, db: DB) -> None:
        RunLock(db, "bindings", holder="run", ttl=timedelta(seconds=-1)).acquire()

        RunLock(db, "bindings", holder="run").renew()

        with pytest.raises(RunInProgress):
            RunLock(db, "bindings", holder="other").acquire()

    def test_renew_after_takeover_raises(self, db: DB) -> None:
        slow = RunLock(db, "bindings", holder="slow", ttl=timedelta(seconds=-1))
        slow.acquire()
        RunLock(db, "bindings", holder="manual").acquire()

        with pytest.raises(RunInProgress, match="Lost"):
            slow.renew()

    def test_renew_after_release_raises(self, db: DB) -> None:
        lock = RunLock(db, "bindings")
        lock.acquire()
        lock.release()

        with pytest.raises(RunInProgress):
            lock.renew()


class TestRunLockDatabaseErrors:
    def test_acquire_without_schema_raises_store_unavailable(self) -> None:
        lock = RunLock(DB("sqlite://"), "bindings")

        with pytest.raises(StoreUnavailable, match="bindings"):
            lock.acquire()

    def test_renew_without_schema_raises_store_unavailable(self) -> None:
        with pytest.raises(StoreUnavailable):
            RunLock(DB("sqlite://"), "bindings").renew()

    def test_release_without_schema_raises_store_unavailable(self) -> None:
        with pytest.raises(StoreUnavailable):
            RunLock(DB("sqlite://"), "bindings").release()
