"""Shared test fixtures."""

from __future__ import annotations

import pytest

from bankmirror.adapters.db.facade import DB, BindingStore


@pytest.fixture
def db() -> DB:
    """In-memory database with the schema created."""
    database = DB("sqlite://")
    database.create_schema()
    return database


@pytest.fixture
def binding_store(db: DB) -> BindingStore:
    return BindingStore(db)
