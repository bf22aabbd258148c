"""SQLAlchemy-backed binding store and run leases."""

from bankmirror.adapters.db.facade import DB, BindingStore
from bankmirror.adapters.db.models import Base, BindingRow, RunLease

__all__ = ["DB", "Base", "BindingRow", "BindingStore", "RunLease"]
