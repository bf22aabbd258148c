"""Object storage adapters."""

from __future__ import annotations

from bankmirror.adapters.storage.r2 import (
    BALANCE_KEY,
    DownloadError,
    ObjectExistsError,
    ObjectStore,
    R2Config,
    R2ObjectStore,
    StorageConfigError,
    StorageError,
    StoredObject,
    UploadError,
    backup_key,
    load_r2_config_from_env,
)

__all__ = [
    "BALANCE_KEY",
    "DownloadError",
    "ObjectExistsError",
    "ObjectStore",
    "R2Config",
    "R2ObjectStore",
    "StorageConfigError",
    "StorageError",
    "StoredObject",
    "UploadError",
    "backup_key",
    "load_r2_config_from_env",
]
