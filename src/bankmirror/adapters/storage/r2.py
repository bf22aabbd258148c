"""Cloudflare R2 object storage adapter (S3-compatible via boto3).

Holds the published balance snapshot and the timestamped backups.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class StorageError(Exception):
    """Base error for object storage operations."""


class StorageConfigError(StorageError):
    """Missing or invalid R2 configuration."""


class UploadError(StorageError):
    """Failed to upload an object."""


class ObjectExistsError(UploadError):
    """Refused to overwrite an existing object."""


class DownloadError(StorageError):
    """Failed to download an object."""


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------

_REQUIRED_ENV_VARS = (
    "R2_ACCOUNT_ID",
    "R2_ACCESS_KEY_ID",
    "R2_SECRET_ACCESS_KEY",
    "R2_BUCKET",
)

BALANCE_KEY = "info/balance"
BACKUP_PREFIX = "backups/"


@dataclass(frozen=True, slots=True)
class R2Config:
    """Credentials and bucket info for Cloudflare R2."""

    account_id: str
    access_key_id: str
    secret_access_key: str
    bucket: str

    @property
    def endpoint_url(self) -> str:
        return f"https://{self.account_id}.r2.cloudflarestorage.com"


@dataclass(frozen=True, slots=True)
class StoredObject:
    """Metadata returned after a successful upload."""

    key: str
    bucket: str
    content_type: str


class ObjectStore(Protocol):
    """What the jobs need from a blob store."""

    def put_text(
        self,
        key: str,
        text: str,
        *,
        content_type: str = ...,
        overwrite: bool = ...,
    ) -> StoredObject: ...

    def get_text(self, key: str) -> str: ...


# ---------------------------------------------------------------------------
# Config loader
# ---------------------------------------------------------------------------


def load_r2_config_from_env() -> R2Config:
    """Load R2 configuration from environment variables.

    Required env vars: R2_ACCOUNT_ID, R2_ACCESS_KEY_ID,
    R2_SECRET_ACCESS_KEY, R2_BUCKET.

    Raises:
        StorageConfigError: If any required variable is missing.
    """
    missing = [var for var in _REQUIRED_ENV_VARS if not os.environ.get(var)]
    if missing:
        raise StorageConfigError(
            f"Missing required R2 env var(s): {', '.join(missing)}"
        )

    return R2Config(
        account_id=os.environ["R2_ACCOUNT_ID"],
        access_key_id=os.environ["R2_ACCESS_KEY_ID"],
        secret_access_key=os.environ["R2_SECRET_ACCESS_KEY"],
        bucket=os.environ["R2_BUCKET"],
    )


def backup_key(name: str) -> str:
    """Object key for a backup document: ``backups/<name>``."""
    return f"{BACKUP_PREFIX}{name}"


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class R2ObjectStore:
    """Text objects in one R2 bucket."""

    def __init__(self, config: R2Config) -> None:
        self._config = config
        self._client: Any | None = None

    @classmethod
    def from_env(cls) -> R2ObjectStore:
        return cls(load_r2_config_from_env())

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=self._config.endpoint_url,
                aws_access_key_id=self._config.access_key_id,
                aws_secret_access_key=self._config.secret_access_key,
                region_name="auto",
            )
        return self._client

    def put_text(
        self,
        key: str,
        text: str,
        *,
        content_type: str = "text/plain; charset=utf-8",
        overwrite: bool = True,
    ) -> StoredObject:
        """Upload ``text`` under ``key``.

        With ``overwrite=False`` the write is conditional (``If-None-Match: *``)
        and fails with :class:`ObjectExistsError` if ``key`` already exists.

        Raises:
            ObjectExistsError: ``overwrite`` is False and the key exists.
            UploadError: If the upload fails.
        """
        bucket = self._config.bucket
        put_kwargs: dict[str, object] = {
            "Bucket": bucket,
            "Key": key,
            "Body": text.encode("utf-8"),
            "ContentType": content_type,
        }
        if not overwrite:
            put_kwargs["IfNoneMatch"] = "*"

        try:
            self._get_client().put_object(**put_kwargs)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code == "PreconditionFailed":
                raise ObjectExistsError(
                    f"Object {key!r} already exists in {bucket}"
                ) from exc
            raise UploadError(f"Failed to upload {key!r} to {bucket}: {exc}") from exc
        except BotoCoreError as exc:
            raise UploadError(f"Failed to upload {key!r} to {bucket}: {exc}") from exc

        logger.bind(key=key, bucket=bucket).info("Uploaded object to R2: {}", key)
        return StoredObject(key=key, bucket=bucket, content_type=content_type)

    def get_text(self, key: str) -> str:
        """Download the object at ``key`` and decode it as UTF-8.

        Raises:
            DownloadError: If the download fails.
        """
        bucket = self._config.bucket
        try:
            response = self._get_client().get_object(Bucket=bucket, Key=key)
            body: bytes = response["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            msg = f"Failed to download {key!r} from {bucket}: {exc}"
            raise DownloadError(msg) from exc
        return body.decode("utf-8")
