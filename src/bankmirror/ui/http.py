"""HTTP surface: manual update trigger, published balance, version."""

from __future__ import annotations

from collections.abc import Callable
import threading
from typing import Generic, TypeVar

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from loguru import logger

from bankmirror import __version__
from bankmirror.adapters.storage.r2 import (
    DownloadError,
    ObjectStore,
    R2ObjectStore,
    StorageError,
)
from bankmirror.core.config import load_settings_from_env
from bankmirror.core.factory import Services, build_services
from bankmirror.errors import BankMirrorError
from bankmirror.jobs.update import read_balance, run_update

T = TypeVar("T")


class _Lazy(Generic[T]):
    """Builds a value on first use; concurrent first callers share one build."""

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._value: T | None = None

    def get(self) -> T:
        with self._lock:
            if self._value is None:
                self._value = self._factory()
            return self._value


def _default_services() -> Services:
    load_dotenv(override=False)
    return build_services(load_settings_from_env())


def _default_store() -> ObjectStore:
    load_dotenv(override=False)
    return R2ObjectStore.from_env()


def create_app(
    *,
    services_factory: Callable[[], Services] = _default_services,
    store_factory: Callable[[], ObjectStore] = _default_store,
) -> FastAPI:
    """Build the app. Services and store are created on first use, then reused."""
    app = FastAPI(title="bankmirror", version=__version__)
    services = _Lazy(services_factory)
    store = _Lazy(store_factory)

    @app.get("/trigger-update", response_class=PlainTextResponse)
    def trigger_update() -> PlainTextResponse:
        try:
            engine = services.get().engine
            object_store = store.get()
        except (BankMirrorError, StorageError) as e:
            logger.error("Cannot build services: {}", e)
            return PlainTextResponse(f"{type(e).__name__}: {e}", status_code=503)

        result = run_update(engine, object_store, trigger="manual")
        if result.success:
            return PlainTextResponse(result.balance_text or "")
        status = 409 if result.error_kind == "RunInProgress" else 503
        return PlainTextResponse(
            f"{result.error_kind}: {result.error}", status_code=status
        )

    @app.get("/balance", response_class=PlainTextResponse)
    def get_balance() -> PlainTextResponse:
        try:
            text = read_balance(store.get())
        except DownloadError as e:
            logger.warning("Balance unavailable: {}", e)
            return PlainTextResponse("balance unavailable", status_code=404)
        except StorageError as e:
            logger.error("Cannot reach balance store: {}", e)
            return PlainTextResponse("balance unavailable", status_code=503)
        logger.info("Retrieved balance")
        return PlainTextResponse(text)

    @app.get("/version", response_class=PlainTextResponse)
    def get_version() -> PlainTextResponse:
        return PlainTextResponse(__version__)

    return app
