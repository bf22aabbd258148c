from __future__ import annotations

from dataclasses import dataclass

from bankmirror.adapters.clients.n26 import N26Client
from bankmirror.adapters.clients.ynab import YnabClient
from bankmirror.adapters.db.facade import DB, BindingStore
from bankmirror.core.backup import BackupExporter
from bankmirror.core.config import Settings
from bankmirror.core.engine import ReconciliationEngine
from bankmirror.core.lock import RunLock


@dataclass(frozen=True, slots=True)
class Services:
    """Long-lived objects built once per process and reused across runs."""

    engine: ReconciliationEngine
    exporter: BackupExporter
    bindings: BindingStore


def build_services(settings: Settings) -> Services:
    db = DB(settings.database_url)
    db.create_schema()
    bindings = BindingStore(db)

    source = N26Client(
        username=settings.n26.username,
        password=settings.n26.password,
        device_token=settings.n26.device_token,
    )
    destination = YnabClient(
        api_key=settings.ynab.api_key,
        budget_id=settings.ynab.budget_id,
        account_id=settings.ynab.account_id,
    )
    engine = ReconciliationEngine(
        source,
        destination,
        bindings,
        lock=RunLock(db, bindings.identity),
    )
    return Services(
        engine=engine,
        exporter=BackupExporter(source),
        bindings=bindings,
    )
