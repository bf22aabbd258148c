"""Source (N26) and destination (YNAB) API clients."""

from bankmirror.adapters.clients.n26 import N26Client
from bankmirror.adapters.clients.ynab import YnabClient, YnabTransaction, make_import_id

__all__ = [
    "N26Client",
    "YnabClient",
    "YnabTransaction",
    "make_import_id",
]
