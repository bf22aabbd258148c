"""YNAB API client (destination for mirrored transactions)."""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_EVEN, Decimal
import hashlib
from typing import Any, Self
import urllib.parse

from pydantic import BaseModel, Field, ValidationError

from bankmirror.adapters.clients.http import (
    HttpStatusError,
    HttpTransportError,
    request_json,
)
from bankmirror.errors import DestinationRejected, DestinationUnavailable
from bankmirror.models.transaction import Transaction

YNAB_BASE_URL = "https://api.youneedabudget.com/v1"

# Statuses for which retrying the same payload cannot succeed.
_PERMANENT_STATUSES = frozenset({400, 404, 409, 422})

IMPORT_ID_MAX_LENGTH = 36
PAYEE_NAME_MAX_LENGTH = 50
MEMO_MAX_LENGTH = 200


class YnabBaseModel(BaseModel):
    """Shared base for YNAB response models with a short parse alias."""

    @classmethod
    def parse(cls, data: Any) -> Self:
        return cls.model_validate(data)


class YnabTransaction(YnabBaseModel):
    """A transaction as stored in YNAB."""

    id: str
    posted_on: date = Field(alias="date")
    amount: int  # milliunits
    memo: str | None = None
    payee_name: str | None = None
    import_id: str | None = None
    deleted: bool = False


class SaveTransactionsData(YnabBaseModel):
    transaction_ids: list[str] = Field(default_factory=list)
    duplicate_import_ids: list[str] = Field(default_factory=list)


class SaveTransactionsResponse(YnabBaseModel):
    data: SaveTransactionsData


class TransactionsData(YnabBaseModel):
    transactions: list[YnabTransaction] = Field(default_factory=list)


class TransactionsResponse(YnabBaseModel):
    data: TransactionsData


def make_import_id(source_id: str) -> str:
    """Derive the YNAB ``import_id`` for a source transaction id.

    YNAB dedups on ``import_id`` per account, capped at 36 characters. Ids
    that fit are used verbatim; longer ones map to a stable digest.
    """
    if len(source_id) <= IMPORT_ID_MAX_LENGTH:
        return source_id
    digest = hashlib.sha1(source_id.encode("utf-8")).hexdigest()  # noqa: S324
    return f"BM:{digest[: IMPORT_ID_MAX_LENGTH - 3]}"


def to_milliunits(amount: Decimal) -> int:
    """Convert a currency amount to YNAB milliunits (1.00 -> 1000)."""
    return int((amount * 1000).quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


class YnabClient:
    """Creates and lists transactions in one YNAB budget account."""

    def __init__(
        self,
        *,
        api_key: str,
        budget_id: str,
        account_id: str,
        base_url: str = YNAB_BASE_URL,
    ) -> None:
        self._api_key = api_key
        self._budget_id = budget_id
        self._account_id = account_id
        self._base_url = base_url.rstrip("/")

    def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self._base_url}/budgets/{self._budget_id}{path}"
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            return request_json(method, url, headers=headers, json_body=payload)
        except HttpStatusError as e:
            msg = f"YNAB API error ({e.status}): {e.body}"
            if e.status in _PERMANENT_STATUSES:
                raise DestinationRejected(msg) from e
            raise DestinationUnavailable(msg) from e
        except HttpTransportError as e:
            raise DestinationUnavailable(str(e)) from e

    def _build_payload(self, txn: Transaction) -> dict[str, Any]:
        payee = txn.counterparty or txn.description or None
        return {
            "account_id": self._account_id,
            "date": txn.booked_at.date().isoformat(),
            "amount": to_milliunits(txn.amount),
            "payee_name": payee[:PAYEE_NAME_MAX_LENGTH] if payee else None,
            "memo": txn.description[:MEMO_MAX_LENGTH] or None,
            "cleared": "cleared",
            "approved": False,
            "import_id": make_import_id(txn.id),
        }

    def create_transaction(self, txn: Transaction) -> str:
        """Create ``txn`` in YNAB and return the YNAB transaction id.

        The source id travels as ``import_id``. When YNAB reports it as a
        duplicate, the already-existing record is looked up and its id is
        returned, so calling this twice for the same source transaction never
        yields two records.

        Raises:
            DestinationRejected: The payload was refused permanently.
            DestinationUnavailable: Network, auth, rate limit or server error.
        """
        payload = {"transactions": [self._build_payload(txn)]}
        data = self._request("POST", "/transactions", payload)
        try:
            resp = SaveTransactionsResponse.parse(data)
        except ValidationError as e:
            raise DestinationUnavailable(
                f"Unexpected YNAB create response: {e}"
            ) from e

        if resp.data.transaction_ids:
            return resp.data.transaction_ids[0]

        import_id = make_import_id(txn.id)
        if import_id in resp.data.duplicate_import_ids:
            existing = self.find_by_import_id(
                import_id, since_date=txn.booked_at.date()
            )
            if existing is not None:
                return existing.id
            raise DestinationRejected(
                f"YNAB reports import_id {import_id!r} as duplicate "
                "but no matching transaction is visible"
            )

        raise DestinationUnavailable(
            f"YNAB created no transaction for import_id {import_id!r}"
        )

    def list_transactions(
        self, *, since_date: date | None = None
    ) -> list[YnabTransaction]:
        """List non-deleted transactions of the configured account."""
        path = f"/accounts/{self._account_id}/transactions"
        if since_date is not None:
            query = urllib.parse.urlencode({"since_date": since_date.isoformat()})
            path = f"{path}?{query}"
        data = self._request("GET", path)
        try:
            resp = TransactionsResponse.parse(data)
        except ValidationError as e:
            raise DestinationUnavailable(
                f"Unexpected YNAB transactions response: {e}"
            ) from e
        return [txn for txn in resp.data.transactions if not txn.deleted]

    def find_by_import_id(
        self, import_id: str, *, since_date: date | None = None
    ) -> YnabTransaction | None:
        for txn in self.list_transactions(since_date=since_date):
            if txn.import_id == import_id:
                return txn
        return None
