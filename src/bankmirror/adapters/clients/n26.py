"""N26 banking API client (source of transactions and balance)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any, Self
import urllib.parse

from pydantic import BaseModel, Field, ValidationError

from bankmirror.adapters.clients.http import (
    HttpStatusError,
    HttpTransportError,
    request_json,
)
from bankmirror.errors import SourceUnavailable
from bankmirror.models.transaction import Balance, Transaction

N26_BASE_URL = "https://api.tech26.de"

# Public client credentials of the N26 mobile app ("android:secret").
_BASIC_AUTH = "Basic YW5kcm9pZDpzZWNyZXQ="

_TOKEN_EXPIRY_MARGIN = timedelta(seconds=30)


class N26BaseModel(BaseModel):
    """Shared base for N26 response models with a short parse alias."""

    @classmethod
    def parse(cls, data: Any) -> Self:
        return cls.model_validate(data)


class TokenResponse(N26BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int = 0


class N26TransactionModel(N26BaseModel):
    id: str
    amount: Decimal
    currency_code: str = Field(default="EUR", alias="currencyCode")
    visible_ts: int = Field(alias="visibleTS")  # epoch milliseconds
    partner_name: str | None = Field(default=None, alias="partnerName")
    merchant_name: str | None = Field(default=None, alias="merchantName")
    reference_text: str | None = Field(default=None, alias="referenceText")
    type: str | None = None

    def to_domain(self) -> Transaction:
        counterparty = self.partner_name or self.merchant_name
        description = self.reference_text or counterparty or self.type or ""
        return Transaction(
            id=self.id,
            booked_at=datetime.fromtimestamp(self.visible_ts / 1000, tz=UTC),
            amount=self.amount,
            currency=self.currency_code,
            description=description,
            counterparty=counterparty,
        )


class N26AccountModel(N26BaseModel):
    available_balance: Decimal = Field(alias="availableBalance")
    bank_balance: Decimal | None = Field(default=None, alias="bankBalance")
    currency: str = "EUR"


class N26Client:
    """Read-only client for the N26 transaction list and account balance.

    Every failure (network, HTTP status, malformed payload, authentication)
    surfaces as :class:`SourceUnavailable`.
    """

    def __init__(
        self,
        *,
        username: str,
        password: str,
        device_token: str,
        base_url: str = N26_BASE_URL,
        page_size: int = 200,
    ) -> None:
        self._username = username
        self._password = password
        self._device_token = device_token
        self._base_url = base_url.rstrip("/")
        self._page_size = page_size
        self._access_token: str | None = None
        self._token_expires_at: datetime | None = None

    # Transport -----------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        form: dict[str, str] | None = None,
        authenticated: bool = True,
    ) -> Any:
        headers = {"device-token": self._device_token}
        if authenticated:
            headers["Authorization"] = f"Bearer {self._token()}"
        else:
            headers["Authorization"] = _BASIC_AUTH

        try:
            return request_json(
                method, self._base_url + path, headers=headers, form=form
            )
        except HttpStatusError as e:
            if e.status == 401 and authenticated:
                # Force a fresh login on the next call.
                self._access_token = None
            raise SourceUnavailable(f"N26 API error ({e.status}): {e.body}") from e
        except HttpTransportError as e:
            raise SourceUnavailable(str(e)) from e

    def _token(self) -> str:
        now = datetime.now(UTC)
        if (
            self._access_token is not None
            and self._token_expires_at is not None
            and now < self._token_expires_at
        ):
            return self._access_token

        data = self._request(
            "POST",
            "/oauth2/token",
            form={
                "grant_type": "password",
                "username": self._username,
                "password": self._password,
            },
            authenticated=False,
        )
        try:
            token = TokenResponse.parse(data)
        except ValidationError as e:
            raise SourceUnavailable(f"Unexpected N26 token response: {e}") from e

        self._access_token = token.access_token
        self._token_expires_at = (
            now + timedelta(seconds=token.expires_in) - _TOKEN_EXPIRY_MARGIN
        )
        return token.access_token

    # High-level APIs -----------------------------------------------------

    def fetch_transactions(self) -> list[Transaction]:
        """Return every transaction of the account, paging until a short page."""
        transactions: list[Transaction] = []
        last_id: str | None = None

        while True:
            params: dict[str, str] = {"limit": str(self._page_size)}
            if last_id is not None:
                params["lastId"] = last_id
            query = urllib.parse.urlencode(params)
            data = self._request("GET", f"/api/smrt/transactions?{query}")
            if not isinstance(data, list):
                raise SourceUnavailable(
                    f"Unexpected N26 transactions payload: {type(data).__name__}"
                )
            try:
                page = [N26TransactionModel.parse(item).to_domain() for item in data]
            except ValidationError as e:
                raise SourceUnavailable(f"Malformed N26 transaction: {e}") from e

            transactions.extend(page)
            if len(page) < self._page_size:
                return transactions
            last_id = page[-1].id

    def fetch_balance(self) -> Balance:
        """Return the account's available balance as of now."""
        data = self._request("GET", "/api/accounts")
        try:
            account = N26AccountModel.parse(data)
        except ValidationError as e:
            raise SourceUnavailable(f"Malformed N26 account payload: {e}") from e
        return Balance(
            amount=account.available_balance,
            currency=account.currency,
            as_of=datetime.now(UTC),
        )
