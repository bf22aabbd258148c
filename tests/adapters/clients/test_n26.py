"""Tests for the N26 source client."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import patch

import pytest

from bankmirror.adapters.clients.http import HttpStatusError, HttpTransportError
from bankmirror.adapters.clients.n26 import N26Client
from bankmirror.errors import SourceUnavailable


def _make_client(page_size: int = 2) -> N26Client:
    return N26Client(
        username="me@example.com",
        password="hunter2",
        device_token="device-123",
        page_size=page_size,
    )


def _raw_txn(txn_id: str, amount: float = -9.99) -> dict:
    return {
        "id": txn_id,
        "amount": amount,
        "currencyCode": "EUR",
        "visibleTS": 1767225600000,
        "partnerName": "REWE",
        "referenceText": "Groceries",
        "type": "PT",
    }


class TestFetchTransactions:
    def test_maps_n26_fields_to_transaction(self) -> None:
        client = _make_client()

        with patch.object(client, "_request") as mock_request:
            mock_request.return_value = [_raw_txn("t1", amount=Decimal("-9.99"))]

            result = client.fetch_transactions()

        assert len(result) == 1
        txn = result[0]
        assert txn.id == "t1"
        assert txn.amount == Decimal("-9.99")
        assert txn.currency == "EUR"
        assert txn.booked_at == datetime(2026, 1, 1, 0, 0, tzinfo=UTC)
        assert txn.description == "Groceries"
        assert txn.counterparty == "REWE"

    def test_description_falls_back_to_counterparty(self) -> None:
        client = _make_client()
        raw = _raw_txn("t1")
        del raw["referenceText"]

        with patch.object(client, "_request") as mock_request:
            mock_request.return_value = [raw]

            result = client.fetch_transactions()

        assert result[0].description == "REWE"

    def test_pages_until_short_page(self) -> None:
        client = _make_client(page_size=2)

        with patch.object(client, "_request") as mock_request:
            mock_request.side_effect = [
                [_raw_txn("t1"), _raw_txn("t2")],
                [_raw_txn("t3")],
            ]

            result = client.fetch_transactions()

        assert [t.id for t in result] == ["t1", "t2", "t3"]
        paths = [c.args[1] for c in mock_request.call_args_list]
        assert paths[0] == "/api/smrt/transactions?limit=2"
        assert paths[1] == "/api/smrt/transactions?limit=2&lastId=t2"

    def test_malformed_payload_raises_source_unavailable(self) -> None:
        client = _make_client()

        with patch.object(client, "_request") as mock_request:
            mock_request.return_value = [{"id": "t1"}]

            with pytest.raises(SourceUnavailable, match="Malformed"):
                client.fetch_transactions()

    def test_non_list_payload_raises_source_unavailable(self) -> None:
        client = _make_client()

        with patch.object(client, "_request") as mock_request:
            mock_request.return_value = {"error": "nope"}

            with pytest.raises(SourceUnavailable):
                client.fetch_transactions()


class TestFetchBalance:
    def test_returns_available_balance(self) -> None:
        client = _make_client()

        with patch.object(client, "_request") as mock_request:
            mock_request.return_value = {
                "availableBalance": Decimal("1234.56"),
                "bankBalance": Decimal("1300.00"),
                "currency": "EUR",
            }

            balance = client.fetch_balance()

        assert balance.amount == Decimal("1234.56")
        assert balance.currency == "EUR"
        assert balance.as_of.tzinfo is not None


class TestTransport:
    @patch("bankmirror.adapters.clients.n26.request_json")
    def test_logs_in_once_and_sends_bearer_token(self, mock_request_json) -> None:
        mock_request_json.side_effect = [
            {"access_token": "tok-1", "expires_in": 3600},
            {"availableBalance": 10, "currency": "EUR"},
            {"availableBalance": 11, "currency": "EUR"},
        ]
        client = _make_client()

        client.fetch_balance()
        client.fetch_balance()

        assert mock_request_json.call_count == 3
        login = mock_request_json.call_args_list[0]
        assert login.args == ("POST", "https://api.tech26.de/oauth2/token")
        assert login.kwargs["form"]["grant_type"] == "password"
        assert login.kwargs["headers"]["device-token"] == "device-123"
        balance_call = mock_request_json.call_args_list[2]
        assert balance_call.kwargs["headers"]["Authorization"] == "Bearer tok-1"

    @patch("bankmirror.adapters.clients.n26.request_json")
    def test_auth_failure_raises_source_unavailable(self, mock_request_json) -> None:
        mock_request_json.side_effect = HttpStatusError(401, "invalid_grant")
        client = _make_client()

        with pytest.raises(SourceUnavailable, match="401"):
            client.fetch_transactions()

    @patch("bankmirror.adapters.clients.n26.request_json")
    def test_network_failure_raises_source_unavailable(
        self, mock_request_json
    ) -> None:
        mock_request_json.side_effect = HttpTransportError("connection refused")
        client = _make_client()

        with pytest.raises(SourceUnavailable, match="connection refused"):
            client.fetch_balance()
