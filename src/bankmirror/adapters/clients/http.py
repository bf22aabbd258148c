"""Minimal JSON-over-HTTPS transport shared by the API clients."""

from __future__ import annotations

from decimal import Decimal
import json
from typing import Any
import urllib.error
import urllib.parse
import urllib.request

DEFAULT_TIMEOUT_SECONDS = 30.0


class HttpTransportError(Exception):
    """The request never produced an HTTP response (DNS, TLS, timeout...)."""


class HttpStatusError(Exception):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"HTTP {status}: {body}")
        self.status = status
        self.body = body


def request_json(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    json_body: Any | None = None,
    form: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Any:
    """Send a request and decode the JSON response body.

    Args:
        method: HTTP method (``GET``, ``POST``...).
        url: Absolute URL, query string included.
        headers: Extra request headers.
        json_body: Payload encoded as JSON. Mutually exclusive with ``form``.
        form: Payload encoded as ``application/x-www-form-urlencoded``.
        timeout: Socket timeout in seconds.

    Returns:
        The decoded JSON document, or ``None`` for an empty body.

    Raises:
        HttpStatusError: On a non-2xx response.
        HttpTransportError: On network failure or an undecodable body.
    """
    all_headers = {"Accept": "application/json", **(headers or {})}
    data: bytes | None = None
    if json_body is not None:
        data = json.dumps(json_body).encode("utf-8")
        all_headers["Content-Type"] = "application/json"
    elif form is not None:
        data = urllib.parse.urlencode(form).encode("utf-8")
        all_headers["Content-Type"] = "application/x-www-form-urlencoded"

    req = urllib.request.Request(  # noqa: S310
        url, data=data, headers=all_headers, method=method
    )

    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:  # noqa: S310
            body = resp.read().decode("utf-8")
    except urllib.error.HTTPError as e:
        err_body = e.read().decode("utf-8", "ignore")
        raise HttpStatusError(e.code, err_body) from e
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        raise HttpTransportError(f"Network error calling {url}: {e}") from e

    if not body.strip():
        return None
    try:
        return json.loads(body, parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise HttpTransportError(
            f"Failed to parse response from {url} as JSON: {e}: {body}"
        ) from e
