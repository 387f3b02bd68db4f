"""Refresh of the Noest delivery tariff document over HTTP.

The builder itself never touches the network. When a tariff endpoint is
configured, ``fetch_delivery_prices`` downloads the fees payload, checks that
it has the ``delivery`` mapping the tariff loader expects, and replaces
``deliveryPrices.json`` in the data directory atomically.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

import httpx

from wilaya_data.sources import BuildError

logger = logging.getLogger(__name__)

_TIMEOUT: Final[int] = 60
_RETRIES: Final[int] = 3


class DownloadError(BuildError):
    """Raised when the tariff endpoint fails or returns an unusable payload."""

    def __init__(self, url: str, status_code: int, body: str) -> None:
        self.url: Final[str] = url
        self.status_code: Final[int] = status_code
        self.body: Final[str] = body
        super().__init__(f"HTTP {status_code} for {url}: {body[:200]}")


@dataclass(frozen=True, slots=True)
class DownloadResult:
    """Metadata for a refreshed tariff document.

    Attributes:
        file_path: Local path the document was written to.
        url: Endpoint it was fetched from.
        http_status: HTTP response status code.
        byte_size: Size of the written file in bytes.
        sha256_hash: SHA-256 hex digest of the written file.
        download_timestamp: ISO 8601 timestamp of the download.
        entry_count: Number of entries in the ``delivery`` mapping.
    """

    file_path: str
    url: str
    http_status: int
    byte_size: int
    sha256_hash: str
    download_timestamp: str
    entry_count: int


def _build_client() -> httpx.Client:
    """Construct an httpx client configured for the tariff endpoint."""
    transport: httpx.HTTPTransport = httpx.HTTPTransport(retries=_RETRIES)
    return httpx.Client(timeout=_TIMEOUT, transport=transport)


def fetch_delivery_prices(
    url: str,
    dest: Path,
    client: httpx.Client | None = None,
) -> DownloadResult:
    """Download the Noest fees payload and store it as the tariff source.

    Args:
        url: Tariff endpoint, including any query-string credentials.
        dest: Destination file, normally data/deliveryPrices.json.
        client: Optional preconfigured client. A retrying client is built
            and closed when omitted.

    Returns:
        DownloadResult describing the written file.

    Raises:
        DownloadError: On HTTP 4xx/5xx, a non-JSON body, or a payload
            without a ``delivery`` mapping. ``dest`` is left untouched.
    """
    owns_client = client is None
    http = client if client is not None else _build_client()
    try:
        logger.info("Fetching delivery prices from %s", url)
        response: httpx.Response = http.get(url)
    finally:
        if owns_client:
            http.close()

    if response.status_code >= 400:
        raise DownloadError(url, response.status_code, response.text)

    try:
        payload: object = response.json()
    except json.JSONDecodeError as exc:
        raise DownloadError(url, response.status_code, f"invalid JSON: {exc}") from exc

    if not isinstance(payload, dict) or not isinstance(payload.get("delivery"), dict):
        raise DownloadError(
            url, response.status_code, "payload has no 'delivery' mapping"
        )

    text = json.dumps(payload, indent=2, ensure_ascii=False)
    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Path = dest.with_suffix(".tmp")
    try:
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(str(tmp_path), str(dest))
    finally:
        tmp_path.unlink(missing_ok=True)

    raw = dest.read_bytes()
    result = DownloadResult(
        file_path=str(dest),
        url=url,
        http_status=response.status_code,
        byte_size=len(raw),
        sha256_hash=hashlib.sha256(raw).hexdigest(),
        download_timestamp=datetime.now(tz=UTC).isoformat(),
        entry_count=len(payload["delivery"]),
    )
    logger.info(
        "Saved %d tariff entries to %s (%d bytes)",
        result.entry_count,
        dest,
        result.byte_size,
    )
    return result
