"""Table loaders for the five reference sources.

Each loader turns one raw source into a normalized in-memory index:

- ``load_stations``: station name -> station code
- ``load_wilayas``: wilaya code -> wilaya name
- ``load_communes``: wilaya code -> ordered commune names
- ``load_delivery_prices``: wilaya code -> PricePair
- ``load_legacy_data``: commune name -> previous wilaya record

Malformed CSV rows are skipped without being reported (a DEBUG count is the
only trace). Tariffs that do not parse as integers abort the run.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from wilaya_data.contracts import (
    CODE_WILAYAS_CONTRACT,
    COMMUNES_CONTRACT,
    STOPDESK_STATIONS_CONTRACT,
    TableContract,
)
from wilaya_data.sources import BuildError, read_json, read_table

logger = logging.getLogger(__name__)

# Literals a lenient numeric cast accepts, including 0x/0o/0b integers and
# Infinity.
_NUMERIC_PATTERN: re.Pattern[str] = re.compile(
    r"^(?:[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"
    r"|0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+"
    r"|[+-]?Infinity)$",
    re.ASCII,
)

# Leading integer prefix: "400 DA" -> 400, "650.50" -> 650
_INTEGER_PREFIX_PATTERN: re.Pattern[str] = re.compile(r"^\s*([+-]?\d+)")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class MalformedSourceError(BuildError):
    """Raised when a JSON source does not have the expected structure."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Malformed source '{path}': {detail}")


class MalformedTariffError(BuildError):
    """Raised when a tariff value cannot be parsed as an integer.

    Attributes:
        entry_key: Key of the offending entry in the delivery mapping.
        field_name: Tariff field that failed to parse.
        value: Raw value found in the document.
    """

    def __init__(self, entry_key: str, field_name: str, value: object) -> None:
        self.entry_key = entry_key
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"Delivery entry '{entry_key}': {field_name}={value!r} is not an integer"
        )


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PricePair:
    """Noest tariffs for one wilaya, in dinars.

    Attributes:
        home: Home-delivery tariff.
        stop_desk: Stop-desk (pickup station) tariff.
    """

    home: int = 0
    stop_desk: int = 0


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------


def _iter_data_rows(
    rows: list[list[str]],
    contract: TableContract,
) -> Iterator[tuple[str, ...]]:
    """Yield contracted fields of each data row, skipping malformed rows.

    The first row is the header and is never yielded. A row is malformed
    when it is too short, when a contracted field is empty, or when a
    NUMERIC field does not look like a number.
    """
    skipped = 0
    for row in rows[1:]:
        if len(row) < contract.width:
            skipped += 1
            continue

        values = tuple(row[c.index].strip() for c in contract.columns)
        if not all(values):
            skipped += 1
            continue

        if any(
            c.expected_dtype == "NUMERIC" and not _NUMERIC_PATTERN.match(v)
            for c, v in zip(contract.columns, values, strict=True)
        ):
            skipped += 1
            continue

        yield values

    if skipped:
        logger.debug("%s: skipped %d malformed rows", contract.source_name, skipped)


def parse_tariff(value: object, entry_key: str, field_name: str) -> int:
    """Parse a tariff value to an integer, truncating any non-numeric suffix.

    Args:
        value: Raw value from the delivery document (string or number).
        entry_key: Entry key, used in error messages.
        field_name: Field name, used in error messages.

    Returns:
        Integer tariff. Fractional parts are dropped, never rounded.

    Raises:
        MalformedTariffError: If the value has no leading integer.
    """
    if isinstance(value, bool):
        raise MalformedTariffError(entry_key, field_name, value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value == value and abs(value) != float("inf"):
        return int(value)
    if isinstance(value, str):
        match = _INTEGER_PREFIX_PATTERN.match(value)
        if match:
            return int(match.group(1))
    raise MalformedTariffError(entry_key, field_name, value)


def _wilaya_key(value: object) -> str:
    """Stringify a wilaya_id the way it is written in code_wilayas.csv."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# ---------------------------------------------------------------------------
# Index builders
# ---------------------------------------------------------------------------


def index_stations(rows: list[list[str]]) -> dict[str, str]:
    """Build the station name -> station code index.

    Later rows with the same station name overwrite the code; the name keeps
    the position of its first occurrence.
    """
    stations: dict[str, str] = {}
    for name, code in _iter_data_rows(rows, STOPDESK_STATIONS_CONTRACT):
        stations[name] = code
    return stations


def index_wilayas(rows: list[list[str]]) -> dict[str, str]:
    """Build the wilaya code -> wilaya name index."""
    wilayas: dict[str, str] = {}
    for code, name in _iter_data_rows(rows, CODE_WILAYAS_CONTRACT):
        wilayas[code] = name
    return wilayas


def index_communes(rows: list[list[str]]) -> dict[str, list[str]]:
    """Group commune names by wilaya code, preserving row order."""
    communes: dict[str, list[str]] = {}
    for name, code in _iter_data_rows(rows, COMMUNES_CONTRACT):
        communes.setdefault(code, []).append(name)
    return communes


def index_delivery_prices(
    document: Any,
    path: Path,
) -> dict[str, PricePair]:
    """Build the wilaya code -> PricePair index from a Noest fees document.

    Args:
        document: Decoded JSON with a top-level ``delivery`` mapping.
        path: Source location, used in error messages.

    Returns:
        Mapping keyed by the stringified ``wilaya_id`` of each entry.

    Raises:
        MalformedSourceError: If ``delivery`` is missing or not a mapping,
            or an entry has no ``wilaya_id``.
        MalformedTariffError: If a tariff is not an integer.
    """
    if not isinstance(document, dict) or not isinstance(
        document.get("delivery"), dict
    ):
        raise MalformedSourceError(path, "expected an object with a 'delivery' mapping")

    prices: dict[str, PricePair] = {}
    for key, entry in document["delivery"].items():
        if not isinstance(entry, dict) or entry.get("wilaya_id") is None:
            raise MalformedSourceError(path, f"delivery entry '{key}' has no wilaya_id")
        prices[_wilaya_key(entry["wilaya_id"])] = PricePair(
            home=parse_tariff(entry.get("tarif"), key, "tarif"),
            stop_desk=parse_tariff(entry.get("tarif_stopdesk"), key, "tarif_stopdesk"),
        )
    return prices


# ---------------------------------------------------------------------------
# File loaders
# ---------------------------------------------------------------------------


def load_stations(path: Path) -> dict[str, str]:
    """Load the Noest stop-desk station table."""
    stations = index_stations(read_table(path))
    logger.info("Loaded %d stations from %s", len(stations), path.name)
    return stations


def load_wilayas(path: Path) -> dict[str, str]:
    """Load the wilaya code table."""
    wilayas = index_wilayas(read_table(path))
    logger.info("Loaded %d wilayas from %s", len(wilayas), path.name)
    return wilayas


def load_communes(path: Path) -> dict[str, list[str]]:
    """Load the commune table grouped by wilaya code."""
    communes = index_communes(read_table(path))
    logger.info(
        "Loaded %d communes across %d wilayas from %s",
        sum(len(names) for names in communes.values()),
        len(communes),
        path.name,
    )
    return communes


def load_delivery_prices(path: Path) -> dict[str, PricePair]:
    """Load Noest delivery tariffs keyed by wilaya code."""
    prices = index_delivery_prices(read_json(path), path)
    logger.info("Loaded %d tariffs from %s", len(prices), path.name)
    return prices


def load_legacy_data(path: Path) -> dict[str, Any]:
    """Load the commune -> previous wilaya lookup table unchanged.

    Raises:
        MalformedSourceError: If the document is not a JSON object.
    """
    document = read_json(path)
    if not isinstance(document, dict):
        raise MalformedSourceError(path, "expected an object keyed by commune name")
    logger.info("Loaded %d legacy entries from %s", len(document), path.name)
    return document
