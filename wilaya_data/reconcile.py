"""Reconciliation of the reference indexes into one record per wilaya.

The four tables are keyed inconsistently: wilayas and communes share a plain
numeric code, stations embed that code as a prefix of the leading digits of
their own station code, tariffs carry it as a JSON number, and the legacy table
is keyed by commune name. ``reconcile`` joins them into ``Region`` records
keyed by wilaya name.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final

from wilaya_data.loaders import PricePair

logger = logging.getLogger(__name__)

# ASCII only: station codes never carry other digit scripts
_LEADING_DIGITS_PATTERN: re.Pattern[str] = re.compile(r"^\d+", re.ASCII)


class _Missing(Enum):
    """Marker for a legacy field absent from its lookup entry."""

    MISSING = "MISSING"


# Distinct from None: an explicit null in legacyData.json is written back as null
MISSING: Final = _Missing.MISSING


@dataclass(frozen=True, slots=True)
class Station:
    """A Noest stop-desk station attached to a wilaya.

    Attributes:
        name: Station display name (usually the commune it sits in).
        code: Noest station code, e.g. ``1601``.
    """

    name: str
    code: str


@dataclass(frozen=True, slots=True)
class LegacyIdentity:
    """Name and code a wilaya was known by before the wilaya redistricting.

    Either field is ``MISSING`` when the lookup entry does not carry it.
    """

    previous_wilaya: Any = MISSING
    previous_id: Any = MISSING


@dataclass(frozen=True, slots=True)
class Region:
    """Merged record for one wilaya.

    Attributes:
        code: Wilaya code as written in code_wilayas.csv.
        name: Wilaya display name, the key of the output mapping.
        communes: Commune names in source row order.
        stations: Matched stations, unique by name, in station-table order.
        prices: Noest tariffs, (0, 0) when the wilaya has none.
        legacy: Previous identity, or None when no commune matched.
    """

    code: str
    name: str
    communes: list[str]
    stations: list[Station] = field(default_factory=list)
    prices: PricePair = field(default_factory=PricePair)
    legacy: LegacyIdentity | None = None


def leading_digits(station_code: str) -> str | None:
    """Return the leading ASCII digit run of a station code, or None."""
    match = _LEADING_DIGITS_PATTERN.match(station_code)
    return match.group(0) if match else None


def station_wilaya_code(
    station_code: str, wilaya_codes: Collection[str]
) -> str | None:
    """Return the wilaya code a station code belongs to, or None.

    A station belongs to the longest wilaya code that prefixes the leading
    digit run of its code: ``1601`` and ``16A01`` both belong to ``16``.
    Codes compare as strings, so ``0901`` does not belong to ``9``.
    """
    digits = leading_digits(station_code)
    if digits is None:
        return None
    for end in range(len(digits), 0, -1):
        if digits[:end] in wilaya_codes:
            return digits[:end]
    return None


def group_stations_by_wilaya(
    stations: Mapping[str, str],
    wilaya_codes: Collection[str],
) -> dict[str, list[Station]]:
    """Group stations under the wilaya code embedded in their station code.

    Stations keep the iteration order of ``stations`` inside each group and
    appear at most once per group by name. Stations that belong to none of
    ``wilaya_codes`` are dropped.
    """
    groups: dict[str, list[Station]] = {}
    seen: dict[str, set[str]] = {}
    for name, code in stations.items():
        wilaya_code = station_wilaya_code(code, wilaya_codes)
        if wilaya_code is None:
            continue
        names = seen.setdefault(wilaya_code, set())
        if name in names:
            continue
        names.add(name)
        groups.setdefault(wilaya_code, []).append(Station(name=name, code=code))
    return groups


def find_legacy_identity(
    communes: list[str],
    legacy_data: Mapping[str, Any],
) -> LegacyIdentity | None:
    """Return the first legacy entry, in table order, keyed by one of communes.

    Table order decides ties: when several communes have legacy entries, the
    entry listed first in ``legacy_data`` wins regardless of commune order.
    """
    names = set(communes)
    for commune, entry in legacy_data.items():
        if commune in names:
            fields = entry if isinstance(entry, Mapping) else {}
            return LegacyIdentity(
                previous_wilaya=fields.get("previousWilaya", MISSING),
                previous_id=fields.get("previousId", MISSING),
            )
    return None


def reconcile(
    stations: Mapping[str, str],
    wilayas: Mapping[str, str],
    communes: Mapping[str, list[str]],
    prices: Mapping[str, PricePair],
    legacy_data: Mapping[str, Any],
) -> dict[str, Region]:
    """Join the reference indexes into one Region per wilaya name.

    Only wilayas present in both ``wilayas`` and ``communes`` are emitted,
    in ``wilayas`` order. A wilaya name shared by two codes keeps its first
    position and takes the later code's record.

    Args:
        stations: Station name -> station code.
        wilayas: Wilaya code -> wilaya name.
        communes: Wilaya code -> ordered commune names.
        prices: Wilaya code -> PricePair.
        legacy_data: Commune name -> previous wilaya record.

    Returns:
        Mapping of wilaya name to merged Region.
    """
    stations_by_wilaya = group_stations_by_wilaya(stations, wilayas.keys())
    regions: dict[str, Region] = {}

    for code, name in wilayas.items():
        commune_names = communes.get(code)
        if not commune_names:
            logger.debug("Wilaya %s (%s) has no communes, omitted", code, name)
            continue

        regions[name] = Region(
            code=code,
            name=name,
            communes=list(commune_names),
            stations=list(stations_by_wilaya.get(code, [])),
            prices=prices.get(code, PricePair()),
            legacy=find_legacy_identity(commune_names, legacy_data),
        )

    logger.info("Reconciled %d of %d wilayas", len(regions), len(wilayas))
    return regions
