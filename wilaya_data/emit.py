"""Serialization of reconciled wilaya records to wilayaData.json."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from wilaya_data.reconcile import MISSING, Region

logger = logging.getLogger(__name__)

_INDENT: int = 2


def region_to_dict(region: Region) -> dict[str, Any]:
    """Render one Region in the wilayaData.json layout.

    ``legacyData`` is only present for regions with a legacy identity, and
    its fields are only present when the lookup entry carried them. A field
    set to null in the lookup entry is written as null.
    """
    record: dict[str, Any] = {
        "id": region.code,
        "communes": list(region.communes),
        "noest": {
            "stations": [
                {"commune": station.name, "stationCode": station.code}
                for station in region.stations
            ],
            "prices": {
                "home": region.prices.home,
                "stopDesk": region.prices.stop_desk,
            },
        },
    }
    if region.legacy is not None:
        legacy = {
            "previousWilaya": region.legacy.previous_wilaya,
            "previousId": region.legacy.previous_id,
        }
        record["legacyData"] = {k: v for k, v in legacy.items() if v is not MISSING}
    return record


def build_payload(regions: Mapping[str, Region]) -> dict[str, dict[str, Any]]:
    """Render the full name -> record mapping, keeping insertion order."""
    return {name: region_to_dict(region) for name, region in regions.items()}


def dumps_payload(payload: Mapping[str, Any]) -> str:
    """Serialize the payload as 2-space indented JSON, non-ASCII kept as-is."""
    return json.dumps(payload, indent=_INDENT, ensure_ascii=False)


def write_output(regions: Mapping[str, Region], path: Path) -> int:
    """Write wilayaData.json via atomic write (temp file + replace).

    Args:
        regions: Reconciled regions keyed by wilaya name.
        path: Destination file. Parent directories are created.

    Returns:
        Number of bytes written.
    """
    text = dumps_payload(build_payload(regions))
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Path = path.with_suffix(".tmp")
    try:
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(str(tmp_path), str(path))
    finally:
        tmp_path.unlink(missing_ok=True)

    byte_count = path.stat().st_size
    logger.info("Wrote %d wilayas to %s (%d bytes)", len(regions), path, byte_count)
    return byte_count
