"""Shared pytest fixtures for loader, reconciliation, and pipeline tests.

Generates source files programmatically into tmp_path to avoid committing
data files. CSV fixtures use csv.writer; XLSX fixtures use openpyxl;
encoding fixtures use explicit byte encoding.
"""

from __future__ import annotations

import csv
import json
from typing import TYPE_CHECKING, Any

import openpyxl
import pytest

if TYPE_CHECKING:
    from pathlib import Path

# ---------------------------------------------------------------------------
# Reference rows
# ---------------------------------------------------------------------------

STATION_HEADERS: list[str] = ["Station", "Code", "Adresse"]

STATION_ROWS: list[list[str]] = [
    ["Kouba", "1601", "Rue des Freres Oughlissi"],
    ["Bab Ezzouar", "1602", "Cite 5 Juillet"],
    ["Oran Centre", "3101", "Boulevard de la Soummam"],
    ["Blida", "0901", "Rue Larbi Tebessi"],
    ["Tipaza", "42A1", "Route Nationale 11"],
    ["", "1699", "missing name"],
    ["Sans code", "", "missing code"],
]

WILAYA_HEADERS: list[str] = ["code", "nom"]

WILAYA_ROWS: list[list[str]] = [
    ["16", "Alger"],
    ["31", "Oran"],
    ["9", "Blida"],
    ["42", "Tipaza"],
    ["58", "El Meniaa"],
    ["X1", "Invalide"],
    ["", "Sans code"],
]

COMMUNE_HEADERS: list[str] = ["commune", "wilaya_id"]

COMMUNE_ROWS: list[list[str]] = [
    ["Kouba", "16"],
    ["Bab Ezzouar", "16"],
    ["Hussein Dey", "16"],
    ["Oran", "31"],
    ["Es Senia", "31"],
    ["Blida", "9"],
    ["Tipaza", "42"],
    ["", "16"],
    ["Orpheline", ""],
]

DELIVERY_PRICES: dict[str, Any] = {
    "delivery": {
        "1": {"tarif_id": 1, "wilaya_id": 16, "tarif": "400", "tarif_stopdesk": "250"},
        "2": {"tarif_id": 2, "wilaya_id": 31, "tarif": "700", "tarif_stopdesk": "450"},
        "3": {"tarif_id": 3, "wilaya_id": 9, "tarif": "600", "tarif_stopdesk": "400"},
    }
}

LEGACY_DATA: dict[str, Any] = {
    "Es Senia": {"previousWilaya": "Wahran", "previousId": "31"},
    "Hussein Dey": {"previousWilaya": "Alger Centre", "previousId": "16"},
}


def write_csv_rows(path: Path, headers: list[str], rows: list[list[str]]) -> Path:
    """Write a header plus rows with csv.writer."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(headers)
        writer.writerows(rows)
    return path


def write_json_document(path: Path, document: Any) -> Path:
    """Write a JSON document with 2-space indentation."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Source file fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def stations_csv(tmp_path: Path) -> Path:
    """Create a stop-desk station CSV including malformed rows."""
    return write_csv_rows(
        tmp_path / "stopdesk_stations.csv", STATION_HEADERS, STATION_ROWS
    )


@pytest.fixture()
def wilayas_csv(tmp_path: Path) -> Path:
    """Create a wilaya code CSV including non-numeric and empty codes."""
    return write_csv_rows(tmp_path / "code_wilayas.csv", WILAYA_HEADERS, WILAYA_ROWS)


@pytest.fixture()
def communes_csv(tmp_path: Path) -> Path:
    """Create a commune CSV including rows with missing fields."""
    return write_csv_rows(tmp_path / "communes.csv", COMMUNE_HEADERS, COMMUNE_ROWS)


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    """Create a complete data directory with all five sources."""
    root = tmp_path / "data"
    write_csv_rows(root / "stopdesk_stations.csv", STATION_HEADERS, STATION_ROWS)
    write_csv_rows(root / "code_wilayas.csv", WILAYA_HEADERS, WILAYA_ROWS)
    write_csv_rows(root / "communes.csv", COMMUNE_HEADERS, COMMUNE_ROWS)
    write_json_document(root / "deliveryPrices.json", DELIVERY_PRICES)
    write_json_document(root / "legacyData.json", LEGACY_DATA)
    return root


# ---------------------------------------------------------------------------
# XLSX fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def stations_xlsx(tmp_path: Path) -> Path:
    """Create a stop-desk station workbook with numeric station codes."""
    xlsx_path = tmp_path / "stopdesk_stations.xlsx"
    wb = openpyxl.Workbook()
    ws = wb.active
    assert ws is not None
    ws.append(["Station", "Code"])
    ws.append(["Kouba", 1601])
    ws.append([None, None])
    ws.append(["Oran Centre", 3101.0])
    ws.append(["Blida", None])
    wb.save(xlsx_path)
    wb.close()
    return xlsx_path


# ---------------------------------------------------------------------------
# Encoding fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def windows_1252_csv(tmp_path: Path) -> Path:
    """Create a commune CSV encoded in Windows-1252 with accented names."""
    csv_path = tmp_path / "windows_1252.csv"
    content = (
        "commune,wilaya_id\n"
        "Béjaïa,6\n"
        "Sidi Aïch,6\n"
        "Médéa,26\n"
        "Aïn Témouchent,46\n"
        "Café Résumé,16\n"
    )
    csv_path.write_bytes(content.encode("windows-1252"))
    return csv_path


@pytest.fixture()
def utf8_bom_csv(tmp_path: Path) -> Path:
    """Create a UTF-8 wilaya CSV with a BOM prefix."""
    csv_path = tmp_path / "utf8_bom.csv"
    bom = b"\xef\xbb\xbf"
    content = "code,nom\n16,Alger\n"
    csv_path.write_bytes(bom + content.encode("utf-8"))
    return csv_path
