"""Tests for raw source readers (wilaya_data/sources.py).

Covers CSV row normalization, encoding detection and BOM stripping, XLSX
reading, JSON decoding, and missing-file handling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path

from wilaya_data.sources import (
    BuildError,
    SourceUnavailableError,
    decode_text,
    read_json,
    read_table,
)


class TestReadTableCsv:
    """CSV table reading tests."""

    def test_returns_header_and_rows_in_order(self, wilayas_csv: Path) -> None:
        rows = read_table(wilayas_csv)

        assert rows[0] == ["code", "nom"]
        assert rows[1] == ["16", "Alger"]
        assert rows[2] == ["31", "Oran"]

    def test_fields_are_trimmed(self, tmp_path: Path) -> None:
        csv_path = tmp_path / "spaces.csv"
        csv_path.write_text("code,nom\n  16 ,  Alger  \n", encoding="utf-8")

        rows = read_table(csv_path)

        assert rows[1] == ["16", "Alger"]

    def test_blank_lines_dropped(self, tmp_path: Path) -> None:
        csv_path = tmp_path / "blank.csv"
        csv_path.write_text("\ncode,nom\n\n16,Alger\n\n31,Oran\n", encoding="utf-8")

        rows = read_table(csv_path)

        assert rows == [["code", "nom"], ["16", "Alger"], ["31", "Oran"]]

    def test_short_rows_keep_their_width(self, tmp_path: Path) -> None:
        csv_path = tmp_path / "short.csv"
        csv_path.write_text("code,nom\n16\n", encoding="utf-8")

        rows = read_table(csv_path)

        assert rows[1] == ["16"]

    def test_quoted_fields_with_commas(self, tmp_path: Path) -> None:
        csv_path = tmp_path / "quoted.csv"
        csv_path.write_text(
            'Station,Code\n"Alger, Place des Martyrs",1605\n', encoding="utf-8"
        )

        rows = read_table(csv_path)

        assert rows[1] == ["Alger, Place des Martyrs", "1605"]

    def test_crlf_line_endings(self, tmp_path: Path) -> None:
        csv_path = tmp_path / "crlf.csv"
        csv_path.write_bytes(b"code,nom\r\n16,Alger\r\n")

        rows = read_table(csv_path)

        assert rows == [["code", "nom"], ["16", "Alger"]]

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SourceUnavailableError) as exc_info:
            read_table(tmp_path / "absent.csv")

        assert "absent.csv" in str(exc_info.value)
        assert exc_info.value.reason == "file not found"

    def test_source_unavailable_is_build_error(self, tmp_path: Path) -> None:
        with pytest.raises(BuildError):
            read_table(tmp_path / "absent.csv")


class TestEncoding:
    """Encoding detection and BOM handling tests."""

    def test_strips_utf8_bom(self, utf8_bom_csv: Path) -> None:
        rows = read_table(utf8_bom_csv)

        assert rows[0] == ["code", "nom"]

    def test_decodes_windows_1252(self, windows_1252_csv: Path) -> None:
        rows = read_table(windows_1252_csv)

        names = [row[0] for row in rows[1:]]
        assert names == [
            "Béjaïa",
            "Sidi Aïch",
            "Médéa",
            "Aïn Témouchent",
            "Café Résumé",
        ]

    def test_decodes_utf16_with_bom(self, tmp_path: Path) -> None:
        csv_path = tmp_path / "utf16.csv"
        csv_path.write_bytes("code,nom\n6,Béjaïa\n".encode("utf-16"))

        rows = read_table(csv_path)

        assert rows[1] == ["6", "Béjaïa"]

    def test_truncated_utf16_raises(self, tmp_path: Path) -> None:
        csv_path = tmp_path / "truncated.csv"
        csv_path.write_bytes("code,nom\n".encode("utf-16") + b"\x36")

        with pytest.raises(SourceUnavailableError, match="invalid UTF-16"):
            read_table(csv_path)

    def test_utf8_text_passes_through(self, tmp_path: Path) -> None:
        text = decode_text("Aïn Témouchent".encode(), tmp_path / "x.csv")

        assert text == "Aïn Témouchent"


class TestReadTableXlsx:
    """XLSX table reading tests."""

    def test_reads_active_sheet(self, stations_xlsx: Path) -> None:
        rows = read_table(stations_xlsx)

        assert rows[0] == ["Station", "Code"]
        assert rows[1] == ["Kouba", "1601"]

    def test_integral_floats_render_without_fraction(
        self, stations_xlsx: Path
    ) -> None:
        rows = read_table(stations_xlsx)

        assert ["Oran Centre", "3101"] in rows

    def test_empty_rows_dropped_and_none_cells_empty(
        self, stations_xlsx: Path
    ) -> None:
        rows = read_table(stations_xlsx)

        assert len(rows) == 4
        assert rows[-1][0] == "Blida"
        assert all(cell == "" for cell in rows[-1][1:])

    def test_invalid_workbook_raises(self, tmp_path: Path) -> None:
        xlsx_path = tmp_path / "not_really.xlsx"
        xlsx_path.write_text("Station,Code\nKouba,1601\n", encoding="utf-8")

        with pytest.raises(SourceUnavailableError, match="not a valid XLSX"):
            read_table(xlsx_path)


class TestReadJson:
    """JSON document reading tests."""

    def test_preserves_key_order(self, tmp_path: Path) -> None:
        json_path = tmp_path / "legacy.json"
        json_path.write_text('{"b": 1, "a": 2, "c": 3}', encoding="utf-8")

        document = read_json(json_path)

        assert list(document) == ["b", "a", "c"]

    def test_tolerates_bom(self, tmp_path: Path) -> None:
        json_path = tmp_path / "bom.json"
        json_path.write_bytes(b"\xef\xbb\xbf" + b'{"delivery": {}}')

        assert read_json(json_path) == {"delivery": {}}

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        json_path = tmp_path / "broken.json"
        json_path.write_text('{"delivery": ', encoding="utf-8")

        with pytest.raises(SourceUnavailableError, match="invalid JSON"):
            read_json(json_path)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SourceUnavailableError):
            read_json(tmp_path / "deliveryPrices.json")
