"""Positional column contracts for the tabular reference sources.

The CSV sources carry a header row whose labels vary between exports (French,
English, mixed case), so columns are bound by position rather than by name.
Each contract lists the leading columns a loader reads; anything to the right
of them is ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True, slots=True)
class ColumnContract:
    """Expectation for a single positional column.

    Attributes:
        name: Logical field name used by the loader.
        index: Zero-based column position in the source row.
        expected_dtype: Logical data type. One of STRING, NUMERIC.
    """

    name: str
    index: int
    expected_dtype: str


@dataclass(frozen=True, slots=True)
class TableContract:
    """Contract for a tabular source with one header row.

    Attributes:
        source_name: Identifier matching config.SOURCES names.
        columns: Columns read from each data row, in loader order.
    """

    source_name: str
    columns: tuple[ColumnContract, ...]

    @property
    def width(self) -> int:
        """Minimum row length that holds every contracted column."""
        return max(c.index for c in self.columns) + 1


# Noest stop-desk export: station display name, then station code. The code
# starts with the wilaya code (e.g. 1601 for a station in wilaya 16).
STOPDESK_STATIONS_CONTRACT: Final[TableContract] = TableContract(
    source_name="stopdesk_stations",
    columns=(
        ColumnContract(name="station_name", index=0, expected_dtype="STRING"),
        ColumnContract(name="station_code", index=1, expected_dtype="STRING"),
    ),
)

CODE_WILAYAS_CONTRACT: Final[TableContract] = TableContract(
    source_name="code_wilayas",
    columns=(
        ColumnContract(name="wilaya_code", index=0, expected_dtype="NUMERIC"),
        ColumnContract(name="wilaya_name", index=1, expected_dtype="STRING"),
    ),
)

COMMUNES_CONTRACT: Final[TableContract] = TableContract(
    source_name="communes",
    columns=(
        ColumnContract(name="commune_name", index=0, expected_dtype="STRING"),
        ColumnContract(name="wilaya_code", index=1, expected_dtype="STRING"),
    ),
)

