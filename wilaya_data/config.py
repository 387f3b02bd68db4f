"""Source configuration registry for the wilaya data builder.

Defines typed configuration for the five reference sources: Noest stop-desk
stations, wilaya codes, communes, Noest delivery prices, and the legacy
commune lookup. The registry order is the order in which the pipeline reads
the sources.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Final


class FileFormat(Enum):
    """Expected file format for a source file."""

    CSV = "csv"
    JSON = "json"
    XLSX = "xlsx"


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """Immutable configuration for a single reference source.

    Attributes:
        name: Machine-readable source identifier (snake_case).
        filename: File name relative to the data directory.
        file_format: Expected format of the file.
        alternate_formats: Formats accepted in place of file_format when
            the primary file is absent, tried in order.
    """

    name: str
    filename: str
    file_format: FileFormat
    alternate_formats: tuple[FileFormat, ...] = ()

    def path_in(self, data_dir: Path) -> Path:
        """Return the source file location under data_dir.

        The primary file wins when present. Otherwise the first alternate
        found on disk is used; with none found the primary path is returned
        so the missing-file error names it.
        """
        primary = data_dir / self.filename
        if primary.exists():
            return primary
        for fmt in self.alternate_formats:
            candidate = primary.with_suffix(f".{fmt.value}")
            if candidate.exists():
                return candidate
        return primary


DEFAULT_DATA_DIR: Final[Path] = Path("data")
DEFAULT_OUTPUT_PATH: Final[Path] = Path("wilayaData.json")


SOURCES: Final[tuple[SourceConfig, ...]] = (
    SourceConfig(
        name="stopdesk_stations",
        filename="stopdesk_stations.csv",
        file_format=FileFormat.CSV,
        alternate_formats=(FileFormat.XLSX,),
    ),
    SourceConfig(
        name="code_wilayas",
        filename="code_wilayas.csv",
        file_format=FileFormat.CSV,
    ),
    SourceConfig(
        name="communes",
        filename="communes.csv",
        file_format=FileFormat.CSV,
    ),
    SourceConfig(
        name="delivery_prices",
        filename="deliveryPrices.json",
        file_format=FileFormat.JSON,
    ),
    SourceConfig(
        name="legacy_data",
        filename="legacyData.json",
        file_format=FileFormat.JSON,
    ),
)


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Run configuration for one pipeline invocation.

    Attributes:
        data_dir: Directory holding the five source files.
        output_path: Destination of the generated JSON artifact.
        prices_url: Optional endpoint to refresh deliveryPrices.json from
            before loading. No network access happens when None.
    """

    data_dir: Path = DEFAULT_DATA_DIR
    output_path: Path = DEFAULT_OUTPUT_PATH
    prices_url: str | None = None

    def source_path(self, name: str) -> Path:
        """Resolve the on-disk path of a named source."""
        return get_source_by_name(name).path_in(self.data_dir)


def get_source_by_name(name: str) -> SourceConfig:
    """Look up a source configuration by its machine-readable name.

    Args:
        name: Source name matching SourceConfig.name field.

    Returns:
        Matching SourceConfig instance.

    Raises:
        KeyError: If no source matches the given name.
    """
    for source in SOURCES:
        if source.name == name:
            return source
    valid_names = ", ".join(s.name for s in SOURCES)
    raise KeyError(f"Unknown source '{name}'. Valid names: {valid_names}")
