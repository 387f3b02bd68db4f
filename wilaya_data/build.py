"""Pipeline orchestrator for wilayaData.json generation.

Loads the five reference sources in a fixed order, reconciles them into one
record per wilaya, and writes the result. Any load failure aborts the run
before the output file is touched.

Usage:
    python -m wilaya_data.build
    python -m wilaya_data.build --data-dir data --output wilayaData.json
    python -m wilaya_data.build --prices-url "https://.../fees?api_token=..."
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from wilaya_data.config import DEFAULT_DATA_DIR, DEFAULT_OUTPUT_PATH, BuildConfig
from wilaya_data.download import DownloadResult, fetch_delivery_prices
from wilaya_data.emit import write_output
from wilaya_data.loaders import (
    PricePair,
    load_communes,
    load_delivery_prices,
    load_legacy_data,
    load_stations,
    load_wilayas,
)
from wilaya_data.reconcile import Region, reconcile
from wilaya_data.sources import BuildError

logger: Final[logging.Logger] = logging.getLogger(__name__)


# ---- Result dataclasses -----------------------------------------------------


@dataclass(frozen=True, slots=True)
class SourceTables:
    """The five loaded indexes, ready for reconciliation.

    Attributes:
        stations: Station name -> station code.
        wilayas: Wilaya code -> wilaya name.
        communes: Wilaya code -> ordered commune names.
        prices: Wilaya code -> PricePair.
        legacy_data: Commune name -> previous wilaya record.
    """

    stations: dict[str, str]
    wilayas: dict[str, str]
    communes: dict[str, list[str]]
    prices: dict[str, PricePair]
    legacy_data: dict[str, Any]


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Aggregate outcome of one pipeline run.

    Attributes:
        output_path: Location of the written artifact.
        region_count: Wilayas in the output.
        station_count: Station entries across all wilayas.
        legacy_count: Wilayas carrying legacyData.
        unpriced_count: Wilayas with no tariff entry, written as (0, 0).
        byte_count: Size of the output file.
        elapsed_seconds: Wall-clock time for the full run.
        prices_refresh: Tariff download metadata, None when no refresh ran.
    """

    output_path: Path
    region_count: int
    station_count: int
    legacy_count: int
    unpriced_count: int
    byte_count: int
    elapsed_seconds: float
    prices_refresh: DownloadResult | None = None


# ---- Stages ------------------------------------------------------------------


def load_sources(config: BuildConfig) -> SourceTables:
    """Load every source in the fixed read order.

    Raises:
        BuildError: On the first missing, unreadable, or malformed source.
    """
    return SourceTables(
        stations=load_stations(config.source_path("stopdesk_stations")),
        wilayas=load_wilayas(config.source_path("code_wilayas")),
        communes=load_communes(config.source_path("communes")),
        prices=load_delivery_prices(config.source_path("delivery_prices")),
        legacy_data=load_legacy_data(config.source_path("legacy_data")),
    )


def merge_sources(tables: SourceTables) -> dict[str, Region]:
    """Reconcile loaded tables into Region records keyed by wilaya name."""
    return reconcile(
        stations=tables.stations,
        wilayas=tables.wilayas,
        communes=tables.communes,
        prices=tables.prices,
        legacy_data=tables.legacy_data,
    )


def run_pipeline(config: BuildConfig | None = None) -> BuildResult:
    """Execute load, reconcile, and write for one configuration.

    Args:
        config: Run configuration. Defaults to ./data and ./wilayaData.json.

    Returns:
        BuildResult summarizing the written artifact.

    Raises:
        BuildError: If the tariff refresh or any source load fails. The
            output file is not written in that case.
    """
    cfg = config if config is not None else BuildConfig()
    start = time.monotonic()

    prices_refresh: DownloadResult | None = None
    if cfg.prices_url is not None:
        prices_refresh = fetch_delivery_prices(
            cfg.prices_url, cfg.source_path("delivery_prices")
        )

    tables = load_sources(cfg)
    regions = merge_sources(tables)
    byte_count = write_output(regions, cfg.output_path)

    elapsed = time.monotonic() - start
    logger.info(
        "Data transformation complete. Output saved to %s", cfg.output_path
    )
    return BuildResult(
        output_path=cfg.output_path,
        region_count=len(regions),
        station_count=sum(len(r.stations) for r in regions.values()),
        legacy_count=sum(1 for r in regions.values() if r.legacy is not None),
        unpriced_count=sum(
            1 for r in regions.values() if r.code not in tables.prices
        ),
        byte_count=byte_count,
        elapsed_seconds=round(elapsed, 3),
        prices_refresh=prices_refresh,
    )


# ---- CLI ---------------------------------------------------------------------


def _build_arg_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Build wilayaData.json from wilaya, commune, and Noest sources.",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DEFAULT_DATA_DIR,
        help=f"Directory holding the source files (default: {DEFAULT_DATA_DIR}).",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT_PATH,
        help=f"Output JSON path (default: {DEFAULT_OUTPUT_PATH}).",
    )
    parser.add_argument(
        "--prices-url",
        type=str,
        default=None,
        help="Refresh deliveryPrices.json from this endpoint before building.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug-level logging.",
    )
    return parser


def _configure_logging(verbose: bool) -> None:
    """Set up logging for the build session."""
    level: int = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stderr,
    )


def _print_summary(result: BuildResult) -> None:
    """Print a short execution summary to stdout."""
    print(f"\n{'=' * 60}")
    print("Wilaya Data Build Summary")
    print(f"{'=' * 60}")
    print(f"{'Wilayas':<28} {result.region_count}")
    print(f"{'Stations':<28} {result.station_count}")
    print(f"{'Wilayas with legacy data':<28} {result.legacy_count}")
    print(f"{'Wilayas without tariffs':<28} {result.unpriced_count}")
    if result.prices_refresh is not None:
        print(
            f"{'Tariff entries refreshed':<28} {result.prices_refresh.entry_count}"
        )
    print("-" * 60)
    print(
        f"Output: {result.output_path}  "
        f"Size: {result.byte_count} bytes  "
        f"Elapsed: {result.elapsed_seconds:.1f}s"
    )
    print(f"{'=' * 60}\n")


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the build pipeline.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code: 0 on success, 1 if any source fails to load.
    """
    parser = _build_arg_parser()
    args: argparse.Namespace = parser.parse_args(argv)
    _configure_logging(args.verbose)

    config = BuildConfig(
        data_dir=args.data_dir,
        output_path=args.output,
        prices_url=args.prices_url,
    )

    try:
        result = run_pipeline(config)
    except BuildError:
        logger.exception("Build failed; %s was not written", config.output_path)
        return 1

    _print_summary(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
