#!/usr/bin/env python3
"""
stwtrack CLI.

Reconstructs hourly speed through water and surface current from a GPS
track CSV and a GRIB2 current forecast (UOGRD/VOGRD, 0-360 longitudes).

Usage:
    python -m stwtrack --csv track.csv
    python -m stwtrack --csv track.csv --grib current.grb2 --out out/ --slices
    python -m stwtrack --csv track.csv --start 2024-06-01T08:00Z
"""
import argparse
import logging
import sys
from typing import List, Optional

from stwtrack.config import CURRENT_BACKENDS, MAX_SEARCH_STEPS, get_settings
from stwtrack.data.current_sampler import CurrentFieldSampler
from stwtrack.data.current_sources import CurrentSourceError, open_current_source
from stwtrack.metrics import metrics
from stwtrack.stw.pipeline import run_pipeline
from stwtrack.track.loader import TrackLoadError, parse_start_time

logger = logging.getLogger(__name__)


def _start_arg(text: str):
    try:
        return parse_start_time(text)
    except TrackLoadError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _search_steps_arg(text: str) -> int:
    try:
        steps = int(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an integer: '{text}'") from e
    if not 0 <= steps <= MAX_SEARCH_STEPS:
        raise argparse.ArgumentTypeError(
            f"must be between 0 and {MAX_SEARCH_STEPS}, got {steps}"
        )
    return steps


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="stwtrack",
        description="Speed through water and currents from a GPS track and GRIB currents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Hourly CSV and summary with the default GRIB file:
    python -m stwtrack --csv data/tracks/passage.csv

  Per-slice output as well, querying with wgrib2:
    python -m stwtrack --csv passage.csv --grib current.grb2 --backend wgrib2 --slices

  Replay a track as if it started at another time:
    python -m stwtrack --csv passage.csv --start 2024-06-01T08:00Z
        """
    )
    parser.add_argument("--csv", required=True, help="Track CSV (semicolon-delimited)")
    parser.add_argument(
        "--grib",
        default=settings.grib_path,
        help=f"GRIB2 current forecast (default: {settings.grib_path})"
    )
    parser.add_argument(
        "--out",
        default=settings.out_dir,
        help=f"Output directory (default: {settings.out_dir})"
    )
    parser.add_argument(
        "--slices",
        action="store_true",
        default=settings.write_slices,
        help="Also write the per-slice CSV"
    )
    parser.add_argument(
        "--start",
        type=_start_arg,
        help="Shift the track so it starts at YYYY-MM-DDTHH:MMZ (UTC)"
    )
    parser.add_argument(
        "--backend",
        choices=CURRENT_BACKENDS,
        default=settings.current_backend,
        help=f"How the GRIB file is read (default: {settings.current_backend})"
    )
    parser.add_argument(
        "--wgrib2",
        default=settings.wgrib2_path,
        help=f"wgrib2 executable for the wgrib2 backend (default: {settings.wgrib2_path})"
    )
    parser.add_argument(
        "--search-steps",
        type=_search_steps_arg,
        default=settings.search_steps,
        help=f"Neighbor rings searched for masked cells (default: {settings.search_steps})"
    )
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL or INFO)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    get_settings().configure_logging(args.log_level)
    metrics.reset()

    try:
        source = open_current_source(args.backend, args.grib, args.wgrib2)
        sampler = CurrentFieldSampler(source, max_steps=args.search_steps)
        result = run_pipeline(
            args.csv,
            sampler,
            args.out,
            write_slices=args.slices,
            start=args.start,
            source_label=args.grib,
        )
    except (TrackLoadError, CurrentSourceError, OSError) as e:
        print(f"FATAL: {e}", file=sys.stderr)
        return 1

    metrics.log_summary()

    print("OK")
    print(f"Hourly : {result.paths.hourly}")
    if result.slices_written:
        print(f"Slices : {result.paths.slices}")
    print(f"Summary: {result.paths.summary}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
