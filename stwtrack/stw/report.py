"""
CSV and QA summary output.

Numbers are written with fixed precision: 5 dp for positions, 2 dp for
speeds and offsets, whole degrees for directions. Missing values (GAP
hours) are empty cells.
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import pandas as pd

from stwtrack.stw.aggregator import HourlyRecord, QaSummary
from stwtrack.stw.resolver import Slice

logger = logging.getLogger(__name__)

HOURLY_COLUMNS = [
    "timestamp_utc", "lat", "lon", "sog_kn", "cog_deg",
    "current_kn", "current_dir_deg", "stw_kn", "stw_dir_deg",
    "confidence", "max_neighbor_offset_nm",
]

SLICE_COLUMNS = [
    "timestamp_utc", "lat", "lon", "sog_kn", "cog_deg",
    "current_kn", "current_dir_deg", "stw_kn", "stw_dir_deg",
    "neighbor_offset_nm",
]


@dataclass
class ReportPaths:
    hourly: Path
    slices: Path
    summary: Path


def output_paths(track_path, out_dir) -> ReportPaths:
    """<base>-hourly.csv, <base>-slices.csv and <base>-summary.txt in out_dir."""
    base = Path(track_path).stem
    out_dir = Path(out_dir)
    return ReportPaths(
        hourly=out_dir / f"{base}-hourly.csv",
        slices=out_dir / f"{base}-slices.csv",
        summary=out_dir / f"{base}-summary.txt",
    )


def fmt(value: Optional[float], decimals: int = 2) -> str:
    if value is None or not math.isfinite(value):
        return ""
    return f"{value:.{decimals}f}"


def _write_csv(rows: List[list], columns: List[str], path: Path) -> None:
    frame = pd.DataFrame(rows, columns=columns, dtype=object)
    frame.to_csv(path, index=False, lineterminator="\n")


def write_hourly_csv(records: List[HourlyRecord], path) -> Path:
    path = Path(path)
    rows = [
        [
            r.hour.strftime("%Y-%m-%dT%H:00Z"),
            fmt(r.lat, 5), fmt(r.lon, 5),
            fmt(r.sog_kn), fmt(r.cog_deg, 0),
            fmt(r.current_kn), fmt(r.current_dir_deg, 0),
            fmt(r.stw_kn), fmt(r.stw_dir_deg, 0),
            r.confidence.value,
            fmt(r.max_neighbor_offset_nm),
        ]
        for r in records
    ]
    _write_csv(rows, HOURLY_COLUMNS, path)
    logger.info(f"Wrote {len(rows)} hourly rows to {path}")
    return path


def write_slices_csv(slices: List[Slice], path) -> Path:
    path = Path(path)
    rows = [
        [
            s.time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            fmt(s.lat, 5), fmt(s.lon, 5),
            fmt(s.sog), fmt(s.cog, 0),
            fmt(s.current_kn), fmt(s.current_dir_deg, 0),
            fmt(s.stw_kn), fmt(s.stw_dir_deg, 0),
            fmt(s.neighbor_offset_nm),
        ]
        for s in slices
    ]
    _write_csv(rows, SLICE_COLUMNS, path)
    logger.info(f"Wrote {len(rows)} slice rows to {path}")
    return path


def write_summary(summary: QaSummary, path, track_path, source_label: str) -> Path:
    path = Path(path)
    text = (
        "STW summary\n"
        f"Source CSV: {track_path}\n"
        f"GRIB: {source_label}\n"
        "\n"
        f"Hours total: {summary.hours_total}\n"
        f"Hours GAP:   {summary.hours_gap}\n"
        f"Median current (kn): {fmt(summary.median_current_kn)}\n"
        f"Max neighbor offset (nm): {fmt(summary.max_neighbor_offset_nm)}\n"
    )
    path.write_text(text, encoding="utf-8")
    return path
